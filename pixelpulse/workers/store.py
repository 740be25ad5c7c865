import json
import time
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from ..config import PARQUET_DIR

COLUMNS = ["type", "props", "url", "session", "page", "ts", "token", "created_at"]
DAY_MS = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def _decode_props(raw) -> dict:
    if isinstance(raw, dict):
        return raw
    if isinstance(raw, str) and raw:
        try:
            val = json.loads(raw)
            return val if isinstance(val, dict) else {}
        except ValueError:
            return {}
    return {}


def rows_frame(rows) -> pd.DataFrame:
    """Stored rows -> flat frame. props go to parquet as a JSON string column."""
    df = pd.DataFrame(rows)
    for col in COLUMNS:
        if col not in df.columns:
            df[col] = np.nan
    df = df[COLUMNS].copy()
    df["props"] = [json.dumps(_decode_props(p)) for p in df["props"]]
    df["ts"] = pd.to_numeric(df["ts"], errors="coerce")
    # collector rows carry no created_at; derive it from the device timestamp
    stamp = pd.to_datetime(df["ts"], unit="ms", utc=True, errors="coerce").dt.strftime("%Y-%m-%dT%H:%M:%S.%fZ")
    df["created_at"] = [c if isinstance(c, str) and c else s for c, s in zip(df["created_at"], stamp)]
    return df


def load_events(days: int = 7, token: Optional[str] = None, now: Optional[int] = None,
                src_dir: Path = PARQUET_DIR) -> pd.DataFrame:
    files = sorted(Path(src_dir).glob("events_*.parquet"))
    if not files:
        return pd.DataFrame(columns=COLUMNS)
    df = pd.concat([pd.read_parquet(f) for f in files], ignore_index=True)
    for col in COLUMNS:
        if col not in df.columns:
            df[col] = np.nan
    df["ts"] = pd.to_numeric(df["ts"], errors="coerce")
    df = df.dropna(subset=["ts"])

    now = now_ms() if now is None else now
    df = df[df["ts"] >= now - days * DAY_MS]
    if token is not None:
        df = df[df["token"] == token]

    df = df.sort_values("ts", kind="mergesort").reset_index(drop=True)
    df["props"] = [_decode_props(p) for p in df["props"]]
    return df[COLUMNS]
