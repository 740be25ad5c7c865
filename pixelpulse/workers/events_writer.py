import json
import time
from datetime import datetime, timezone
from pathlib import Path

import redis

from ..config import PARQUET_DIR, QUEUE_NAME, REDIS_URL
from .store import rows_frame

# ---------- Flush policy ----------
BATCH_SIZE = 100          # write every 100 events
FLUSH_SECONDS = 10        # or every 10s, whichever first


def write_batch(batch, outdir: Path = PARQUET_DIR):
    if not batch:
        return None
    outdir.mkdir(parents=True, exist_ok=True)
    df = rows_frame(batch)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%f")
    path = outdir / f"events_{stamp}.parquet"
    df.to_parquet(path, engine="pyarrow", index=False)
    print(f"[writer] wrote {len(batch)} → {path}")
    return path


def decode(raw):
    try:
        return json.loads(raw)
    except Exception as e:
        print(f"[writer] JSON decode error: {e!r}")
        return None


def run(r=None):
    r = r or redis.Redis.from_url(REDIS_URL, decode_responses=False)
    print(f"[writer] watching Redis list '{QUEUE_NAME}'…")
    buf = []
    last = time.time()

    while True:
        # Blocking pop with timeout so we can time-flush
        item = r.blpop(QUEUE_NAME, timeout=1)
        if item:
            _, raw = item
            row = decode(raw)
            if row is not None:
                buf.append(row)

        if buf and (len(buf) >= BATCH_SIZE or (time.time() - last) >= FLUSH_SECONDS):
            write_batch(buf)
            buf.clear()
            last = time.time()


if __name__ == "__main__":
    run()
