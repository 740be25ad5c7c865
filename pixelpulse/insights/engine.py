"""
Insight engine: turns a window of stored events into a short, ranked list
of findings.

Pure and deterministic: no I/O, no wall clock. Time windows are anchored on
`now_ms` (defaults to the newest event in the input). Each heuristic is
evaluated independently; the final list is ordered by severity, and equal
severities keep the order the heuristics run in.
"""
from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Union

import numpy as np
import pandas as pd

from ..events import Event, Insight, Severity

DAY_MS = 24 * 60 * 60 * 1000
WEEK_MS = 7 * DAY_MS

COLUMNS = ["type", "props", "url", "session", "ts"]

EventsLike = Union[pd.DataFrame, Iterable[Union[Event, Dict[str, Any]]]]


# ---------- input normalization ----------
def _row(ev: Union[Event, Dict[str, Any]]) -> Dict[str, Any]:
    if isinstance(ev, Event):
        return {"type": ev.type, "props": ev.props, "url": ev.url, "session": ev.session, "ts": ev.ts}
    get = ev.get
    return {
        "type": get("type", get("t")),
        "props": get("props", get("p")),
        "url": get("url"),
        "session": get("session"),
        "ts": get("ts"),
    }


def events_frame(events: EventsLike) -> pd.DataFrame:
    if isinstance(events, pd.DataFrame):
        df = events.copy()
        for col in COLUMNS:
            if col not in df.columns:
                df[col] = None
        df = df[COLUMNS].reset_index(drop=True)
    else:
        df = pd.DataFrame([_row(ev) for ev in events], columns=COLUMNS)
    df["props"] = [p if isinstance(p, dict) else {} for p in df["props"]]
    df["type"] = df["type"].fillna("").astype(str)
    df["url"] = df["url"].fillna("").astype(str)
    df["session"] = df["session"].fillna("").astype(str)
    df["ts"] = pd.to_numeric(df["ts"], errors="coerce")
    return df


def prop(df: pd.DataFrame, key: str, default: Any = "unknown") -> pd.Series:
    vals = []
    for p in df["props"]:
        v = p.get(key)
        vals.append(default if v is None or v == "" else v)
    return pd.Series(vals, index=df.index, dtype=object)


def ranked_counts(keys: pd.Series) -> pd.Series:
    """Counts per key, most frequent first; ties keep first-seen order."""
    if keys.empty:
        return pd.Series(dtype="int64")
    counts = keys.astype(str).groupby(keys.astype(str), sort=False).size()
    return counts.sort_values(ascending=False, kind="mergesort")


def top_key(keys: pd.Series):
    counts = ranked_counts(keys)
    if counts.empty:
        return None, 0
    return counts.index[0], int(counts.iloc[0])


# ---------- heuristics ----------
def rage_insight(df: pd.DataFrame) -> Optional[Insight]:
    rage = df[df["type"] == "rage"]
    if len(rage) < 5:
        return None
    sessions = rage["session"].nunique()
    selectors = prop(rage, "selector")
    selector, count = top_key(selectors)
    first = rage[selectors.astype(str) == selector].iloc[0]
    top = {"selector": selector, "count": count, "text": first["props"].get("text") or ""}
    return Insight(
        title="High rage-click activity detected",
        severity=Severity.HIGH if len(rage) > 20 else Severity.MEDIUM,
        summary=f"{len(rage)} rage-click incidents detected across {sessions} sessions. Most common: {selector}",
        action="Investigate broken buttons, unresponsive CTAs, or UX dead-ends.",
        metadata={"count": len(rage), "sessions": sessions, "topElement": top},
    )


def error_insight(df: pd.DataFrame) -> Optional[Insight]:
    errors = df[df["type"] == "jserr"]
    if len(errors) < 5:
        return None
    total_sessions = df["session"].nunique()
    error_sessions = errors["session"].nunique()
    error_rate = error_sessions / total_sessions * 100 if total_sessions else 0.0

    messages = pd.Series(
        [p.get("msg") or p.get("reason") or "unknown" for p in errors["props"]],
        index=errors.index, dtype=object)
    msg, count = top_key(messages)
    first = errors[messages.astype(str) == msg].iloc[0]
    top = {"msg": msg, "count": count, "src": first["props"].get("src") or ""}

    if error_rate > 20:
        severity = Severity.CRITICAL
    elif error_rate > 10:
        severity = Severity.HIGH
    else:
        severity = Severity.MEDIUM
    return Insight(
        title=f"JavaScript errors affecting {error_rate:.1f}% of sessions",
        severity=severity,
        summary=f"{len(errors)} JS errors across {error_sessions} sessions. Most common: {msg}",
        action="Check browser console and fix broken scripts. Monitor error stack traces.",
        metadata={
            "errorCount": len(errors),
            "affectedSessions": error_sessions,
            "errorRate": round(error_rate, 1),
            "topError": top,
        },
    )


def dropoff_insight(df: pd.DataFrame, now_ms: float) -> Optional[Insight]:
    drops = df[df["type"] == "drop"]
    if drops.empty:
        return None
    age = now_ms - drops["ts"]
    current = drops[age < WEEK_MS]
    previous = drops[(age >= WEEK_MS) & (age < 2 * WEEK_MS)]
    if current.empty:
        return None

    fields = prop(current, "field")
    field, current_count = top_key(fields)
    prev_count = int((prop(previous, "field").astype(str) == field).sum()) if not previous.empty else 0
    increase = (current_count - prev_count) / prev_count * 100 if prev_count > 0 else 0.0

    if not (increase > 200 or current_count >= 10):
        return None
    summary = f'{current_count} drop-offs on "{field}" field'
    if increase > 0:
        summary += f" (+{increase:.0f}% vs last week)"
    label = current[fields.astype(str) == field].iloc[0]["props"].get("label")
    return Insight(
        title=f"Form drop-off spike on {field}",
        severity=Severity.HIGH if increase > 300 else Severity.MEDIUM,
        summary=summary,
        action="Review field validation, UX, or required field indicators.",
        metadata={
            "field": field,
            "count": current_count,
            "previousCount": prev_count,
            "increase": round(increase),
            "label": label,
        },
    )


def broken_flow_insight(df: pd.DataFrame) -> Optional[Insight]:
    broken = df[df["type"] == "broken_flow"]
    if len(broken) < 5:
        return None
    kinds = prop(broken, "type")
    breakdown = {k: int(v) for k, v in ranked_counts(kinds).items()}
    top_type = next(iter(breakdown))
    return Insight(
        title="Broken UI flows detected",
        severity=Severity.HIGH if len(broken) > 15 else Severity.MEDIUM,
        summary=f"{len(broken)} broken flow incidents. Most common: {top_type}",
        action="Check for unresponsive buttons, failed navigation, or network issues.",
        metadata={"count": len(broken), "topType": top_type, "breakdown": breakdown},
    )


def slow_insight(df: pd.DataFrame) -> Optional[Insight]:
    slow = df[df["type"] == "slow"]
    if len(slow) < 5:
        return None
    durations = pd.to_numeric(prop(slow, "dur", 0), errors="coerce").fillna(0.0)
    avg = float(np.mean(durations.to_numpy(dtype=float)))
    urls = slow["url"].where(slow["url"] != "", "unknown")
    top_url, _ = top_key(urls)
    return Insight(
        title="Performance degradation detected",
        severity=Severity.HIGH if avg > 1000 else Severity.MEDIUM,
        summary=f"{len(slow)} slow tasks detected. Average duration: {round(avg)}ms. Most affected: {top_url}",
        action="Optimize long tasks, reduce bundle size, or investigate slow network requests.",
        metadata={"count": len(slow), "avgDuration": round(avg), "topUrl": top_url},
    )


def scroll_insight(df: pd.DataFrame) -> Optional[Insight]:
    depth = df[df["type"] == "depth"]
    if len(depth) < 20:
        return None
    pct = pd.to_numeric(prop(depth, "pct", 0), errors="coerce")
    total_sessions = df["session"].nunique()
    reached = int((pct == 100).sum())
    completion = reached / total_sessions * 100 if total_sessions else 0.0
    if completion >= 30:
        return None
    return Insight(
        title="Low scroll completion rate",
        severity=Severity.LOW,
        summary=f"Only {completion:.1f}% of sessions reach 100% scroll depth.",
        action="Consider improving content engagement or reducing page length.",
        metadata={
            "completionRate": round(completion, 1),
            "depth50": int((pct == 50).sum()),
            "depth75": int((pct == 75).sum()),
            "depth100": reached,
        },
    )


# ---------- entry points ----------
def compute_insights(events: EventsLike, now_ms: Optional[float] = None) -> List[Insight]:
    df = events_frame(events)
    if df.empty:
        return []
    if now_ms is None:
        now_ms = float(df["ts"].max()) if df["ts"].notna().any() else 0.0

    found = [
        rage_insight(df),
        error_insight(df),
        dropoff_insight(df, now_ms),
        broken_flow_insight(df),
        slow_insight(df),
        scroll_insight(df),
    ]
    found = [i for i in found if i is not None]
    # sorted() is stable: equal severities stay in evaluation order
    return sorted(found, key=lambda i: -i.severity.rank)


def top_clicks(events: EventsLike, limit: int = 5) -> List[Dict[str, Any]]:
    df = events_frame(events)
    clicks = df[df["type"] == "click"]
    counts = ranked_counts(prop(clicks, "selector"))
    return [{"selector": k, "count": int(v)} for k, v in counts.head(limit).items()]
