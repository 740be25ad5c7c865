import argparse
import json
from datetime import datetime, timezone

from ..config import DEFAULT_DAYS, PARQUET_DIR, REPORT_DIR
from ..insights.engine import compute_insights, top_clicks
from .store import load_events, now_ms


def build_report(days: int = DEFAULT_DAYS, token=None, src_dir=PARQUET_DIR, now=None):
    now = now_ms() if now is None else now
    df = load_events(days=days, token=token, now=now, src_dir=src_dir)
    insights = compute_insights(df, now_ms=now)
    return {
        "generated_at": now,
        "days": days,
        "token": token,
        "events": len(df),
        "sessions": int(df["session"].nunique()) if len(df) else 0,
        "insights": [i.model_dump(mode="json") for i in insights],
        "top_clicks": top_clicks(df),
    }


def main(argv=None):
    ap = argparse.ArgumentParser(description="Compute insights from stored events")
    ap.add_argument("--days", type=int, default=DEFAULT_DAYS)
    ap.add_argument("--token", default=None)
    args = ap.parse_args(argv)

    report = build_report(days=args.days, token=args.token)
    REPORT_DIR.mkdir(parents=True, exist_ok=True)
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S")
    out = REPORT_DIR / f"insights_{stamp}.json"
    out.write_text(json.dumps(report, indent=2))
    print(f"[report] {report['events']} events, {len(report['insights'])} insights → {out}")
    for ins in report["insights"]:
        print(f"  [{ins['severity']}] {ins['title']}: {ins['summary']}")


if __name__ == "__main__":
    main()
