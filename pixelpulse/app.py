import json
from typing import Optional

import redis
from fastapi import FastAPI, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from .config import DEFAULT_DAYS, QUEUE_NAME, REDIS_URL
from .events import WirePayload
from .insights.engine import compute_insights, top_clicks
from .logger_config import setup_logger
from .workers.store import load_events, now_ms

logger = setup_logger("pixelpulse.app")

app = FastAPI(title="PixelPulse Collector", version="0.1.0")

# sensors are installed on third-party origins and post cross-origin
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["POST", "GET", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def _redis():
    return redis.Redis.from_url(REDIS_URL, decode_responses=False)

r = _redis()


@app.get("/health")
def health():
    redis_ok = False
    try:
        r.ping()
        redis_ok = True
    except Exception:
        pass
    return {"ok": True, "service": "pixelpulse-collector", "redis": redis_ok}


@app.post("/pp")
async def ingest(request: Request):
    """
    One wire event per request. Beacons arrive as a blob with whatever
    content type the browser picked, so the body is parsed by hand.
    """
    try:
        raw = await request.body()
        payload = WirePayload.model_validate(json.loads(raw))
    except (ValueError, ValidationError) as e:
        logger.info("rejected payload: %s", e)
        return JSONResponse(status_code=400, content={"error": "Invalid payload"})

    try:
        row = payload.to_row()
        r.rpush(QUEUE_NAME, json.dumps(row))
    except Exception as e:
        # never break the client over storage trouble
        logger.error("queue push failed: %r", e)
        return {"ok": True, "warning": "Error processing event"}
    return {"ok": True}


@app.get("/insights")
def insights(days: int = Query(DEFAULT_DAYS, ge=1), token: Optional[str] = Query(None)):
    try:
        df = load_events(days=days, token=token)
        found = compute_insights(df, now_ms=now_ms())
        return {"events": len(df), "insights": [i.model_dump(mode="json") for i in found]}
    except Exception as e:
        logger.exception("insight computation failed")
        return JSONResponse(status_code=500, content={"error": str(e), "insights": []})


@app.get("/clicks/top")
def clicks_top(days: int = Query(DEFAULT_DAYS, ge=1), limit: int = Query(5, ge=1),
               token: Optional[str] = Query(None)):
    try:
        df = load_events(days=days, token=token)
        return {"rows": top_clicks(df, limit=limit)}
    except Exception as e:
        return JSONResponse(status_code=500, content={"error": str(e)})
