import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

REPO_ROOT = Path(__file__).resolve().parents[1]

# ---------- Collector ----------
ENDPOINT = os.getenv("PIXELPULSE_ENDPOINT", "http://127.0.0.1:8123/pp")
TOKEN = os.getenv("PIXELPULSE_TOKEN") or None
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
QUEUE_NAME = os.getenv("PIXELPULSE_QUEUE", "events")

# ---------- Storage ----------
DATA_DIR = Path(os.getenv("PIXELPULSE_DATA", REPO_ROOT / "data"))
PARQUET_DIR = DATA_DIR / "parquet"
REPORT_DIR = DATA_DIR / "reports"

DEFAULT_DAYS = 7


@dataclass
class SensorConfig:
    # rage clicks
    rage_window_ms: int = 700
    rage_radius_px: int = 10
    rage_threshold: int = 4

    # scroll
    scroll_debounce_ms: int = 100
    scroll_milestones: tuple = (50, 75, 100)

    # forms
    dropoff_timeout_ms: int = 2000
    url_poll_ms: int = 1000
    password_mask: str = "***"

    # broken flows
    no_response_ms: int = 2000

    # performance
    long_task_ms: float = 200
    slow_resource_ms: float = 3000

    # truncation
    stack_limit: int = 500
