from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

# closed vocabulary of event tags produced by the sensors
EVENT_TYPES = (
    "click",
    "rage",
    "depth",
    "drop",
    "form_submit",
    "broken_flow",
    "jserr",
    "slow",
    "page_hide",
)


class Event(BaseModel):
    # immutable once a sensor creates it
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    type: str = Field(..., alias="t", description="event tag, one of EVENT_TYPES")
    props: Dict[str, Any] = Field(default_factory=dict, alias="p")
    ts: int = Field(..., description="epoch milliseconds, device clock")
    url: str = ""
    session: str = ""
    page: str = ""

    @field_validator("type")
    @classmethod
    def known_type(cls, v: str) -> str:
        if v not in EVENT_TYPES:
            raise ValueError(f"unknown event type {v!r}")
        return v

    # clients may send null for anything but t/ts
    @field_validator("props", mode="before")
    @classmethod
    def null_props(cls, v):
        return {} if v is None else v

    @field_validator("url", "session", "page", mode="before")
    @classmethod
    def null_text(cls, v):
        return "" if v is None else v


class WirePayload(Event):
    """One request body as it travels to the collector (short field names)."""
    token: Optional[str] = None

    @classmethod
    def from_event(cls, event: Event, token: Optional[str] = None) -> "WirePayload":
        return cls(**event.model_dump(), token=token)

    def to_row(self) -> Dict[str, Any]:
        # shape persisted by the collector and read back by the insight engine
        return {
            "type": self.type,
            "props": dict(self.props),
            "url": self.url,
            "session": self.session,
            "page": self.page,
            "ts": self.ts,
            "token": self.token,
        }


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 1,
    Severity.MEDIUM: 2,
    Severity.HIGH: 3,
    Severity.CRITICAL: 4,
}


class Insight(BaseModel):
    title: str
    severity: Severity
    summary: str
    action: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
