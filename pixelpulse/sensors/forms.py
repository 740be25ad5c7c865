"""
Form drop-off tracking.

Each field identity moves through:

    idle --focus--> touched --blur--> pending --timer--> resolved (drop)
                       ^                 |
                       +-----focus-------+   (timer cancelled)

and any touched/pending field is resolved early by submit (form_submit),
reset, unload or a client-side URL change (drop). "idle" is not stored: a
field is idle exactly when it has no entry in the map. Only transitions
cancel timers; the timer callback itself never has to check whether it is
stale.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from .base import Sensor
from .dom import FocusEvent, FormEvent
from .runtime import TimerHandle

logger = logging.getLogger(__name__)

FIELD_TAGS = ("INPUT", "TEXTAREA", "SELECT")


class FieldStatus(str, Enum):
    TOUCHED = "touched"
    PENDING = "pending-timeout"
    RESOLVED = "resolved"


@dataclass
class FieldState:
    field_id: str
    type: str
    label: str
    element: Any
    status: FieldStatus = FieldStatus.TOUCHED
    timer: Optional[TimerHandle] = None

    def cancel_timer(self):
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


def is_field(el: Any) -> bool:
    try:
        return el is not None and el.tag_name in FIELD_TAGS
    except Exception:
        return False


def field_identity(el: Any) -> str:
    for attr in ("name", "id", "placeholder"):
        value = getattr(el, attr, "")
        if value:
            return value
    return "unknown"


def field_label(el: Any, fallback: str) -> str:
    try:
        labels = getattr(el, "labels", None) or []
        if labels and labels[0].text:
            return labels[0].text
    except Exception:
        pass
    return getattr(el, "placeholder", "") or fallback


class FormDropoffTracker(Sensor):
    name = "forms"

    def __init__(self, ctx):
        super().__init__(ctx)
        self.fields: Dict[str, FieldState] = {}
        self._poll: Optional[TimerHandle] = None
        self._last_url = ctx.page.href

    # ---------- lifecycle ----------
    def _attach(self):
        self.listen("focusin", self.on_focus_in)
        self.listen("focusout", self.on_focus_out)
        self.listen("submit", self.on_submit)
        self.listen("reset", self.on_reset)
        self.listen("beforeunload", self.on_unload)
        self._last_url = self.ctx.page.href
        self._poll = self.ctx.scheduler.call_every(self.ctx.config.url_poll_ms, self.guard(self.check_url))

    def _detach(self):
        if self._poll is not None:
            self._poll.cancel()
            self._poll = None
        for state in self.fields.values():
            state.cancel_timer()
        self.fields.clear()

    @property
    def touched_fields(self) -> List[str]:
        return list(self.fields)

    # ---------- transitions ----------
    def on_focus_in(self, e: FocusEvent):
        el = e.target
        if not is_field(el):
            return
        field_id = field_identity(el)
        previous = self.fields.get(field_id)
        if previous is not None:
            previous.cancel_timer()
        self.fields[field_id] = FieldState(
            field_id=field_id,
            type=getattr(el, "type", "") or "text",
            label=field_label(el, field_id),
            element=el,
        )

    def on_focus_out(self, e: FocusEvent):
        el = e.target
        if not is_field(el):
            return
        state = self.fields.get(field_identity(el))
        if state is None or state.status == FieldStatus.RESOLVED:
            return
        state.element = el
        state.cancel_timer()
        state.status = FieldStatus.PENDING
        field_id = state.field_id
        state.timer = self.ctx.scheduler.call_later(
            self.ctx.config.dropoff_timeout_ms, self.guard(lambda: self.report_drop(field_id)))

    def on_submit(self, e: FormEvent):
        if not _is_form(e):
            return
        for field_id, state in list(self.fields.items()):
            state.cancel_timer()
            state.status = FieldStatus.RESOLVED
            self.emit("form_submit", {"field": field_id, "success": True})
        self.fields.clear()

    def on_reset(self, e: FormEvent):
        if not _is_form(e):
            return
        self.flush()

    def on_unload(self, _e=None):
        self.flush()

    def check_url(self):
        href = self.ctx.page.href
        if href != self._last_url:
            self.flush()
            self._last_url = href

    def flush(self):
        for field_id in list(self.fields):
            self.report_drop(field_id)
        self.fields.clear()

    # ---------- emission ----------
    def report_drop(self, field_id: str):
        state = self.fields.pop(field_id, None)
        if state is None or state.status == FieldStatus.RESOLVED:
            return
        state.cancel_timer()
        state.status = FieldStatus.RESOLVED

        value = _read_value(state.element)
        if value and state.type == "password":
            shown = self.ctx.config.password_mask
        else:
            shown = value
        self.emit("drop", {
            "field": field_id,
            "type": state.type,
            "label": state.label,
            "value": shown,
            "hasValue": len(value) > 0,
        })


def _is_form(e: FormEvent) -> bool:
    target = getattr(e, "target", None)
    return target is not None and getattr(target, "tag_name", "") == "FORM"


def _read_value(el: Any) -> str:
    # the element may be gone from the page by now
    try:
        value = el.value
    except Exception as e:
        logger.debug("field value unreadable: %r", e)
        return ""
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
