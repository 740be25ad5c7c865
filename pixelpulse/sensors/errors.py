import logging
from typing import Any, List, Optional

from .base import Sensor
from .dom import ErrorEvent, PerformanceEntry, RejectionEvent

logger = logging.getLogger(__name__)


def _clip(text: Optional[str], limit: int) -> Optional[str]:
    if text is None:
        return None
    return str(text)[:limit]


class ScriptErrorSensor(Sensor):
    name = "jserr"

    def _attach(self):
        self.listen("error", self.on_error)
        self.listen("unhandledrejection", self.on_rejection)

    def on_error(self, e: ErrorEvent):
        src = e.filename or getattr(e.target, "attributes", {}).get("src", "")
        self.emit("jserr", {
            "msg": e.message,
            "src": src,
            "line": e.lineno,
            "col": e.colno,
            "stack": _clip(e.stack, self.ctx.config.stack_limit),
        })

    def on_rejection(self, e: RejectionEvent):
        stack = e.stack or getattr(e.reason, "stack", None)
        self.emit("jserr", {
            "promise": True,
            "reason": str(e.reason),
            "stack": _clip(stack, self.ctx.config.stack_limit),
        })


class PerformanceSensor(Sensor):
    """Long main-thread tasks and slow network resources."""
    name = "slow"

    def __init__(self, ctx):
        super().__init__(ctx)
        self._callbacks: List[Any] = []

    def _attach(self):
        page = self.ctx.page
        # each observer is optional: a page without the API just gets fewer events
        for entry_types, callback in ((["longtask"], self.on_long_tasks),
                                      (["resource"], self.on_resources)):
            guarded = self.guard(callback)
            try:
                page.observe(entry_types, guarded)
                self._callbacks.append(guarded)
            except Exception as e:
                logger.debug("performance observer %s unavailable: %r", entry_types, e)

    def _detach(self):
        for callback in self._callbacks:
            self.ctx.page.unobserve(callback)
        self._callbacks = []

    def on_long_tasks(self, entries: List[PerformanceEntry]):
        for entry in entries:
            if entry.duration > self.ctx.config.long_task_ms:
                self.emit("slow", {
                    "dur": round(entry.duration),
                    "name": entry.name,
                    "type": entry.entry_type,
                })

    def on_resources(self, entries: List[PerformanceEntry]):
        for entry in entries:
            if entry.entry_type == "resource" and entry.duration > self.ctx.config.slow_resource_ms:
                self.emit("slow", {
                    "dur": round(entry.duration),
                    "name": entry.name,
                    "type": "slow_resource",
                    "size": entry.transfer_size,
                })


class VisibilitySensor(Sensor):
    name = "page_hide"

    def _attach(self):
        self.listen("visibilitychange", self.on_visibility)

    def on_visibility(self, _e=None):
        if self.ctx.page.hidden:
            self.emit("page_hide", {"duration": self.ctx.now() - self.ctx.started_at})
