import math
from typing import Optional, Set

from .base import Sensor
from .runtime import TimerHandle


def scroll_percent(scroll_top: float, scroll_height: float, viewport_height: float) -> int:
    doc_height = scroll_height - viewport_height
    if doc_height <= 0:
        return 0
    return math.ceil(scroll_top / doc_height * 100)


class ScrollDepthTracker(Sensor):
    """Fires each depth milestone at most once per page load, in ascending order."""
    name = "depth"

    def __init__(self, ctx):
        super().__init__(ctx)
        self.fired: Set[int] = set()
        self._debounce: Optional[TimerHandle] = None

    def _attach(self):
        self.listen("scroll", self.on_scroll)

    def _detach(self):
        if self._debounce is not None:
            self._debounce.cancel()
            self._debounce = None

    def on_scroll(self, _e=None):
        if self._debounce is not None:
            self._debounce.cancel()
        self._debounce = self.ctx.scheduler.call_later(
            self.ctx.config.scroll_debounce_ms, self.guard(self.measure))

    def measure(self):
        self._debounce = None
        page = self.ctx.page
        pct = scroll_percent(page.scroll_top, page.scroll_height, page.viewport_height)
        for milestone in sorted(self.ctx.config.scroll_milestones):
            if pct >= milestone and milestone not in self.fired:
                self.fired.add(milestone)
                self.emit("depth", {"pct": milestone})
