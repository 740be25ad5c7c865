from dataclasses import dataclass

from .base import Sensor
from .classifier import element_info, resolve_target
from .dom import ClickEvent


class SemanticClickSensor(Sensor):
    """Reports every click that lands on something meant to be clicked."""
    name = "clicks"

    def _attach(self):
        self.listen("click", self.on_click)

    def on_click(self, e: ClickEvent):
        info = element_info(resolve_target(e.target))
        if not info or not info["isSemantic"]:
            return
        self.emit("click", {
            "tag": info["tag"],
            "text": info["text"],
            "id": info["id"],
            "cls": info["cls"],
            "selector": info["selector"],
            "x": e.x,
            "y": e.y,
        })


@dataclass
class LastClick:
    timestamp: int = 0
    click_count: int = 0
    x: float = 0
    y: float = 0
    selector: str = ""


class RageClickDetector(Sensor):
    """
    Counts consecutive clicks on one target that stay within the radius and
    the time window. Emits once when the count hits the threshold, then
    starts over from an empty record.
    """
    name = "rage"

    def __init__(self, ctx):
        super().__init__(ctx)
        self.last = LastClick()

    def _attach(self):
        self.listen("click", self.on_click)

    def _detach(self):
        self.last = LastClick()

    def on_click(self, e: ClickEvent):
        info = element_info(resolve_target(e.target))
        if not info or not info["isSemantic"]:
            return
        cfg = self.ctx.config
        now = self.ctx.now()
        last = self.last

        same_element = info["selector"] == last.selector
        same_position = (abs(e.x - last.x) < cfg.rage_radius_px
                         and abs(e.y - last.y) < cfg.rage_radius_px)
        within_time = now - last.timestamp < cfg.rage_window_ms

        if same_element and same_position and within_time:
            last.click_count += 1
            if last.click_count >= cfg.rage_threshold:
                self.emit("rage", {
                    "selector": info["selector"],
                    "text": info["text"],
                    "count": last.click_count,
                    "x": e.x,
                    "y": e.y,
                })
                self.last = LastClick()
        else:
            self.last = LastClick(timestamp=now, click_count=1, x=e.x, y=e.y,
                                  selector=info["selector"])

    @property
    def click_count(self) -> int:
        return self.last.click_count
