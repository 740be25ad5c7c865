import logging
from typing import Any, Dict, List, Optional

from ..config import SensorConfig
from ..events import Event
from .base import Sensor, SensorContext
from .clicks import RageClickDetector, SemanticClickSensor
from .dom import HostPage
from .errors import PerformanceSensor, ScriptErrorSensor, VisibilitySensor
from .flows import BrokenFlowDetector
from .forms import FormDropoffTracker
from .runtime import Scheduler
from .scroll import ScrollDepthTracker
from .transport import Transport

logger = logging.getLogger(__name__)

SENSOR_CLASSES = (
    SemanticClickSensor,
    RageClickDetector,
    ScrollDepthTracker,
    FormDropoffTracker,
    BrokenFlowDetector,
    ScriptErrorSensor,
    PerformanceSensor,
    VisibilitySensor,
)


class Tracker:
    """Owns one page load: context, sensors and the path to transport."""

    def __init__(self, page: HostPage, scheduler: Scheduler, transport: Optional[Transport] = None,
                 config: Optional[SensorConfig] = None):
        self.ctx = SensorContext(page, scheduler, config)
        self.transport = transport or Transport()
        self.sensors: List[Sensor] = [cls(self.ctx) for cls in SENSOR_CLASSES]
        self.started = False

    @property
    def session(self) -> str:
        return self.ctx.session

    @property
    def page_id(self) -> str:
        return self.ctx.page_id

    def sensor(self, name: str) -> Sensor:
        for s in self.sensors:
            if s.name == name:
                return s
        raise KeyError(name)

    def start(self):
        if self.started:
            return
        self.started = True
        for s in self.sensors:
            s.start(self.dispatch)
        # registered last so the form flush on unload still sees live sensors
        self.ctx.page.add_event_listener("beforeunload", self._on_unload)

    def stop(self):
        if not self.started:
            return
        self.ctx.page.remove_event_listener("beforeunload", self._on_unload)
        for s in self.sensors:
            s.stop()
        self.started = False

    def _on_unload(self, _e=None):
        try:
            self.stop()
        except Exception as e:
            logger.debug("teardown failed: %r", e)

    def dispatch(self, event_type: str, props: Dict[str, Any]):
        try:
            event = Event(
                type=event_type,
                props=props,
                ts=self.ctx.now(),
                url=self.ctx.page.href,
                session=self.ctx.session,
                page=self.ctx.page_id,
            )
        except Exception as e:
            logger.debug("could not build %s event: %r", event_type, e)
            return
        self.transport.send(event)
