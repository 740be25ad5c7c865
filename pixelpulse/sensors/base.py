import logging
import random
import string
from typing import Any, Callable, Dict, List, Optional, Tuple

from ..config import SensorConfig
from .dom import HostPage
from .runtime import Scheduler

logger = logging.getLogger(__name__)

Dispatch = Callable[[str, Dict[str, Any]], None]

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int) -> str:
    out = ""
    while True:
        n, r = divmod(n, 36)
        out = _BASE36[r] + out
        if n == 0:
            return out


def random_id(length: int = 11) -> str:
    return "".join(random.choice(_BASE36) for _ in range(length))


class SensorContext:
    """Everything one page load owns: page, clock, thresholds and ids."""

    def __init__(self, page: HostPage, scheduler: Scheduler, config: Optional[SensorConfig] = None):
        self.page = page
        self.scheduler = scheduler
        self.config = config or SensorConfig()
        self.session = random_id() + _base36(scheduler.now())
        self.page_id = random_id()
        self.started_at = scheduler.now()

    def now(self) -> int:
        return self.scheduler.now()


class Sensor:
    """
    Base for every detector. Subclasses register listeners in _attach() via
    self.listen(); start()/stop() handle registration bookkeeping.
    """
    name = "sensor"

    def __init__(self, ctx: SensorContext):
        self.ctx = ctx
        self.dispatch: Optional[Dispatch] = None
        self._listeners: List[Tuple[str, Callable]] = []
        self.running = False

    def start(self, dispatch: Dispatch):
        if self.running:
            return
        self.dispatch = dispatch
        self.running = True
        try:
            self._attach()
        except Exception as e:
            logger.debug("[%s] attach failed: %r", self.name, e)

    def stop(self):
        if not self.running:
            return
        for event_type, handler in self._listeners:
            self.ctx.page.remove_event_listener(event_type, handler)
        self._listeners.clear()
        try:
            self._detach()
        except Exception as e:
            logger.debug("[%s] detach failed: %r", self.name, e)
        self.running = False

    def listen(self, event_type: str, handler: Callable[[Any], None]):
        guarded = self.guard(handler)
        self.ctx.page.add_event_listener(event_type, guarded)
        self._listeners.append((event_type, guarded))

    def guard(self, fn: Callable) -> Callable:
        # nothing a sensor does may raise into the host page
        def wrapper(*args, **kwargs):
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                logger.debug("[%s] handler failed: %r", self.name, e)
                return None
        return wrapper

    def emit(self, event_type: str, props: Dict[str, Any]):
        if self.dispatch is None:
            return
        try:
            self.dispatch(event_type, props)
        except Exception as e:
            logger.debug("[%s] dispatch failed: %r", self.name, e)

    def _attach(self):
        raise NotImplementedError

    def _detach(self):
        pass
