"""
Timer services the sensors run on.

Everything happens on one cooperative thread: handlers and timer callbacks
never overlap, but they can be queued in any order. A cancelled handle must
never run its callback.
"""
import asyncio
import heapq
import itertools
import logging
import time
from typing import Callable, List, Optional

logger = logging.getLogger(__name__)


class TimerHandle:
    def __init__(self, callback: Callable[[], None]):
        self._callback = callback
        self.cancelled = False
        self._inner = None  # backend handle, if any

    def cancel(self):
        self.cancelled = True
        if self._inner is not None:
            self._inner.cancel()

    def _run(self):
        if self.cancelled:
            return
        try:
            self._callback()
        except Exception as e:
            logger.debug("timer callback failed: %r", e)


class Scheduler:
    """Interface: a clock plus one-shot and repeating timers."""

    def now(self) -> int:
        raise NotImplementedError

    def call_later(self, delay_ms: float, callback: Callable[[], None]) -> TimerHandle:
        raise NotImplementedError

    def call_every(self, interval_ms: float, callback: Callable[[], None]) -> TimerHandle:
        # re-arms itself until cancelled; cancelling the returned handle stops the chain
        outer = TimerHandle(callback)

        def tick():
            if outer.cancelled:
                return
            outer._run()
            if not outer.cancelled:
                outer._inner = self.call_later(interval_ms, tick)

        outer._inner = self.call_later(interval_ms, tick)
        return outer


class AsyncioScheduler(Scheduler):
    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop or asyncio.get_running_loop()

    def now(self) -> int:
        return int(time.time() * 1000)

    def call_later(self, delay_ms, callback):
        handle = TimerHandle(callback)
        handle._inner = self.loop.call_later(delay_ms / 1000.0, handle._run)
        return handle


class ManualScheduler(Scheduler):
    """Virtual clock. Time only moves when advance() is called."""

    def __init__(self, start_ms: int = 0):
        self._now = int(start_ms)
        self._queue: List = []
        self._seq = itertools.count()

    def now(self) -> int:
        return self._now

    def call_later(self, delay_ms, callback):
        handle = TimerHandle(callback)
        due = self._now + max(delay_ms, 0)
        heapq.heappush(self._queue, (due, next(self._seq), handle))
        return handle

    def advance(self, ms: float):
        target = self._now + ms
        while self._queue and self._queue[0][0] <= target:
            due, _, handle = heapq.heappop(self._queue)
            self._now = max(self._now, int(due))
            handle._run()
        self._now = int(target)

    def pending(self) -> int:
        return sum(1 for _, _, h in self._queue if not h.cancelled)
