import inspect
import itertools
from typing import Dict, Tuple

from .base import Sensor
from .classifier import element_info, resolve_target
from .dom import ClickEvent
from .runtime import TimerHandle


class BrokenFlowDetector(Sensor):
    """
    Flags clicks that are not followed by a navigation within the timeout,
    and network requests that fail outright.
    """
    name = "broken_flow"

    def __init__(self, ctx):
        super().__init__(ctx)
        self.pending: Dict[Tuple[str, int, int], TimerHandle] = {}
        self.last_navigation = ctx.now()
        self._seq = itertools.count()
        self._original_fetch = None

    def _attach(self):
        self.last_navigation = self.ctx.now()
        self.listen("click", self.on_click)
        self.listen("popstate", self.on_navigation)
        self._wrap_fetch()

    def _detach(self):
        self._cancel_pending()
        if self._original_fetch is not None:
            self.ctx.page.fetch = self._original_fetch
            self._original_fetch = None

    # ---------- no-response clicks ----------
    def on_click(self, e: ClickEvent):
        info = element_info(resolve_target(e.target))
        if not info or not info["isSemantic"]:
            return
        click_id = (info["selector"], self.ctx.now(), next(self._seq))
        timeout = self.ctx.config.no_response_ms

        def check():
            self.pending.pop(click_id, None)
            if self.ctx.now() - self.last_navigation > timeout:
                self.emit("broken_flow", {
                    "type": "no_response",
                    "selector": info["selector"],
                    "text": info["text"],
                    "duration": timeout,
                })

        self.pending[click_id] = self.ctx.scheduler.call_later(timeout, self.guard(check))

    def on_navigation(self, _e=None):
        self.last_navigation = self.ctx.now()
        self._cancel_pending()

    def _cancel_pending(self):
        for handle in self.pending.values():
            handle.cancel()
        self.pending.clear()

    # ---------- failed requests ----------
    def _wrap_fetch(self):
        page = self.ctx.page
        original = page.fetch
        if original is None:
            return
        self._original_fetch = original

        def report(args, err):
            self.emit("broken_flow", {
                "type": "fetch_error",
                "url": str(args[0]) if args else "",
                "error": str(err),
            })

        async def _await(args, awaitable):
            try:
                return await awaitable
            except Exception as err:
                report(args, err)
                raise

        def fetch(*args, **kwargs):
            try:
                result = original(*args, **kwargs)
            except Exception as err:
                report(args, err)
                raise
            if inspect.isawaitable(result):
                return _await(args, result)
            return result

        page.fetch = fetch
