from __future__ import annotations
import time, random
from typing import Callable, Dict, List

from ..sensors.dom import (ClickEvent, Element, ErrorEvent, FocusEvent, FormEvent,
                           HostPage, PerformanceEntry, RejectionEvent)
from ..sensors.runtime import ManualScheduler
from ..sensors.tracker import Tracker
from ..sensors.transport import MemoryTransport

SITE = "https://shop.example.com"


def _now_ms(): return int(time.time() * 1000)


def run_visit(script: Callable[[HostPage, ManualScheduler], None], url=f"{SITE}/", token=None,
              start_ms=None, scroll_height=6000, viewport=800) -> List[Dict]:
    """Play one page load through the real sensors; return the wire payloads."""
    clock = ManualScheduler(start_ms if start_ms is not None else _now_ms())
    page = HostPage(url, scroll_height=scroll_height, viewport_height=viewport)
    transport = MemoryTransport(token=token)
    tracker = Tracker(page, clock, transport)
    tracker.start()
    script(page, clock)
    clock.advance(3000)
    page.unload()
    return transport.payloads()


def _field(name, type="text", label="", form=None) -> Element:
    labels = [Element(tag="label", text=label)] if label else []
    return Element(tag="input", name=name, type=type, labels=labels, form=form)


def reader(**kw) -> List[Dict]:
    """Steady scroll to the bottom, one click on the next link."""
    def script(page, clock):
        nxt = Element(tag="a", id="next", text="Next article")
        for y in range(0, 5300, random.randint(180, 260)):
            page.scroll_to(y)
            clock.advance(random.randint(300, 900))
        page.dispatch_event("click", ClickEvent(nxt, 600, 400))
        clock.advance(300)
        page.go_back()
    return run_visit(script, url=f"{SITE}/blog/post", **kw)


def skimmer(**kw) -> List[Dict]:
    """Fast scroll bursts, shallow depth, leaves the tab."""
    def script(page, clock):
        for y in (400, 900, 1500, 2700):
            page.scroll_to(y)
            clock.advance(random.randint(120, 400))
        clock.advance(500)
        page.set_hidden(True)
    return run_visit(script, url=f"{SITE}/pricing", **kw)


def rager(**kw) -> List[Dict]:
    """Hammers a dead checkout button."""
    def script(page, clock):
        dead = Element(tag="button", id="checkout", text="Place order", class_list=["btn", "btn-primary"])
        for _ in range(random.randint(2, 4)):
            for _ in range(random.randint(4, 6)):
                page.dispatch_event("click", ClickEvent(dead, 300 + random.randint(-3, 3), 600 + random.randint(-3, 3)))
                clock.advance(random.randint(60, 140))
            clock.advance(2500)
    return run_visit(script, url=f"{SITE}/checkout", **kw)


def form_lost(**kw) -> List[Dict]:
    """Starts the signup form, gives up on the password."""
    def script(page, clock):
        form = Element(tag="form", id="signup")
        email = _field("email", "email", "Email address", form)
        password = _field("password", "password", "Password", form)
        page.dispatch_event("focusin", FocusEvent(email))
        email.value = "someone@example.com"
        page.dispatch_event("focusout", FocusEvent(email))
        page.dispatch_event("focusin", FocusEvent(password))
        password.value = "hunter2"
        page.dispatch_event("focusout", FocusEvent(password))
        clock.advance(2500)
        if random.random() < 0.2:
            page.dispatch_event("submit", FormEvent(form))
    return run_visit(script, url=f"{SITE}/signup", **kw)


def form_done(**kw) -> List[Dict]:
    def script(page, clock):
        form = Element(tag="form", id="newsletter")
        email = _field("email", "email", "Email address", form)
        page.dispatch_event("focusin", FocusEvent(email))
        email.value = "reader@example.com"
        page.dispatch_event("focusout", FocusEvent(email))
        clock.advance(400)
        page.dispatch_event("submit", FormEvent(form))
    return run_visit(script, url=f"{SITE}/newsletter", **kw)


def crasher(**kw) -> List[Dict]:
    """Broken bundle: script errors, a rejected promise, long tasks."""
    def script(page, clock):
        page.dispatch_event("error", ErrorEvent(
            message="TypeError: cart.items is undefined", filename=f"{SITE}/static/app.js",
            lineno=412, colno=17, stack="TypeError: cart.items is undefined\n    at render (app.js:412:17)"))
        clock.advance(200)
        page.dispatch_event("unhandledrejection", RejectionEvent(reason="NetworkError: price service down"))
        page.record_performance(
            PerformanceEntry("longtask", "self", random.uniform(250, 1800)),
            PerformanceEntry("resource", f"{SITE}/static/hero.jpg", random.uniform(3200, 6000), 1_450_000),
        )
        go = Element(tag="button", id="apply-coupon", text="Apply")
        page.dispatch_event("click", ClickEvent(go, 200, 200))
        clock.advance(2500)
    return run_visit(script, url=f"{SITE}/cart", **kw)


PERSONAS = {
    "reader": reader,
    "skimmer": skimmer,
    "rager": rager,
    "form_lost": form_lost,
    "form_done": form_done,
    "crasher": crasher,
}
