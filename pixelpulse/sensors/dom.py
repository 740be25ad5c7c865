"""
Minimal DOM-like model of the host page.

A page bridge (or a test, or a synthetic persona) builds Elements, mutates
the HostPage state and calls dispatch_event(); sensors only ever see these
objects.
"""
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


@dataclass(eq=False)
class Element:
    tag: str = "div"
    id: str = ""
    class_list: List[str] = field(default_factory=list)
    text: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)
    value: Any = ""
    type: str = ""
    name: str = ""
    placeholder: str = ""
    labels: List["Element"] = field(default_factory=list)
    parent: Optional["Element"] = None
    form: Optional["Element"] = None
    onclick: Optional[Callable] = None

    @property
    def tag_name(self) -> str:
        return (self.tag or "").upper()

    def get_attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def closest(self, attr: str) -> Optional["Element"]:
        node = self
        while node is not None:
            if node.has_attribute(attr):
                return node
            node = node.parent
        return None


@dataclass
class ClickEvent:
    target: Optional[Element]
    x: float = 0
    y: float = 0


@dataclass
class FocusEvent:
    target: Optional[Element]


@dataclass
class FormEvent:
    target: Optional[Element]


@dataclass
class ErrorEvent:
    message: str = ""
    filename: str = ""
    lineno: int = 0
    colno: int = 0
    stack: Optional[str] = None
    target: Optional[Element] = None


@dataclass
class RejectionEvent:
    reason: Any = None
    stack: Optional[str] = None


@dataclass
class PerformanceEntry:
    entry_type: str
    name: str = ""
    duration: float = 0.0
    transfer_size: int = 0


class PerformanceUnsupported(RuntimeError):
    pass


class HostPage:
    """Listener registry plus the bits of window/document state sensors read."""

    def __init__(self, href: str = "about:blank", *, scroll_height: int = 0,
                 viewport_height: int = 0, performance_supported: bool = True,
                 fetch: Optional[Callable] = None):
        self.href = href
        self.scroll_top = 0
        self.scroll_height = scroll_height
        self.viewport_height = viewport_height
        self.hidden = False
        self.fetch = fetch
        self.performance_supported = performance_supported
        self._listeners: Dict[str, List[Callable]] = {}
        self._observers: Dict[str, List[Callable]] = {}

    # ---------- events ----------
    def add_event_listener(self, event_type: str, handler: Callable):
        self._listeners.setdefault(event_type, []).append(handler)

    def remove_event_listener(self, event_type: str, handler: Callable):
        handlers = self._listeners.get(event_type, [])
        if handler in handlers:
            handlers.remove(handler)

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, []))

    def dispatch_event(self, event_type: str, event: Any = None):
        for handler in list(self._listeners.get(event_type, [])):
            handler(event)

    # ---------- performance timeline ----------
    def observe(self, entry_types: List[str], callback: Callable[[List[PerformanceEntry]], None]):
        if not self.performance_supported:
            raise PerformanceUnsupported("PerformanceObserver is not available")
        for et in entry_types:
            self._observers.setdefault(et, []).append(callback)

    def unobserve(self, callback: Callable):
        for callbacks in self._observers.values():
            if callback in callbacks:
                callbacks.remove(callback)

    def record_performance(self, *entries: PerformanceEntry):
        by_type: Dict[str, List[PerformanceEntry]] = {}
        for entry in entries:
            by_type.setdefault(entry.entry_type, []).append(entry)
        for et, batch in by_type.items():
            for callback in list(self._observers.get(et, [])):
                callback(batch)

    # ---------- convenience for drivers ----------
    def scroll_to(self, top: int):
        self.scroll_top = top
        self.dispatch_event("scroll")

    def navigate(self, href: str):
        """Soft (client-side) navigation: the URL changes without an unload."""
        self.href = href

    def go_back(self, href: Optional[str] = None):
        if href is not None:
            self.href = href
        self.dispatch_event("popstate")

    def set_hidden(self, hidden: bool):
        self.hidden = hidden
        self.dispatch_event("visibilitychange")

    def unload(self):
        self.dispatch_event("beforeunload")
