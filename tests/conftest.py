import pytest

from pixelpulse.sensors.dom import HostPage
from pixelpulse.sensors.runtime import ManualScheduler
from pixelpulse.sensors.tracker import Tracker
from pixelpulse.sensors.transport import MemoryTransport

START = 1_700_000_000_000


class Harness:
    def __init__(self, href="https://app.example.com/", **page_kw):
        self.clock = ManualScheduler(START)
        self.page = HostPage(href, **page_kw)
        self.transport = MemoryTransport()
        self.tracker = Tracker(self.page, self.clock, self.transport)
        self.tracker.start()

    @property
    def events(self):
        return self.transport.events

    def of(self, event_type):
        return [e for e in self.events if e.type == event_type]

    def fire(self, event_type, event=None):
        self.page.dispatch_event(event_type, event)


@pytest.fixture
def harness():
    return Harness(scroll_height=3000, viewport_height=1000)
