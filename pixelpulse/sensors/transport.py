import logging
import queue
import threading
import urllib.request
from typing import Callable, Optional

from ..config import ENDPOINT, TOKEN
from ..events import Event, WirePayload

logger = logging.getLogger(__name__)

# beacon(url, body) -> bool queued; provided by the host when it has one
Beacon = Callable[[str, bytes], bool]

POST_TIMEOUT = 5          # seconds a single post may hang
QUEUE_SIZE = 256          # bodies waiting for the sender thread; newer ones are dropped


def serialize(event: Event, token: Optional[str] = None) -> bytes:
    return WirePayload.from_event(event, token).model_dump_json(by_alias=True).encode("utf-8")


def post_one(url: str, body: bytes, timeout: float = POST_TIMEOUT):
    req = urllib.request.Request(url, data=body, headers={"Content-Type": "application/json"})
    with urllib.request.urlopen(req, timeout=timeout) as r:
        r.read()


class Transport:
    """
    Fire-and-forget delivery, one event per request. Prefers the host's
    beacon (survives unload); otherwise hands the body to a single daemon
    sender thread through a bounded queue, so the caller never waits and a
    stalled collector costs at most one thread. Failures and overflow are
    dropped.
    """

    def __init__(self, endpoint: str = ENDPOINT, token: Optional[str] = TOKEN,
                 beacon: Optional[Beacon] = None, poster: Callable[[str, bytes], None] = post_one,
                 queue_size: int = QUEUE_SIZE):
        self.endpoint = endpoint
        self.token = token
        self.beacon = beacon
        self.poster = poster
        self.dropped = 0
        self._queue: "queue.Queue[bytes]" = queue.Queue(maxsize=queue_size)
        self._sender: Optional[threading.Thread] = None
        self._lock = threading.Lock()

    def send(self, event: Event):
        try:
            body = serialize(event, self.token)
            if self.beacon is not None:
                self.beacon(self.endpoint, body)
            else:
                self._enqueue(body)
        except Exception as e:
            logger.debug("transport dropped %s: %r", getattr(event, "type", "?"), e)

    def _enqueue(self, body: bytes):
        try:
            self._queue.put_nowait(body)
        except queue.Full:
            self.dropped += 1
            return
        with self._lock:
            if self._sender is None or not self._sender.is_alive():
                self._sender = threading.Thread(target=self._drain, name="pixelpulse-sender", daemon=True)
                self._sender.start()

    def _drain(self):
        while True:
            body = self._queue.get()
            try:
                self.poster(self.endpoint, body)
            except Exception as e:
                logger.debug("post to %s failed: %r", self.endpoint, e)
            finally:
                self._queue.task_done()


class MemoryTransport(Transport):
    """Keeps events in order instead of sending them; used for replays and personas."""

    def __init__(self, token: Optional[str] = None):
        super().__init__(endpoint="memory://", token=token)
        self.events = []

    def send(self, event: Event):
        self.events.append(event)

    def payloads(self):
        return [WirePayload.from_event(ev, self.token).model_dump(by_alias=True) for ev in self.events]
