"""Event delivery for media libraries.

Each subscriber owns a channel (a ``queue.Queue``). Publishing is
fire-and-forget and never blocks the publisher:
- Unbounded channels (``maxsize=0``) buffer every event.
- Bounded channels drop the oldest buffered event to make room for the new
  one, and count the drop, so a stalled subscriber only loses history.

Events reach every channel in publish order.
"""

import logging
import queue
import threading
from typing import Iterator, List, Optional

from medialib.models.events import MediaEvent

logger = logging.getLogger(__name__)


class Subscription:
    """A subscriber's channel of MediaEvent values."""

    def __init__(self, bus: "EventBus", maxsize: int = 0) -> None:
        self._bus = bus
        self._queue: "queue.Queue[MediaEvent]" = queue.Queue(maxsize=maxsize)
        self._lock = threading.Lock()
        self.dropped = 0
        self.closed = False

    @property
    def maxsize(self) -> int:
        return self._queue.maxsize

    def _deliver(self, event: MediaEvent) -> None:
        with self._lock:
            while True:
                try:
                    self._queue.put_nowait(event)
                    return
                except queue.Full:
                    try:
                        self._queue.get_nowait()
                        self.dropped += 1
                    except queue.Empty:
                        pass

    def get(self, timeout: Optional[float] = None) -> Optional[MediaEvent]:
        """Return the next event, or None if none arrives within *timeout*.

        ``timeout=None`` blocks until an event is available.
        """
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def get_nowait(self) -> Optional[MediaEvent]:
        try:
            return self._queue.get_nowait()
        except queue.Empty:
            return None

    def drain(self) -> List[MediaEvent]:
        """Return every buffered event without blocking."""
        events: List[MediaEvent] = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def __iter__(self) -> Iterator[MediaEvent]:
        return iter(self.drain())

    def __len__(self) -> int:
        return self._queue.qsize()

    def close(self) -> None:
        """Stop receiving events. Buffered events stay readable."""
        if not self.closed:
            self.closed = True
            self._bus.unsubscribe(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # type: ignore[no-untyped-def]
        self.close()
        return False


class EventBus:
    """Fan-out of MediaEvent values to zero or more subscriptions."""

    def __init__(self, default_maxsize: int = 0) -> None:
        self._default_maxsize = default_maxsize
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

    def subscribe(self, maxsize: Optional[int] = None) -> Subscription:
        subscription = Subscription(
            self, self._default_maxsize if maxsize is None else maxsize
        )
        with self._lock:
            self._subscriptions.append(subscription)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            if subscription in self._subscriptions:
                self._subscriptions.remove(subscription)
        subscription.closed = True

    def publish(self, event: MediaEvent) -> None:
        # The bus lock serializes publishers so every channel sees one order.
        with self._lock:
            logger.debug(f"publish {event}")
            for subscription in self._subscriptions:
                subscription._deliver(event)

    def close(self) -> None:
        with self._lock:
            subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            subscription.closed = True

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)
