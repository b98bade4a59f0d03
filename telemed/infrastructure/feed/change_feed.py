import logging
import queue
import threading
from typing import List, Optional

from ...application.ports.appointments_repo import AppointmentDto, AppointmentFilter

logger = logging.getLogger(__name__)


class ChangeFeed:
    """In-process fan-out of committed appointment writes to live subscribers."""

    def __init__(self, max_queue: int = 256) -> None:
        self.max_queue = max_queue
        self._lock = threading.Lock()
        self._subscriptions: List["FeedSubscription"] = []

    def subscribe(self, filter: AppointmentFilter) -> "FeedSubscription":
        sub = FeedSubscription(self, filter, self.max_queue)
        with self._lock:
            self._subscriptions.append(sub)
        logger.debug(f"Change feed subscriber added ({len(self._subscriptions)} active)")
        return sub

    def publish(self, appointment: AppointmentDto) -> None:
        with self._lock:
            subscribers = list(self._subscriptions)
        for sub in subscribers:
            sub.offer(appointment)

    def detach(self, sub: "FeedSubscription") -> None:
        with self._lock:
            self._subscriptions = [s for s in self._subscriptions if s is not sub]

    def close_all(self) -> None:
        with self._lock:
            subscribers = list(self._subscriptions)
        for sub in subscribers:
            sub.close()

    @property
    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)


class FeedSubscription:
    def __init__(self, feed: ChangeFeed, filter: AppointmentFilter, max_queue: int) -> None:
        self._feed = feed
        self.filter = filter
        self._queue: "queue.Queue[Optional[AppointmentDto]]" = queue.Queue(maxsize=max_queue)
        self._closed = threading.Event()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    def offer(self, appointment: AppointmentDto) -> None:
        if self.closed or not self.filter.matches(appointment):
            return
        while True:
            try:
                self._queue.put_nowait(appointment)
                return
            except queue.Full:
                # slow reader: drop the oldest change
                try:
                    self._queue.get_nowait()
                except queue.Empty:
                    pass

    def next_change(self, timeout: Optional[float] = None) -> Optional[AppointmentDto]:
        """Block for the next matching change; None on timeout or once closed."""
        if self.closed:
            return None
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def __iter__(self):
        while not self.closed:
            change = self.next_change(timeout=1.0)
            if change is not None:
                yield change

    def close(self) -> None:
        if self.closed:
            return
        self._closed.set()
        self._feed.detach(self)
        try:
            # wake a reader blocked in next_change
            self._queue.put_nowait(None)
        except queue.Full:
            pass

    def __enter__(self) -> "FeedSubscription":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
