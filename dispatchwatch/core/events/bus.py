# File: dispatchwatch/core/events/bus.py

import queue
import logging
from threading import Lock
from typing import Iterable, List, Optional, Tuple, Type
from dispatchwatch.core.config.settings import settings

logger = logging.getLogger(__name__)


class Subscription:
    """
    One subscriber's bounded inbox.
    The producer never blocks on it: when full, the oldest event is discarded.
    """
    def __init__(self, event_types: Tuple[Type, ...], maxsize: int):
        self.event_types = event_types
        self._queue = queue.Queue(maxsize=maxsize)
        self.dropped = 0

    def accepts(self, event) -> bool:
        return not self.event_types or isinstance(event, self.event_types)

    def offer(self, event):
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

    def get(self, timeout: Optional[float] = None):
        """Blocks up to timeout; returns None when nothing arrived."""
        try:
            return self._queue.get(timeout=timeout)
        except queue.Empty:
            return None

    def drain(self) -> List:
        events = []
        while True:
            try:
                events.append(self._queue.get_nowait())
            except queue.Empty:
                return events

    def __len__(self):
        return self._queue.qsize()


class EventBus:
    """
    Fan-out of typed events (progress, completion, incident transitions)
    to independent bounded subscriber queues.
    """
    def __init__(self, default_maxsize: int = None):
        self.default_maxsize = default_maxsize or settings.EVENT_QUEUE_SIZE
        self._subscriptions: List[Subscription] = []
        self._lock = Lock()

    def subscribe(self, event_types: Iterable[Type] = (), maxsize: int = None) -> Subscription:
        sub = Subscription(tuple(event_types), maxsize or self.default_maxsize)
        with self._lock:
            self._subscriptions.append(sub)
        return sub

    def unsubscribe(self, sub: Subscription):
        with self._lock:
            if sub in self._subscriptions:
                self._subscriptions.remove(sub)

    def publish(self, event):
        with self._lock:
            targets = [s for s in self._subscriptions if s.accepts(event)]

        for sub in targets:
            before = sub.dropped
            sub.offer(event)
            if sub.dropped != before:
                logger.warning(f"Event queue full, dropped oldest event ({sub.dropped} total)")
