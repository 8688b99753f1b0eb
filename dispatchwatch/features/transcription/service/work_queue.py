# File: dispatchwatch/features/transcription/service/work_queue.py
import queue
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Set

from dispatchwatch.core.config.settings import settings

logger = logging.getLogger(__name__)

_STOP = object()


@dataclass
class QueueStatus:
    pending: int
    in_flight: int
    processed: int
    errors: int
    workers: int


class TranscriptionQueue:
    """
    Bounded FIFO of segment ids drained by a fixed pool of worker threads.
    The pool size is the ceiling on concurrent provider calls. A failure on
    one item is logged and counted; the worker moves on to the next item.
    """
    def __init__(self, handler: Callable[[str], object], workers: int = None, maxsize: int = None):
        self.handler = handler
        self.worker_count = workers or settings.TRANSCRIPTION_CONCURRENCY
        self._queue = queue.Queue(maxsize=maxsize or settings.TRANSCRIPTION_QUEUE_SIZE)
        self._lock = threading.Lock()
        self._known: Set[str] = set()
        self._in_flight: Set[str] = set()
        self._threads: List[threading.Thread] = []
        self.processed = 0
        self.errors = 0

    def start(self):
        if self._threads:
            return
        for i in range(self.worker_count):
            t = threading.Thread(target=self._worker, name=f"transcriber-{i}", daemon=True)
            t.start()
            self._threads.append(t)
        logger.info(f"⚙️  Transcription queue started with {self.worker_count} workers")

    def submit(self, segment_id: str, block: bool = True, timeout: float = None) -> bool:
        """
        Enqueues a segment. Returns False if it is already queued or running.
        Blocks while the queue is full (back-pressure on the poller).
        """
        with self._lock:
            if segment_id in self._known:
                return False
            self._known.add(segment_id)

        try:
            self._queue.put(segment_id, block=block, timeout=timeout)
        except queue.Full:
            with self._lock:
                self._known.discard(segment_id)
            raise
        return True

    def _worker(self):
        while True:
            item = self._queue.get()
            if item is _STOP:
                self._queue.task_done()
                return

            with self._lock:
                self._in_flight.add(item)
            try:
                self.handler(item)
                with self._lock:
                    self.processed += 1
            except Exception:
                logger.exception(f"Transcription failed for segment {item}")
                with self._lock:
                    self.errors += 1
            finally:
                with self._lock:
                    self._in_flight.discard(item)
                    self._known.discard(item)
                self._queue.task_done()

    def join(self):
        """Blocks until every submitted item has been handled."""
        self._queue.join()

    def stop(self, wait: bool = True):
        for _ in self._threads:
            self._queue.put(_STOP)
        if wait:
            for t in self._threads:
                t.join()
        self._threads = []

    def status(self) -> QueueStatus:
        with self._lock:
            return QueueStatus(
                pending=self._queue.qsize(),
                in_flight=len(self._in_flight),
                processed=self.processed,
                errors=self.errors,
                workers=len(self._threads)
            )
