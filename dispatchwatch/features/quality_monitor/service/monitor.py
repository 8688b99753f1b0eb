# File: dispatchwatch/features/quality_monitor/service/monitor.py
import logging
import threading
from collections import deque
from datetime import datetime, timedelta
from typing import Callable, Dict, Iterable, List, Optional, Tuple
from dispatchwatch.core.common.confidence import clamp, confidence_band
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.database.base import utc_now
from dispatchwatch.core.events.bus import EventBus, Subscription
from dispatchwatch.core.events.types import QualityAlert, TranscriptionCompleted
from ..domain.models import HourlyQuality, QualityReport, SegmentQuality

logger = logging.getLogger(__name__)

ALERT_THRESHOLD = 0.5
HOURLY_RETENTION = timedelta(hours=24)


def quality_band(confidence: float) -> str:
    if confidence >= 0.9:
        return "excellent"
    if confidence >= 0.75:
        return "good"
    if confidence >= 0.6:
        return "fair"
    return "poor"


class QualityMonitor:
    """
    Rolling confidence telemetry. Read-only with respect to the pipeline:
    it consumes completion events and never touches stored records.
    """
    def __init__(
        self,
        bus: Optional[EventBus] = None,
        window: int = 100,
        history: int = 1000,
        target: float = None,
        alert_threshold: float = ALERT_THRESHOLD,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.bus = bus
        self.target = settings.RETRY_TARGET_CONFIDENCE if target is None else target
        self.alert_threshold = alert_threshold
        self.clock = clock

        self._lock = threading.Lock()
        self._window = deque(maxlen=window)
        self._history = deque(maxlen=history)
        self._bands: Dict[str, int] = {"high": 0, "medium": 0, "low": 0}
        self._hourly: Dict[datetime, Tuple[int, float]] = {}
        self._average = 0.0
        self._trend = 0.0
        self._subscription: Optional[Subscription] = None

    # --- Intake ---

    def attach(self, bus: EventBus) -> Subscription:
        """Subscribes to completion events. Call drain() to consume them."""
        self.bus = self.bus or bus
        self._subscription = bus.subscribe((TranscriptionCompleted,))
        return self._subscription

    def drain(self, timeout: Optional[float] = None) -> int:
        """Consumes pending completion events; waits up to timeout for the first."""
        if self._subscription is None:
            return 0

        events = self._subscription.drain()
        if not events and timeout:
            first = self._subscription.get(timeout=timeout)
            events = [first] if first is not None else []

        for event in events:
            self.track(
                event.segment_id,
                event.confidence,
                has_units=event.has_units,
                has_address=event.has_address,
                text_length=event.text_length,
                processing_ms=event.processing_ms,
                enhancement_applied=event.enhancement_applied
            )
        return len(events)

    def track(self, segment_id: str, confidence: float, **details) -> SegmentQuality:
        confidence = clamp(confidence)
        record = SegmentQuality(segment_id=segment_id, confidence=confidence, recorded_at=self.clock(), **details)

        with self._lock:
            previous = self._average
            self._window.append(confidence)
            self._average = sum(self._window) / len(self._window)
            self._trend = self._average - previous if len(self._window) > 1 else 0.0
            self._history.append(record)
            self._bands[confidence_band(confidence)] += 1
            self._add_hourly(record.recorded_at, confidence)

        if confidence < self.alert_threshold:
            message = f"Very low confidence for segment {segment_id}: {confidence * 100:.1f}%"
            logger.warning(f"⚠️ {message}")
            if self.bus:
                self.bus.publish(QualityAlert(segment_id=segment_id, confidence=confidence, message=message))

        return record

    def warm_start(self, confidences: Iterable[float]):
        """Seeds the rolling window (e.g. from recent Calls) without raising alerts."""
        with self._lock:
            for c in confidences:
                self._window.append(clamp(c))
            if self._window:
                self._average = sum(self._window) / len(self._window)
        logger.info(f"📂 Quality window warmed with {len(self._window)} confidences")

    def _add_hourly(self, at: datetime, confidence: float):
        hour = at.replace(minute=0, second=0, microsecond=0)
        count, total = self._hourly.get(hour, (0, 0.0))
        self._hourly[hour] = (count + 1, total + confidence)

        cutoff = at - HOURLY_RETENTION
        for stale in [h for h in self._hourly if h < cutoff]:
            del self._hourly[stale]

    # --- Views ---

    @property
    def average(self) -> float:
        with self._lock:
            return self._average

    @property
    def trend(self) -> float:
        with self._lock:
            return self._trend

    def trends(self) -> List[HourlyQuality]:
        with self._lock:
            return [
                HourlyQuality(hour=h, count=c, average_confidence=t / c)
                for h, (c, t) in sorted(self._hourly.items())
            ]

    def recommendations(self) -> List[str]:
        with self._lock:
            average = self._average
            total = sum(self._bands.values())
            low = self._bands["low"]
            unenhanced_low = sum(
                1 for r in self._history if r.confidence < 0.7 and not r.enhancement_applied
            )
            missing_entities = sum(
                1 for r in self._history if not r.has_units and not r.has_address
            )

        tips = []
        if total and average < self.target:
            tips.append(f"Average confidence {average:.0%} is below the {self.target:.0%} target")
        if total and low > total * 0.2:
            tips.append("Over 20% of transcriptions have low confidence - check audio input quality")
        if unenhanced_low > 5:
            tips.append("Several low-confidence segments were never enhanced - run a batch retry")
        if total >= 10 and missing_entities > total * 0.5:
            tips.append("Most transcripts lack units and addresses - review the dispatch priming prompt")
        return tips

    def report(self) -> QualityReport:
        tips = self.recommendations()
        with self._lock:
            low_segments = [r.segment_id for r in self._history if r.confidence < 0.7][-10:]
            return QualityReport(
                total=len(self._history),
                average_confidence=self._average,
                trend=self._trend,
                quality=quality_band(self._average),
                target_met=self._average >= self.target,
                band_counts=dict(self._bands),
                low_segments=low_segments,
                recommendations=tips
            )
