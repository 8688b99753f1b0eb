from datetime import timedelta
import pytest
from dispatchwatch.core.events.bus import EventBus
from dispatchwatch.core.events.types import QualityAlert, TranscriptionCompleted
from dispatchwatch.features.quality_monitor.service.monitor import QualityMonitor, quality_band


class StepClock:
    def __init__(self, start):
        self.now = start

    def __call__(self):
        return self.now


def test_rolling_average_and_bands(t0):
    monitor = QualityMonitor(window=3, target=0.9, clock=StepClock(t0))

    for i, c in enumerate([0.95, 0.8, 0.6, 0.9]):
        monitor.track(f"seg-{i}", c)

    # Window holds the last three only
    assert monitor.average == pytest.approx((0.8 + 0.6 + 0.9) / 3)
    report = monitor.report()
    assert report.total == 4
    assert report.band_counts == {"high": 1, "medium": 2, "low": 1}
    assert report.low_segments == ["seg-2"]
    assert not report.target_met
    assert report.quality == "good"


def test_trend_follows_last_change(t0):
    monitor = QualityMonitor(window=10, clock=StepClock(t0))
    monitor.track("a", 0.6)
    assert monitor.trend == 0.0

    monitor.track("b", 1.0)
    assert monitor.trend == pytest.approx(0.2)


def test_very_low_confidence_raises_alert(t0):
    bus = EventBus()
    alerts = bus.subscribe([QualityAlert])
    monitor = QualityMonitor(bus=bus, clock=StepClock(t0))

    monitor.track("ok", 0.8)
    monitor.track("bad", 0.3)

    events = alerts.drain()
    assert [e.segment_id for e in events] == ["bad"]
    assert "30.0%" in events[0].message


def test_warm_start_seeds_window_without_alerts(t0):
    bus = EventBus()
    alerts = bus.subscribe([QualityAlert])
    monitor = QualityMonitor(bus=bus, clock=StepClock(t0))

    monitor.warm_start([0.1, 0.2, 0.9])

    assert monitor.average == pytest.approx(0.4)
    assert alerts.drain() == []
    assert monitor.report().total == 0


def test_hourly_trends_keep_one_day(t0):
    clock = StepClock(t0)
    monitor = QualityMonitor(clock=clock)

    monitor.track("a", 0.8)
    clock.now = t0 + timedelta(minutes=30)
    monitor.track("b", 0.6)
    clock.now = t0 + timedelta(hours=1)
    monitor.track("c", 0.9)

    trends = monitor.trends()
    assert [(t.hour, t.count) for t in trends] == [(t0, 2), (t0 + timedelta(hours=1), 1)]
    assert trends[0].average_confidence == pytest.approx(0.7)

    # 25 hours later the first two buckets have aged out
    clock.now = t0 + timedelta(hours=26)
    monitor.track("d", 0.9)
    assert [t.hour for t in monitor.trends()] == [t0 + timedelta(hours=26)]


def test_consumes_completion_events_from_bus(t0):
    """Completion events published by workers are picked up on drain()."""
    # 1. Arrange
    bus = EventBus()
    monitor = QualityMonitor(clock=StepClock(t0))
    monitor.attach(bus)

    # 2. Act
    bus.publish(TranscriptionCompleted("seg-1", 0.92, has_units=True, has_address=True))
    bus.publish(TranscriptionCompleted("seg-2", 0.71))
    handled = monitor.drain()

    # 3. Assert
    assert handled == 2
    assert monitor.report().total == 2
    assert monitor.drain() == 0


def test_recommendations_flag_low_quality(t0):
    monitor = QualityMonitor(target=0.9, clock=StepClock(t0))
    for i in range(10):
        monitor.track(f"seg-{i}", 0.55)

    tips = monitor.recommendations()

    assert any("below the 90% target" in t for t in tips)
    assert any("Over 20%" in t for t in tips)
    assert any("batch retry" in t for t in tips)
    assert any("lack units and addresses" in t for t in tips)


@pytest.mark.parametrize("confidence,band", [(0.95, "excellent"), (0.8, "good"), (0.65, "fair"), (0.2, "poor")])
def test_quality_band(confidence, band):
    assert quality_band(confidence) == band
