import threading
from dispatchwatch.core.events.bus import EventBus
from dispatchwatch.core.events.types import IncidentTransition, TranscriptionProgress


def _progress(n: int) -> TranscriptionProgress:
    return TranscriptionProgress(segment_id=f"seg-{n}", stage="transcribing", progress_percent=n)


def test_full_subscriber_drops_oldest_event():
    """
    Verifies that:
    1. A publisher never blocks on a full subscriber queue.
    2. The oldest events are discarded first, the newest survive.
    """
    # 1. Arrange
    bus = EventBus()
    sub = bus.subscribe(maxsize=3)

    # 2. Act
    for n in range(5):
        bus.publish(_progress(n))

    # 3. Assert
    events = sub.drain()
    assert [e.progress_percent for e in events] == [2, 3, 4]
    assert sub.dropped == 2


def test_subscribers_only_receive_requested_types():
    bus = EventBus()
    incidents = bus.subscribe((IncidentTransition,))
    everything = bus.subscribe()

    bus.publish(_progress(10))
    bus.publish(IncidentTransition(incident_id=1, old_status=None, new_status="dispatched"))

    assert [type(e) for e in incidents.drain()] == [IncidentTransition]
    assert len(everything.drain()) == 2


def test_slow_subscriber_does_not_affect_others():
    """One saturated inbox must not cost a different subscriber any events."""
    bus = EventBus()
    slow = bus.subscribe(maxsize=1)
    fast = bus.subscribe(maxsize=100)

    for n in range(20):
        bus.publish(_progress(n))

    assert len(slow.drain()) == 1
    assert len(fast.drain()) == 20


def test_get_times_out_with_none():
    bus = EventBus()
    sub = bus.subscribe()
    assert sub.get(timeout=0.01) is None


def test_concurrent_publishers_never_exceed_bound():
    bus = EventBus()
    sub = bus.subscribe(maxsize=10)

    def spam():
        for n in range(200):
            bus.publish(_progress(n))

    threads = [threading.Thread(target=spam) for _ in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(sub) <= 10
