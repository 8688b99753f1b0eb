import threading
import time
import pytest
from dispatchwatch.core.errors import AudioEnhancementError
from dispatchwatch.core.events.bus import EventBus
from dispatchwatch.core.events.types import RetryProgress, TranscriptionCompleted
from dispatchwatch.features.audio_analysis.domain.interfaces import IAudioEnhancer
from dispatchwatch.features.hospital_calls.data.repository import PostgresHospitalCallRepo
from dispatchwatch.features.incidents.data.repository import PostgresIncidentRepo
from dispatchwatch.features.incidents.service.correlator import IncidentCorrelator
from dispatchwatch.features.post_processing.service.pipeline import PostProcessingPipeline
from dispatchwatch.features.quality_monitor.service.monitor import QualityMonitor
from dispatchwatch.features.retry.service.escalator import (
    RetryEscalator, attempt_temperature, enhancement_level, improvement_percent
)
from dispatchwatch.features.storage.data.repository import PostgresCallRepo
from dispatchwatch.features.storage.domain.models import NewCall, TranscriptUpdate
from dispatchwatch.features.transcription.domain.models import TranscriptionOutcome


class ScriptedEngine:
    """Stands in for TranscriptionEngine; hands back one outcome per call."""
    def __init__(self, outcomes, during=None):
        self.outcomes = list(outcomes)
        self.sources = []
        self.temperatures = []
        self.during = during

    def transcribe(self, audio_path, prompt=None, temperatures=None, on_progress=None):
        self.sources.append(audio_path)
        self.temperatures.append(temperatures)
        if self.during:
            self.during()
        return self.outcomes.pop(0)


class RecordingEnhancer(IAudioEnhancer):
    def __init__(self, tmp_path, fail=False):
        self.tmp_path = tmp_path
        self.fail = fail
        self.levels = []
        self.cleaned = []

    def enhance(self, audio_path, level):
        self.levels.append(level)
        if self.fail:
            raise AudioEnhancementError("ffmpeg filter graph failed")
        path = self.tmp_path / f"enhanced_{len(self.levels)}.wav"
        path.write_bytes(b"ENHANCED")
        return str(path)

    def cleanup(self, enhanced_path):
        self.cleaned.append(enhanced_path)


def _outcome(text, confidence):
    return TranscriptionOutcome(text=text, confidence=confidence, duration_ms=4000, provider="fake", passes=1)


def _seed(calls, path, t0, confidence=0.4, transcript="medic five respond", talkgroup=10202, source_id=1):
    segment_id = calls.create_segment(str(path), t0)
    calls.create_call(NewCall(segment_id, t0, talkgroup, 1, "Emergency Dispatch", "automated_voice",
                              source_call_id=source_id))
    calls.update_transcript(segment_id, TranscriptUpdate(transcript=transcript, confidence=confidence))
    return segment_id


def _escalator(engine, enhancer, calls, **kwargs):
    kwargs.setdefault("target_confidence", 0.9)
    kwargs.setdefault("max_attempts", 3)
    return RetryEscalator(engine, enhancer, calls, PostProcessingPipeline(), **kwargs)


def test_stored_confidence_never_goes_down(audio_file, tmp_path, t0):
    """
    Verifies that:
    1. Only improvements are written, so a worse later attempt is ignored.
    2. The improvement listener fires once per write.
    3. Enhancement escalates with the attempt and every copy is cleaned up.
    """
    # 1. Arrange
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0)
    engine = ScriptedEngine([
        _outcome("Medic 5 respond to the scene", 0.6),
        _outcome("Medic 5 respond to 1200 Main Street", 0.8),
        _outcome("Medic respond", 0.5),
    ])
    enhancer = RecordingEnhancer(tmp_path)
    improved = []
    escalator = _escalator(engine, enhancer, calls,
                           on_improved=lambda sid, text, conf: improved.append((text, conf)))

    # 2. Act
    result = escalator.retry_segment(segment_id)

    # 3. Assert
    assert result.attempts == 3
    assert not result.success
    assert result.original_confidence == pytest.approx(0.4)
    assert result.final_confidence == pytest.approx(0.8)
    assert result.improvement_percent == pytest.approx(100.0)
    assert result.transcript == "Medic 5 respond to 1200 Main Street"
    assert result.enhancement_applied

    stored = calls.get_call_for_segment(segment_id)
    assert stored.confidence == pytest.approx(0.8)
    assert stored.transcript == "Medic 5 respond to 1200 Main Street"
    assert stored.location == "1200 Main Street"

    assert [c for _, c in improved] == [pytest.approx(0.6), pytest.approx(0.8)]
    assert enhancer.levels == [3, 3, 2]
    assert len(enhancer.cleaned) == 3
    assert engine.temperatures == [(0.0,), (0.1,), (0.2,)]
    assert escalator.stats().total_retries == 1
    assert escalator.stats().successful_retries == 1


def test_stops_once_target_is_reached(audio_file, tmp_path, t0):
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0, confidence=0.6)
    engine = ScriptedEngine([_outcome("Medic 5 respond to 1200 Main Street", 0.93)])

    result = _escalator(engine, RecordingEnhancer(tmp_path), calls).retry_segment(segment_id)

    assert result.success
    assert result.attempts == 1
    assert len(engine.sources) == 1


def test_already_good_segment_is_left_alone(audio_file, tmp_path, t0):
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0, confidence=0.92)
    engine = ScriptedEngine([])

    result = _escalator(engine, RecordingEnhancer(tmp_path), calls).retry_segment(segment_id)

    assert result.success
    assert result.attempts == 0
    assert result.improvement_percent == 0.0
    assert engine.sources == []


def test_missing_audio_is_an_error_result(tmp_path, t0):
    calls = PostgresCallRepo()
    segment_id = _seed(calls, tmp_path / "deleted.m4a", t0)
    bus = EventBus()
    progress = bus.subscribe([RetryProgress])

    result = _escalator(ScriptedEngine([]), RecordingEnhancer(tmp_path), calls, bus=bus).retry_segment(segment_id)

    assert not result.success
    assert "Audio file not found" in result.error
    assert [e.stage for e in progress.drain()] == ["failed"]


def test_second_request_for_same_segment_is_rejected(audio_file, tmp_path, t0):
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0)
    nested = []
    escalator = None

    def reenter():
        if not nested:
            nested.append(escalator.retry_segment(segment_id))

    engine = ScriptedEngine([_outcome("Medic 5 respond to 1200 Main Street", 0.95)], during=reenter)
    escalator = _escalator(engine, RecordingEnhancer(tmp_path), calls)

    result = escalator.retry_segment(segment_id)

    assert result.success
    assert nested[0].error == "Segment already being retried"
    assert not escalator.is_running(segment_id)


def test_enhancement_failure_falls_back_to_original_audio(audio_file, tmp_path, t0):
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0)
    engine = ScriptedEngine([_outcome("Medic 5 respond to 1200 Main Street", 0.95)])

    result = _escalator(engine, RecordingEnhancer(tmp_path, fail=True), calls).retry_segment(segment_id)

    assert engine.sources == [str(audio_file)]
    assert not result.enhancement_applied
    assert result.success


def test_placeholder_outcomes_are_not_written(audio_file, tmp_path, t0):
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0)
    engine = ScriptedEngine([
        TranscriptionOutcome(text="[Audio transcription failed]", confidence=0.0, degraded=True),
        TranscriptionOutcome(text="{beeping}", confidence=0.1, is_noise=True),
    ])

    result = _escalator(engine, RecordingEnhancer(tmp_path), calls, max_attempts=2).retry_segment(segment_id)

    assert result.final_confidence == pytest.approx(0.4)
    assert calls.get_call_for_segment(segment_id).transcript == "medic five respond"
    assert result.improvement_percent == 0.0


def test_batch_retries_only_low_confidence_calls(tmp_path, t0):
    # 1. Arrange: two poor calls and one good one
    calls = PostgresCallRepo()
    ids = []
    for i, confidence in enumerate([0.3, 0.5, 0.8]):
        path = tmp_path / f"clip_{i}.m4a"
        path.write_bytes(b"FAKE_AUDIO")
        ids.append(_seed(calls, path, t0, confidence=confidence, source_id=i + 1))
    engine = ScriptedEngine([_outcome("Medic 5 respond to 1200 Main Street", 0.95)] * 2)
    escalator = _escalator(engine, RecordingEnhancer(tmp_path), calls, batch_concurrency=1)

    # 2. Act
    results = escalator.retry_batch(threshold=0.7)

    # 3. Assert
    assert set(results) == {ids[0], ids[1]}
    assert all(r.success for r in results.values())
    assert escalator.stats().total_retries == 2


def test_submitted_retries_share_one_bounded_pool(tmp_path, t0):
    """
    Verifies that:
    1. Retries submitted from the transcription path never exceed batch_concurrency at once.
    2. A segment that is already queued is not queued twice.
    """
    # 1. Arrange
    calls = PostgresCallRepo()
    ids = []
    for i in range(4):
        path = tmp_path / f"clip_{i}.m4a"
        path.write_bytes(b"FAKE_AUDIO")
        ids.append(_seed(calls, path, t0, source_id=i + 1))

    lock = threading.Lock()
    active = []
    peak = []

    def slow():
        with lock:
            active.append(1)
            peak.append(len(active))
        time.sleep(0.05)
        with lock:
            active.pop()

    engine = ScriptedEngine([_outcome("Medic 5 respond to 1200 Main Street", 0.95)] * 4, during=slow)
    escalator = _escalator(engine, RecordingEnhancer(tmp_path), calls, batch_concurrency=2)

    # 2. Act
    futures = [escalator.submit(segment_id) for segment_id in ids]
    duplicate = escalator.submit(ids[-1])
    results = [f.result(timeout=5) for f in futures]
    escalator.shutdown()

    # 3. Assert
    assert duplicate is None
    assert all(r.success for r in results)
    assert max(peak) <= 2
    assert len(engine.sources) == 4


def test_retry_outcome_reaches_the_quality_monitor(audio_file, tmp_path, t0):
    """A finished retry publishes its best confidence so the monitor's window sees it."""
    # 1. Arrange
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0)
    bus = EventBus()
    monitor = QualityMonitor()
    monitor.attach(bus)
    engine = ScriptedEngine([
        _outcome("Medic 5 respond to 1200 Main Street", 0.8),
        _outcome("Medic respond", 0.5),
    ])

    # 2. Act
    _escalator(engine, RecordingEnhancer(tmp_path), calls, bus=bus, max_attempts=2).retry_segment(segment_id)
    consumed = monitor.drain()

    # 3. Assert
    assert consumed == 1
    report = monitor.report()
    assert report.total == 1
    assert report.average_confidence == pytest.approx(0.8)


def test_retry_completion_event_describes_the_stored_call(audio_file, tmp_path, t0):
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0)
    bus = EventBus()
    completed = bus.subscribe([TranscriptionCompleted])
    engine = ScriptedEngine([_outcome("Medic 5 respond to 1200 Main Street", 0.95)])

    _escalator(engine, RecordingEnhancer(tmp_path), calls, bus=bus).retry_segment(segment_id)

    [event] = completed.drain()
    assert event.segment_id == segment_id
    assert event.confidence == pytest.approx(0.95)
    assert event.has_units and event.has_address
    assert event.enhancement_applied
    assert event.provider == "retry"


def test_improved_dispatch_transcript_opens_an_incident(audio_file, tmp_path, t0):
    """
    Verifies that:
    1. A dispatch call whose first pass named no unit gets an incident once a retry finds one.
    2. Running the same retry path again does not open a second incident.
    """
    # 1. Arrange
    calls = PostgresCallRepo()
    incident_repo = PostgresIncidentRepo()
    incidents = IncidentCorrelator(incident_repo, PostgresHospitalCallRepo())
    segment_id = _seed(calls, audio_file, t0, transcript="respond to the scene")
    assert incidents.on_dispatch_call(calls.get_call_for_segment(segment_id)) is None

    engine = ScriptedEngine([_outcome("Medic 5 respond to 1200 Main Street", 0.95)])
    escalator = _escalator(engine, RecordingEnhancer(tmp_path), calls, incidents=incidents)

    # 2. Act
    result = escalator.retry_segment(segment_id)

    # 3. Assert
    assert result.success
    [incident] = incident_repo.with_status("dispatched")
    assert incident.unit_id == "Medic 5"
    assert incident.location == "1200 Main Street"
    assert incident.transcript_dispatch_id == calls.get_call_for_segment(segment_id).id
    assert incidents.on_dispatch_call(calls.get_call_for_segment(segment_id)) is None


def test_hospital_channel_improvement_does_not_open_an_incident(audio_file, tmp_path, t0):
    calls = PostgresCallRepo()
    incident_repo = PostgresIncidentRepo()
    incidents = IncidentCorrelator(incident_repo, PostgresHospitalCallRepo())
    segment_id = _seed(calls, audio_file, t0, talkgroup=10255)
    engine = ScriptedEngine([_outcome("Medic 5 en route to Eskenazi", 0.95)])

    _escalator(engine, RecordingEnhancer(tmp_path), calls, incidents=incidents).retry_segment(segment_id)

    assert incident_repo.with_status("dispatched") == []


def test_explicit_zero_target_is_respected(audio_file, tmp_path, t0):
    calls = PostgresCallRepo()
    segment_id = _seed(calls, audio_file, t0, confidence=0.4)
    engine = ScriptedEngine([])

    escalator = _escalator(engine, RecordingEnhancer(tmp_path), calls, target_confidence=0.0)
    result = escalator.retry_segment(segment_id)

    assert escalator.target_confidence == 0.0
    assert result.attempts == 0
    assert engine.sources == []


@pytest.mark.parametrize("attempt,best,level", [
    (1, 0.9, 0), (1, 0.75, 1), (2, 0.75, 2), (1, 0.6, 2), (3, 0.6, 3), (1, 0.3, 3),
])
def test_enhancement_level_schedule(attempt, best, level):
    assert enhancement_level(attempt, best) == level


def test_attempt_helpers():
    assert attempt_temperature(1) == 0.0
    assert attempt_temperature(3) == 0.2
    assert improvement_percent(0.5, 0.75) == pytest.approx(50.0)
    assert improvement_percent(0.0, 0.6) == pytest.approx(60.0)
