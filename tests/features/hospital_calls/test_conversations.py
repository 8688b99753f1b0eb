import threading
from datetime import timedelta
import pytest
from dispatchwatch.features.hospital_calls.data.repository import PostgresHospitalCallRepo
from dispatchwatch.features.hospital_calls.service.correlator import (
    HospitalConversationCorrelator, conversation_id_for
)
from dispatchwatch.features.storage.data.repository import PostgresCallRepo

METHODIST = 10256


@pytest.fixture
def calls():
    return PostgresCallRepo()


@pytest.fixture
def repo():
    return PostgresHospitalCallRepo()


def _segment(calls, t):
    return calls.create_segment("/tmp/clip.m4a", t)


def test_close_segments_share_a_conversation(calls, repo, t0):
    """
    Verifies that:
    1. Two segments five minutes apart land in the same conversation.
    2. Sequence numbers run 1, 2 and the conversation counters follow.
    """
    # 1. Arrange
    correlator = HospitalConversationCorrelator(repo, calls=calls, timeout_minutes=10)
    first, second = _segment(calls, t0), _segment(calls, t0 + timedelta(minutes=5))

    # 2. Act
    a = correlator.attach_segment(first, METHODIST, t0)
    b = correlator.attach_segment(second, METHODIST, t0 + timedelta(minutes=5))

    # 3. Assert
    assert a.created_conversation and not b.created_conversation
    assert a.hospital_call_id == b.hospital_call_id
    assert (a.sequence_number, b.sequence_number) == (1, 2)
    assert a.conversation_id == f"CONV-20250314-{METHODIST}-120000"
    assert b.conversation_id == a.conversation_id

    conversation = repo.get_conversation(a.hospital_call_id)
    assert conversation.total_segments == 2
    assert conversation.hospital_name == "IU Methodist"
    assert conversation.last_activity_at == t0 + timedelta(minutes=5)


def test_gap_past_timeout_starts_new_conversation(calls, repo, t0):
    correlator = HospitalConversationCorrelator(repo, calls=calls, timeout_minutes=10)

    a = correlator.attach_segment(_segment(calls, t0), METHODIST, t0)
    later = t0 + timedelta(minutes=15)
    b = correlator.attach_segment(_segment(calls, later), METHODIST, later)

    assert b.created_conversation
    assert b.hospital_call_id != a.hospital_call_id
    assert b.closed_call_id == a.hospital_call_id
    assert b.sequence_number == 1
    assert repo.get_conversation(a.hospital_call_id).status == "completed"
    assert repo.get_conversation(b.hospital_call_id).status == "active"


def test_channels_are_independent(calls, repo, t0):
    correlator = HospitalConversationCorrelator(repo, calls=calls)

    a = correlator.attach_segment(_segment(calls, t0), METHODIST, t0)
    b = correlator.attach_segment(_segment(calls, t0), 10255, t0)

    assert a.hospital_call_id != b.hospital_call_id
    assert correlator.active_conversation(METHODIST) == a.hospital_call_id
    assert correlator.active_conversation(10255) == b.hospital_call_id


def test_reattaching_a_segment_is_idempotent(calls, repo, t0):
    triggered = []
    correlator = HospitalConversationCorrelator(repo, calls=calls, on_new_segment=triggered.append)
    segment_id = _segment(calls, t0)

    first = correlator.attach_segment(segment_id, METHODIST, t0)
    again = correlator.attach_segment(segment_id, METHODIST, t0)

    assert again.reused
    assert (again.hospital_call_id, again.sequence_number) == (first.hospital_call_id, 1)
    assert repo.get_conversation(first.hospital_call_id).total_segments == 1
    assert triggered == [segment_id]


def test_processed_segment_is_not_transcribed_again(calls, repo, t0):
    triggered = []
    correlator = HospitalConversationCorrelator(repo, calls=calls, on_new_segment=triggered.append)
    segment_id = _segment(calls, t0)
    calls.mark_segment_processed(segment_id)

    correlator.attach_segment(segment_id, METHODIST, t0)

    assert triggered == []


def test_close_stale_completes_idle_conversations(calls, repo, t0):
    correlator = HospitalConversationCorrelator(repo, calls=calls, timeout_minutes=10)
    idle = correlator.attach_segment(_segment(calls, t0), METHODIST, t0)
    busy_at = t0 + timedelta(minutes=8)
    busy = correlator.attach_segment(_segment(calls, busy_at), 10255, busy_at)

    closed = correlator.close_stale(now=t0 + timedelta(minutes=12))

    assert closed == [idle.hospital_call_id]
    assert repo.get_conversation(busy.hospital_call_id).status == "active"
    assert correlator.active_conversation(METHODIST) is None

    # The next segment on the closed channel opens a fresh conversation
    t = t0 + timedelta(minutes=13)
    fresh = correlator.attach_segment(_segment(calls, t), METHODIST, t)
    assert fresh.created_conversation


def test_active_conversation_survives_restart(calls, repo, t0):
    a = HospitalConversationCorrelator(repo, calls=calls).attach_segment(_segment(calls, t0), METHODIST, t0)

    restarted = HospitalConversationCorrelator(repo, calls=calls)
    t = t0 + timedelta(minutes=2)
    b = restarted.attach_segment(_segment(calls, t), METHODIST, t)

    assert b.hospital_call_id == a.hospital_call_id
    assert b.sequence_number == 2


def test_concurrent_attachments_get_contiguous_sequences(calls, repo, t0):
    """Eight workers attaching to one channel at once never collide on a sequence number."""
    correlator = HospitalConversationCorrelator(repo, calls=calls)
    segments = [_segment(calls, t0 + timedelta(seconds=i)) for i in range(8)]
    results = []
    lock = threading.Lock()

    def attach(i):
        r = correlator.attach_segment(segments[i], METHODIST, t0 + timedelta(seconds=i))
        with lock:
            results.append(r)

    threads = [threading.Thread(target=attach, args=(i,)) for i in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len({r.hospital_call_id for r in results}) == 1
    assert sorted(r.sequence_number for r in results) == list(range(1, 9))


def test_transcripts_feed_sor_and_listener(calls, repo, t0):
    # 1. Arrange
    notified = []
    correlator = HospitalConversationCorrelator(repo, calls=calls, on_transcript=notified.append)
    first, second = _segment(calls, t0), _segment(calls, t0 + timedelta(minutes=1))
    attached = correlator.attach_segment(first, METHODIST, t0)
    correlator.attach_segment(second, METHODIST, t0 + timedelta(minutes=1))

    # 2. Act
    correlator.record_segment_transcript(first, "Methodist, Medic 12, patient is refusing transport", 0.8)
    correlator.record_segment_transcript(second, "Copy, this is Dr. Patel, go ahead with the release", 0.85)

    # 3. Assert
    conversation = repo.get_conversation(attached.hospital_call_id)
    assert conversation.sor_detected
    assert conversation.sor_physician == "Patel"
    assert [s.speaker_type for s in conversation.segments] == ["ems", "hospital"]
    assert conversation.transcript.startswith("Methodist, Medic 12")
    assert notified == [attached.hospital_call_id] * 2


def test_transcript_for_unlinked_segment_is_ignored(calls, repo, t0):
    correlator = HospitalConversationCorrelator(repo, calls=calls)

    assert correlator.record_segment_transcript(_segment(calls, t0), "Medic 4 en route", 0.8) is None


def test_conversation_id_collision_gets_suffix(calls, repo, t0):
    cid = conversation_id_for(METHODIST, t0)
    first, _ = repo.create_conversation(cid, METHODIST, 1, "IU Methodist", t0)
    second, stored = repo.create_conversation(cid, METHODIST, 1, "IU Methodist", t0)

    assert first != second
    assert stored == f"{cid}-2"
