# File: dispatchwatch/features/hospital_calls/service/correlator.py
import re
import logging
import threading
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple
from dispatchwatch.core.common.channels import channel_info
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.database.base import as_utc, utc_now
from dispatchwatch.core.enums import SpeakerType
from dispatchwatch.features.storage.domain.interfaces import ICallRepository
from ..domain.interfaces import IHospitalCallRepository
from ..domain.models import AttachResult
from .sor_detector import SorDetector, sor_detector

logger = logging.getLogger(__name__)

HOSPITAL_CUES = re.compile(
    r"\b(?:go ahead|copy|we'?ll (?:be ready|see you)|see you (?:soon|inside|when you get here)|room \d+|"
    r"bed \d+|trauma bay|resus|receiving|orders?|give (?:them|him|her)|sign(?:ed|ing)? off)\b",
    re.IGNORECASE
)
EMS_CUES = re.compile(
    r"\b(?:medic|ambulance|engine|squad)\s*\d+|\b(?:en route|eta|minutes out|we have a|we are transporting|"
    r"patient is|vitals|blood pressure|pulse|sats?|year[- ]old|complaining of|history of)\b",
    re.IGNORECASE
)


def conversation_id_for(talkgroup: int, timestamp: datetime) -> str:
    ts = as_utc(timestamp)
    return f"CONV-{ts:%Y%m%d}-{talkgroup}-{ts:%H%M%S}"


def infer_speaker(transcript: str) -> SpeakerType:
    """Crews report patients and ETAs; the hospital side acknowledges and assigns rooms."""
    ems = len(EMS_CUES.findall(transcript or ""))
    hospital = len(HOSPITAL_CUES.findall(transcript or ""))
    return SpeakerType.HOSPITAL if hospital > ems else SpeakerType.EMS


class HospitalConversationCorrelator:
    """
    Groups consecutive hospital-channel segments into conversations.

    Per channel: NoActiveConversation -> Active -> Completed. Attachments on
    one channel are serialized by that channel's lock, so sequence numbers
    are assigned strictly in order. The active map is process-local; a
    second process on the same database would need a shared lock.
    """
    def __init__(
        self,
        repo: IHospitalCallRepository,
        calls: Optional[ICallRepository] = None,
        timeout_minutes: float = None,
        on_new_segment: Optional[Callable[[str], object]] = None,
        on_transcript: Optional[Callable[[int], object]] = None,
        sor: SorDetector = sor_detector,
    ):
        self.repo = repo
        self.calls = calls
        self.timeout = timedelta(
            minutes=settings.CONVERSATION_TIMEOUT_MINUTES if timeout_minutes is None else timeout_minutes
        )
        self.on_new_segment = on_new_segment
        self.on_transcript = on_transcript
        self.sor = sor

        self._registry_lock = threading.Lock()
        self._channel_locks: Dict[int, threading.Lock] = {}
        self._active: Dict[int, Tuple[int, datetime]] = {}

    def _lock_for(self, talkgroup: int) -> threading.Lock:
        with self._registry_lock:
            lock = self._channel_locks.get(talkgroup)
            if lock is None:
                lock = self._channel_locks[talkgroup] = threading.Lock()
            return lock

    def attach_segment(self, audio_segment_id: str, talkgroup: int, timestamp: datetime,
                       system: Optional[int] = None, duration: Optional[float] = None) -> AttachResult:
        timestamp = as_utc(timestamp)

        with self._lock_for(talkgroup):
            existing = self.repo.find_link(audio_segment_id)
            if existing:
                logger.debug(f"Segment {audio_segment_id} already in {existing.conversation_id}")
                return existing

            closed = None
            created = False
            active = self._active_for(talkgroup)

            if active and timestamp - active[1] >= self.timeout:
                if self.repo.complete(active[0]):
                    logger.info(f"Conversation {active[0]} on talkgroup {talkgroup} timed out")
                closed = active[0]
                active = None

            if active:
                call_id = active[0]
                conversation_id = None
            else:
                info = channel_info(talkgroup)
                call_id, conversation_id = self.repo.create_conversation(
                    conversation_id_for(talkgroup, timestamp), talkgroup, system, info.hospital_name, timestamp
                )
                created = True
                logger.info(f"✨ New conversation {conversation_id} for {info.hospital_name or talkgroup}")

            sequence = self.repo.append_segment(call_id, audio_segment_id, timestamp, duration)
            last = max(timestamp, active[1]) if active else timestamp
            self._active[talkgroup] = (call_id, last)

        if conversation_id is None:
            conversation = self.repo.get_conversation(call_id)
            conversation_id = conversation.conversation_id if conversation else ""

        result = AttachResult(call_id, conversation_id, sequence, created_conversation=created, closed_call_id=closed)
        self._trigger_transcription(audio_segment_id)
        return result

    def _active_for(self, talkgroup: int) -> Optional[Tuple[int, datetime]]:
        active = self._active.get(talkgroup)
        if active is None:
            # Rebuild after a restart or a sweep
            active = self.repo.latest_active(talkgroup)
            if active:
                self._active[talkgroup] = active
        return active

    def _trigger_transcription(self, audio_segment_id: str):
        if not self.on_new_segment:
            return
        if self.calls is not None:
            segment = self.calls.get_segment(audio_segment_id)
            if segment and segment.processed:
                return
        self.on_new_segment(audio_segment_id)

    def close_stale(self, now: datetime = None) -> List[int]:
        """Completes every active conversation idle for at least the timeout."""
        cutoff = as_utc(now or utc_now()) - self.timeout
        closed = []
        for call_id, talkgroup in self.repo.stale_active(cutoff):
            with self._lock_for(talkgroup):
                if self.repo.complete(call_id, idle_before=cutoff):
                    closed.append(call_id)
                active = self._active.get(talkgroup)
                if active and active[0] == call_id:
                    del self._active[talkgroup]

        if closed:
            logger.info(f"Closed {len(closed)} idle hospital conversations")
        return closed

    def record_segment_transcript(self, audio_segment_id: str, transcript: str, confidence: float) -> Optional[int]:
        """
        Stores a segment's transcript and re-runs SOR detection for its conversation.

        Returns:
            The owning hospital call id, or None if the segment is not linked.
        """
        segment = self.repo.update_segment_transcript(
            audio_segment_id, transcript, confidence, infer_speaker(transcript).value
        )
        if not segment:
            return None

        conversation = self.repo.get_conversation(segment.hospital_call_id)
        if conversation:
            sor = self.sor.detect(conversation.transcript)
            if sor.detected and (not conversation.sor_detected or (sor.physician and not conversation.sor_physician)):
                logger.info(f"SOR detected in {conversation.conversation_id} (physician: {sor.physician})")
                self.repo.mark_sor(conversation.id, sor.physician)

        if self.on_transcript:
            self.on_transcript(segment.hospital_call_id)
        return segment.hospital_call_id

    def active_conversation(self, talkgroup: int) -> Optional[int]:
        with self._lock_for(talkgroup):
            active = self._active_for(talkgroup)
            return active[0] if active else None
