# File: dispatchwatch/features/hospital_calls/domain/interfaces.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple
from .models import AttachResult, HospitalCallInfo, HospitalSegmentInfo


class IHospitalCallRepository(ABC):
    """
    Storage for conversations and their segments.
    Segment membership is only ever changed by the conversation correlator.
    """
    @abstractmethod
    def find_link(self, audio_segment_id: str) -> Optional[AttachResult]:
        """Existing link for an audio segment, if any."""
        pass

    @abstractmethod
    def latest_active(self, talkgroup: int) -> Optional[Tuple[int, datetime]]:
        """(hospital_call_id, last_activity_at) of the newest active conversation."""
        pass

    @abstractmethod
    def create_conversation(self, conversation_id: str, talkgroup: int, system: Optional[int],
                            hospital_name: Optional[str], timestamp: datetime) -> Tuple[int, str]:
        """Returns (id, conversation_id actually stored)."""
        pass

    @abstractmethod
    def append_segment(self, hospital_call_id: int, audio_segment_id: str, timestamp: datetime,
                       duration: Optional[float] = None) -> int:
        """
        Adds the next segment and refreshes total_segments / last_activity_at.

        Returns:
            The assigned sequence number. Raises SequenceCollisionError on a duplicate.
        """
        pass

    @abstractmethod
    def complete(self, hospital_call_id: int, idle_before: Optional[datetime] = None) -> bool:
        """Marks a conversation completed (only if idle since idle_before, when given)."""
        pass

    @abstractmethod
    def stale_active(self, idle_before: datetime) -> List[Tuple[int, int]]:
        """(hospital_call_id, talkgroup) of active conversations with no activity since idle_before."""
        pass

    @abstractmethod
    def get_conversation(self, hospital_call_id: int) -> Optional[HospitalCallInfo]:
        pass

    @abstractmethod
    def update_segment_transcript(self, audio_segment_id: str, transcript: str, confidence: float,
                                  speaker_type: str) -> Optional[HospitalSegmentInfo]:
        pass

    @abstractmethod
    def mark_sor(self, hospital_call_id: int, physician: Optional[str]) -> None:
        pass
