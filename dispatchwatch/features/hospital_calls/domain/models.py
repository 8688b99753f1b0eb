# File: dispatchwatch/features/hospital_calls/domain/models.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class HospitalSegmentInfo:
    id: int
    hospital_call_id: int
    audio_segment_id: str
    sequence_number: int
    timestamp: datetime
    transcript: Optional[str] = None
    confidence: Optional[float] = None
    speaker_type: Optional[str] = None
    duration: Optional[float] = None


@dataclass(frozen=True)
class HospitalCallInfo:
    id: int
    conversation_id: str
    talkgroup: int
    hospital_name: Optional[str]
    status: str
    timestamp: datetime
    last_activity_at: datetime
    total_segments: int = 0
    sor_detected: bool = False
    sor_physician: Optional[str] = None
    segments: List[HospitalSegmentInfo] = field(default_factory=list)

    @property
    def transcript(self) -> str:
        return " ".join(s.transcript for s in self.segments if s.transcript)


@dataclass(frozen=True)
class AttachResult:
    """
    Where a segment landed. `reused` is set when the segment was already linked.
    """
    hospital_call_id: int
    conversation_id: str
    sequence_number: int
    created_conversation: bool = False
    reused: bool = False
    closed_call_id: Optional[int] = None


@dataclass(frozen=True)
class SorResult:
    detected: bool
    physician: Optional[str] = None
    confidence: float = 0.0
    matched: Optional[str] = None
