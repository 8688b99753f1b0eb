# File: dispatchwatch/features/storage/domain/models.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class AudioSegmentInfo:
    id: str
    filepath: str
    timestamp: datetime
    duration: Optional[float] = None
    sample_rate: int = 8000
    channels: int = 1
    processed: bool = False


@dataclass(frozen=True)
class CallInfo:
    """
    Detached snapshot of a Call row. Safe to pass between threads.
    """
    id: int
    audio_segment_id: Optional[str]
    transcript: str
    confidence: float
    radio_timestamp: Optional[datetime] = None
    call_type: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    talkgroup: Optional[int] = None
    system: Optional[int] = None
    voice_type: Optional[str] = None
    units: List[str] = field(default_factory=list)
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class NewCall:
    """Preliminary call written at capture time, before any transcript exists."""
    audio_segment_id: str
    radio_timestamp: datetime
    talkgroup: int
    system: int
    call_type: str
    voice_type: str
    frequency: Optional[float] = None
    source_call_id: Optional[int] = None
    meta: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TranscriptUpdate:
    transcript: str
    confidence: float
    call_type: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    units: Optional[List[str]] = None
    keywords: Optional[List[str]] = None
    duration: Optional[float] = None
