# File: dispatchwatch/core/events/types.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
from dispatchwatch.core.database.base import utc_now


@dataclass(frozen=True)
class TranscriptionProgress:
    segment_id: str
    stage: str
    progress_percent: int
    message: str = ""
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class TranscriptionCompleted:
    segment_id: str
    confidence: float
    has_units: bool = False
    has_address: bool = False
    text_length: int = 0
    processing_ms: int = 0
    enhancement_applied: bool = False
    provider: str = ""
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class RetryProgress:
    segment_id: str
    attempt: int
    max_attempts: int
    current_confidence: float
    stage: str
    message: str = ""
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class IncidentTransition:
    incident_id: int
    old_status: Optional[str]
    new_status: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass(frozen=True)
class QualityAlert:
    segment_id: str
    confidence: float
    message: str
    created_at: datetime = field(default_factory=utc_now)
