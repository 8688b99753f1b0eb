# File: dispatchwatch/features/quality_monitor/domain/models.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List


@dataclass(frozen=True)
class SegmentQuality:
    segment_id: str
    confidence: float
    recorded_at: datetime
    has_units: bool = False
    has_address: bool = False
    text_length: int = 0
    processing_ms: int = 0
    enhancement_applied: bool = False


@dataclass(frozen=True)
class HourlyQuality:
    hour: datetime
    count: int
    average_confidence: float


@dataclass(frozen=True)
class QualityReport:
    total: int
    average_confidence: float
    trend: float
    quality: str
    target_met: bool
    band_counts: Dict[str, int] = field(default_factory=dict)
    low_segments: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
