# File: dispatchwatch/features/scanner_intake/domain/models.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional


@dataclass(frozen=True)
class ScannerRecord:
    """
    One captured transmission as stored by the scanner server.
    """
    id: int
    audio: bytes
    audio_type: Optional[str]
    timestamp: datetime
    system: int
    talkgroup: int
    frequency: Optional[float] = None
    source: Optional[int] = None


@dataclass
class IntakeSummary:
    """
    Report returned after one polling pass.
    """
    fetched: int = 0
    ingested: int = 0
    skipped: int = 0
    failed: int = 0
    watermark: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class IntakeStatus:
    running: bool
    watermark: int
    total_ingested: int
    total_failed: int
    last_poll_at: Optional[datetime] = None
