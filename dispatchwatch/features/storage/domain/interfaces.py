# File: dispatchwatch/features/storage/domain/interfaces.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional, Set
from .models import AudioSegmentInfo, CallInfo, NewCall, TranscriptUpdate


class ICallRepository(ABC):
    """
    Persistence contract for audio segments and calls.
    """
    @abstractmethod
    def create_segment(self, filepath: str, timestamp: datetime, duration: Optional[float] = None,
                       sample_rate: int = 8000, channels: int = 1) -> str:
        """Creates an AudioSegment and returns its id."""
        pass

    @abstractmethod
    def get_segment(self, segment_id: str) -> Optional[AudioSegmentInfo]:
        pass

    @abstractmethod
    def mark_segment_processed(self, segment_id: str, duration: Optional[float] = None) -> None:
        pass

    @abstractmethod
    def create_call(self, call: NewCall) -> int:
        pass

    @abstractmethod
    def get_call_for_segment(self, segment_id: str) -> Optional[CallInfo]:
        pass

    @abstractmethod
    def update_transcript(self, segment_id: str, update: TranscriptUpdate,
                          only_if_better: bool = False) -> bool:
        """
        Writes transcript fields to the Call that owns the segment.
        With only_if_better, the write is skipped unless confidence improves.

        Returns:
            True if a row was written.
        """
        pass

    @abstractmethod
    def existing_source_ids(self, source_ids: Iterable[int]) -> Set[int]:
        """Subset of the given scanner ids that already produced a Call."""
        pass

    @abstractmethod
    def low_confidence_segments(self, threshold: float, limit: int) -> List[CallInfo]:
        pass

    @abstractmethod
    def recent_confidences(self, limit: int) -> List[float]:
        pass
