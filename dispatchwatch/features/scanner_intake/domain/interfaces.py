# File: dispatchwatch/features/scanner_intake/domain/interfaces.py
from abc import ABC, abstractmethod
from typing import List, Sequence, Tuple
from .models import ScannerRecord


class IScannerSource(ABC):
    """
    Read-only view over the external scanner store.
    """
    @abstractmethod
    def fetch_after(self, watermark: int, channels: Sequence[Tuple[int, int]], limit: int) -> List[ScannerRecord]:
        """
        Records with id > watermark on the allowed (system, talkgroup) pairs,
        ascending by id, at most `limit` of them.
        """
        pass

    @abstractmethod
    def fetch_ids(self, ids: Sequence[int], channels: Sequence[Tuple[int, int]]) -> List[ScannerRecord]:
        """Specific records, used to re-admit the trailing window after a restart."""
        pass


class ICheckpointStore(ABC):
    """
    Durable home of the last processed scanner id.
    """
    @abstractmethod
    def load(self) -> int:
        """Returns 0 when nothing was ever saved."""
        pass

    @abstractmethod
    def save(self, watermark: int) -> None:
        pass
