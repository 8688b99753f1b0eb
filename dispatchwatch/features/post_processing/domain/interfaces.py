# File: dispatchwatch/features/post_processing/domain/interfaces.py
from abc import ABC, abstractmethod
from typing import Iterable, List
from .models import DictionaryEntry


class IDictionaryRepository(ABC):
    """
    Source of the maintained term corrections.
    """
    @abstractmethod
    def active_entries(self) -> List[DictionaryEntry]:
        pass

    @abstractmethod
    def increment_usage(self, entry_ids: Iterable[int]) -> None:
        """Bumps usage_count by one for each applied entry."""
        pass
