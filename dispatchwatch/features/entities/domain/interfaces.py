# File: dispatchwatch/features/entities/domain/interfaces.py
from abc import ABC, abstractmethod
from typing import Optional
from .models import AddressCandidate


class IAddressStrategy(ABC):
    """
    A single pure text -> candidate rule in the address chain.
    Strategies know nothing about each other or about their position in the chain.
    """
    name: str = "strategy"
    confidence: float = 0.0

    @abstractmethod
    def find(self, transcript: str) -> Optional[AddressCandidate]:
        """
        Args:
            transcript: already-cleaned transcript text.

        Returns:
            A validated, normalized candidate or None.
        """
        pass
