# File: dispatchwatch/features/entities/service/address_extractor.py
import re
import logging
from typing import List, Optional
from ..domain.interfaces import IAddressStrategy
from ..domain.models import AddressCandidate
from .address_rules import DIR, NAME, SHORT_TYPES, TYPES, clean_transcript, is_valid_address, normalize_address
from .address_strategies import default_strategies

logger = logging.getLogger(__name__)

CONFIDENCE_FLOOR = 0.6

# Lower-precision fallbacks, tried on the uncleaned transcript once the chain gives up.
LEGACY_PATTERNS = [
    re.compile(rf"\b(\d{{1,5}})\s+((?:{DIR})\s+)?({NAME})\s+({TYPES})\b", re.IGNORECASE),
    re.compile(rf"\b({NAME})\s+({SHORT_TYPES})\s+(?:and|&|\bat\b)\s+({NAME})\s+({SHORT_TYPES})\b", re.IGNORECASE),
]


def _legacy_cleanup(address: str) -> str:
    text = normalize_address(address)
    text = re.sub(r"\bxing\b", "Crossing", text, flags=re.IGNORECASE)
    text = re.sub(r"\bapt\b\.?", "Apartment", text, flags=re.IGNORECASE)
    return text


class AddressExtractor:
    """
    Ordered chain of address strategies.
    The first strategy (in chain order) that clears the confidence floor wins.
    """
    def __init__(self, strategies: List[IAddressStrategy] = None, floor: float = CONFIDENCE_FLOOR):
        self.strategies = strategies if strategies is not None else default_strategies()
        self.floor = floor

    def extract(self, transcript: str) -> Optional[AddressCandidate]:
        if not transcript or not transcript.strip():
            return None

        cleaned = clean_transcript(transcript)
        for strategy in self.strategies:
            candidate = strategy.find(cleaned)
            if candidate and candidate.confidence > self.floor:
                logger.debug(f"Address via {candidate.method}: {candidate.address}")
                return candidate

        return self._legacy(transcript)

    def _legacy(self, transcript: str) -> Optional[AddressCandidate]:
        for pattern in LEGACY_PATTERNS:
            m = pattern.search(transcript)
            if m and is_valid_address(m.group(0)):
                return AddressCandidate(_legacy_cleanup(m.group(0)), 0.6, "legacy_pattern")
        return None


address_extractor = AddressExtractor()
