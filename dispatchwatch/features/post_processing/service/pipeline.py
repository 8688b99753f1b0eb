# File: dispatchwatch/features/post_processing/service/pipeline.py
import re
import logging
from typing import List, Optional, Tuple
from dispatchwatch.core.common.confidence import clamp
from dispatchwatch.features.entities.service.address_extractor import AddressExtractor, address_extractor
from dispatchwatch.features.entities.service.unit_extractor import UnitExtractor, unit_extractor
from ..data.rules import BEEP_PATTERNS, CALL_TYPES, HALLUCINATION_PATTERNS, HEURISTIC_FIXES
from ..domain.interfaces import IDictionaryRepository
from ..domain.models import PostProcessingResult

logger = logging.getLogger(__name__)

BEEP_TEXT = "{beeping}"
ERROR_PENALTY = 0.05
HALLUCINATION_PENALTY = 0.15
MIN_TEXT_LENGTH = 5


def _collapse(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


class PostProcessingPipeline:
    """
    Cleans a raw transcript and pulls structured fields out of it.

    Stages run in a fixed order: beep short-circuit, hallucination scrub,
    dictionary, heuristic fixes, units, address, call type. The only state
    touched is the dictionary usage counters.
    """
    def __init__(
        self,
        dictionary_repo: Optional[IDictionaryRepository] = None,
        units: UnitExtractor = unit_extractor,
        addresses: AddressExtractor = address_extractor,
    ):
        self.dictionary_repo = dictionary_repo
        self.units = units
        self.addresses = addresses

    def process(self, raw_text: str, raw_confidence: float) -> PostProcessingResult:
        text = (raw_text or "").strip()
        errors: List[str] = []

        # 1. Tone-only captures
        if self.is_noise_only(text):
            return PostProcessingResult(
                cleaned_text=BEEP_TEXT, confidence=0.1, is_noise=True,
                parse_errors=["Audio contains only beeps/tones"]
            )

        # 2. Hallucinated boilerplate
        text, scrubbed = self.scrub_hallucinations(text)
        if scrubbed and len(text) < MIN_TEXT_LENGTH:
            logger.info("Transcript was entirely hallucinated boilerplate")
            return PostProcessingResult(
                cleaned_text="", confidence=0.1, is_hallucination=True,
                parse_errors=["Transcript contained only known hallucination patterns"]
            )

        # 3. Maintained dictionary
        try:
            text = self.apply_dictionary(text)
        except Exception as e:
            logger.warning(f"Dictionary correction failed: {e}")
            errors.append(f"Dictionary correction failed: {e}")

        # 4. Fixed heuristics
        text = self.apply_heuristics(text)

        # 5-7. Entities
        units = self.units.labels(text)
        candidate = self.addresses.extract(text)
        call_type = self.classify_call_type(text)

        confidence = raw_confidence - ERROR_PENALTY * len(errors)
        if scrubbed:
            confidence -= HALLUCINATION_PENALTY

        return PostProcessingResult(
            cleaned_text=text,
            confidence=clamp(confidence, 0.1, 0.95),
            is_hallucination=scrubbed,
            extracted_address=candidate.address if candidate else None,
            address_confidence=candidate.confidence if candidate else None,
            extracted_units=units,
            extracted_call_type=call_type,
            parse_errors=errors
        )

    @staticmethod
    def is_noise_only(text: str) -> bool:
        lowered = text.lower().strip()
        return any(p.search(lowered) for p in BEEP_PATTERNS)

    @staticmethod
    def scrub_hallucinations(text: str) -> Tuple[str, bool]:
        """Returns (scrubbed text, whether anything was removed)."""
        scrubbed = False
        for pattern in HALLUCINATION_PATTERNS:
            if pattern.search(text):
                text = pattern.sub(" ", text)
                scrubbed = True
        return _collapse(text), scrubbed

    def apply_dictionary(self, text: str) -> str:
        if self.dictionary_repo is None or not text:
            return text

        applied = []
        for entry in self.dictionary_repo.active_entries():
            pattern = re.compile(rf"\b{re.escape(entry.wrong_word)}\b", re.IGNORECASE)
            if pattern.search(text):
                text = pattern.sub(lambda m: entry.correct_word, text)
                applied.append(entry.id)

        if applied:
            self.dictionary_repo.increment_usage(applied)
            logger.debug(f"Applied {len(applied)} dictionary corrections")
        return text

    @staticmethod
    def apply_heuristics(text: str) -> str:
        for pattern, replacement in HEURISTIC_FIXES:
            text = pattern.sub(replacement, text)
        return _collapse(text)

    @staticmethod
    def classify_call_type(text: str) -> Optional[str]:
        for pattern, label in CALL_TYPES:
            if pattern.search(text):
                return label
        return None
