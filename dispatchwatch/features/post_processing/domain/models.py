# File: dispatchwatch/features/post_processing/domain/models.py
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class DictionaryEntry:
    id: int
    wrong_word: str
    correct_word: str
    category: Optional[str] = None


@dataclass(frozen=True)
class PostProcessingResult:
    cleaned_text: str
    confidence: float
    is_noise: bool = False
    is_hallucination: bool = False
    extracted_address: Optional[str] = None
    address_confidence: Optional[float] = None
    extracted_units: List[str] = field(default_factory=list)
    extracted_call_type: Optional[str] = None
    parse_errors: List[str] = field(default_factory=list)
