# File: dispatchwatch/features/entities/service/address_rules.py
"""
Shared regex vocabulary plus the clean / validate / normalize steps
every address strategy goes through.
"""
import re
from ..data.places import (
    CALL_TYPE_PHRASES, DIRECTIONS, EXTRA_VALID_STREET_TYPES, SHORT_STREET_TYPES,
    STREET_TYPES, UNIT_TOKENS,
)

TYPES = "|".join(STREET_TYPES)
SHORT_TYPES = "|".join(SHORT_STREET_TYPES)
DIR = "|".join(DIRECTIONS)
UNITS = "|".join(UNIT_TOKENS)

# A street name: starts with a letter, short, may contain digits and spaces.
NAME = r"[a-zA-Z][a-zA-Z0-9\s]{1,25}?"

# Intersection street names are free-floating (no house number to anchor on),
# so they are limited to three words that are not cue words.
_STOP = r"(?:and|at|to|near|the|of|on|in|respond|responding|location|address|en|route|dispatched|arriving|is|for|with)"
FREE_NAME = rf"(?:(?!{_STOP}\b)[a-zA-Z][a-zA-Z0-9']*\s+){{0,2}}(?!{_STOP}\b)[a-zA-Z][a-zA-Z0-9']*"

UNIT_NUMBER = re.compile(rf"\b(?:{UNITS})\s*\d+\b", re.IGNORECASE)
UNIT_AT_END = re.compile(rf"(?:{UNITS})\s*$", re.IGNORECASE)
_STREET_TYPE_WORD = re.compile(
    rf"\b(?:{'|'.join(STREET_TYPES + EXTRA_VALID_STREET_TYPES)})\b", re.IGNORECASE
)
_CONNECTOR = re.compile(r"\band\b|&|\bat\b", re.IGNORECASE)

_ABBREVIATIONS = [
    (re.compile(r"\bst\b\.?", re.IGNORECASE), "Street"),
    (re.compile(r"\bave\b\.?", re.IGNORECASE), "Avenue"),
    (re.compile(r"\brd\b\.?", re.IGNORECASE), "Road"),
    (re.compile(r"\bdr\b\.?", re.IGNORECASE), "Drive"),
    (re.compile(r"\bln\b\.?", re.IGNORECASE), "Lane"),
    (re.compile(r"\bpl\b\.?", re.IGNORECASE), "Place"),
    (re.compile(r"\bct\b\.?", re.IGNORECASE), "Court"),
    (re.compile(r"\bcir\b\.?", re.IGNORECASE), "Circle"),
    (re.compile(r"\bblvd\b\.?", re.IGNORECASE), "Boulevard"),
    (re.compile(r"\bpkwy\b\.?", re.IGNORECASE), "Parkway"),
    (re.compile(r"\bter\b\.?", re.IGNORECASE), "Terrace"),
    (re.compile(r"\bhwy\b\.?", re.IGNORECASE), "Highway"),
    (re.compile(r"\bn\b\.?(?=\s)", re.IGNORECASE), "North"),
    (re.compile(r"\bs\b\.?(?=\s)", re.IGNORECASE), "South"),
    (re.compile(r"\be\b\.?(?=\s)", re.IGNORECASE), "East"),
    (re.compile(r"\bw\b\.?(?=\s)", re.IGNORECASE), "West"),
    (re.compile(r"\s*&\s*"), " and "),
]


def clean_transcript(transcript: str) -> str:
    text = re.sub(r"\s+", " ", transcript)
    text = re.sub(r"\b(\d+),(\d+)\b", r"\1\2", text)      # 10,301 -> 10301
    text = re.sub(r"[,\-]\s*", ", ", text)
    text = re.sub(r"\b(\d+)\s*-\s*(\d+)\b", r"\1\2", text)
    text = re.sub(r"\b(\d)\s+(\d)\s+(\d)\b", r"\1\2\3", text)  # digits read out one by one
    return text.strip()


def is_valid_address(address: str, named_place: bool = False) -> bool:
    """
    Rejects candidates that are really unit call-signs or call types.
    A known named place stands in for the street-type/connector requirement.
    """
    trimmed = address.strip()
    if len(trimmed) < 3 or not re.search(r"[a-zA-Z]", trimmed):
        return False

    if not named_place and not (_STREET_TYPE_WORD.search(trimmed) or _CONNECTOR.search(trimmed)):
        return False

    if UNIT_NUMBER.search(trimmed):
        return False

    words = trimmed.lower().split()
    for call_type in CALL_TYPE_PHRASES:
        if all(word in words for word in call_type.split()):
            return False

    return True


def normalize_address(address: str) -> str:
    text = re.sub(r"\s+", " ", address)
    text = re.sub(r"[,\-]\s*", ", ", text).strip().rstrip(",").strip()

    for pattern, full in _ABBREVIATIONS:
        text = pattern.sub(full, text)

    text = re.sub(r"\s+", " ", text)
    return re.sub(r"[\w']+", lambda m: m.group(0)[0].upper() + m.group(0)[1:].lower(), text)
