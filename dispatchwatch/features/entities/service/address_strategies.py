# File: dispatchwatch/features/entities/service/address_strategies.py
import re
from typing import Callable, List, Optional, Tuple
from ..data.places import BUSINESS_SUFFIXES, BUSINESSES, NEIGHBORHOODS
from ..domain.interfaces import IAddressStrategy
from ..domain.models import AddressCandidate
from .address_rules import (
    DIR, FREE_NAME, NAME, SHORT_TYPES, TYPES, UNITS, UNIT_AT_END,
    is_valid_address, normalize_address,
)

_I = re.IGNORECASE


class _Strategy(IAddressStrategy):
    def _accept(self, raw: str, named_place: bool = False) -> Optional[AddressCandidate]:
        if not is_valid_address(raw, named_place=named_place):
            return None
        return AddressCandidate(normalize_address(raw), self.confidence, self.name)


class UnitSequenceStrategy(_Strategy):
    """
    Dispatch reads units first, then the location: "Medic 12, 450 North Delaware Street".
    Looks only at the text after the last unit call-sign.
    """
    name = "unit_sequence"
    confidence = 0.95

    UNIT = re.compile(rf"(?:{UNITS})\s*\d+(?:[,\s]+)", _I)
    PATTERNS = [
        re.compile(rf"^(\d{{1,5}})\s+((?:{DIR})\s+)?({NAME})\s+({TYPES})\b", _I),
        re.compile(rf"^({NAME})\s+({SHORT_TYPES})\s+(?:and|&|\bat\b)\s+({NAME})\s+({SHORT_TYPES})\b", _I),
    ]

    def find(self, transcript: str) -> Optional[AddressCandidate]:
        matches = list(self.UNIT.finditer(transcript))
        if not matches:
            return None

        after = transcript[matches[-1].end():]
        after = re.sub(r"^[,\-\s]+", "", after)
        after = re.sub(r"(\d+),\s*([a-zA-Z])", r"\1 \2", after)
        after = re.sub(r"[,\-]\s*", ", ", after).strip()

        for pattern in self.PATTERNS:
            m = pattern.match(after)
            if m:
                candidate = self._accept(m.group(0))
                if candidate:
                    return candidate
        return None


class ContextualStrategy(_Strategy):
    name = "contextual_pattern"
    confidence = 0.88

    CUES = r"(?:location|address|at|to|respond to|dispatched to|en route to|arriving at)"
    PATTERNS = [
        re.compile(rf"\b{CUES}\s+(\d{{1,5}}(?:\s+(?:{DIR}))?\s+{NAME}\s+(?:{TYPES}))\b", _I),
        re.compile(rf"\b{CUES}\s+({NAME}\s+(?:{SHORT_TYPES})\s+(?:and|&|\bat\b)\s+{NAME}\s+(?:{SHORT_TYPES}))\b", _I),
    ]

    def find(self, transcript: str) -> Optional[AddressCandidate]:
        for pattern in self.PATTERNS:
            for m in pattern.finditer(transcript):
                candidate = self._accept(m.group(1))
                if candidate:
                    return candidate
        return None


class StandardStrategy(_Strategy):
    name = "standard_pattern"
    confidence = 0.9

    PATTERNS = [
        re.compile(rf"\b(\d{{1,5}})\s+({DIR})\s+([a-zA-Z][a-zA-Z0-9\s]{{0,30}}?)\s+({TYPES})\b", _I),
        re.compile(rf"\b(\d{{1,5}})\s+([a-zA-Z][a-zA-Z0-9\s]{{0,30}}?)\s+({TYPES})\b", _I),
        re.compile(rf"\b(\d{{1,5}})\s+({DIR})\s+(\d{{1,3}}(?:st|nd|rd|th))\s+(street|st|avenue|ave)\b", _I),
        re.compile(r"\b(\d{1,5})\s+(\d{1,3}(?:st|nd|rd|th))\s+(street|st|avenue|ave)\b", _I),
    ]

    def find(self, transcript: str) -> Optional[AddressCandidate]:
        for pattern in self.PATTERNS:
            for m in pattern.finditer(transcript):
                # "Medic 12 Main Street": 12 is the unit number, not a house number
                before = transcript[max(0, m.start() - 15):m.start()].strip()
                if UNIT_AT_END.search(before):
                    continue
                candidate = self._accept(m.group(0))
                if candidate:
                    return candidate
        return None


class IntersectionStrategy(_Strategy):
    name = "intersection_pattern"
    confidence = 0.85

    PATTERNS = [
        re.compile(rf"\b({FREE_NAME})\s+({TYPES})\s+(?:and|&|at|near)\s+({FREE_NAME})\s+({TYPES})\b", _I),
        re.compile(
            rf"\b({DIR})\s+({FREE_NAME})\s+({SHORT_TYPES})\s+(?:and|&|at|near)\s+({DIR})\s+({FREE_NAME})\s+({SHORT_TYPES})\b", _I
        ),
        re.compile(rf"\b(\d{{1,3}}(?:st|nd|rd|th))\s+(?:and|&|at|near)\s+({FREE_NAME})(?:\s+({TYPES}))?\b", _I),
    ]

    def find(self, transcript: str) -> Optional[AddressCandidate]:
        for pattern in self.PATTERNS:
            for m in pattern.finditer(transcript):
                raw = m.group(0)
                if not re.search(r"\band\b|&|\bat\b|\bnear\b", raw, _I):
                    continue
                candidate = self._accept(raw)
                if candidate:
                    return candidate
        return None


class GridStrategy(_Strategy):
    """Indianapolis grid references: "2500 North, 3000 West"."""
    name = "grid_pattern"
    confidence = 0.8

    PATTERNS = [
        re.compile(rf"\blocation\s+(\d{{3,5}})\s+({DIR})\s*(?:,|&|and)?\s*(\d{{3,5}})\s+({DIR})(?!\w)", _I),
        re.compile(rf"\b(\d{{3,5}})\s+({DIR})\s*[,&]\s*(\d{{3,5}})\s+({DIR})(?!\w)", _I),
    ]

    def find(self, transcript: str) -> Optional[AddressCandidate]:
        for pattern in self.PATTERNS:
            m = pattern.search(transcript)
            if m:
                candidate = self._accept(f"{m.group(1)} {m.group(2)} & {m.group(3)} {m.group(4)}")
                if candidate:
                    return candidate
        return None


class NumericRepairStrategy(_Strategy):
    """
    House numbers split by the recogniser: "38-66 Arquette Road", "78 47 Roy Road".
    """
    name = "numerical_pattern"
    confidence = 0.82

    SUFFIX = rf"[\s,]+({NAME})\s+({TYPES})\b"
    PATTERNS: List[Tuple[re.Pattern, Callable[[re.Match], str]]] = [
        (re.compile(rf"\b(\d{{1,2}})[\s\-]+(\d{{2}}){SUFFIX}", _I),
         lambda m: f"{m.group(1)}{m.group(2)} {m.group(3)} {m.group(4)}"),
        # Leading pair is a unit number bleeding into the address
        (re.compile(rf"\b\d{{1,2}}[\s\-]+(\d{{2}})[\s\-]+(\d{{2}}){SUFFIX}", _I),
         lambda m: f"{m.group(1)}{m.group(2)} {m.group(3)} {m.group(4)}"),
        (re.compile(rf"\b(\d{{1,2}})\s+(\d{{1,2}})\s+({NAME})\s+({TYPES})\b", _I),
         lambda m: f"{m.group(1)}{m.group(2)} {m.group(3)} {m.group(4)}"),
        (re.compile(rf"\b(\d)[\s\-]+(\d{{3}}){SUFFIX}", _I),
         lambda m: f"{m.group(1)}{m.group(2)} {m.group(3)} {m.group(4)}"),
    ]

    def find(self, transcript: str) -> Optional[AddressCandidate]:
        for pattern, rebuild in self.PATTERNS:
            for m in pattern.finditer(transcript):
                candidate = self._accept(rebuild(m))
                if candidate:
                    return candidate
        return None


class LandmarkStrategy(_Strategy):
    name = "landmark_pattern"
    confidence = 0.75

    _suffixes = "|".join(sorted(BUSINESS_SUFFIXES, key=len, reverse=True))
    _places = [p for group in BUSINESSES.values() for p in group] + NEIGHBORHOODS
    PATTERNS = [
        re.compile(rf"\b(?:at|to|location)\s+((?:[A-Z][a-zA-Z']*\s+){{1,4}}(?i:{_suffixes}))\b"),
        re.compile(rf"\b({'|'.join(sorted(_places, key=len, reverse=True))})\b", _I),
    ]

    def find(self, transcript: str) -> Optional[AddressCandidate]:
        for pattern in self.PATTERNS:
            for m in pattern.finditer(transcript):
                candidate = self._accept(m.group(1), named_place=True)
                if candidate:
                    return candidate
        return None


def default_strategies() -> List[IAddressStrategy]:
    """Highest priority first."""
    return [
        UnitSequenceStrategy(),
        ContextualStrategy(),
        StandardStrategy(),
        IntersectionStrategy(),
        GridStrategy(),
        NumericRepairStrategy(),
        LandmarkStrategy(),
    ]
