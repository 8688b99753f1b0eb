# File: dispatchwatch/features/entities/service/unit_extractor.py
import re
from typing import List
from ..domain.models import UnitMention

# alias -> display name. Longer aliases listed first inside the alternation.
UNIT_ALIASES = {
    "ambulance": "Ambulance", "amb": "Ambulance",
    "ems": "EMS",
    "medic": "Medic", "med": "Medic",
    "squad": "Squad", "sq": "Squad",
    "engine": "Engine", "eng": "Engine",
    "ladder": "Ladder", "lad": "Ladder",
    "rescue": "Rescue", "res": "Rescue",
    "truck": "Truck", "trk": "Truck",
    "battalion": "Battalion", "bat": "Battalion",
    "chief": "Chief",
}

_ALTERNATION = "|".join(sorted(UNIT_ALIASES, key=len, reverse=True))
UNIT_PATTERN = re.compile(rf"\b({_ALTERNATION})\s*([1-9]\d?)(?:[-,\s]\d+)?\b", re.IGNORECASE)


class UnitExtractor:
    """Finds unit call-signs (Medic 12, Eng 5, ...) in a transcript."""

    def extract(self, transcript: str) -> List[UnitMention]:
        if not transcript:
            return []

        found: List[UnitMention] = []
        for m in UNIT_PATTERN.finditer(transcript):
            mention = UnitMention(UNIT_ALIASES[m.group(1).lower()], int(m.group(2)))
            if mention not in found:
                found.append(mention)
        return found

    def labels(self, transcript: str) -> List[str]:
        return [u.label for u in self.extract(transcript)]

    def mentions(self, transcript: str, unit_label: str) -> bool:
        """True if the given display label (e.g. "Medic 12") is spoken in the transcript."""
        return unit_label in self.labels(transcript)


unit_extractor = UnitExtractor()
