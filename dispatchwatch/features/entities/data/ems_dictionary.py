# File: dispatchwatch/features/entities/data/ems_dictionary.py
import re
from typing import Callable, List, Pattern, Tuple, Union
from ..domain.models import EntitySet

Replacement = Union[str, Callable[[re.Match], str]]
Rule = Tuple[Pattern, Replacement]

_I = re.IGNORECASE


def _title_unit(m: re.Match) -> str:
    return f"{m.group(1).capitalize()} {m.group(2)}"


def _phonetic(target: str, *sounds: str) -> Rule:
    """
    One alternation per target, longest sound first, so a replacement
    is never matched again by a shorter sound of the same entry.
    """
    ordered = sorted(sounds, key=len, reverse=True)
    body = "|".join(r"\s+".join(re.escape(w) for w in s.split()) for s in ordered)
    return re.compile(rf"(?<![\w/-])(?:{body})(?![\w/])", _I), target


UNIT_CORRECTIONS: List[Rule] = [
    (re.compile(r"\b(?:medical?|metic|medix|medicine)\s*(\d+)", _I), r"Medic \1"),
    (re.compile(r"\b(?:engin|injun|engage)\s*(\d+)", _I), r"Engine \1"),
    (re.compile(r"\b(?:ambulant|ambulans|ambience)\s*(\d+)", _I), r"Ambulance \1"),
    (re.compile(r"\b(?:squat|squawk)\s*(\d+)", _I), r"Squad \1"),
    (re.compile(r"\b(?:batillion|bat)\s*(\d+)", _I), r"Battalion \1"),
    (re.compile(r"\blatter\s*(\d+)", _I), r"Ladder \1"),
    (re.compile(r"\bresque\s*(\d+)", _I), r"Rescue \1"),
    (re.compile(r"\btrack\s*(\d+)", _I), r"Truck \1"),
    (re.compile(r"\b(medic|engine|ambulance|squad|battalion|ladder|rescue|truck)\s*(\d+)", _I), _title_unit),
]

HOSPITAL_CORRECTIONS: List[Rule] = [
    (re.compile(r"\b(?:eskenazy|askenazi|esconazi|eskinazi|wishard)\b", _I), "Eskenazi"),
    (re.compile(r"\b(?:methodest|methodis)\b", _I), "Methodist"),
    (re.compile(r"\bmeth\b(?!\s*(?:lab|clinic))", _I), "Methodist"),
    (re.compile(r"\biu\s+health\s+methodist\b", _I), "IU Health Methodist"),
    (re.compile(r"\b(?:riley's|rily|reiley)(?!\w)", _I), "Riley"),
    (re.compile(r"\briley\s+children(?:'s|s)?(?!\w)", _I), "Riley Children's"),
    (re.compile(r"\bascension\s+(?:saint|st\.?)\s+vincents?\b", _I), "Ascension St. Vincent"),
    (re.compile(r"(?<!Ascension )\b(?:saint|st\.?)\s+vincents?\b", _I), "St. Vincent"),
    (re.compile(r"\bcommunity\s+(east|north|south|heart)\b", _I),
     lambda m: f"Community {m.group(1).capitalize()}"),
    (re.compile(r"\bfranciskan\b", _I), "Franciscan"),
    (re.compile(r"\bfranciscan\s+health\b", _I), "Franciscan Health"),
]

# Acronyms are matched case-sensitively; lower-case "sob", "loc" are ordinary words.
MEDICAL_CORRECTIONS: List[Rule] = [
    (re.compile(r"\bSOB\b"), "shortness of breath"),
    (re.compile(r"\bMI\b"), "myocardial infarction"),
    (re.compile(r"\bCVA\b"), "cerebrovascular accident"),
    (re.compile(r"\bMVA\b"), "motor vehicle accident"),
    (re.compile(r"\bMVC\b"), "motor vehicle collision"),
    (re.compile(r"\bPD\b(?!\s*\d)"), "police department"),
    (re.compile(r"\bFD\b(?!\s*\d)"), "fire department"),
    (re.compile(r"\bDOA\b"), "dead on arrival"),
    (re.compile(r"\bGCS\b"), "Glasgow Coma Scale"),
    (re.compile(r"\bLOC\b"), "loss of consciousness"),
    (re.compile(r"\bBP\b(?!\s*\d)"), "blood pressure"),
    (re.compile(r"\bHR\b(?!\s*\d)"), "heart rate"),
    (re.compile(r"\bRR\b(?!\s*\d)"), "respiratory rate"),
    (re.compile(r"\bPT\b(?!\s*\d)"), "patient"),
    (re.compile(r"\bO2\s+sat\b", _I), "oxygen saturation"),
    (re.compile(r"\bETA\b"), "estimated time of arrival"),
    (re.compile(r"\bchest\s+pains\b", _I), "chest pain"),
]

STREET_SUFFIXES = {
    "st": "Street", "ave": "Avenue", "rd": "Road", "blvd": "Boulevard", "dr": "Drive",
    "ct": "Court", "pl": "Place", "ln": "Lane", "pkwy": "Parkway", "cir": "Circle",
}

STREET_CORRECTIONS: List[Rule] = [
    (re.compile(r"\b(\d+(?:\s+[A-Za-z]+){1,3}?)\s+(st|ave|rd|blvd|dr|ct|pl|ln|pkwy|cir)\b\.?", _I),
     lambda m: f"{m.group(1)} {STREET_SUFFIXES[m.group(2).lower()]}"),
]

_NUMBER_WORDS = {"one": "1", "two": "2", "three": "3"}

CODE_CORRECTIONS: List[Rule] = [
    (re.compile(r"\bcode\s+(one|two|three|[123])\b", _I),
     lambda m: f"Code {_NUMBER_WORDS.get(m.group(1).lower(), m.group(1))}"),
    (re.compile(r"\b(alpha|bravo|charlie|delta|echo)\s+response\b", _I),
     lambda m: f"{m.group(1).capitalize()} Response"),
]

# Order matters: "four sixty five" must win over "sixty five".
PHONETIC_CORRECTIONS: List[Rule] = [
    _phonetic("Medic 1", "medic one", "medical one", "medicine one"),
    _phonetic("Medic 2", "medic to", "medic too", "medical two"),
    _phonetic("Engine 1", "engine won", "injun one"),
    _phonetic("Massachusetts Avenue", "mass ave", "mass avenue"),
    _phonetic("Washington Street", "wash street", "washington st"),
    _phonetic("Meridian Street", "meridian st"),
    _phonetic("I-465", "four sixty five"),
    _phonetic("I-65", "sixty five", "i sixty five"),
    _phonetic("difficulty breathing", "diff breathing"),
    _phonetic("unconscious/unresponsive", "unconscious", "unresponsive"),
]

UNIT_MENTION = re.compile(r"\b(Medic|Engine|Ambulance|Squad|Battalion|Ladder|Rescue|Truck)\s+\d+", _I)
HOSPITAL_MENTION = re.compile(
    r"\b(Eskenazi|Methodist|Riley|St\.\s*Vincent|Community(?:\s+(?:East|North|South|Heart))?|Franciscan|Ascension)\b", _I
)
ADDRESS_MENTION = re.compile(
    r"\b\d+\s+(?:[NSEW]\s+)?\w+\s+(?:Street|Avenue|Road|Boulevard|Drive|Court|Place|Lane|Parkway|Circle)\b", _I
)
CODE_MENTION = re.compile(r"\b(?:Code\s+[123]|(?:Alpha|Bravo|Charlie|Delta|Echo)\s+Response|10-\d+)\b", _I)
MEDICAL_MENTION = re.compile(
    r"\b(difficulty breathing|shortness of breath|chest pain|trauma alert|stroke alert|STEMI alert|"
    r"unconscious|unresponsive|cardiac arrest)\b", _I
)

WHISPER_PROMPT = (
    "Indianapolis-Marion County EMS dispatch communication. "
    "Common units: Medic 1-100, Engine 1-100, Ambulance 1-100, Squad 1-100, Battalion 1-10, "
    "Ladder 1-50, Rescue 1-20, Truck 1-50. "
    "Hospitals: Eskenazi, IU Health Methodist, Riley Children's, St. Vincent, "
    "Community East/North/South, Franciscan Health. "
    "Listen for: addresses with street names, unit numbers, medical terminology, dispatch codes. "
    "Common street suffixes: Street, Avenue, Road, Boulevard, Drive, Court, Place, Lane, Parkway, Circle. "
    "Priority levels: Alpha, Bravo, Charlie, Delta, Echo responses. "
    "Transcribe verbatim including all pauses and radio artifacts."
)


def _unique(values: List[str]) -> List[str]:
    seen = []
    for v in values:
        v = re.sub(r"\s+", " ", v)
        if v not in seen:
            seen.append(v)
    return seen


class EmsDictionary:
    """
    Domain vocabulary for Indianapolis EMS radio traffic.
    Corrects what generic speech models mishear (unit names, hospitals,
    abbreviations, street suffixes) and scores how much the fix helped.
    """
    RULE_GROUPS = (
        UNIT_CORRECTIONS,
        HOSPITAL_CORRECTIONS,
        MEDICAL_CORRECTIONS,
        STREET_CORRECTIONS,
        CODE_CORRECTIONS,
        PHONETIC_CORRECTIONS,
    )

    def correct(self, transcript: str) -> str:
        if not transcript:
            return transcript

        text = transcript
        for group in self.RULE_GROUPS:
            for pattern, replacement in group:
                text = pattern.sub(replacement, text)

        return self.cleanup(text)

    @staticmethod
    def cleanup(text: str) -> str:
        text = re.sub(r"\s+", " ", text).strip()
        text = re.sub(r"\s+([,.!?])", r"\1", text)
        text = re.sub(r",(?=[A-Za-z])", ", ", text)
        # Capitalise sentence starts
        text = re.sub(r"(^|[.!?]\s+)([a-z])", lambda m: m.group(1) + m.group(2).upper(), text)
        return text

    def confidence_boost(self, original: str, corrected: str) -> float:
        if original == corrected:
            return 0.0

        boost = 0.0
        if UNIT_MENTION.search(corrected) and not UNIT_MENTION.search(original):
            boost += 0.05
        if HOSPITAL_MENTION.search(corrected) and not HOSPITAL_MENTION.search(original):
            boost += 0.03
        if ADDRESS_MENTION.search(corrected) and not ADDRESS_MENTION.search(original):
            boost += 0.04
        return min(0.1, boost)

    def extract_entities(self, transcript: str) -> EntitySet:
        return EntitySet(
            units=_unique([m.group(0) for m in UNIT_MENTION.finditer(transcript)]),
            hospitals=_unique([m.group(0) for m in HOSPITAL_MENTION.finditer(transcript)]),
            addresses=_unique([m.group(0) for m in ADDRESS_MENTION.finditer(transcript)]),
            codes=_unique([m.group(0) for m in CODE_MENTION.finditer(transcript)]),
            medical=_unique([m.group(0).lower() for m in MEDICAL_MENTION.finditer(transcript)]),
        )

    def whisper_prompt(self) -> str:
        return WHISPER_PROMPT

    def is_valid_transcript(self, transcript: str) -> bool:
        if not transcript or len(transcript) < 10:
            return False
        return bool(
            UNIT_MENTION.search(transcript)
            or re.search(r"(Eskenazi|Methodist|Riley|Vincent|Community|Franciscan)", transcript, _I)
            or re.search(r"\d+\s+\w+\s+(Street|Avenue|Road|Boulevard|Drive)", transcript, _I)
            or re.search(r"(Code\s+[123]|Alpha|Bravo|Charlie|Delta|Echo|10-\d+)", transcript, _I)
            or re.search(r"(breathing|chest|pain|trauma|stroke|cardiac|unconscious|patient|transport)", transcript, _I)
        )


ems_dictionary = EmsDictionary()
