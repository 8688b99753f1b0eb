# File: dispatchwatch/features/incidents/service/eta.py
import re
from typing import Iterable, Optional, Tuple
from dispatchwatch.core.config.settings import settings
from ..data.hospitals import HOSPITALS
from ..data.travel_time import haversine_miles
from ..domain.models import HospitalLocation

_NUMBER_WORDS = {
    "one": 1, "two": 2, "three": 3, "four": 4, "five": 5, "six": 6, "seven": 7, "eight": 8,
    "nine": 9, "ten": 10, "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
    "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
    "twenty five": 25, "thirty": 30,
}
_NUM = r"(\d{1,2}|" + "|".join(sorted(_NUMBER_WORDS, key=len, reverse=True)) + r")"

ETA_PATTERNS = [
    re.compile(rf"\bestimated time of arrival\s*(?:of|is|will be)?\s*(?:about|approximately|around)?\s*{_NUM}\s*(?:minutes?|mins?)\b", re.I),
    re.compile(rf"\beta\s*(?:of|is|will be)?\s*(?:about|approximately|around)?\s*{_NUM}\s*(?:minutes?|mins?)?\b", re.I),
    re.compile(rf"\b{_NUM}\s*(?:minutes?|mins?)\s*(?:out|away)\b", re.I),
]


def _to_minutes(token: str) -> Optional[float]:
    token = token.lower()
    if token.isdigit():
        return float(token)
    value = _NUMBER_WORDS.get(token)
    return float(value) if value is not None else None


def parse_stated_eta(transcript: str) -> Optional[float]:
    """Minutes from "ETA 10 minutes", "estimated time of arrival of 12 minutes", "10 minutes out"."""
    if not transcript:
        return None
    for pattern in ETA_PATTERNS:
        m = pattern.search(transcript)
        if m:
            minutes = _to_minutes(m.group(1))
            if minutes and 0 < minutes <= 90:
                return minutes
    return None


def location_eta(location: Optional[str], default_minutes: float = None) -> float:
    default_minutes = settings.INCIDENT_DEFAULT_ETA_MINUTES if default_minutes is None else default_minutes
    if not location:
        return default_minutes
    lowered = location.lower()
    if "i-" in lowered or "interstate" in lowered:
        return 12.0
    if "downtown" in lowered:
        return 6.0
    if "residential" in lowered:
        return 10.0
    return default_minutes


def closest_hospital(lat: float, lon: float,
                     hospitals: Iterable[HospitalLocation] = HOSPITALS) -> Optional[Tuple[HospitalLocation, float]]:
    best = None
    for hospital in hospitals:
        miles = haversine_miles(lat, lon, hospital.latitude, hospital.longitude)
        if best is None or miles < best[1]:
            best = (hospital, miles)
    return best
