# File: dispatchwatch/features/incidents/data/hospitals.py
from ..domain.models import HospitalLocation

HOSPITALS = [
    HospitalLocation("Eskenazi Hospital", "720 Eskenazi Avenue, Indianapolis, IN 46202",
                     39.7892, -86.1655, ("eskenazi", "wishard")),
    HospitalLocation("IU Health Methodist Hospital", "1701 N Senate Blvd, Indianapolis, IN 46202",
                     39.7847, -86.1714, ("methodist",)),
    HospitalLocation("Community Hospital East", "1500 N Ritter Ave, Indianapolis, IN 46219",
                     39.7886, -86.0975, ("community east",)),
    HospitalLocation("Riley Hospital for Children", "705 Riley Hospital Dr, Indianapolis, IN 46202",
                     39.7776, -86.1813, ("riley",)),
    HospitalLocation("St. Vincent Indianapolis", "2001 W 86th St, Indianapolis, IN 46260",
                     39.8758, -86.2119, ("st. vincent 86th", "st vincent", "st. vincent")),
]


def find_hospital(name: str):
    """Catalog entry whose alias appears in the given hospital or channel name."""
    if not name:
        return None
    lowered = name.lower()
    for hospital in HOSPITALS:
        if any(alias in lowered for alias in hospital.aliases):
            return hospital
    return None
