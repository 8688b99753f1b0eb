# File: dispatchwatch/features/post_processing/data/rules.py
"""
Fixed rule tables for transcript post-processing.
"""
import re

_I = re.IGNORECASE

BEEP_PATTERNS = [
    re.compile(r"^\s*\{beeping\}\s*$", _I),
    re.compile(r"^\s*\{beep\}\s*$", _I),
    re.compile(r"^\s*\[beeping\]\s*$", _I),
    re.compile(r"^\s*\[beep\]\s*$", _I),
    re.compile(r"^\s*beep+\s*$", _I),
    re.compile(r"^\s*tone+\s*$", _I),
]

# Known speech-to-text artifacts: media boilerplate, credits, non-speech markers.
HALLUCINATION_PATTERNS = [
    re.compile(r"thank you for watching", _I),
    re.compile(r"thanks for watching", _I),
    re.compile(r"like and subscribe", _I),
    re.compile(r"please subscribe", _I),
    re.compile(r"subscribe to", _I),
    re.compile(r"www\.\S*", _I),
    re.compile(r"\S*\.com\b", _I),
    re.compile(r"https?\S*", _I),
    re.compile(r"visit our website", _I),
    re.compile(r"for more.*?videos", _I),
    re.compile(r"for more.*?information", _I),
    re.compile(r"click.*?link", _I),
    re.compile(r"download.*?app", _I),
    re.compile(r"follow us", _I),
    re.compile(r"social media", _I),
    re.compile(r"\bthe end\b(?!\s+of)", _I),
    re.compile(r"to be continued", _I),
    re.compile(r"stay tuned", _I),
    re.compile(r"coming up next", _I),
    re.compile(r"previously on", _I),
    re.compile(r"\[music\]", _I),
    re.compile(r"\[applause\]", _I),
    re.compile(r"\[laughter\]", _I),
    re.compile(r"copyright", _I),
    re.compile(r"all rights reserved", _I),
    re.compile(r"do not generate text for non-speech audio", _I),
    re.compile(r"audio unavailable", _I),
    re.compile(r"no speech detected", _I),
]

# Recurring mishearings on Indianapolis dispatch audio. Applied in order.
HEURISTIC_FIXES = [
    # Digits read out one at a time
    (re.compile(r"\b(\d)\s+(\d)\s+(\d)\s+(\d)\b"), r"\1\2\3\4"),
    (re.compile(r"\b(\d)\s+(\d)\s+(\d)\b"), r"\1\2\3"),

    # Unit number glued to a house number: "Ambulance 432318" -> "Ambulance 43, 2318"
    (re.compile(r"\b(ambulance|medic|engine|ladder|squad|rescue)\s*(\d{2})(\d{4})\b", _I), r"\1 \2, \3"),
    (re.compile(r"\b(ambulance|medic|engine|ladder|squad|rescue)\s*(\d{2})-(\d{4})\b", _I), r"\1 \2, \3"),

    # "Methodist" heard as "negative"
    (re.compile(r"(\bmedic\s+\d+,?\s+this\s+is\s+)negative\b", _I), r"\1Methodist"),
    (re.compile(r"(\bmedic\s+\d+,?\s+)negative\b(\s+here)?", _I), r"\1Methodist\2"),
    (re.compile(r"\bthis\s+is\s+negative\b", _I), "this is Methodist"),
    (re.compile(r"\bnegative\s+here\b", _I), "Methodist here"),
    (re.compile(r"\bnegative\s+receiving\b", _I), "Methodist receiving"),
    (re.compile(r"\bnegative\s+hospital\b", _I), "Methodist Hospital"),

    # Other hospital names
    (re.compile(r"\brelease\s+hospital\b", _I), "Riley Hospital"),
    (re.compile(r"\brelease\s+children\b", _I), "Riley Children"),
    (re.compile(r"\besken[ao]z[io]\b", _I), "Eskenazi"),
    (re.compile(r"\buniversity\s+medical\b", _I), "University Hospital"),
    (re.compile(r"\bsaint\s+vincent\b", _I), "St. Vincent"),
    (re.compile(r"\bfrancis[ck]an\b", _I), "Franciscan"),

    # Street names
    (re.compile(r"\bNorth\s+Tv\s+on\s+the\s+street\b", _I), "North Tremont Street"),
    (re.compile(r"\bTv\s+on\s+the\s+street\b", _I), "Tremont Street"),

    # Dispatch phrases
    (re.compile(r"\bfalse\s+trauma\b", _I), "assault trauma"),
    (re.compile(r"\bC\s+and\s+A\s+secure\b", _I), "scene not secure"),

    # Times and grid locations
    (re.compile(r"\b0,?\s*0,?\s*50\s*hours?\b", _I), "0050 hours"),
    (re.compile(r"\b(\d),?\s*(\d),?\s*(\d{2})\s*hours?\b", _I), r"\1\2\3 hours"),
    (re.compile(r"\b(\d+),?\s*North\s+Tv\s+on\s+the\s+left\b", _I), r"\1 North 2500 West"),
    (re.compile(r"\blocation\s+(\d+),?\s*(\w+)\s+(\d+),?\s*west\b", _I), r"location \1 \2 & \3 West"),

    # Call types
    (re.compile(r"\btessane?\s*park\b", _I), "chest pain"),
    (re.compile(r"\bsieg-?hurzen\b", _I), "sick person"),
    (re.compile(r"\badorno-?batain\s*v?\b", _I), "abdominal pain"),
    (re.compile(r"\bcedar\b(?!\s+(?:street|st|avenue|ave|road|rd|drive|dr|lane|ln|court|ct|place|pl|way)\b)", _I),
     "seizure"),

    # Radio phrasing
    (re.compile(r"\bcopy\s+that\s+see\s+you\s+inside\b", _I), "copy that, see you inside"),
    (re.compile(r"\b10-?\s*4\b"), "10-4"),
    (re.compile(r"\broger\s+that\b", _I), "roger"),

    # Missing space between unit and number
    (re.compile(r"\bmedic(\d+)", _I), r"Medic \1"),
    (re.compile(r"\bengine(\d+)", _I), r"Engine \1"),
    (re.compile(r"\bambulance(\d+)", _I), r"Ambulance \1"),

    # Repeated multi-word phrase: "chest pain chest pain" -> "chest pain"
    (re.compile(r"\b(\w+(?:\s+\w+)+)\s+\1\b", _I), r"\1"),
]

# First match wins.
CALL_TYPES = [
    (re.compile(r"cardiac arrest", _I), "Cardiac Arrest"),
    (re.compile(r"chest pain", _I), "Chest Pain/Heart"),
    (re.compile(r"difficulty breathing", _I), "Difficulty Breathing"),
    (re.compile(r"seizure", _I), "Seizure"),
    (re.compile(r"unconscious", _I), "Unconscious Person"),
    (re.compile(r"overdose", _I), "Overdose"),
    (re.compile(r"\bmvc\b|motor vehicle|vehicle accident", _I), "Vehicle Accident"),
    (re.compile(r"assault", _I), "Assault"),
    (re.compile(r"\bgsw\b|gunshot", _I), "Gunshot Wound"),
    (re.compile(r"\bfire\b", _I), "Fire"),
    (re.compile(r"sick person", _I), "Sick Person"),
    (re.compile(r"mental|emotional|psychiatric", _I), "Mental/Emotional"),
    (re.compile(r"diabetic", _I), "Diabetic"),
    (re.compile(r"bleeding", _I), "Bleeding"),
    (re.compile(r"\bfall\b", _I), "Fall"),
    (re.compile(r"trauma", _I), "Trauma"),
]
