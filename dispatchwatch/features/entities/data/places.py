# File: dispatchwatch/features/entities/data/places.py
"""
Street vocabulary and named places for the Indianapolis / Marion County area.
"""

STREET_TYPES = [
    "street", "st", "avenue", "ave", "road", "rd", "drive", "dr", "lane", "ln",
    "place", "pl", "court", "ct", "circle", "cir", "boulevard", "blvd",
    "parkway", "pkwy", "way", "trail", "terrace", "ter",
]

# Accepted by validation only; never used to find a candidate.
EXTRA_VALID_STREET_TYPES = ["alley", "loop", "row", "plaza", "square"]

SHORT_STREET_TYPES = ["street", "st", "avenue", "ave", "road", "rd", "drive", "dr"]

DIRECTIONS = ["north", "south", "east", "west", r"n\.?", r"s\.?", r"e\.?", r"w\.?"]

UNIT_TOKENS = ["engine", "medic", "ambulance", "squad", "rescue", "ladder", "ems"]

CALL_TYPE_PHRASES = ["sick person", "difficulty breathing", "chest pain", "cardiac arrest", "trauma", "mvc"]

BUSINESS_SUFFIXES = [
    "hospital", "center", "centre", "mall", "plaza", "park", "cafe", "restaurant", "store",
    "school", "church", "station", "hotel", "motel", "inn", "market", "pharmacy", "bank",
    "library", "theater", "theatre", "museum", "clinic", "office", "building", "tower",
    "complex", "apartments", "condos", "village", "heights", "gardens", "manor", "estates",
    "crossing", "landing", "airport", "terminal", "warehouse", "depot", "gas station", "truck stop",
]

NEIGHBORHOODS = [
    "circle centre", "monument circle", "soldiers and sailors", "indianapolis motor speedway",
    "lucas oil stadium", "bankers life fieldhouse", "indianapolis zoo", "white river state park",
    "canal walk", "mass ave", "broad ripple", "fountain square", "irvington", "lockerbie square",
    "old northside", "chatham arch", "fletcher place", "holy cross", "near eastside", "mars hill",
    "riverside", "woodruff place", "herron morton", "haughville", "speedway", "beech grove",
    "lawrence", "castleton", "noblesville", "carmel", "westfield", "fishers", "greenwood",
    "franklin", "whitestown", "zionsville", "plainfield", "avon", "brownsburg", "danville",
    "mooresville", "martinsville", "shelbyville", "greenfield", "fortville", "mccordsville",
    "ingalls", "new palestine", "cumberland", "warren park", "ben davis", "clermont",
    "eagle creek", "geist", "meridian hills", "north crows nest", "rocky ripple", "spring hill",
    "williams creek", "wynnedale",
]

BUSINESSES = {
    "hospitals": [
        "methodist hospital", "iu methodist", "riley hospital", "riley children", "eskenazi",
        r"st\.?\s*vincent", "franciscan", "community hospital", "indiana university hospital",
        "wishard memorial",
    ],
    "malls": [
        "circle centre mall", "fashion mall", "castleton square", "greenwood park mall",
        "lafayette square mall", "washington square",
    ],
    "venues": [
        "lucas oil stadium", "bankers life fieldhouse", "victory field", "indianapolis motor speedway",
        "state fairgrounds", "fairgrounds", "indiana state fair", "indiana convention center",
        "convention center", "jw marriott", "hyatt regency", "omni severin", "embassy suites",
        "downtown marriott",
    ],
    "universities": [
        "butler university", "iupui", "university of indianapolis", "marian university", "ivy tech",
        "ben davis high school", "north central high school", "carmel high school",
        "pike high school", "warren central high school",
    ],
    "landmarks": [
        "soldiers and sailors monument", "monument circle", "canal walk", "white river state park",
        "indianapolis zoo", "children's museum", "newfields", "indianapolis museum of art",
        "crown hill cemetery", "broad ripple village", "fountain square", "massachusetts avenue",
        "mass ave",
    ],
}
