# File: dispatchwatch/features/hospital_calls/service/sor_detector.py
import re
from typing import Optional
from ..domain.models import SorResult

SOR_KEYWORDS = [
    "signature of release", "s.o.r.", "sor", "release signature", "physician signature",
    "doctor signature", "release form", "need signature", "requesting signature", "sign off",
    "physician authorization", "doctor authorization", "medical authorization",
]

PHYSICIAN_TITLES = [
    "dr.", "dr", "doctor", "physician", "doc", "provider", "attending", "resident",
    "hospitalist",
]

# A physician name on its own only counts when the talk is about a refusal or release.
RELEASE_CONTEXT = re.compile(r"\b(?:release|refus\w*|sign\w*|against medical advice|ama)\b", re.IGNORECASE)

HOSPITAL_CONTEXT = [
    "hospital", "emergency", "patient", "medical", "treatment", "admission",
    "discharge", "transfer", "room", "bed", "department", "staff",
]

COMMON_WORDS = {
    "and", "or", "but", "the", "a", "an", "in", "on", "at", "to", "for", "with", "by", "from",
    "is", "are", "was", "were", "be", "been", "have", "has", "had", "will", "would", "could",
    "should", "may", "might", "this", "that", "these", "those", "here", "there", "where", "when",
    "how", "what", "who", "why", "we", "need", "requesting", "please", "can", "you", "signature",
    "authorization", "speaking", "available", "line",
}

_KEYWORD_PATTERNS = [
    (k, re.compile(rf"(?<![\w.]){re.escape(k)}(?![\w])", re.IGNORECASE)) for k in SOR_KEYWORDS
]
_PHRASE_PATTERNS = [
    re.compile(r"(?:this is|speaking is|i am|my name is)\s+(?:dr\.?|doctor|physician)\s+([a-z]+(?:\s+[a-z]+)?)", re.I),
    re.compile(r"(?:dr\.?|doctor|physician)\s+([a-z]+(?:\s+[a-z]+)?)\s+(?:speaking|here|available)", re.I),
]
_NAME = re.compile(r"^[A-Z][a-z]{1,19}$")


def _clean_name(name: str) -> str:
    return " ".join(w[:1].upper() + w[1:].lower() for w in name.split())


class SorDetector:
    """
    Spots signature-of-release requests (a patient refusing transport, needing
    physician sign-off) and pulls out the physician's name when one is spoken.
    """

    def detect(self, transcript: str) -> SorResult:
        if not transcript or not transcript.strip():
            return SorResult(detected=False)

        lowered = transcript.lower()
        keyword = next((k for k, p in _KEYWORD_PATTERNS if p.search(transcript)), None)
        physician = self.physician_name(transcript)

        confidence = 0.0
        if keyword:
            confidence += 0.7
        if physician:
            confidence += 0.5
        if any(word in lowered for word in HOSPITAL_CONTEXT):
            confidence += 0.2

        detected = bool(keyword) or bool(physician and RELEASE_CONTEXT.search(transcript))
        return SorResult(
            detected=detected,
            physician=physician if detected else None,
            confidence=min(confidence, 1.0) if detected else 0.0,
            matched=keyword or physician
        )

    def physician_name(self, transcript: str) -> Optional[str]:
        words = transcript.split()
        for i, raw in enumerate(words):
            if raw.lower().strip(",;:!?") not in PHYSICIAN_TITLES:
                continue
            name = []
            for candidate in words[i + 1:i + 4]:
                word = re.sub(r"[.,;:!?]", "", candidate)
                if word.lower() in COMMON_WORDS or not _NAME.match(word):
                    break
                name.append(word)
            if name:
                return " ".join(name)

        for pattern in _PHRASE_PATTERNS:
            m = pattern.search(transcript)
            if m:
                words = [w for w in m.group(1).split() if w.lower() not in COMMON_WORDS]
                if words:
                    return _clean_name(" ".join(words))
        return None


sor_detector = SorDetector()
