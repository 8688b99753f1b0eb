# File: dispatchwatch/features/transcription/service/scoring.py
"""
Confidence arithmetic for transcription passes.

Provider log-probabilities are optimistic on short or degenerate segments,
so every segment score is blended with a fixed prior before averaging.
"""
import re
import math
from typing import Dict
from dispatchwatch.core.common.confidence import clamp
from ..domain.models import SttResult, SttSegment

PRIOR_CONFIDENCE = 0.88
PRIOR_WEIGHT = 0.4
DEFAULT_SEGMENT_CONFIDENCE = 0.85
MAX_CONTENT_FACTOR = 1.8

CONTENT_PATTERNS: Dict[str, re.Pattern] = {
    "units": re.compile(r"(medic|engine|fire|ambulance|ems|squad|battalion|ladder|rescue|truck)\s*\d+", re.I),
    "addresses": re.compile(
        r"\d+\s+[NSEW]?\s*\w+\s+(street|st|avenue|ave|road|rd|boulevard|blvd|drive|dr|lane|ln|court|ct|"
        r"circle|cir|place|pl|parkway|pkwy)\b", re.I
    ),
    "intersections": re.compile(r"\w+\s+(and|&)\s+\w+\s+(street|avenue|road|boulevard|drive)", re.I),
    "medical": re.compile(
        r"(cardiac|breathing|unconscious|trauma|bleeding|chest pain|difficulty|emergency|priority|code|"
        r"transport|patient|victim)", re.I
    ),
    "codes": re.compile(r"(priority\s*\d|code\s*\d|ems\s*\d{2,5}|10-\d{2})", re.I),
}

CONTENT_MULTIPLIERS = {
    "units": 1.20,
    "addresses": 1.18,
    "medical": 1.12,
    "codes": 1.15,
    "intersections": 1.10,
}

ERROR_PATTERNS = [
    re.compile(r"\b(um|uh|ah|er)\b", re.I),
    re.compile(r"(\w)\1{3,}"),
    re.compile(r"[^\w\s,.-]"),
]


def segment_confidence(segment: SttSegment) -> float:
    if segment.avg_logprob is None:
        return DEFAULT_SEGMENT_CONFIDENCE

    score = math.exp(segment.avg_logprob)

    if segment.no_speech_prob is not None:
        score *= 0.7 + 0.3 * (1 - segment.no_speech_prob)

    if segment.compression_ratio is not None:
        score *= clamp(2.0 - segment.compression_ratio, 0.5, 1.0)

    if segment.token_logprobs:
        avg_token_prob = sum(math.exp(lp) for lp in segment.token_logprobs) / len(segment.token_logprobs)
        score *= 0.8 + 0.2 * avg_token_prob

    if segment.duration < 0.3:
        score *= 0.7
    elif segment.duration > 10:
        score *= 0.9
    else:
        score *= 1.05

    score = PRIOR_WEIGHT * PRIOR_CONFIDENCE + (1 - PRIOR_WEIGHT) * score
    return clamp(score, 0.1, 0.99)


def pass_confidence(result: SttResult) -> float:
    """Duration-weighted mean of segment scores; text heuristics when there are no segments."""
    if not result.segments:
        text = result.text or ""
        confidence = 0.88 if len(text) > 10 else 0.75
        if re.search(r"\d", text) and re.search(
                r"(medic|engine|fire|ambulance|dispatch|location|street|avenue|road)", text, re.I):
            confidence += 0.10
        return clamp(confidence, 0.1, 0.99)

    scores = [segment_confidence(s) for s in result.segments]
    durations = [s.duration for s in result.segments]
    total = sum(durations)
    if total > 0:
        return sum(c * d for c, d in zip(scores, durations)) / total
    return sum(scores) / len(scores)


def content_factor(text: str) -> float:
    """Multiplier for dispatch-shaped content, penalised for filler and garbage."""
    factor = 1.05
    for key, pattern in CONTENT_PATTERNS.items():
        if pattern.search(text):
            factor *= CONTENT_MULTIPLIERS[key]

    length = len(text)
    if 15 < length < 300:
        factor *= 1.08
    elif length < 10:
        factor *= 0.85
    elif length > 500:
        factor *= 0.95

    errors = sum(len(p.findall(text)) for p in ERROR_PATTERNS)
    if errors:
        factor *= max(0.9, 1 - errors * 0.03)

    return min(MAX_CONTENT_FACTOR, factor)


def radio_boost(text: str) -> float:
    boost = 0.0
    if re.search(r"(medic|engine|fire|ambulance|ems|squad)\s*\d+", text, re.I):
        boost += 0.05
    if re.search(r"\d+\s+\w+\s+(street|avenue|road|drive)", text, re.I):
        boost += 0.04
    if re.search(r"(priority|code|dispatch|respond|emergency)", text, re.I):
        boost += 0.03
    if re.search(r"\d{4}\s*hours?", text, re.I):
        boost += 0.02
    return boost
