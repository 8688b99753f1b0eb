# File: dispatchwatch/core/common/confidence.py


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def confidence_band(confidence: float) -> str:
    """Three-way split used for dashboards and quality counters."""
    if confidence >= 0.91:
        return "high"
    if confidence >= 0.70:
        return "medium"
    return "low"
