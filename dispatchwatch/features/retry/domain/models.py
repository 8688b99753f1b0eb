# File: dispatchwatch/features/retry/domain/models.py
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RetryResult:
    segment_id: str
    success: bool
    original_confidence: float
    final_confidence: float
    improvement_percent: float
    transcript: str
    attempts: int
    enhancement_applied: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class RetryStats:
    total_retries: int
    successful_retries: int

    @property
    def success_rate(self) -> float:
        if not self.total_retries:
            return 0.0
        return self.successful_retries / self.total_retries
