# File: dispatchwatch/features/transcription/domain/models.py
from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class SttSegment:
    """
    One provider segment with the decoder statistics we score on.
    """
    start: float
    end: float
    text: str = ""
    avg_logprob: Optional[float] = None
    no_speech_prob: Optional[float] = None
    compression_ratio: Optional[float] = None
    token_logprobs: List[float] = field(default_factory=list)

    @property
    def duration(self) -> float:
        return max(0.0, self.end - self.start)


@dataclass(frozen=True)
class SttResult:
    """
    Raw output of a single speech-to-text pass.
    """
    text: str
    segments: List[SttSegment] = field(default_factory=list)
    duration_sec: float = 0.0
    provider: str = ""
    temperature: float = 0.0


@dataclass(frozen=True)
class TranscriptionOutcome:
    """
    What the engine always hands back, even when every provider failed.
    `degraded` marks placeholder transcripts (missing file, provider failure).
    """
    text: str
    confidence: float
    duration_ms: int = 0
    provider: str = ""
    passes: int = 0
    is_noise: bool = False
    degraded: bool = False
    raw_text: str = ""
