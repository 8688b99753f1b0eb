# File: dispatchwatch/features/audio_analysis/domain/models.py
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SignalAnalysis:
    """
    Verdict on one captured clip.
    `energy_ratio` is the monotone score: high means a steady tone, not speech.
    """
    is_pure_noise: bool
    has_voice_activity: bool
    duration: float
    silence_ratio: float
    energy_ratio: float
    trimmed_path: Optional[str] = None
    error: Optional[str] = None

    @property
    def speech_ratio(self) -> float:
        return 1.0 - self.silence_ratio


@dataclass(frozen=True)
class EnhancementOptions:
    noise_reduction: bool = True
    normalization: bool = True
    high_pass: bool = True
    compression: bool = True
    silence_trimming: bool = True
    target_loudness: float = -16.0
    high_pass_frequency: int = 100

    @classmethod
    def for_level(cls, level: int) -> "EnhancementOptions":
        """Levels 1-2 of the generic chain. Level 3 uses the dispatch-radio chain instead."""
        return cls(
            noise_reduction=level >= 1,
            normalization=level >= 1,
            high_pass=level >= 2,
            compression=level >= 2,
            silence_trimming=level >= 3,
            target_loudness=-14.0 if level == 3 else -16.0,
            high_pass_frequency=150 if level == 3 else 100,
        )
