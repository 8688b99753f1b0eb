# File: dispatchwatch/features/audio_analysis/domain/interfaces.py
from abc import ABC, abstractmethod
from .models import SignalAnalysis


class ISignalAnalyzer(ABC):
    @abstractmethod
    def analyze(self, audio_path: str) -> SignalAnalysis:
        """
        Classifies a clip as speech or noise (tone, beep, static, silence).
        Never raises for a missing file; returns a noise verdict with `error` set.
        May write a trimmed copy; the caller owns its deletion.
        """
        pass


class IAudioEnhancer(ABC):
    @abstractmethod
    def enhance(self, audio_path: str, level: int) -> str:
        """
        Writes an enhanced copy of the clip (level 1 = light, 3 = dispatch-radio chain).

        Returns:
            Path to the new file. Raises AudioEnhancementError on a failed render.
        """
        pass

    @abstractmethod
    def cleanup(self, enhanced_path: str) -> None:
        """Deletes a file previously returned by enhance()."""
        pass
