# File: dispatchwatch/features/transcription/domain/interfaces.py
from abc import ABC, abstractmethod
from typing import Optional
from .models import SttResult


class ISpeechToText(ABC):
    """
    Contract for a speech-to-text capability (cloud API or local model).
    Failures must be raised as SttNetworkError, SttQuotaError or
    SttMalformedAudioError so the engine can pick retry, fallback or abort.
    """
    name: str = "stt"

    @abstractmethod
    def transcribe(self, audio_path: str, language: str = "en", prompt: Optional[str] = None,
                   temperature: float = 0.0) -> SttResult:
        """
        Args:
            audio_path: Path to the clip.
            language: ISO language hint.
            prompt: Free-text domain priming prompt.
            temperature: Decoding temperature for this pass.
        """
        pass
