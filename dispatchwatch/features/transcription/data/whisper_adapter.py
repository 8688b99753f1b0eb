# File: dispatchwatch/features/transcription/data/whisper_adapter.py
import whisper
import logging
from threading import Lock
from typing import Optional
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.errors import SpeechToTextError, SttMalformedAudioError
from dispatchwatch.core.model_lifecycle.orchestrator import ModelOrchestrator
from dispatchwatch.core.model_lifecycle.types import ModelType
from ..domain.interfaces import ISpeechToText
from ..domain.models import SttResult, SttSegment

logger = logging.getLogger(__name__)


class WhisperSpeechToText(ISpeechToText):
    """
    Local fallback model. The loaded model is shared and not thread-safe,
    so every call goes through one process-wide lock.
    """
    name = "whisper_local"
    _inference_lock = Lock()

    def __init__(self, model_size: str = None):
        self.orchestrator = ModelOrchestrator()
        self.model_size = model_size or settings.WHISPER_MODEL_NAME
        self.device = settings.WHISPER_DEVICE

    def transcribe(self, audio_path: str, language: str = "en", prompt: Optional[str] = None,
                   temperature: float = 0.0) -> SttResult:
        def loader():
            logger.debug(f"Loading Whisper {self.model_size} on {self.device}...")
            return whisper.load_model(self.model_size, device=self.device)

        with self._inference_lock:
            logger.info(f"Local Whisper ({self.model_size}) on {audio_path}")
            model = self.orchestrator.request_model(ModelType.WHISPER, loader, key=self.model_size)
            try:
                raw = model.transcribe(
                    audio_path,
                    language=language,
                    initial_prompt=prompt,
                    temperature=temperature,
                    fp16=(self.device == "cuda")
                )
            except FileNotFoundError as e:
                raise SttMalformedAudioError(str(e)) from e
            except (RuntimeError, ValueError) as e:
                raise SpeechToTextError(f"Local transcription failed: {e}") from e

        segments = [
            SttSegment(
                start=float(seg["start"]),
                end=float(seg["end"]),
                text=seg["text"].strip(),
                avg_logprob=seg.get("avg_logprob"),
                no_speech_prob=seg.get("no_speech_prob"),
                compression_ratio=seg.get("compression_ratio"),
            )
            for seg in raw.get("segments", [])
        ]

        return SttResult(
            text=raw.get("text", "").strip(),
            segments=segments,
            duration_sec=segments[-1].end if segments else 0.0,
            provider=self.name,
            temperature=temperature
        )
