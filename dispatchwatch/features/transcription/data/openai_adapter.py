# File: dispatchwatch/features/transcription/data/openai_adapter.py
import logging
import threading
from typing import Any, Optional
import openai
from openai import OpenAI
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.errors import SttMalformedAudioError, SttNetworkError, SttQuotaError
from ..domain.interfaces import ISpeechToText
from ..domain.models import SttResult, SttSegment

logger = logging.getLogger(__name__)


def _field(obj: Any, name: str, default=None):
    if isinstance(obj, dict):
        return obj.get(name, default)
    return getattr(obj, name, default)


class OpenAISpeechToText(ISpeechToText):
    """
    Cloud speech-to-text through the OpenAI audio API (verbose_json so we
    get per-segment log-probabilities).

    One adapter is shared by the transcription workers and the retry pool;
    its semaphore holds in-flight requests to the cloud concurrency ceiling.
    """
    name = "openai"

    def __init__(self, client: Optional[OpenAI] = None, model: str = None, max_concurrent: int = None):
        # SDK retries are disabled; the engine owns retry and fallback policy.
        self.client = client or OpenAI(
            api_key=settings.OPENAI_API_KEY,
            timeout=settings.OPENAI_TIMEOUT,
            max_retries=0
        )
        self.model = model or settings.OPENAI_STT_MODEL
        self._slots = threading.BoundedSemaphore(max_concurrent or settings.TRANSCRIPTION_CONCURRENCY)

    def transcribe(self, audio_path: str, language: str = "en", prompt: Optional[str] = None,
                   temperature: float = 0.0) -> SttResult:
        try:
            with self._slots, open(audio_path, "rb") as audio_file:
                response = self.client.audio.transcriptions.create(
                    model=self.model,
                    file=audio_file,
                    language=language,
                    response_format="verbose_json",
                    prompt=prompt or openai.NOT_GIVEN,
                    temperature=temperature
                )
        except OSError as e:
            raise SttMalformedAudioError(f"Could not read {audio_path}: {e}") from e
        except openai.APIConnectionError as e:
            # Includes APITimeoutError
            raise SttNetworkError(str(e)) from e
        except openai.RateLimitError as e:
            raise SttQuotaError(str(e)) from e
        except openai.BadRequestError as e:
            raise SttMalformedAudioError(str(e)) from e
        except openai.APIStatusError as e:
            raise SttQuotaError(f"Provider error {e.status_code}: {e}") from e

        segments = [
            SttSegment(
                start=float(_field(seg, "start", 0.0) or 0.0),
                end=float(_field(seg, "end", 0.0) or 0.0),
                text=(_field(seg, "text", "") or "").strip(),
                avg_logprob=_field(seg, "avg_logprob"),
                no_speech_prob=_field(seg, "no_speech_prob"),
                compression_ratio=_field(seg, "compression_ratio"),
            )
            for seg in (_field(response, "segments") or [])
        ]

        return SttResult(
            text=(_field(response, "text", "") or "").strip(),
            segments=segments,
            duration_sec=float(_field(response, "duration", 0.0) or 0.0),
            provider=self.name,
            temperature=temperature
        )
