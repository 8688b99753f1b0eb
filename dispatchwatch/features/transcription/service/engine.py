# File: dispatchwatch/features/transcription/service/engine.py
import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence
from dispatchwatch.core.common.confidence import clamp
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.enums import TranscriptionStage
from dispatchwatch.core.errors import SpeechToTextError, SttMalformedAudioError, SttNetworkError, SttQuotaError
from dispatchwatch.features.audio_analysis.domain.interfaces import ISignalAnalyzer
from dispatchwatch.features.entities.data.ems_dictionary import EmsDictionary, ems_dictionary
from ..domain.interfaces import ISpeechToText
from ..domain.models import SttResult, TranscriptionOutcome
from .scoring import content_factor, pass_confidence, radio_boost

logger = logging.getLogger(__name__)

MISSING_AUDIO_TEXT = "[Audio file unavailable]"
FAILED_TEXT = "[Audio transcription failed]"
NOISE_TEXT = "{beeping}"

ProgressCallback = Callable[[TranscriptionStage, int, str], None]


def unavailable_text(duration: float) -> str:
    return f"[Audio detected - {duration:.1f}s duration, transcription unavailable]"


class TranscriptionEngine:
    """
    Turns one clip into a scored transcript.

    Cloud first, several temperatures, best pass wins. Transport errors move
    on to the next pass, quota/service errors drop to the local model,
    malformed audio aborts. Every path returns a TranscriptionOutcome;
    only external-tool failures from the signal analyzer propagate.
    """
    def __init__(
        self,
        analyzer: ISignalAnalyzer,
        cloud: Optional[ISpeechToText] = None,
        local: Optional[ISpeechToText] = None,
        dictionary: EmsDictionary = ems_dictionary,
        temperatures: Sequence[float] = None,
        language: str = "en",
    ):
        self.analyzer = analyzer
        self.cloud = cloud
        self.local = local
        self.dictionary = dictionary
        self.temperatures = tuple(temperatures or settings.TRANSCRIPTION_TEMPERATURES)
        self.language = language

    def transcribe(
        self,
        audio_path: str,
        prompt: Optional[str] = None,
        temperatures: Sequence[float] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> TranscriptionOutcome:
        progress = on_progress or (lambda stage, percent, message: None)

        if not Path(audio_path).exists():
            logger.warning(f"Audio file missing: {audio_path}")
            return TranscriptionOutcome(text=MISSING_AUDIO_TEXT, confidence=0.0, degraded=True)

        progress(TranscriptionStage.ANALYZING, 5, "Analyzing audio signal")
        analysis = self.analyzer.analyze(audio_path)
        duration_ms = int(analysis.duration * 1000)

        if analysis.is_pure_noise:
            self._discard(analysis.trimmed_path, audio_path)
            return TranscriptionOutcome(text=NOISE_TEXT, confidence=0.1, duration_ms=duration_ms, is_noise=True)

        source = analysis.trimmed_path or audio_path
        prompt = prompt or self.dictionary.whisper_prompt()
        try:
            progress(TranscriptionStage.TRANSCRIBING, 20, "Transcribing audio")
            passes, aborted = self._run_passes(source, prompt, tuple(temperatures or self.temperatures))
        finally:
            self._discard(analysis.trimmed_path, audio_path)

        if aborted:
            return TranscriptionOutcome(text=FAILED_TEXT, confidence=0.0, duration_ms=duration_ms, degraded=True)

        if not passes:
            if analysis.duration > 0:
                return TranscriptionOutcome(
                    text=unavailable_text(analysis.duration), confidence=0.1,
                    duration_ms=duration_ms, degraded=True
                )
            return TranscriptionOutcome(text=FAILED_TEXT, confidence=0.0, degraded=True)

        return self._fuse(passes, duration_ms)

    def _run_passes(self, audio_path: str, prompt: str, temperatures: Sequence[float]):
        """Returns (successful passes, aborted)."""
        passes: List[SttResult] = []

        if self.cloud is not None:
            for temperature in temperatures:
                try:
                    passes.append(self.cloud.transcribe(audio_path, self.language, prompt, temperature))
                except SttNetworkError as e:
                    logger.warning(f"Cloud pass at T={temperature} failed (network): {e}")
                    continue
                except SttQuotaError as e:
                    logger.warning(f"Cloud provider unavailable, falling back to local model: {e}")
                    break
                except SttMalformedAudioError as e:
                    logger.error(f"Provider rejected audio {audio_path}: {e}")
                    return [], True

        if passes or self.local is None:
            return passes, False

        try:
            passes.append(self.local.transcribe(audio_path, self.language, prompt, temperatures[0]))
        except SttMalformedAudioError as e:
            logger.error(f"Local model rejected audio {audio_path}: {e}")
            return [], True
        except SpeechToTextError as e:
            logger.error(f"Local transcription failed for {audio_path}: {e}")

        return passes, False

    def _fuse(self, passes: List[SttResult], duration_ms: int) -> TranscriptionOutcome:
        scored = [(pass_confidence(p), p) for p in passes]
        base, best = max(scored, key=lambda pair: pair[0])
        text = (best.text or "").strip()

        if not text:
            return TranscriptionOutcome(text="", confidence=0.1, duration_ms=duration_ms,
                                        provider=best.provider, passes=len(passes))

        confidence = base * content_factor(text) if best.segments else base

        corrected = self.dictionary.correct(text)
        confidence += self.dictionary.confidence_boost(text, corrected) + radio_boost(corrected)
        confidence = clamp(confidence, 0.1, 0.99)

        logger.debug(f"Selected T={best.temperature} from {len(passes)} passes, confidence {confidence:.2f}")
        return TranscriptionOutcome(
            text=corrected,
            confidence=confidence,
            duration_ms=int(best.duration_sec * 1000) or duration_ms,
            provider=best.provider,
            passes=len(passes),
            raw_text=text
        )

    @staticmethod
    def _discard(trimmed_path: Optional[str], original: str):
        if trimmed_path and trimmed_path != original:
            Path(trimmed_path).unlink(missing_ok=True)
