# File: dispatchwatch/features/retry/service/escalator.py
import time
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, Optional, Set
from dispatchwatch.core.common.channels import is_hospital_channel
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.enums import RetryStage
from dispatchwatch.core.errors import AudioEnhancementError
from dispatchwatch.core.events.bus import EventBus
from dispatchwatch.core.events.types import RetryProgress, TranscriptionCompleted
from dispatchwatch.features.audio_analysis.domain.interfaces import IAudioEnhancer
from dispatchwatch.features.incidents.service.correlator import IncidentCorrelator
from dispatchwatch.features.post_processing.service.pipeline import PostProcessingPipeline
from dispatchwatch.features.storage.domain.interfaces import ICallRepository
from dispatchwatch.features.storage.domain.models import TranscriptUpdate
from dispatchwatch.features.transcription.service.engine import TranscriptionEngine
from ..domain.models import RetryResult, RetryStats

logger = logging.getLogger(__name__)

BASE_PROMPT = (
    "Indianapolis-Marion County EMS dispatch radio communication.\n"
    "Common units: Medic 1-100, Engine 1-100, Ambulance 1-100, Squad 1-100, Battalion 1-100.\n"
    "Common hospitals: Eskenazi, Methodist, Riley, Community, St. Vincent.\n"
    "Streets often end with: Street, Avenue, Road, Boulevard, Drive, Court, Place.\n"
    "Transcribe verbatim including all addresses, unit numbers, and medical terminology."
)

# (segment_id, transcript, confidence) -> None
ImprovementListener = Callable[[str, str, float], None]


def enhancement_level(attempt: int, best_confidence: float) -> int:
    """0 = original audio, 1-2 = generic chain, 3 = dispatch-radio chain."""
    if best_confidence >= 0.85:
        return 0
    if best_confidence >= 0.70:
        return 1 if attempt == 1 else 2
    if best_confidence >= 0.50:
        return min(attempt + 1, 3)
    return 3


def attempt_temperature(attempt: int) -> float:
    return 0.0 if attempt == 1 else round(0.1 * (attempt - 1), 2)


def attempt_prompt(attempt: int, previous_transcript: str) -> str:
    if attempt == 1:
        return BASE_PROMPT
    if attempt == 2:
        return (
            f"{BASE_PROMPT}\n"
            "Previous attempt may have missed: unit numbers, street names, or medical terms.\n"
            "Listen carefully for dispatch codes, severity levels (A, B, C), and exact addresses."
        )
    return (
        f"{BASE_PROMPT}\n"
        f"Previous transcript: \"{(previous_transcript or '')[:100]}...\"\n"
        "Focus on: Clear unit identification, complete addresses, medical terminology.\n"
        "This is emergency dispatch - accuracy is critical."
    )


def improvement_percent(original: float, final: float) -> float:
    if original > 0:
        return (final - original) / original * 100
    return final * 100 if final > 0 else 0.0


class RetryEscalator:
    """
    Re-transcribes poor segments with progressively stronger audio enhancement.

    At most one retry per segment runs at a time; a second request for the
    same segment is rejected immediately. Every improvement is persisted as
    soon as it is found, so a later failure never loses progress.

    Retries run on one bounded pool of batch_concurrency threads, whether
    they come from submit() or retry_batch().
    """
    def __init__(
        self,
        engine: TranscriptionEngine,
        enhancer: IAudioEnhancer,
        calls: ICallRepository,
        pipeline: PostProcessingPipeline,
        bus: Optional[EventBus] = None,
        on_improved: Optional[ImprovementListener] = None,
        incidents: Optional[IncidentCorrelator] = None,
        target_confidence: float = None,
        max_attempts: int = None,
        batch_concurrency: int = None,
    ):
        self.engine = engine
        self.enhancer = enhancer
        self.calls = calls
        self.pipeline = pipeline
        self.bus = bus
        self.on_improved = on_improved
        self.incidents = incidents
        self.target_confidence = settings.RETRY_TARGET_CONFIDENCE if target_confidence is None else target_confidence
        self.max_attempts = settings.RETRY_MAX_ATTEMPTS if max_attempts is None else max_attempts
        self.batch_concurrency = batch_concurrency or settings.RETRY_BATCH_CONCURRENCY

        self._lock = threading.Lock()
        self._in_progress: Set[str] = set()
        self._queued: Set[str] = set()
        self._total = 0
        self._successful = 0
        self._pool = ThreadPoolExecutor(max_workers=self.batch_concurrency, thread_name_prefix="retry")

    def is_running(self, segment_id: str) -> bool:
        with self._lock:
            return segment_id in self._in_progress

    def submit(self, segment_id: str) -> Optional[Future]:
        """
        Queues a retry on the pool. Returns None if the segment is already
        queued or running.
        """
        with self._lock:
            if segment_id in self._queued or segment_id in self._in_progress:
                return None
            self._queued.add(segment_id)
        return self._pool.submit(self._run_queued, segment_id)

    def _run_queued(self, segment_id: str) -> RetryResult:
        with self._lock:
            self._queued.discard(segment_id)
        return self.retry_segment(segment_id)

    def shutdown(self, wait: bool = True):
        self._pool.shutdown(wait=wait)

    def retry_segment(self, segment_id: str) -> RetryResult:
        with self._lock:
            if segment_id in self._in_progress:
                return RetryResult(segment_id, False, 0.0, 0.0, 0.0, "", 0, error="Segment already being retried")
            self._in_progress.add(segment_id)

        try:
            return self._retry(segment_id)
        except Exception as e:
            logger.exception(f"Retry failed for segment {segment_id}")
            self._emit(segment_id, 0, 0.0, RetryStage.FAILED, str(e))
            return RetryResult(segment_id, False, 0.0, 0.0, 0.0, "", 0, error=str(e))
        finally:
            with self._lock:
                self._in_progress.discard(segment_id)

    def _retry(self, segment_id: str) -> RetryResult:
        started = time.monotonic()
        call = self.calls.get_call_for_segment(segment_id)
        if not call:
            raise LookupError("Call not found for segment")
        segment = self.calls.get_segment(segment_id)
        if not segment or not Path(segment.filepath).exists():
            raise FileNotFoundError("Audio file not found")

        original = call.confidence
        hospital = call.talkgroup is not None and is_hospital_channel(call.talkgroup)
        best_confidence = original
        best_transcript = call.transcript
        enhancement_applied = False
        improved = False
        attempts = 0

        if original >= self.target_confidence:
            return RetryResult(segment_id, True, original, original, 0.0, best_transcript, 0)

        logger.info(f"🔁 Retrying segment {segment_id} from confidence {original:.2f}")
        for attempt in range(1, self.max_attempts + 1):
            attempts = attempt
            self._emit(segment_id, attempt, best_confidence, RetryStage.ANALYZING, f"Attempt {attempt}/{self.max_attempts}")

            source = segment.filepath
            enhanced = None
            level = enhancement_level(attempt, best_confidence)
            if level > 0:
                self._emit(segment_id, attempt, best_confidence, RetryStage.ENHANCING,
                           f"Applying level {level} audio enhancement")
                try:
                    enhanced = self.enhancer.enhance(segment.filepath, level)
                    source = enhanced
                    enhancement_applied = True
                except AudioEnhancementError as e:
                    logger.warning(f"Enhancement failed on attempt {attempt} for {segment_id}: {e}")

            try:
                self._emit(segment_id, attempt, best_confidence, RetryStage.TRANSCRIBING, "Transcribing")
                outcome = self.engine.transcribe(
                    source,
                    prompt=attempt_prompt(attempt, best_transcript),
                    temperatures=(attempt_temperature(attempt),)
                )
            finally:
                if enhanced:
                    self.enhancer.cleanup(enhanced)

            self._emit(segment_id, attempt, best_confidence, RetryStage.EVALUATING, "Scoring attempt")
            if outcome.degraded or outcome.is_noise:
                continue

            result = self.pipeline.process(outcome.text, outcome.confidence)
            if result.is_noise or not result.cleaned_text:
                continue

            if result.confidence > best_confidence:
                written = self.calls.update_transcript(
                    segment_id,
                    TranscriptUpdate(
                        transcript=result.cleaned_text,
                        confidence=result.confidence,
                        call_type=None if hospital else result.extracted_call_type,
                        location=result.extracted_address,
                        units=result.extracted_units
                    ),
                    only_if_better=True
                )
                if written:
                    improved = True
                    best_confidence = result.confidence
                    best_transcript = result.cleaned_text
                    if self.on_improved:
                        self.on_improved(segment_id, best_transcript, best_confidence)

            if best_confidence >= self.target_confidence:
                logger.info(f"✅ Target confidence reached for {segment_id} after {attempt} attempts")
                break

        final = self.calls.get_call_for_segment(segment_id)
        # An improved dispatch transcript may name a unit the first pass missed
        if improved and not hospital and self.incidents:
            self.incidents.on_dispatch_call(final)

        improvement = improvement_percent(original, best_confidence)
        self._record(improvement > 0)
        self._emit(segment_id, attempts, best_confidence, RetryStage.COMPLETED,
                   f"Retry complete: {best_confidence * 100:.1f}% confidence ({improvement:+.1f}%)")
        if self.bus:
            self.bus.publish(TranscriptionCompleted(
                segment_id=segment_id,
                confidence=best_confidence,
                has_units=bool(final.units),
                has_address=bool(final.location),
                text_length=len(best_transcript or ""),
                processing_ms=int((time.monotonic() - started) * 1000),
                enhancement_applied=enhancement_applied,
                provider="retry"
            ))

        return RetryResult(
            segment_id=segment_id,
            success=best_confidence >= self.target_confidence,
            original_confidence=original,
            final_confidence=best_confidence,
            improvement_percent=improvement,
            transcript=best_transcript,
            attempts=attempts,
            enhancement_applied=enhancement_applied
        )

    def retry_batch(self, threshold: float = None, limit: int = 50) -> Dict[str, RetryResult]:
        """
        Retries every Call with 0 < confidence < threshold on the shared pool.
        One segment's failure shows up in its own result and nowhere else.
        """
        threshold = settings.AUTO_RETRY_THRESHOLD if threshold is None else threshold
        candidates = [c.audio_segment_id for c in self.calls.low_confidence_segments(threshold, limit)]
        if not candidates:
            return {}

        logger.info(f"Starting batch retry for {len(candidates)} segments below {threshold:.0%}")
        futures = {segment_id: self._pool.submit(self.retry_segment, segment_id) for segment_id in candidates}
        results = {segment_id: future.result() for segment_id, future in futures.items()}

        improved = sum(1 for r in results.values() if r.final_confidence > r.original_confidence)
        logger.info(f"Batch retry complete: {improved}/{len(results)} improved")
        return results

    def stats(self) -> RetryStats:
        with self._lock:
            return RetryStats(self._total, self._successful)

    def _record(self, improved: bool):
        with self._lock:
            self._total += 1
            if improved:
                self._successful += 1

    def _emit(self, segment_id: str, attempt: int, confidence: float, stage: RetryStage, message: str):
        logger.debug(f"[Retry {segment_id}] {message}")
        if self.bus:
            self.bus.publish(RetryProgress(
                segment_id=segment_id,
                attempt=attempt,
                max_attempts=self.max_attempts,
                current_confidence=confidence,
                stage=stage.value,
                message=message
            ))
