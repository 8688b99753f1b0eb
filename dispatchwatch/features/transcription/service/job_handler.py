# File: dispatchwatch/features/transcription/service/job_handler.py
import time
import logging
from typing import Callable, Optional
from dispatchwatch.core.common.channels import channel_info
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.enums import TranscriptionStage
from dispatchwatch.core.events.bus import EventBus
from dispatchwatch.core.events.types import TranscriptionCompleted, TranscriptionProgress
from dispatchwatch.features.entities.data.ems_dictionary import EmsDictionary, ems_dictionary
from dispatchwatch.features.hospital_calls.service.correlator import HospitalConversationCorrelator
from dispatchwatch.features.incidents.domain.interfaces import IGeocoder
from dispatchwatch.features.incidents.service.correlator import IncidentCorrelator
from dispatchwatch.features.post_processing.service.pipeline import PostProcessingPipeline
from dispatchwatch.features.storage.domain.interfaces import ICallRepository
from dispatchwatch.features.storage.domain.models import CallInfo, TranscriptUpdate
from .engine import TranscriptionEngine

logger = logging.getLogger(__name__)


class SegmentTranscriptionHandler:
    """
    The per-item pipeline run by the transcription queue workers.

    Engine -> post-processing -> persist -> geocode -> route to the
    correlators -> hand poor results to the retry path. Placeholder results
    (missing audio, provider failure, pure noise) are persisted as-is.
    """
    def __init__(
        self,
        engine: TranscriptionEngine,
        pipeline: PostProcessingPipeline,
        calls: ICallRepository,
        bus: Optional[EventBus] = None,
        geocoder: Optional[IGeocoder] = None,
        hospital: Optional[HospitalConversationCorrelator] = None,
        incidents: Optional[IncidentCorrelator] = None,
        request_retry: Optional[Callable[[str], object]] = None,
        retry_threshold: float = None,
        dictionary: EmsDictionary = ems_dictionary,
    ):
        self.engine = engine
        self.pipeline = pipeline
        self.calls = calls
        self.bus = bus
        self.geocoder = geocoder
        self.hospital = hospital
        self.incidents = incidents
        self.request_retry = request_retry
        self.retry_threshold = settings.AUTO_RETRY_THRESHOLD if retry_threshold is None else retry_threshold
        self.dictionary = dictionary

    def handle(self, segment_id: str) -> CallInfo:
        started = time.monotonic()
        segment = self.calls.get_segment(segment_id)
        if not segment:
            raise LookupError(f"Audio segment {segment_id} not found")
        call = self.calls.get_call_for_segment(segment_id)
        if not call:
            raise LookupError(f"No call owns audio segment {segment_id}")

        def progress(stage: TranscriptionStage, percent: int, message: str):
            self._publish(TranscriptionProgress(segment_id, stage.value, percent, message))

        progress(TranscriptionStage.STARTING, 0, "Starting transcription")
        outcome = self.engine.transcribe(segment.filepath, on_progress=progress)

        is_hospital = call.talkgroup is not None and channel_info(call.talkgroup).is_hospital
        update = TranscriptUpdate(
            transcript=outcome.text,
            confidence=outcome.confidence,
            duration=outcome.duration_ms / 1000 if outcome.duration_ms else None
        )

        if not (outcome.degraded or outcome.is_noise):
            progress(TranscriptionStage.CLEANUP, 60, "Cleaning transcript")
            result = self.pipeline.process(outcome.text, outcome.confidence)

            progress(TranscriptionStage.CLASSIFICATION, 70, "Extracting units and address")
            entities = self.dictionary.extract_entities(result.cleaned_text)
            latitude, longitude = self._geocode(result.extracted_address)
            update = TranscriptUpdate(
                transcript=result.cleaned_text,
                confidence=result.confidence,
                call_type=None if is_hospital else result.extracted_call_type,
                location=result.extracted_address,
                latitude=latitude,
                longitude=longitude,
                units=result.extracted_units,
                keywords=entities.medical + entities.codes,
                duration=update.duration
            )
            if result.parse_errors:
                logger.debug(f"Post-processing notes for {segment_id}: {result.parse_errors}")

        self.calls.update_transcript(segment_id, update)
        self.calls.mark_segment_processed(segment_id, update.duration)

        elapsed_ms = int((time.monotonic() - started) * 1000)
        progress(TranscriptionStage.COMPLETE, 100, f"Transcribed at {update.confidence * 100:.1f}% confidence")
        self._publish(TranscriptionCompleted(
            segment_id=segment_id,
            confidence=update.confidence,
            has_units=bool(update.units),
            has_address=bool(update.location),
            text_length=len(update.transcript),
            processing_ms=elapsed_ms,
            provider=outcome.provider
        ))
        logger.info(f"✅ Segment {segment_id}: {update.confidence:.2f} via {outcome.provider or 'placeholder'} in {elapsed_ms}ms")

        stored = self.calls.get_call_for_segment(segment_id)
        self._route(stored, is_hospital)

        if (
            self.request_retry
            and not (outcome.degraded or outcome.is_noise)
            and 0 < update.confidence < self.retry_threshold
        ):
            logger.info(f"🔁 Segment {segment_id} below {self.retry_threshold:.2f}, requesting retry")
            self.request_retry(segment_id)

        return stored

    def _geocode(self, address: Optional[str]):
        if not address or not self.geocoder:
            return None, None
        found = self.geocoder.geocode(address)
        if not found:
            return None, None
        return found.latitude, found.longitude

    def _route(self, call: CallInfo, is_hospital: bool):
        if is_hospital:
            if self.hospital:
                self.hospital.record_segment_transcript(call.audio_segment_id, call.transcript, call.confidence)
        elif self.incidents:
            self.incidents.on_dispatch_call(call)

    def _publish(self, event):
        if self.bus:
            self.bus.publish(event)
