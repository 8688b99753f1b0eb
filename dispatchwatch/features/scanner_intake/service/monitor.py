# File: dispatchwatch/features/scanner_intake/service/monitor.py
import logging
import threading
from typing import Callable, List, Optional, Sequence, Tuple
from dispatchwatch.core.common.channels import channel_info
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.database.base import utc_now
from dispatchwatch.features.hospital_calls.service.correlator import HospitalConversationCorrelator
from dispatchwatch.features.storage.data.local_fs import LocalAudioStore
from dispatchwatch.features.storage.domain.interfaces import ICallRepository
from dispatchwatch.features.storage.domain.models import NewCall
from ..domain.interfaces import ICheckpointStore, IScannerSource
from ..domain.models import IntakeStatus, IntakeSummary, ScannerRecord

logger = logging.getLogger(__name__)


class ScannerIntakeMonitor:
    """
    Pulls new captures out of the scanner store and turns each one into an
    AudioSegment plus a preliminary Call.

    Hospital-channel captures go to the conversation correlator (which
    triggers their transcription); everything else goes straight to the
    transcription queue. The watermark is saved after every record.
    """
    def __init__(
        self,
        source: IScannerSource,
        checkpoint: ICheckpointStore,
        calls: ICallRepository,
        submit: Callable[[str], object],
        hospital: Optional[HospitalConversationCorrelator] = None,
        audio_store: LocalAudioStore = None,
        channels: Sequence[Tuple[int, int]] = None,
        batch_size: int = None,
        trailing_window: int = None,
        poll_seconds: float = None,
    ):
        self.source = source
        self.checkpoint = checkpoint
        self.calls = calls
        self.submit = submit
        self.hospital = hospital
        self.audio_store = audio_store or LocalAudioStore()
        self.channels = list(channels if channels is not None else settings.SCANNER_CHANNELS)
        self.batch_size = batch_size or settings.SCANNER_BATCH_SIZE
        self.trailing_window = settings.SCANNER_TRAILING_WINDOW if trailing_window is None else trailing_window
        self.poll_seconds = settings.SCANNER_POLL_SECONDS if poll_seconds is None else poll_seconds

        self.watermark = 0
        self.running = False
        self.total_ingested = 0
        self.total_failed = 0
        self.last_poll_at = None
        self._lock = threading.Lock()

    def start(self) -> IntakeSummary:
        """
        Loads the watermark and re-admits the trailing window below it, in
        case the process died between ingesting a record and saving its id.
        """
        self.watermark = self.checkpoint.load()
        self.running = True
        logger.info(f"📂 Scanner intake starting from id {self.watermark} ({len(self.channels)} channels)")

        summary = IntakeSummary(watermark=self.watermark)
        if self.watermark <= 0 or self.trailing_window <= 0:
            return summary

        window = range(max(0, self.watermark - self.trailing_window) + 1, self.watermark + 1)
        records = self.source.fetch_ids(list(window), self.channels)
        self._ingest_all(records, summary, advance=False)

        if summary.ingested:
            logger.info(f"🔁 Re-admitted {summary.ingested} records from the trailing window")
        return summary

    def poll_once(self) -> IntakeSummary:
        with self._lock:
            records = self.source.fetch_after(self.watermark, self.channels, self.batch_size)
            summary = IntakeSummary(watermark=self.watermark)
            self._ingest_all(records, summary, advance=True)
            self.last_poll_at = utc_now()

        if summary.fetched:
            logger.info(
                f"Intake pass: {summary.ingested} ingested, {summary.skipped} skipped, "
                f"{summary.failed} failed (watermark {summary.watermark})"
            )
        return summary

    def _ingest_all(self, records: List[ScannerRecord], summary: IntakeSummary, advance: bool):
        summary.fetched += len(records)
        seen = self.calls.existing_source_ids(r.id for r in records)

        for record in records:
            try:
                if record.id in seen:
                    summary.skipped += 1
                elif self.ingest(record):
                    summary.ingested += 1
                    self.total_ingested += 1
                else:
                    summary.skipped += 1
            except Exception as e:
                error_msg = f"Failed to ingest scanner record {record.id}: {e}"
                logger.exception(error_msg)
                summary.failed += 1
                summary.errors.append(error_msg)
                self.total_failed += 1

            # A failed record still moves the watermark; it is never retried from here.
            if advance and record.id > self.watermark:
                self.watermark = record.id
                self.checkpoint.save(self.watermark)
                summary.watermark = self.watermark

    def ingest(self, record: ScannerRecord) -> Optional[str]:
        """
        Persists one capture and routes it downstream.

        Returns:
            The new AudioSegment id, or None if the record carried no audio.
        """
        if not record.audio:
            logger.warning(f"Scanner record {record.id} has no audio, skipping")
            return None

        info = channel_info(record.talkgroup)
        path = self.audio_store.write_audio(record.audio, record.audio_type)
        segment_id = self.calls.create_segment(str(path), record.timestamp)

        self.calls.create_call(NewCall(
            audio_segment_id=segment_id,
            radio_timestamp=record.timestamp,
            talkgroup=record.talkgroup,
            system=record.system,
            call_type=info.initial_call_type,
            voice_type=info.voice_type.value,
            frequency=record.frequency,
            source_call_id=record.id,
            meta={
                "source_call_id": record.id,
                "audio_type": record.audio_type,
                "source_unit": record.source,
                "channel": info.description,
            }
        ))

        if info.is_hospital and self.hospital is not None:
            self.hospital.attach_segment(segment_id, record.talkgroup, record.timestamp, system=record.system)
        else:
            self.submit(segment_id)

        logger.debug(f"Ingested scanner record {record.id} -> segment {segment_id} ({info.category})")
        return segment_id

    def run_forever(self, stop_event: threading.Event):
        if not self.running:
            self.start()
        while not stop_event.is_set():
            try:
                self.poll_once()
            except Exception:
                # Source unreachable etc; keep polling
                logger.exception("Scanner poll failed")
            stop_event.wait(self.poll_seconds)
        self.running = False
        logger.info("Scanner intake stopped")

    def status(self) -> IntakeStatus:
        return IntakeStatus(
            running=self.running,
            watermark=self.watermark,
            total_ingested=self.total_ingested,
            total_failed=self.total_failed,
            last_poll_at=self.last_poll_at
        )
