# File: dispatchwatch/main.py

import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.events.bus import EventBus
from dispatchwatch.core.external_tools.subprocess_tool import ffmpeg, ffprobe
from dispatchwatch.core.model_lifecycle.orchestrator import ModelOrchestrator
from dispatchwatch.features.audio_analysis.data.ffmpeg_analyzer import FFmpegSignalAnalyzer
from dispatchwatch.features.audio_analysis.data.ffmpeg_enhancer import FFmpegAudioEnhancer
from dispatchwatch.features.hospital_calls.data.repository import PostgresHospitalCallRepo
from dispatchwatch.features.hospital_calls.service.correlator import HospitalConversationCorrelator
from dispatchwatch.features.incidents.data.nominatim_geocoder import NominatimGeocoder
from dispatchwatch.features.incidents.data.repository import PostgresIncidentRepo
from dispatchwatch.features.incidents.data.travel_time import default_estimator
from dispatchwatch.features.incidents.service.correlator import IncidentCorrelator
from dispatchwatch.features.post_processing.data.repository import PostgresDictionaryRepo
from dispatchwatch.features.post_processing.service.pipeline import PostProcessingPipeline
from dispatchwatch.features.quality_monitor.service.monitor import QualityMonitor
from dispatchwatch.features.retry.service.escalator import RetryEscalator
from dispatchwatch.features.scanner_intake.data.checkpoint import JsonFileCheckpoint
from dispatchwatch.features.scanner_intake.data.sql_source import SqlScannerSource
from dispatchwatch.features.scanner_intake.service.monitor import ScannerIntakeMonitor
from dispatchwatch.features.storage.data.repository import PostgresCallRepo
from dispatchwatch.features.transcription.data.openai_adapter import OpenAISpeechToText
from dispatchwatch.features.transcription.data.whisper_adapter import WhisperSpeechToText
from dispatchwatch.features.transcription.service.engine import TranscriptionEngine
from dispatchwatch.features.transcription.service.job_handler import SegmentTranscriptionHandler
from dispatchwatch.features.transcription.service.work_queue import TranscriptionQueue

logger = logging.getLogger(__name__)


@dataclass
class Application:
    bus: EventBus
    queue: TranscriptionQueue
    intake: ScannerIntakeMonitor
    hospital: HospitalConversationCorrelator
    incidents: IncidentCorrelator
    escalator: RetryEscalator
    quality: QualityMonitor
    handler: SegmentTranscriptionHandler


def build_application() -> Application:
    """Wires the whole pipeline from settings."""
    settings.ensure_dirs()
    bus = EventBus()
    calls = PostgresCallRepo()

    analyzer = FFmpegSignalAnalyzer(ffmpeg(), ffprobe())
    cloud = OpenAISpeechToText() if settings.OPENAI_API_KEY else None
    if cloud is None:
        logger.warning("⚠️ OPENAI_API_KEY not set, transcribing with the local model only")
    engine = TranscriptionEngine(analyzer, cloud=cloud, local=WhisperSpeechToText())
    pipeline = PostProcessingPipeline(dictionary_repo=PostgresDictionaryRepo())

    hospital_repo = PostgresHospitalCallRepo()
    incidents = IncidentCorrelator(PostgresIncidentRepo(), hospital_repo, bus=bus, estimator=default_estimator())
    hospital = HospitalConversationCorrelator(
        hospital_repo, calls=calls, on_transcript=incidents.on_hospital_conversation
    )

    escalator = RetryEscalator(
        engine, FFmpegAudioEnhancer(ffmpeg()), calls, pipeline, bus=bus, incidents=incidents,
        on_improved=lambda segment_id, text, conf: hospital.record_segment_transcript(segment_id, text, conf)
    )

    handler = SegmentTranscriptionHandler(
        engine, pipeline, calls, bus=bus, geocoder=NominatimGeocoder(),
        hospital=hospital, incidents=incidents, request_retry=escalator.submit
    )
    queue = TranscriptionQueue(handler.handle)
    hospital.on_new_segment = queue.submit

    intake = ScannerIntakeMonitor(
        SqlScannerSource(), JsonFileCheckpoint(), calls, submit=queue.submit, hospital=hospital
    )

    quality = QualityMonitor()
    quality.attach(bus)
    quality.warm_start(calls.recent_confidences(100))

    return Application(bus, queue, intake, hospital, incidents, escalator, quality, handler)


class Scheduler:
    """
    Background loops for one process. Every loop is a daemon thread that
    waits on the same stop event between ticks.
    """
    def __init__(self, app: Application):
        self.app = app
        self.stop_event = threading.Event()
        self._threads: List[threading.Thread] = []

    def _every(self, name: str, seconds: float, tick: Callable[[], object]):
        def loop():
            while not self.stop_event.wait(seconds):
                try:
                    tick()
                except Exception:
                    logger.exception(f"Scheduled task '{name}' failed")

        t = threading.Thread(target=loop, name=name, daemon=True)
        t.start()
        self._threads.append(t)

    def start(self):
        app = self.app
        app.queue.start()

        intake = threading.Thread(target=app.intake.run_forever, args=(self.stop_event,), name="intake", daemon=True)
        intake.start()
        self._threads.append(intake)

        self._every("conversation-sweep", settings.CONVERSATION_SWEEP_SECONDS, app.hospital.close_stale)
        self._every("incident-sweep", settings.INCIDENT_SWEEP_SECONDS, app.incidents.sweep)
        self._every("auto-retry", settings.AUTO_RETRY_INTERVAL_MINUTES * 60,
                    lambda: app.escalator.retry_batch(settings.AUTO_RETRY_THRESHOLD))
        self._every("quality", 5, app.quality.drain)
        logger.info(f"✨ dispatchwatch running ({len(self._threads)} background loops)")

    def stop(self, timeout: Optional[float] = 10):
        self.stop_event.set()
        for t in self._threads:
            t.join(timeout=timeout)
        self.app.queue.join()
        self.app.queue.stop()
        self.app.escalator.shutdown()
        ModelOrchestrator().release()
        logger.info("dispatchwatch stopped")


def main():
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"
    )
    scheduler = Scheduler(build_application())
    scheduler.start()
    try:
        scheduler.stop_event.wait()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        scheduler.stop()


if __name__ == "__main__":
    main()
