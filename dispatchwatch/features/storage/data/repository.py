# File: dispatchwatch/features/storage/data/repository.py
from datetime import datetime
from typing import Iterable, List, Optional, Set
from dispatchwatch.core.common.confidence import clamp
from dispatchwatch.core.database.base import as_utc
from dispatchwatch.core.database.connection import SessionLocal
from .sql_models import AudioSegmentModel, CallModel
from ..domain.interfaces import ICallRepository
from ..domain.models import AudioSegmentInfo, CallInfo, NewCall, TranscriptUpdate


def _segment_info(row: AudioSegmentModel) -> AudioSegmentInfo:
    return AudioSegmentInfo(
        id=row.id,
        filepath=row.filepath,
        timestamp=as_utc(row.timestamp),
        duration=row.duration,
        sample_rate=row.sample_rate,
        channels=row.channels,
        processed=row.processed
    )


def _call_info(row: CallModel) -> CallInfo:
    return CallInfo(
        id=row.id,
        audio_segment_id=row.audio_segment_id,
        transcript=row.transcript or "",
        confidence=row.confidence or 0.0,
        radio_timestamp=as_utc(row.radio_timestamp),
        call_type=row.call_type,
        location=row.location,
        latitude=row.latitude,
        longitude=row.longitude,
        talkgroup=row.talkgroup,
        system=row.system,
        voice_type=row.voice_type,
        units=list(row.units or []),
        meta=dict(row.meta or {})
    )


class PostgresCallRepo(ICallRepository):
    def create_segment(self, filepath: str, timestamp: datetime, duration: Optional[float] = None,
                       sample_rate: int = 8000, channels: int = 1) -> str:
        with SessionLocal() as db:
            try:
                segment = AudioSegmentModel(
                    filepath=filepath,
                    timestamp=timestamp,
                    duration=duration,
                    sample_rate=sample_rate,
                    channels=channels
                )
                db.add(segment)
                db.commit()
                return segment.id
            except Exception as e:
                db.rollback()
                raise e

    def get_segment(self, segment_id: str) -> Optional[AudioSegmentInfo]:
        with SessionLocal() as db:
            row = db.get(AudioSegmentModel, segment_id)
            return _segment_info(row) if row else None

    def mark_segment_processed(self, segment_id: str, duration: Optional[float] = None) -> None:
        with SessionLocal() as db:
            try:
                row = db.get(AudioSegmentModel, segment_id)
                if not row:
                    return
                row.processed = True
                if duration:
                    row.duration = duration
                db.commit()
            except Exception as e:
                db.rollback()
                raise e

    def create_call(self, call: NewCall) -> int:
        with SessionLocal() as db:
            try:
                row = CallModel(
                    audio_segment_id=call.audio_segment_id,
                    radio_timestamp=call.radio_timestamp,
                    transcript="",
                    confidence=0.0,
                    talkgroup=call.talkgroup,
                    system=call.system,
                    frequency=call.frequency,
                    call_type=call.call_type,
                    voice_type=call.voice_type,
                    source_call_id=call.source_call_id,
                    meta=dict(call.meta)
                )
                db.add(row)
                db.commit()
                return row.id
            except Exception as e:
                db.rollback()
                raise e

    def get_call_for_segment(self, segment_id: str) -> Optional[CallInfo]:
        with SessionLocal() as db:
            row = db.query(CallModel).filter(CallModel.audio_segment_id == segment_id).first()
            return _call_info(row) if row else None

    def update_transcript(self, segment_id: str, update: TranscriptUpdate,
                          only_if_better: bool = False) -> bool:
        with SessionLocal() as db:
            try:
                row = db.query(CallModel).filter(CallModel.audio_segment_id == segment_id).first()
                if not row:
                    return False

                confidence = clamp(update.confidence)
                if only_if_better and confidence <= (row.confidence or 0.0):
                    return False

                row.transcript = update.transcript
                row.confidence = confidence
                if update.call_type is not None:
                    row.call_type = update.call_type
                if update.location is not None:
                    row.location = update.location
                if update.latitude is not None and update.longitude is not None:
                    row.latitude = update.latitude
                    row.longitude = update.longitude
                if update.units is not None:
                    row.units = list(update.units)
                if update.keywords is not None:
                    row.keywords = list(update.keywords)
                if update.duration:
                    row.duration = update.duration
                    row.end_ms = int(update.duration * 1000)
                db.commit()
                return True
            except Exception as e:
                db.rollback()
                raise e

    def existing_source_ids(self, source_ids: Iterable[int]) -> Set[int]:
        ids = list(source_ids)
        if not ids:
            return set()
        with SessionLocal() as db:
            rows = db.query(CallModel.source_call_id).filter(CallModel.source_call_id.in_(ids)).all()
            return {r[0] for r in rows}

    def low_confidence_segments(self, threshold: float, limit: int) -> List[CallInfo]:
        with SessionLocal() as db:
            rows = (
                db.query(CallModel)
                .filter(
                    CallModel.audio_segment_id.isnot(None),
                    CallModel.confidence > 0,
                    CallModel.confidence < threshold
                )
                .order_by(CallModel.confidence.asc())
                .limit(limit)
                .all()
            )
            return [_call_info(r) for r in rows]

    def recent_confidences(self, limit: int) -> List[float]:
        with SessionLocal() as db:
            rows = (
                db.query(CallModel.confidence)
                .filter(CallModel.confidence > 0)
                .order_by(CallModel.id.desc())
                .limit(limit)
                .all()
            )
            return [r[0] for r in reversed(rows)]
