# File: dispatchwatch/features/hospital_calls/data/repository.py
from datetime import datetime
from typing import List, Optional, Tuple
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from dispatchwatch.core.common.confidence import clamp
from dispatchwatch.core.database.base import as_utc
from dispatchwatch.core.database.connection import SessionLocal
from dispatchwatch.core.enums import HospitalCallStatus
from dispatchwatch.core.errors import SequenceCollisionError
from .sql_models import HospitalCallModel, HospitalCallSegmentModel
from ..domain.interfaces import IHospitalCallRepository
from ..domain.models import AttachResult, HospitalCallInfo, HospitalSegmentInfo


def _segment_info(row: HospitalCallSegmentModel) -> HospitalSegmentInfo:
    return HospitalSegmentInfo(
        id=row.id,
        hospital_call_id=row.hospital_call_id,
        audio_segment_id=row.audio_segment_id,
        sequence_number=row.sequence_number,
        timestamp=as_utc(row.timestamp),
        transcript=row.transcript,
        confidence=row.confidence,
        speaker_type=row.speaker_type,
        duration=row.duration
    )


class PostgresHospitalCallRepo(IHospitalCallRepository):
    def find_link(self, audio_segment_id: str) -> Optional[AttachResult]:
        with SessionLocal() as db:
            row = (
                db.query(HospitalCallSegmentModel, HospitalCallModel.conversation_id)
                .join(HospitalCallModel, HospitalCallModel.id == HospitalCallSegmentModel.hospital_call_id)
                .filter(HospitalCallSegmentModel.audio_segment_id == audio_segment_id)
                .first()
            )
            if not row:
                return None
            segment, conversation_id = row
            return AttachResult(segment.hospital_call_id, conversation_id, segment.sequence_number, reused=True)

    def latest_active(self, talkgroup: int) -> Optional[Tuple[int, datetime]]:
        with SessionLocal() as db:
            row = (
                db.query(HospitalCallModel)
                .filter(
                    HospitalCallModel.talkgroup == talkgroup,
                    HospitalCallModel.status == HospitalCallStatus.ACTIVE.value
                )
                .order_by(HospitalCallModel.id.desc())
                .first()
            )
            return (row.id, as_utc(row.last_activity_at)) if row else None

    def create_conversation(self, conversation_id: str, talkgroup: int, system: Optional[int],
                            hospital_name: Optional[str], timestamp: datetime) -> Tuple[int, str]:
        with SessionLocal() as db:
            try:
                # Two conversations on one channel within the same second get a suffix
                candidate, n = conversation_id, 1
                while db.query(HospitalCallModel.id).filter(HospitalCallModel.conversation_id == candidate).first():
                    n += 1
                    candidate = f"{conversation_id}-{n}"

                row = HospitalCallModel(
                    conversation_id=candidate,
                    talkgroup=talkgroup,
                    system=system,
                    hospital_name=hospital_name,
                    timestamp=timestamp,
                    last_activity_at=timestamp,
                    status=HospitalCallStatus.ACTIVE.value,
                    total_segments=0
                )
                db.add(row)
                db.commit()
                return row.id, row.conversation_id
            except Exception as e:
                db.rollback()
                raise e

    def append_segment(self, hospital_call_id: int, audio_segment_id: str, timestamp: datetime,
                       duration: Optional[float] = None) -> int:
        with SessionLocal() as db:
            try:
                current = (
                    db.query(func.max(HospitalCallSegmentModel.sequence_number))
                    .filter(HospitalCallSegmentModel.hospital_call_id == hospital_call_id)
                    .scalar()
                ) or 0
                sequence = current + 1

                db.add(HospitalCallSegmentModel(
                    hospital_call_id=hospital_call_id,
                    audio_segment_id=audio_segment_id,
                    sequence_number=sequence,
                    timestamp=timestamp,
                    duration=duration,
                    meta={"processing_status": "pending_transcription"}
                ))
                db.flush()

                call = db.get(HospitalCallModel, hospital_call_id)
                call.total_segments = (
                    db.query(func.count(HospitalCallSegmentModel.id))
                    .filter(HospitalCallSegmentModel.hospital_call_id == hospital_call_id)
                    .scalar()
                )
                if as_utc(timestamp) > as_utc(call.last_activity_at):
                    call.last_activity_at = timestamp

                db.commit()
                return sequence
            except IntegrityError as e:
                db.rollback()
                raise SequenceCollisionError(
                    f"Segment {audio_segment_id} collided in hospital call {hospital_call_id}: {e.orig}"
                ) from e
            except Exception as e:
                db.rollback()
                raise e

    def complete(self, hospital_call_id: int, idle_before: Optional[datetime] = None) -> bool:
        with SessionLocal() as db:
            try:
                row = db.get(HospitalCallModel, hospital_call_id)
                if not row or row.status != HospitalCallStatus.ACTIVE.value:
                    return False
                if idle_before is not None and as_utc(row.last_activity_at) > idle_before:
                    return False
                row.status = HospitalCallStatus.COMPLETED.value
                db.commit()
                return True
            except Exception as e:
                db.rollback()
                raise e

    def stale_active(self, idle_before: datetime) -> List[Tuple[int, int]]:
        with SessionLocal() as db:
            rows = (
                db.query(HospitalCallModel.id, HospitalCallModel.talkgroup, HospitalCallModel.last_activity_at)
                .filter(HospitalCallModel.status == HospitalCallStatus.ACTIVE.value)
                .all()
            )
            return [(r[0], r[1]) for r in rows if as_utc(r[2]) <= idle_before]

    def get_conversation(self, hospital_call_id: int) -> Optional[HospitalCallInfo]:
        with SessionLocal() as db:
            row = db.get(HospitalCallModel, hospital_call_id)
            if not row:
                return None
            return HospitalCallInfo(
                id=row.id,
                conversation_id=row.conversation_id,
                talkgroup=row.talkgroup,
                hospital_name=row.hospital_name,
                status=row.status,
                timestamp=as_utc(row.timestamp),
                last_activity_at=as_utc(row.last_activity_at),
                total_segments=row.total_segments,
                sor_detected=row.sor_detected,
                sor_physician=row.sor_physician,
                segments=[_segment_info(s) for s in row.segments]
            )

    def update_segment_transcript(self, audio_segment_id: str, transcript: str, confidence: float,
                                  speaker_type: str) -> Optional[HospitalSegmentInfo]:
        with SessionLocal() as db:
            try:
                row = (
                    db.query(HospitalCallSegmentModel)
                    .filter(HospitalCallSegmentModel.audio_segment_id == audio_segment_id)
                    .first()
                )
                if not row:
                    return None
                row.transcript = transcript
                row.confidence = clamp(confidence)
                row.speaker_type = speaker_type
                row.meta = {**(row.meta or {}), "processing_status": "transcribed"}
                db.commit()
                return _segment_info(row)
            except Exception as e:
                db.rollback()
                raise e

    def mark_sor(self, hospital_call_id: int, physician: Optional[str]) -> None:
        with SessionLocal() as db:
            try:
                row = db.get(HospitalCallModel, hospital_call_id)
                if not row:
                    return
                row.sor_detected = True
                if physician and not row.sor_physician:
                    row.sor_physician = physician
                db.commit()
            except Exception as e:
                db.rollback()
                raise e
