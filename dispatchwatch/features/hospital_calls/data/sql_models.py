# File: dispatchwatch/features/hospital_calls/data/sql_models.py

from sqlalchemy import Column, String, Text, Float, Integer, Boolean, ForeignKey, DateTime, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from dispatchwatch.core.database.base import Base, utc_now
from dispatchwatch.core.enums import HospitalCallStatus


class HospitalCallModel(Base):
    """
    One logical EMS <-> hospital conversation on a hospital talkgroup.
    `conversation_id` never changes once written.
    """
    __tablename__ = "hospital_calls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    conversation_id = Column(String, unique=True, nullable=False)
    talkgroup = Column(Integer, nullable=False, index=True)
    system = Column(Integer, nullable=True)
    hospital_name = Column(String, nullable=True)

    timestamp = Column(DateTime(timezone=True), nullable=False)
    last_activity_at = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, default=HospitalCallStatus.ACTIVE.value, nullable=False, index=True)
    total_segments = Column(Integer, default=0, nullable=False)

    sor_detected = Column(Boolean, default=False, nullable=False)
    sor_physician = Column(String, nullable=True)
    # Summaries are disabled; verbatim segment transcripts are canonical.
    summary = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    segments = relationship(
        "HospitalCallSegmentModel",
        back_populates="hospital_call",
        order_by="HospitalCallSegmentModel.sequence_number"
    )


class HospitalCallSegmentModel(Base):
    __tablename__ = "hospital_call_segments"
    __table_args__ = (
        UniqueConstraint("hospital_call_id", "sequence_number", name="uq_hospital_segment_sequence"),
    )

    id = Column(Integer, primary_key=True, autoincrement=True)
    hospital_call_id = Column(Integer, ForeignKey("hospital_calls.id"), nullable=False, index=True)
    audio_segment_id = Column(String(36), ForeignKey("audio_segments.id"), nullable=False, unique=True)
    sequence_number = Column(Integer, nullable=False)
    timestamp = Column(DateTime(timezone=True), nullable=False)

    transcript = Column(Text, nullable=True)
    confidence = Column(Float, nullable=True)
    speaker_type = Column(String, nullable=True)
    duration = Column(Float, nullable=True)
    meta = Column("metadata", JSON, default=dict)

    hospital_call = relationship("HospitalCallModel", back_populates="segments")
