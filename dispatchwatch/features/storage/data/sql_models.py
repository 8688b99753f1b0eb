# File: dispatchwatch/features/storage/data/sql_models.py

import uuid
from sqlalchemy import Column, String, Text, Float, Integer, Boolean, ForeignKey, DateTime, JSON
from sqlalchemy.orm import relationship
from dispatchwatch.core.database.base import Base, utc_now
from dispatchwatch.core.enums import CallStatus, VoiceType


class AudioSegmentModel(Base):
    """
    One clip extracted from the scanner store.
    Only `processed` (and the measured duration) change after creation.
    """
    __tablename__ = "audio_segments"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    filepath = Column(Text, nullable=False)
    duration = Column(Float, nullable=True)
    sample_rate = Column(Integer, default=8000)
    channels = Column(Integer, default=1)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    processed = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utc_now)

    calls = relationship("CallModel", back_populates="audio_segment")


class CallModel(Base):
    """
    Dispatch-channel (or preliminary hospital-channel) call record.
    `timestamp` is when we processed it, `radio_timestamp` is when it was keyed up.
    """
    __tablename__ = "calls"

    id = Column(Integer, primary_key=True, autoincrement=True)
    timestamp = Column(DateTime(timezone=True), nullable=False, default=utc_now)
    radio_timestamp = Column(DateTime(timezone=True), nullable=True)
    audio_segment_id = Column(String(36), ForeignKey("audio_segments.id"), nullable=True, index=True)

    transcript = Column(Text, default="")
    confidence = Column(Float, default=0.0)
    start_ms = Column(Integer, default=0)
    end_ms = Column(Integer, default=0)
    duration = Column(Float, nullable=True)

    call_type = Column(String, nullable=True)
    keywords = Column(JSON, default=list)
    units = Column(JSON, default=list)
    location = Column(Text, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    status = Column(String, default=CallStatus.ACTIVE.value, nullable=False)

    talkgroup = Column(Integer, nullable=True, index=True)
    system = Column(Integer, nullable=True)
    frequency = Column(Float, nullable=True)
    voice_type = Column(String, default=VoiceType.AUTOMATED_VOICE.value)

    # Provenance (source-system call id, audio codec). "metadata" is reserved on declarative classes.
    meta = Column("metadata", JSON, default=dict)
    source_call_id = Column(Integer, nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)

    audio_segment = relationship("AudioSegmentModel", back_populates="calls")
