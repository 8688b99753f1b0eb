# File: dispatchwatch/features/incidents/data/sql_models.py

from sqlalchemy import Column, String, Text, Float, Integer, ForeignKey, DateTime
from dispatchwatch.core.database.base import Base, utc_now
from dispatchwatch.core.enums import IncidentStatus


class IncidentModel(Base):
    """
    A dispatch Call and (once heard) the hospital conversation for the same transport.
    Rows are never deleted; status only moves forward.
    """
    __tablename__ = "incidents"

    id = Column(Integer, primary_key=True, autoincrement=True)
    unit_id = Column(String, nullable=False, index=True)
    dispatch_time = Column(DateTime(timezone=True), nullable=False, index=True)
    location = Column(Text, nullable=True)
    call_type = Column(String, nullable=True)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)

    inferred_closest_hospital = Column(String, nullable=True)
    actual_hospital_called = Column(String, nullable=True)
    transport_start_time = Column(DateTime(timezone=True), nullable=True)

    # Minutes. variance = given - estimated
    eta_given = Column(Float, nullable=True)
    eta_estimated = Column(Float, nullable=True)
    eta_variance = Column(Float, nullable=True)
    distance_miles = Column(Float, nullable=True)

    status = Column(String, default=IncidentStatus.DISPATCHED.value, nullable=False, index=True)
    arriving_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    transcript_dispatch_id = Column(Integer, ForeignKey("calls.id"), nullable=True, unique=True)
    transcript_hospital_id = Column(Integer, ForeignKey("hospital_calls.id"), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), default=utc_now)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now)
