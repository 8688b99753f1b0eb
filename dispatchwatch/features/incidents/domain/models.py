# File: dispatchwatch/features/incidents/domain/models.py
from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    formatted_address: str
    confidence: float


@dataclass(frozen=True)
class TravelEstimate:
    distance_miles: float
    duration_minutes: float
    source: str


@dataclass(frozen=True)
class HospitalLocation:
    name: str
    address: str
    latitude: float
    longitude: float
    aliases: tuple = ()


@dataclass(frozen=True)
class NewIncident:
    unit_id: str
    dispatch_time: datetime
    transcript_dispatch_id: int
    location: Optional[str] = None
    call_type: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    inferred_closest_hospital: Optional[str] = None
    eta_estimated: Optional[float] = None
    distance_miles: Optional[float] = None


@dataclass(frozen=True)
class HospitalLink:
    hospital_call_id: int
    actual_hospital_called: Optional[str]
    transport_start_time: datetime
    eta_given: Optional[float]
    eta_estimated: Optional[float]
    eta_variance: Optional[float]
    distance_miles: Optional[float] = None


@dataclass(frozen=True)
class IncidentInfo:
    id: int
    unit_id: str
    dispatch_time: datetime
    status: str
    location: Optional[str] = None
    call_type: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    inferred_closest_hospital: Optional[str] = None
    actual_hospital_called: Optional[str] = None
    transport_start_time: Optional[datetime] = None
    eta_given: Optional[float] = None
    eta_estimated: Optional[float] = None
    eta_variance: Optional[float] = None
    distance_miles: Optional[float] = None
    arriving_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    transcript_dispatch_id: Optional[int] = None
    transcript_hospital_id: Optional[int] = None

    def effective_eta(self, default_minutes: float) -> float:
        """Stated ETA wins over our own estimate."""
        if self.eta_given is not None:
            return self.eta_given
        if self.eta_estimated is not None:
            return self.eta_estimated
        return default_minutes
