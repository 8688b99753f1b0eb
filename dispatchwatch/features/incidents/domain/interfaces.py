# File: dispatchwatch/features/incidents/domain/interfaces.py
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional
from .models import GeocodeResult, HospitalLink, IncidentInfo, NewIncident, TravelEstimate


class IIncidentRepository(ABC):
    @abstractmethod
    def create(self, incident: NewIncident) -> Optional[int]:
        """Returns the new id, or None if the dispatch Call already has an incident."""
        pass

    @abstractmethod
    def get(self, incident_id: int) -> Optional[IncidentInfo]:
        pass

    @abstractmethod
    def dispatched_between(self, start: datetime, end: datetime) -> List[IncidentInfo]:
        pass

    @abstractmethod
    def with_status(self, status: str) -> List[IncidentInfo]:
        pass

    @abstractmethod
    def link_hospital(self, incident_id: int, link: HospitalLink, new_status: str) -> bool:
        """Links a conversation; only succeeds while the incident is still dispatched."""
        pass

    @abstractmethod
    def transition(self, incident_id: int, old_status: str, new_status: str, at: datetime) -> bool:
        """Compare-and-set on status. Returns False if someone else moved it first."""
        pass


class IGeocoder(ABC):
    @abstractmethod
    def geocode(self, address: str) -> Optional[GeocodeResult]:
        """None is a normal outcome for partial or unknown addresses."""
        pass


class ITravelTimeEstimator(ABC):
    @abstractmethod
    def estimate(self, lat: float, lon: float, destination_address: str,
                 dest_lat: float, dest_lon: float) -> Optional[TravelEstimate]:
        pass
