# File: dispatchwatch/features/incidents/service/correlator.py
import logging
from datetime import datetime, timedelta
from typing import List, Optional
from dispatchwatch.core.common.channels import is_dispatch_channel
from dispatchwatch.core.config.settings import settings
from dispatchwatch.core.database.base import as_utc, utc_now
from dispatchwatch.core.enums import IncidentStatus
from dispatchwatch.core.events.bus import EventBus
from dispatchwatch.core.events.types import IncidentTransition
from dispatchwatch.features.entities.service.unit_extractor import UnitExtractor, unit_extractor
from dispatchwatch.features.hospital_calls.domain.interfaces import IHospitalCallRepository
from dispatchwatch.features.storage.domain.models import CallInfo
from ..data.hospitals import find_hospital
from ..data.travel_time import HaversineEstimator, minutes_for_distance
from ..domain.interfaces import IIncidentRepository, ITravelTimeEstimator
from ..domain.models import HospitalLink, IncidentInfo, NewIncident
from .eta import closest_hospital, location_eta, parse_stated_eta

logger = logging.getLogger(__name__)


class IncidentCorrelator:
    """
    Dispatch -> hospital transport tracking.

    Lifecycle is strictly linear: dispatched -> en_route -> arriving_shortly
    -> completed. Linking a hospital conversation is the only way out of
    dispatched; the periodic sweep drives the rest off the ETA clock.
    """
    def __init__(
        self,
        repo: IIncidentRepository,
        hospital_calls: IHospitalCallRepository,
        bus: Optional[EventBus] = None,
        estimator: Optional[ITravelTimeEstimator] = None,
        units: UnitExtractor = unit_extractor,
        grace_minutes: float = None,
        link_window_minutes: float = None,
        default_eta_minutes: float = None,
    ):
        self.repo = repo
        self.hospital_calls = hospital_calls
        self.bus = bus
        self.estimator = estimator or HaversineEstimator()
        self.units = units
        self.grace = timedelta(minutes=settings.INCIDENT_GRACE_MINUTES if grace_minutes is None else grace_minutes)
        self.link_window = timedelta(
            minutes=settings.INCIDENT_LINK_WINDOW_MINUTES if link_window_minutes is None else link_window_minutes
        )
        self.default_eta = settings.INCIDENT_DEFAULT_ETA_MINUTES if default_eta_minutes is None else default_eta_minutes

    def on_dispatch_call(self, call: CallInfo) -> Optional[int]:
        """Opens an incident for a processed dispatch Call that names a unit."""
        if call.talkgroup is None or not is_dispatch_channel(call.talkgroup):
            return None

        units = call.units or self.units.labels(call.transcript)
        if not units:
            return None

        closest = None
        distance = None
        if call.latitude is not None and call.longitude is not None:
            found = closest_hospital(call.latitude, call.longitude)
            if found:
                closest, distance = found

        eta = minutes_for_distance(distance) if distance is not None else location_eta(call.location, self.default_eta)
        incident_id = self.repo.create(NewIncident(
            unit_id=units[0],
            dispatch_time=as_utc(call.radio_timestamp) or utc_now(),
            transcript_dispatch_id=call.id,
            location=call.location,
            call_type=call.call_type,
            latitude=call.latitude,
            longitude=call.longitude,
            inferred_closest_hospital=closest.name if closest else None,
            eta_estimated=eta,
            distance_miles=round(distance, 1) if distance is not None else None
        ))

        if incident_id:
            logger.info(f"✨ Incident {incident_id} opened for {units[0]} ({call.call_type or 'unknown type'})")
            self._publish(incident_id, None, IncidentStatus.DISPATCHED.value)
        return incident_id

    def on_hospital_conversation(self, hospital_call_id: int) -> Optional[int]:
        """
        Links the conversation to the nearest-in-time dispatched incident whose
        unit is spoken in it. No match is a normal outcome.
        """
        conversation = self.hospital_calls.get_conversation(hospital_call_id)
        if not conversation:
            return None

        text = conversation.transcript
        spoken = set(self.units.labels(text))
        if not spoken:
            return None

        started = conversation.timestamp
        candidates = [
            i for i in self.repo.dispatched_between(started - self.link_window, started)
            if i.unit_id in spoken
        ]
        if not candidates:
            return None

        incident = max(candidates, key=lambda i: i.dispatch_time)
        stated = parse_stated_eta(text)
        estimated, distance = self._estimate(incident, conversation.hospital_name)
        variance = stated - estimated if stated is not None and estimated is not None else None

        linked = self.repo.link_hospital(
            incident.id,
            HospitalLink(
                hospital_call_id=hospital_call_id,
                actual_hospital_called=conversation.hospital_name,
                transport_start_time=started,
                eta_given=stated,
                eta_estimated=estimated,
                eta_variance=variance,
                distance_miles=distance
            ),
            IncidentStatus.EN_ROUTE.value
        )
        if not linked:
            return None

        logger.info(f"Incident {incident.id} ({incident.unit_id}) en route to {conversation.hospital_name}")
        self._publish(incident.id, IncidentStatus.DISPATCHED.value, IncidentStatus.EN_ROUTE.value)
        return incident.id

    def _estimate(self, incident: IncidentInfo, hospital_name: Optional[str]):
        """(minutes, miles) from the scene to the hospital actually called."""
        hospital = find_hospital(hospital_name)
        if hospital and incident.latitude is not None and incident.longitude is not None:
            travel = self.estimator.estimate(
                incident.latitude, incident.longitude, hospital.address, hospital.latitude, hospital.longitude
            )
            if travel:
                return travel.duration_minutes, travel.distance_miles
        return incident.eta_estimated, incident.distance_miles

    def sweep(self, now: datetime = None) -> List[int]:
        """
        Advances incidents off the ETA clock, at most one step each per sweep.
        Returns ids that changed.
        """
        now = as_utc(now or utc_now())
        changed = []

        # arriving_shortly first so nothing promoted below is completed in the same pass
        for incident in self.repo.with_status(IncidentStatus.ARRIVING_SHORTLY.value):
            eta = timedelta(minutes=incident.effective_eta(self.default_eta))
            if now >= incident.dispatch_time + eta + self.grace:
                if self._advance(incident, IncidentStatus.COMPLETED, now):
                    changed.append(incident.id)

        for incident in self.repo.with_status(IncidentStatus.EN_ROUTE.value):
            eta = timedelta(minutes=incident.effective_eta(self.default_eta))
            if now >= incident.dispatch_time + eta:
                if self._advance(incident, IncidentStatus.ARRIVING_SHORTLY, now):
                    changed.append(incident.id)

        return changed

    def _advance(self, incident: IncidentInfo, new_status: IncidentStatus, now: datetime) -> bool:
        if not self.repo.transition(incident.id, incident.status, new_status.value, now):
            return False
        logger.info(f"Incident {incident.id}: {incident.status} -> {new_status.value}")
        self._publish(incident.id, incident.status, new_status.value)
        return True

    def _publish(self, incident_id: int, old_status: Optional[str], new_status: str):
        if self.bus:
            self.bus.publish(IncidentTransition(incident_id=incident_id, old_status=old_status, new_status=new_status))
