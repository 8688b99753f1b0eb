# File: dispatchwatch/features/incidents/data/repository.py
from datetime import datetime
from typing import List, Optional
from sqlalchemy.exc import IntegrityError
from dispatchwatch.core.database.base import as_utc
from dispatchwatch.core.database.connection import SessionLocal
from dispatchwatch.core.enums import IncidentStatus
from .sql_models import IncidentModel
from ..domain.interfaces import IIncidentRepository
from ..domain.models import HospitalLink, IncidentInfo, NewIncident


def _info(row: IncidentModel) -> IncidentInfo:
    return IncidentInfo(
        id=row.id,
        unit_id=row.unit_id,
        dispatch_time=as_utc(row.dispatch_time),
        status=row.status,
        location=row.location,
        call_type=row.call_type,
        latitude=row.latitude,
        longitude=row.longitude,
        inferred_closest_hospital=row.inferred_closest_hospital,
        actual_hospital_called=row.actual_hospital_called,
        transport_start_time=as_utc(row.transport_start_time),
        eta_given=row.eta_given,
        eta_estimated=row.eta_estimated,
        eta_variance=row.eta_variance,
        distance_miles=row.distance_miles,
        arriving_at=as_utc(row.arriving_at),
        completed_at=as_utc(row.completed_at),
        transcript_dispatch_id=row.transcript_dispatch_id,
        transcript_hospital_id=row.transcript_hospital_id
    )


class PostgresIncidentRepo(IIncidentRepository):
    def create(self, incident: NewIncident) -> Optional[int]:
        with SessionLocal() as db:
            try:
                exists = (
                    db.query(IncidentModel.id)
                    .filter(IncidentModel.transcript_dispatch_id == incident.transcript_dispatch_id)
                    .first()
                )
                if exists:
                    return None

                row = IncidentModel(
                    unit_id=incident.unit_id,
                    dispatch_time=incident.dispatch_time,
                    location=incident.location,
                    call_type=incident.call_type,
                    latitude=incident.latitude,
                    longitude=incident.longitude,
                    inferred_closest_hospital=incident.inferred_closest_hospital,
                    eta_estimated=incident.eta_estimated,
                    distance_miles=incident.distance_miles,
                    status=IncidentStatus.DISPATCHED.value,
                    transcript_dispatch_id=incident.transcript_dispatch_id
                )
                db.add(row)
                db.commit()
                return row.id
            except IntegrityError:
                # Lost a race with another worker on the same dispatch Call
                db.rollback()
                return None
            except Exception as e:
                db.rollback()
                raise e

    def get(self, incident_id: int) -> Optional[IncidentInfo]:
        with SessionLocal() as db:
            row = db.get(IncidentModel, incident_id)
            return _info(row) if row else None

    def dispatched_between(self, start: datetime, end: datetime) -> List[IncidentInfo]:
        with SessionLocal() as db:
            rows = (
                db.query(IncidentModel)
                .filter(IncidentModel.status == IncidentStatus.DISPATCHED.value)
                .order_by(IncidentModel.dispatch_time.desc())
                .all()
            )
            return [_info(r) for r in rows if start <= as_utc(r.dispatch_time) <= end]

    def with_status(self, status: str) -> List[IncidentInfo]:
        with SessionLocal() as db:
            rows = db.query(IncidentModel).filter(IncidentModel.status == status).order_by(IncidentModel.id).all()
            return [_info(r) for r in rows]

    def link_hospital(self, incident_id: int, link: HospitalLink, new_status: str) -> bool:
        with SessionLocal() as db:
            try:
                row = db.get(IncidentModel, incident_id)
                if not row or row.status != IncidentStatus.DISPATCHED.value:
                    return False
                row.transcript_hospital_id = link.hospital_call_id
                row.actual_hospital_called = link.actual_hospital_called
                row.transport_start_time = link.transport_start_time
                row.eta_given = link.eta_given
                row.eta_estimated = link.eta_estimated
                row.eta_variance = link.eta_variance
                if link.distance_miles is not None:
                    row.distance_miles = link.distance_miles
                row.status = new_status
                db.commit()
                return True
            except Exception as e:
                db.rollback()
                raise e

    def transition(self, incident_id: int, old_status: str, new_status: str, at: datetime) -> bool:
        with SessionLocal() as db:
            try:
                row = db.get(IncidentModel, incident_id)
                if not row or row.status != old_status:
                    return False
                row.status = new_status
                if new_status == IncidentStatus.ARRIVING_SHORTLY.value:
                    row.arriving_at = at
                elif new_status == IncidentStatus.COMPLETED.value:
                    row.completed_at = at
                db.commit()
                return True
            except Exception as e:
                db.rollback()
                raise e
