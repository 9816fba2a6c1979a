from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from childguard.api.deps import get_escalation, get_fanout, load_subject
from childguard.core.errors import NotFoundError
from childguard.db import get_db
from childguard.models.location import Location
from childguard.schemas.location import LocationCreate, LocationIngested, LocationRead
from childguard.services.escalation import EscalationEngine, plan_alerts, recipients_snapshot
from childguard.services.fanout import LOCATION_UPDATE, NotificationFanout, publish_safely, subject_channel
from childguard.services.geofence import find_breaches
from childguard.services.locations import active_geofences, save_location
from childguard.services.pipeline import local_now

router = APIRouter(prefix="/locations", tags=["locations"])


@router.post("/", response_model=LocationIngested, status_code=201)
def create_location(
    payload: LocationCreate,
    db: Session = Depends(get_db),
    fanout: NotificationFanout = Depends(get_fanout),
    engine: EscalationEngine = Depends(get_escalation),
):
    """Store a GPS fix and raise geofence alerts for it."""
    subject = load_subject(db, payload.subject_id)
    recipients = recipients_snapshot(subject)

    location = save_location(
        db,
        subject.id,
        payload.coordinates,
        device_id=payload.device_id,
        accuracy=payload.accuracy,
        speed=payload.speed,
        heading=payload.heading,
        recorded_at=payload.recorded_at,
    )
    location_out = LocationRead.model_validate(location)
    publish_safely(
        fanout, [subject_channel(subject.id)], LOCATION_UPDATE,
        {"subject_id": subject.id, "location": location_out.model_dump(mode="json")},
    )

    breaches = find_breaches(active_geofences(db, subject.id), tuple(payload.coordinates), local_now())
    outcome = engine.execute(subject.id, plan_alerts(subject.name, None, breaches), recipients, payload.coordinates)
    return LocationIngested(location=location_out, geofence_alert_ids=[a.id for a in outcome.alerts])


@router.get("/{subject_id}/latest", response_model=LocationRead)
def get_latest_location(subject_id: int, db: Session = Depends(get_db)):
    location = (
        db.query(Location)
        .filter(Location.subject_id == subject_id)
        .order_by(Location.recorded_at.desc(), Location.id.desc())
        .first()
    )
    if not location:
        raise NotFoundError("No location recorded", details={"subject_id": subject_id})
    return location
