from datetime import datetime, timezone

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from childguard.core.errors import PersistenceFailure
from childguard.models.device import Device
from childguard.models.geofence import Geofence
from childguard.models.location import Location


def save_location(
    db: Session,
    subject_id: int,
    coordinates,
    device_id: int | None = None,
    accuracy: float | None = None,
    speed: float | None = None,
    heading: float | None = None,
    recorded_at: datetime | None = None,
) -> Location:
    """Store one GPS point and stamp the reporting device as seen."""
    lon, lat = coordinates
    now = datetime.now(timezone.utc)
    location = Location(
        subject_id=subject_id,
        device_id=device_id,
        lon=lon,
        lat=lat,
        accuracy=accuracy,
        speed=speed,
        heading=heading,
        recorded_at=recorded_at or now,
    )
    try:
        db.add(location)
        if device_id is not None:
            device = db.get(Device, device_id)
            if device is not None:
                device.last_seen_at = now
        db.commit()
        db.refresh(location)
    except SQLAlchemyError:
        db.rollback()
        raise PersistenceFailure("Failed to save location", details={"subject_id": subject_id})
    return location


def active_geofences(db: Session, subject_id: int) -> list[Geofence]:
    return (
        db.query(Geofence)
        .filter(Geofence.subject_id == subject_id)
        .filter(Geofence.active.is_(True))
        .order_by(Geofence.id)
        .all()
    )
