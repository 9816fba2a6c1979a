from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from childguard.api.deps import load_subject
from childguard.db import get_db
from childguard.models.geofence import Geofence
from childguard.schemas.geofence import GeofenceCreate, GeofenceRead

router = APIRouter(prefix="/geofences", tags=["geofences"])


@router.post("/", response_model=GeofenceRead, status_code=201)
def create_geofence(payload: GeofenceCreate, db: Session = Depends(get_db)):
    load_subject(db, payload.subject_id)
    lon, lat = payload.coordinates
    fence = Geofence(
        name=payload.name,
        subject_id=payload.subject_id,
        center_lon=lon,
        center_lat=lat,
        radius_m=payload.radius_m,
        schedule=payload.schedule.model_dump() if payload.schedule else None,
        active=payload.active,
    )
    db.add(fence)
    db.commit()
    db.refresh(fence)
    return fence


@router.get("/", response_model=list[GeofenceRead])
def list_geofences(subject_id: Optional[int] = Query(None), db: Session = Depends(get_db)):
    query = db.query(Geofence)
    if subject_id is not None:
        query = query.filter(Geofence.subject_id == subject_id)
    return query.order_by(Geofence.id.desc()).all()
