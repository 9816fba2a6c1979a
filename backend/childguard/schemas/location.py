from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LocationCreate(BaseModel):
    subject_id: int
    device_id: Optional[int] = None
    coordinates: list[float] = Field(..., min_length=2, max_length=2)  # [lon, lat]
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    recorded_at: Optional[datetime] = None


class LocationRead(BaseModel):
    id: int
    subject_id: int
    device_id: Optional[int] = None
    lon: float
    lat: float
    accuracy: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    recorded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class LocationIngested(BaseModel):
    location: LocationRead
    geofence_alert_ids: list[int] = []
