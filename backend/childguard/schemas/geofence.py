from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from childguard.core.time_utils import hhmm_to_time


class Schedule(BaseModel):
    # 0 = Sunday ... 6 = Saturday
    days: list[int] = Field(default_factory=lambda: [1, 2, 3, 4, 5])
    start: Optional[str] = "07:00"  # 'HH:MM'
    end: Optional[str] = "16:00"

    @field_validator("days")
    @classmethod
    def _valid_days(cls, v):
        if any(d < 0 or d > 6 for d in v):
            raise ValueError("days must be between 0 (Sunday) and 6 (Saturday)")
        return v

    @field_validator("start", "end")
    @classmethod
    def _valid_time(cls, v):
        hhmm_to_time(v)  # raises ValueError on bad input
        return v


class GeofenceCreate(BaseModel):
    name: str = Field(..., min_length=1)
    subject_id: int
    coordinates: list[float] = Field(..., min_length=2, max_length=2)  # [lon, lat]
    radius_m: float = Field(..., gt=0)
    schedule: Optional[Schedule] = None
    active: bool = True


class GeofenceRead(BaseModel):
    id: int
    name: str
    subject_id: int
    center_lon: float
    center_lat: float
    radius_m: float
    schedule: Optional[dict] = None
    active: bool
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
