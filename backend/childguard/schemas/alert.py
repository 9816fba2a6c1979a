from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class AlertType(str, Enum):
    geofence = "geofence"
    sos = "sos"
    vitals = "vitals"
    movement = "movement"
    custom = "custom"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    critical = "critical"


class SosTrigger(str, Enum):
    child = "child"
    device = "device"
    auto = "auto"


class AlertCreate(BaseModel):
    """Manual alert raised outside the telemetry pipeline."""

    subject_id: int
    type: AlertType = AlertType.custom
    severity: Severity = Severity.medium
    message: str = Field(..., min_length=1)
    coordinates: Optional[list[float]] = Field(None, min_length=2, max_length=2)
    image_url: Optional[str] = None
    # Defaults to the subject's guardians when omitted
    recipients: Optional[list[int]] = None


class AlertRead(BaseModel):
    id: int
    type: str
    severity: str
    subject_id: int
    message: str
    lon: Optional[float] = None
    lat: Optional[float] = None
    recipients: list[int] = []
    image_url: Optional[str] = None
    resolved: bool = False
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SosCreate(BaseModel):
    subject_id: int
    triggered_by: SosTrigger = SosTrigger.child
    coordinates: Optional[list[float]] = Field(None, min_length=2, max_length=2)
    image_url: Optional[str] = None


class SosEventRead(BaseModel):
    id: int
    subject_id: int
    triggered_by: str
    status: str
    lon: Optional[float] = None
    lat: Optional[float] = None
    image_url: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SosTriggered(BaseModel):
    event: SosEventRead
    alert: AlertRead
