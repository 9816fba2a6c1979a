from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class FeatureVector(BaseModel):
    """Four signals derived from one telemetry window."""

    model_config = ConfigDict(frozen=True)

    hr_mean: float
    hr_gradient: float
    acc_mean: float
    acc_variance: float


class Classification(BaseModel):
    """Response shape shared by the local rule engine and the remote model."""

    model_config = ConfigDict(frozen=True)

    prediction_code: Literal[0, 1, 2]  # 0 normal, 1 playing, 2 danger
    confidence_percentage: float = Field(..., ge=0, le=100)
    status_label: Literal["normal", "playing", "danger"]
    calculated_features: FeatureVector


class RiskAssessmentRead(BaseModel):
    id: int
    subject_id: int
    source: str
    prediction_code: int
    confidence_percentage: float
    status_label: str
    calculated_features: dict
    model_url: Optional[str] = None
    triggered_alert_id: Optional[int] = None
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
