from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from childguard.schemas.risk import FeatureVector


class TelemetrySource(str, Enum):
    watch = "watch"
    band = "band"
    manual = "manual"
    device = "device"


Coordinates = list[float]  # [lon, lat]


class TelemetrySample(BaseModel):
    """One raw window from a wearable. Immutable once captured."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    subject_id: int
    heart_rate_raw: list[float] = Field(..., min_length=5)
    accelerometer_raw: list[float] = Field(..., min_length=5)
    source: TelemetrySource = TelemetrySource.watch
    coordinates: Optional[Coordinates] = Field(None, min_length=2, max_length=2)


class ScenarioRequest(BaseModel):
    subject_id: int
    coordinates: Optional[Coordinates] = Field(None, min_length=2, max_length=2)


class ClassificationSummary(BaseModel):
    prediction_code: int
    status_label: str
    confidence_percentage: float


class PipelineResult(BaseModel):
    scenario: str = "custom"
    classification: ClassificationSummary
    features: FeatureVector
    risk_assessment_id: int
    location_id: Optional[int] = None
    triggered_alert_id: Optional[int] = None
    timeline: list[dict[str, Any]]


class ScenarioResult(PipelineResult):
    scenario_description: str
    generated_data: dict[str, list[float]]


class DemoEntry(BaseModel):
    scenario: str
    description: Optional[str] = None
    status: Optional[str] = None
    confidence: Optional[float] = None
    alerts_triggered: int = 0
    error: Optional[str] = None


class FullDemoResult(BaseModel):
    subject_id: int
    scenarios: list[DemoEntry]
