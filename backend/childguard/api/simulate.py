from fastapi import APIRouter, Depends

from childguard.api.deps import get_pipeline
from childguard.schemas.telemetry import (
    FullDemoResult,
    PipelineResult,
    ScenarioRequest,
    ScenarioResult,
    TelemetrySample,
)
from childguard.services.pipeline import TelemetryPipeline
from childguard.services.scenarios import run_full_demo, run_scenario

router = APIRouter(prefix="/simulate", tags=["simulate"])


@router.post("/watch-data", response_model=PipelineResult, status_code=201)
def simulate_watch_data(payload: TelemetrySample, pipeline: TelemetryPipeline = Depends(get_pipeline)):
    """Send one raw watch window through the full pipeline."""
    return pipeline.run(payload)


@router.post("/scenario/{scenario}", response_model=ScenarioResult, status_code=201)
def simulate_scenario(
    scenario: str,
    payload: ScenarioRequest,
    pipeline: TelemetryPipeline = Depends(get_pipeline),
):
    """Generate sensor data for a preset scenario and run the pipeline.

    scenario = normal | playing | danger_struggle | danger_freeze | geofence_breach | sos
    """
    return run_scenario(pipeline, scenario, payload.subject_id, payload.coordinates)


@router.post("/full-demo", response_model=FullDemoResult, status_code=201)
def simulate_full_demo(payload: ScenarioRequest, pipeline: TelemetryPipeline = Depends(get_pipeline)):
    return run_full_demo(pipeline, payload.subject_id, payload.coordinates)
