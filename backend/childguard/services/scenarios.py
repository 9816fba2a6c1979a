"""Synthetic wearable data for demo scenarios.

Each preset describes the vitals pattern of one situation. Generators draw
noisy raw windows around those means so the full pipeline can be exercised
without a physical device.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Optional


from childguard.core.errors import ApiError, ValidationError
from childguard.schemas.telemetry import (
    DemoEntry,
    FullDemoResult,
    ScenarioResult,
    TelemetrySample,
    TelemetrySource,
)
from childguard.services.pipeline import TelemetryPipeline

logger = logging.getLogger(__name__)

# Far from the default safe zones (~250 km from Cairo)
FAR_AWAY_COORDS = [29.0, 28.0]
# Cairo city center, used when the demo runs without coordinates
DEFAULT_DEMO_COORDS = [31.2357, 30.0444]


@dataclass(frozen=True)
class ScenarioPreset:
    hr_mean: float
    acc_mean: float
    acc_variance: float
    description: str


SCENARIO_PRESETS: dict[str, ScenarioPreset] = {
    "normal": ScenarioPreset(85, 1.1, 0.05, "Child at rest / walking normally"),
    "playing": ScenarioPreset(128, 2.2, 0.4, "Child running / playing actively"),
    "danger_struggle": ScenarioPreset(155, 2.8, 1.2, "Danger: struggle / assault pattern"),
    "danger_freeze": ScenarioPreset(148, 1.0, 0.01, "Danger: freeze response (high HR, no movement)"),
    "geofence_breach": ScenarioPreset(90, 1.5, 0.1, "Normal vitals but location outside safe zone"),
    "sos": ScenarioPreset(160, 3.0, 1.5, "SOS emergency with extreme vitals"),
}


def generate_hr_raw(hr_mean: float, length: int = 30, rng: Optional[random.Random] = None) -> list[float]:
    """~30 s of 1 Hz heart rate, integer bpm clamped to [40, 250]."""
    rng = rng or random.Random()
    return [float(round(max(40.0, min(250.0, rng.gauss(hr_mean, 5))))) for _ in range(length)]


def generate_acc_raw(
    acc_mean: float,
    acc_variance: float,
    length: int = 60,
    rng: Optional[random.Random] = None,
) -> list[float]:
    """~1 s of 60 Hz accelerometer magnitude, non-negative, 3 dp."""
    rng = rng or random.Random()
    std = math.sqrt(max(acc_variance, 0.001))
    return [round(max(0.0, rng.gauss(acc_mean, std)), 3) for _ in range(length)]


def get_preset(name: str) -> ScenarioPreset:
    preset = SCENARIO_PRESETS.get(name)
    if preset is None:
        raise ValidationError(
            f"Unknown scenario: {name}. Use: {', '.join(SCENARIO_PRESETS)}",
            details={"allowed": list(SCENARIO_PRESETS)},
        )
    return preset


def build_sample(name: str, subject_id: int, coordinates=None, rng: Optional[random.Random] = None) -> TelemetrySample:
    preset = get_preset(name)
    if name == "geofence_breach" and not coordinates:
        coordinates = FAR_AWAY_COORDS
    return TelemetrySample(
        subject_id=subject_id,
        heart_rate_raw=generate_hr_raw(preset.hr_mean, rng=rng),
        accelerometer_raw=generate_acc_raw(preset.acc_mean, preset.acc_variance, rng=rng),
        source=TelemetrySource.watch,
        coordinates=coordinates,
    )


def run_scenario(
    pipeline: TelemetryPipeline,
    name: str,
    subject_id: int,
    coordinates=None,
    rng: Optional[random.Random] = None,
) -> ScenarioResult:
    sample = build_sample(name, subject_id, coordinates, rng)
    result = pipeline.run(sample, scenario=name)
    return ScenarioResult(
        **result.model_dump(),
        scenario_description=SCENARIO_PRESETS[name].description,
        generated_data={
            "heart_rate_raw_sample": list(sample.heart_rate_raw[:5]),
            "accelerometer_raw_sample": list(sample.accelerometer_raw[:5]),
        },
    )


def count_alerts(timeline: list[dict]) -> int:
    return sum(1 for t in timeline if "alert_id" in t and t["step"] != "risk_assessment_linked")


def run_full_demo(
    pipeline: TelemetryPipeline,
    subject_id: int,
    coordinates=None,
    rng: Optional[random.Random] = None,
) -> FullDemoResult:
    """Run every preset once; one failing scenario does not stop the rest."""
    entries = []
    for name, preset in SCENARIO_PRESETS.items():
        coords = FAR_AWAY_COORDS if name == "geofence_breach" else (coordinates or DEFAULT_DEMO_COORDS)
        try:
            result = pipeline.run(build_sample(name, subject_id, coords, rng), scenario=name)
        except ApiError as e:
            logger.warning("Demo scenario %s failed: %s", name, e.message)
            entries.append(DemoEntry(scenario=name, description=preset.description, error=e.message))
            continue
        except Exception as e:
            pipeline.db.rollback()
            logger.exception("Demo scenario %s crashed", name)
            entries.append(DemoEntry(scenario=name, description=preset.description, error=str(e)))
            continue
        entries.append(
            DemoEntry(
                scenario=name,
                description=preset.description,
                status=result.classification.status_label,
                confidence=result.classification.confidence_percentage,
                alerts_triggered=count_alerts(result.timeline),
            )
        )
    return FullDemoResult(subject_id=subject_id, scenarios=entries)
