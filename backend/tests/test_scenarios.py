import random

import pytest

from childguard.core.errors import ValidationError
from childguard.services.classifier import LocalRiskClassifier
from childguard.services.fanout import NullFanout
from childguard.services.pipeline import TelemetryPipeline
from childguard.services.scenarios import (
    FAR_AWAY_COORDS,
    SCENARIO_PRESETS,
    build_sample,
    count_alerts,
    generate_acc_raw,
    generate_hr_raw,
    get_preset,
    run_full_demo,
    run_scenario,
)

from conftest import MONDAY_NOON, make_geofence


def test_hr_window_is_whole_bpm_within_limits():
    hr = generate_hr_raw(85, rng=random.Random(7))
    assert len(hr) == 30
    assert all(40 <= v <= 250 and v == int(v) for v in hr)
    assert abs(sum(hr) / len(hr) - 85) < 5


def test_hr_clamped_at_extremes():
    assert set(generate_hr_raw(400, length=10, rng=random.Random(1))) == {250.0}
    assert set(generate_hr_raw(0, length=10, rng=random.Random(1))) == {40.0}


def test_acc_window_is_non_negative_three_decimals():
    acc = generate_acc_raw(0.1, 1.5, rng=random.Random(3))
    assert len(acc) == 60
    assert all(v >= 0 for v in acc)
    assert all(round(v, 3) == v for v in acc)


def test_same_seed_same_window():
    assert generate_acc_raw(1.1, 0.05, rng=random.Random(42)) == generate_acc_raw(1.1, 0.05, rng=random.Random(42))


def test_six_presets():
    assert list(SCENARIO_PRESETS) == [
        "normal",
        "playing",
        "danger_struggle",
        "danger_freeze",
        "geofence_breach",
        "sos",
    ]


def test_unknown_preset_is_rejected():
    with pytest.raises(ValidationError) as exc:
        get_preset("panic")
    assert "normal" in exc.value.message


def test_geofence_preset_defaults_to_far_away():
    sample = build_sample("geofence_breach", 1, rng=random.Random(0))
    assert sample.coordinates == FAR_AWAY_COORDS
    assert build_sample("normal", 1, rng=random.Random(0)).coordinates is None


def test_count_alerts_ignores_backlink_step():
    timeline = [
        {"step": "ai_classification"},
        {"step": "risk_assessment_saved", "id": 1},
        {"step": "danger_alert_created", "alert_id": 1},
        {"step": "sos_auto_triggered", "sos_id": 1},
        {"step": "sos_alert_created", "alert_id": 2},
        {"step": "risk_assessment_linked", "id": 1, "alert_id": 1},
    ]
    assert count_alerts(timeline) == 2


def pipeline(db):
    return TelemetryPipeline(db, LocalRiskClassifier(), NullFanout(), clock=lambda: MONDAY_NOON)


def test_run_scenario_reports_generated_data(db, subject):
    result = run_scenario(pipeline(db), "normal", subject.id, rng=random.Random(5))
    assert result.scenario == "normal"
    assert result.scenario_description == SCENARIO_PRESETS["normal"].description
    assert len(result.generated_data["heart_rate_raw_sample"]) == 5
    assert result.classification.status_label == "normal"


def test_full_demo_runs_every_preset(db, subject):
    demo = run_full_demo(pipeline(db), subject.id, rng=random.Random(11))
    assert [e.scenario for e in demo.scenarios] == list(SCENARIO_PRESETS)
    assert all(e.error is None and e.status in ("normal", "playing", "danger") for e in demo.scenarios)


def test_full_demo_collects_errors_per_scenario(db):
    demo = run_full_demo(pipeline(db), 404)
    assert len(demo.scenarios) == 6
    assert all(e.error == "Subject not found" for e in demo.scenarios)


def test_full_demo_records_unexpected_errors(db, subject):
    # Written straight to the table, so the schedule never went through validation
    make_geofence(db, subject, schedule={"days": [0, 1, 2, 3, 4, 5, 6], "start": "7am", "end": "16:00"})
    demo = run_full_demo(pipeline(db), subject.id, rng=random.Random(3))

    assert [e.scenario for e in demo.scenarios] == list(SCENARIO_PRESETS)
    assert all(e.error == "Schedule times must be in 'HH:MM' format" for e in demo.scenarios)
