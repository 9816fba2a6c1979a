import pytest

from childguard.core.errors import ConflictError, NotFoundError
from childguard.models.alert import Alert
from childguard.models.sos_event import SosEvent
from childguard.schemas.risk import Classification, FeatureVector
from childguard.services.escalation import (
    EscalationEngine,
    PlannedAlert,
    PlannedSos,
    plan_alerts,
    recipients_snapshot,
)
from childguard.services.geofence import GeofenceBreach

from conftest import FailingFanout


def classification(code, confidence=80.0, hr_mean=100.0):
    return Classification(
        prediction_code=code,
        confidence_percentage=confidence,
        status_label={0: "normal", 1: "playing", 2: "danger"}[code],
        calculated_features=FeatureVector(hr_mean=hr_mean, hr_gradient=3, acc_mean=1.2, acc_variance=0.1),
    )


def test_normal_plans_nothing():
    assert plan_alerts("Mariam", classification(0, 99.0)) == []


def test_danger_plans_vitals_alert_and_auto_sos():
    plan = plan_alerts("Mariam", classification(2, 80.0, hr_mean=150.0))
    assert len(plan) == 2
    vitals, sos = plan
    assert (vitals.type, vitals.severity) == ("vitals", "critical")
    assert "HR=150.0 bpm" in vitals.message
    assert isinstance(sos, PlannedSos)
    assert sos.triggered_by == "auto"
    assert (sos.alert.type, sos.alert.severity) == ("sos", "critical")


@pytest.mark.parametrize("confidence, expected", [(90.0, 0), (90.1, 1), (94.0, 1)])
def test_movement_notice_only_above_ninety(confidence, expected):
    plan = plan_alerts("Mariam", classification(1, confidence))
    assert len(plan) == expected
    if plan:
        assert (plan[0].type, plan[0].severity) == ("movement", "low")
        assert plan[0].subject_only


def test_each_breach_plans_a_geofence_alert():
    breaches = [
        GeofenceBreach(fence_id=1, fence_name="Home", radius_m=200, distance_m=4999.5),
        GeofenceBreach(fence_id=2, fence_name="School", radius_m=300, distance_m=812.2),
    ]
    plan = plan_alerts("Mariam", classification(0), breaches)
    assert [(p.type, p.severity) for p in plan] == [("geofence", "high")] * 2
    assert plan[0].message == 'Mariam left safe zone "Home" (5000m away)'
    assert plan[1].distance_m == 812


def test_recipients_are_a_snapshot(db, subject):
    snapshot = recipients_snapshot(subject)
    assert snapshot == [g.id for g in subject.guardians]
    subject.guardians.pop()
    db.commit()
    assert len(snapshot) == 2


def test_execute_danger_creates_three_artifacts(db, subject, fanout):
    engine = EscalationEngine(db, fanout)
    recipients = recipients_snapshot(subject)
    plan = plan_alerts(subject.name, classification(2, 80.0, hr_mean=150.0))
    out = engine.execute(subject.id, plan, recipients, coordinates=[31.2, 30.0])

    assert [t["step"] for t in out.timeline] == ["danger_alert_created", "sos_auto_triggered", "sos_alert_created"]
    assert sorted(a.type for a in out.alerts) == ["sos", "vitals"]
    assert len(out.sos_events) == 1
    assert out.sos_events[0].triggered_by == "auto"
    assert out.sos_events[0].status == "active"
    assert out.vitals_alert_id == next(a.id for a in out.alerts if a.type == "vitals")
    assert all(a.recipients == recipients for a in out.alerts)
    assert db.query(Alert).count() == 2
    assert db.query(SosEvent).count() == 1


def test_alerts_fan_out_to_subject_and_each_guardian(db, subject, fanout):
    engine = EscalationEngine(db, fanout)
    recipients = recipients_snapshot(subject)
    engine.execute(subject.id, plan_alerts(subject.name, classification(2, 80.0)), recipients)

    expected = {f"subject:{subject.id}"} | {f"user:{g}" for g in recipients}
    assert set(fanout.channels_for("alert:new")) == expected
    assert set(fanout.channels_for("sos:new")) == expected
    _, _, payload = next(e for e in fanout.events if e[1] == "sos:new")
    assert payload["event"]["triggered_by"] == "auto"
    assert payload["alert"]["type"] == "sos"


def test_movement_notice_goes_to_subject_channel_only(db, subject, fanout):
    engine = EscalationEngine(db, fanout)
    engine.execute(subject.id, plan_alerts(subject.name, classification(1, 94.0)), recipients_snapshot(subject))
    assert fanout.channels_for("alert:new") == [f"subject:{subject.id}"]


def test_fanout_failure_does_not_undo_alerts(db, subject):
    engine = EscalationEngine(db, FailingFanout())
    out = engine.execute(subject.id, plan_alerts(subject.name, classification(2)), recipients_snapshot(subject))
    assert len(out.alerts) == 2
    assert db.query(Alert).count() == 2


def test_manual_sos_and_monotonic_resolve(db, subject, fanout):
    engine = EscalationEngine(db, fanout)
    event, alert = engine.trigger_sos(subject, triggered_by="child", coordinates=[31.2, 30.0])
    assert event.status == "active"
    assert alert.type == "sos" and alert.severity == "critical"
    assert alert.message == f"SOS triggered for {subject.name}"

    resolved = engine.resolve_sos(event.id)
    assert resolved.status == "resolved"
    assert resolved.resolved_at is not None

    with pytest.raises(ConflictError):
        engine.resolve_sos(event.id)
    with pytest.raises(NotFoundError):
        engine.resolve_sos(9999)


def test_manual_alert_defaults_to_guardians(db, subject, fanout):
    engine = EscalationEngine(db, fanout)
    alert = engine.create_alert(subject, type="custom", severity="medium", message="Pick-up delayed")
    assert alert.recipients == recipients_snapshot(subject)
    assert engine.resolve_alert(alert.id).resolved is True
