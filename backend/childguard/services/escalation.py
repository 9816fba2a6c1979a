"""Alert and SOS escalation.

``plan_alerts`` decides, without touching the database, which artifacts a
classification and a set of geofence breaches call for:

  - one geofence/high alert per breach
  - danger: a vitals/critical alert, an auto SOS event and an sos/critical
    alert, always all three
  - playing above 90% confidence: one movement/low notice
  - normal: nothing

``EscalationEngine`` persists a plan one record at a time and pushes each
record to the fanout as soon as it is committed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from childguard.core import constants as C
from childguard.core.errors import ConflictError, NotFoundError, PersistenceFailure
from childguard.models.alert import Alert
from childguard.models.sos_event import SosEvent
from childguard.models.subject import Subject
from childguard.schemas.alert import AlertRead, SosEventRead
from childguard.schemas.risk import Classification
from childguard.services.fanout import (
    ALERT_NEW,
    SOS_NEW,
    NotificationFanout,
    publish_safely,
    subject_channel,
    user_channel,
)
from childguard.services.features import round_half_up
from childguard.services.geofence import GeofenceBreach

logger = logging.getLogger(__name__)


def recipients_snapshot(subject: Subject) -> list[int]:
    """Guardian ids at this moment; later guardian changes do not affect it."""
    return [g.id for g in subject.guardians]


@dataclass(frozen=True)
class PlannedAlert:
    type: str
    severity: str
    message: str
    step: str
    # subject_only: notify the subject channel but not each guardian
    subject_only: bool = False
    fence_name: Optional[str] = None
    distance_m: Optional[int] = None


@dataclass(frozen=True)
class PlannedSos:
    """An auto-triggered SOS event together with its sos/critical alert."""

    alert: PlannedAlert
    triggered_by: str = "auto"
    step: str = "sos_auto_triggered"


PlannedArtifact = Union[PlannedAlert, PlannedSos]


def plan_alerts(
    subject_name: str,
    classification: Optional[Classification] = None,
    breaches: Optional[list[GeofenceBreach]] = None,
) -> list[PlannedArtifact]:
    plan: list[PlannedArtifact] = []

    for b in breaches or []:
        dist = int(round_half_up(b.distance_m))
        plan.append(
            PlannedAlert(
                type="geofence",
                severity="high",
                message=f'{subject_name} left safe zone "{b.fence_name}" ({dist}m away)',
                step="geofence_breach",
                fence_name=b.fence_name,
                distance_m=dist,
            )
        )

    if classification is None:
        return plan

    hr_mean = classification.calculated_features.hr_mean
    if classification.prediction_code == C.DANGER:
        plan.append(
            PlannedAlert(
                type="vitals",
                severity="critical",
                message=(
                    f"DANGER detected for {subject_name}: {classification.status_label} "
                    f"({classification.confidence_percentage}% confidence). HR={hr_mean} bpm"
                ),
                step="danger_alert_created",
            )
        )
        plan.append(
            PlannedSos(
                alert=PlannedAlert(
                    type="sos",
                    severity="critical",
                    message=f"AUTO SOS for {subject_name}: AI detected danger pattern",
                    step="sos_alert_created",
                )
            )
        )
    elif (
        classification.prediction_code == C.PLAYING
        and classification.confidence_percentage > C.MOVEMENT_NOTICE_CONFIDENCE
    ):
        plan.append(
            PlannedAlert(
                type="movement",
                severity="low",
                message=f"{subject_name} is very active (playing/running). HR={hr_mean} bpm",
                step="activity_alert",
                subject_only=True,
            )
        )
    return plan


def alert_payload(alert: Alert) -> dict[str, Any]:
    return AlertRead.model_validate(alert).model_dump(mode="json")


def sos_payload(event: SosEvent) -> dict[str, Any]:
    return SosEventRead.model_validate(event).model_dump(mode="json")


@dataclass
class EscalationOutcome:
    timeline: list[dict[str, Any]] = field(default_factory=list)
    alerts: list[Alert] = field(default_factory=list)
    sos_events: list[SosEvent] = field(default_factory=list)
    vitals_alert_id: Optional[int] = None


class EscalationEngine:
    def __init__(self, db: Session, fanout: NotificationFanout):
        self.db = db
        self.fanout = fanout

    # --- persistence ---

    def _save(self, record, what: str):
        try:
            self.db.add(record)
            self.db.commit()
            self.db.refresh(record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to save %s: %s", what, e)
            raise PersistenceFailure(f"Failed to save {what}", details={"record": what})
        return record

    def _new_alert(self, subject_id: int, planned: PlannedAlert, coordinates, recipients: list[int]) -> Alert:
        lon, lat = coordinates if coordinates else (None, None)
        alert = Alert(
            type=planned.type,
            severity=planned.severity,
            subject_id=subject_id,
            message=planned.message,
            lon=lon,
            lat=lat,
            recipients=list(recipients),
        )
        return self._save(alert, f"{planned.type} alert")

    # --- fanout ---

    def _channels(self, subject_id: int, recipients: list[int], subject_only: bool = False) -> list[str]:
        channels = [subject_channel(subject_id)]
        if not subject_only:
            channels.extend(user_channel(r) for r in recipients)
        return channels

    def _announce_alert(self, alert: Alert, subject_only: bool = False) -> None:
        publish_safely(
            self.fanout,
            self._channels(alert.subject_id, alert.recipients or [], subject_only),
            ALERT_NEW,
            {"alert": alert_payload(alert)},
        )

    def _announce_sos(self, event: SosEvent, alert: Alert) -> None:
        publish_safely(
            self.fanout,
            self._channels(event.subject_id, alert.recipients or []),
            SOS_NEW,
            {"event": sos_payload(event), "alert": alert_payload(alert)},
        )

    # --- pipeline escalation ---

    def execute(
        self,
        subject_id: int,
        plan: list[PlannedArtifact],
        recipients: list[int],
        coordinates=None,
    ) -> EscalationOutcome:
        """Persist and announce each planned artifact in order."""
        out = EscalationOutcome()
        for item in plan:
            if isinstance(item, PlannedSos):
                lon, lat = coordinates if coordinates else (None, None)
                event = self._save(
                    SosEvent(subject_id=subject_id, triggered_by=item.triggered_by, status="active", lon=lon, lat=lat),
                    "SOS event",
                )
                out.sos_events.append(event)
                out.timeline.append({"step": item.step, "sos_id": event.id})

                alert = self._new_alert(subject_id, item.alert, coordinates, recipients)
                out.alerts.append(alert)
                out.timeline.append({"step": item.alert.step, "alert_id": alert.id})
                self._announce_sos(event, alert)
                continue

            alert = self._new_alert(subject_id, item, coordinates, recipients)
            out.alerts.append(alert)
            entry: dict[str, Any] = {"step": item.step, "alert_id": alert.id}
            if item.type == "geofence":
                entry.update(fence=item.fence_name, distance=item.distance_m)
            else:
                entry["severity"] = item.severity
            if item.type == "vitals":
                out.vitals_alert_id = alert.id
            out.timeline.append(entry)
            self._announce_alert(alert, subject_only=item.subject_only)
        return out

    # --- manual actions ---

    def create_alert(
        self,
        subject: Subject,
        type: str,
        severity: str,
        message: str,
        coordinates=None,
        recipients: Optional[list[int]] = None,
        image_url: Optional[str] = None,
    ) -> Alert:
        if recipients is None:
            recipients = recipients_snapshot(subject)
        lon, lat = coordinates if coordinates else (None, None)
        alert = self._save(
            Alert(
                type=type,
                severity=severity,
                subject_id=subject.id,
                message=message,
                lon=lon,
                lat=lat,
                recipients=list(recipients),
                image_url=image_url,
            ),
            f"{type} alert",
        )
        self._announce_alert(alert)
        return alert

    def resolve_alert(self, alert_id: int) -> Alert:
        alert = self.db.get(Alert, alert_id)
        if alert is None:
            raise NotFoundError("Alert not found", details={"alert_id": alert_id})
        if not alert.resolved:
            alert.resolved = True
            self._save(alert, "alert")
        return alert

    def trigger_sos(
        self,
        subject: Subject,
        triggered_by: str = "child",
        coordinates=None,
        image_url: Optional[str] = None,
    ) -> tuple[SosEvent, Alert]:
        lon, lat = coordinates if coordinates else (None, None)
        event = self._save(
            SosEvent(
                subject_id=subject.id,
                triggered_by=triggered_by,
                status="active",
                lon=lon,
                lat=lat,
                image_url=image_url,
            ),
            "SOS event",
        )
        planned = PlannedAlert(type="sos", severity="critical", message=f"SOS triggered for {subject.name}", step="sos_alert_created")
        alert = self._new_alert(subject.id, planned, coordinates, recipients_snapshot(subject))
        self._announce_sos(event, alert)
        return event, alert

    def resolve_sos(self, sos_id: int) -> SosEvent:
        """Move an SOS from active to resolved. Happens at most once."""
        try:
            updated = (
                self.db.query(SosEvent)
                .filter(SosEvent.id == sos_id, SosEvent.status == "active")
                .update(
                    {"status": "resolved", "resolved_at": datetime.now(timezone.utc)},
                    synchronize_session=False,
                )
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Failed to resolve SOS %s: %s", sos_id, e)
            raise PersistenceFailure("Failed to resolve SOS event", details={"sos_id": sos_id})

        event = self.db.get(SosEvent, sos_id)
        if event is None:
            raise NotFoundError("SOS not found", details={"sos_id": sos_id})
        if not updated:
            raise ConflictError("SOS event already resolved", details={"sos_id": sos_id})
        self.db.refresh(event)
        return event
