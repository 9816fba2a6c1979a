"""Telemetry pipeline: one wearable sample from raw payload to alerts.

Steps run strictly in order and stop at the first unrecoverable failure:

  subject lookup -> classification -> risk assessment saved
  -> [location saved -> geofence check]      (only with coordinates)
  -> [danger escalation + assessment backlink] (danger only)
  -> [movement notice]                       (confident playing only)

Each write commits on its own; a later failure leaves earlier records in
place. Every persisted side effect is appended to the returned timeline
in the order it happened. Re-sending the same sample creates new records
every time; samples carry no deduplication key.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from childguard.core.config import settings
from childguard.core.errors import NotFoundError, PersistenceFailure
from childguard.core.time_utils import to_local_datetime
from childguard.models.risk_assessment import RiskAssessment
from childguard.models.subject import Subject
from childguard.schemas.location import LocationRead
from childguard.schemas.risk import RiskAssessmentRead
from childguard.schemas.telemetry import ClassificationSummary, PipelineResult, TelemetrySample
from childguard.services.classifier import RiskClassifier
from childguard.services.escalation import EscalationEngine, plan_alerts, recipients_snapshot
from childguard.services.fanout import (
    LOCATION_UPDATE,
    RISK_ASSESSED,
    NotificationFanout,
    publish_safely,
    subject_channel,
)
from childguard.services.geofence import find_breaches
from childguard.services.locations import active_geofences, save_location

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    return to_local_datetime(datetime.now(timezone.utc), settings.timezone)


class TelemetryPipeline:
    def __init__(self, db: Session, classifier: RiskClassifier, fanout: NotificationFanout, clock=None):
        self.db = db
        self.classifier = classifier
        self.fanout = fanout
        self.clock = clock or local_now
        self.escalation = EscalationEngine(db, fanout)

    def _get_subject(self, subject_id: int) -> Subject:
        subject = self.db.get(Subject, subject_id)
        if subject is None:
            raise NotFoundError("Subject not found", details={"subject_id": subject_id})
        return subject

    def _save_assessment(self, sample: TelemetrySample, result) -> RiskAssessment:
        c = result.classification
        doc = RiskAssessment(
            subject_id=sample.subject_id,
            source=sample.source.value,
            raw_payload={
                "heart_rate_raw": list(sample.heart_rate_raw),
                "accelerometer_raw": list(sample.accelerometer_raw),
            },
            prediction_code=c.prediction_code,
            confidence_percentage=c.confidence_percentage,
            status_label=c.status_label,
            calculated_features=c.calculated_features.model_dump(),
            model_url=result.model_url,
        )
        try:
            self.db.add(doc)
            self.db.commit()
            self.db.refresh(doc)
        except SQLAlchemyError:
            self.db.rollback()
            raise PersistenceFailure("Failed to save risk assessment", details={"subject_id": sample.subject_id})
        return doc

    def _link_alert(self, doc: RiskAssessment, alert_id: int) -> None:
        try:
            doc.triggered_alert_id = alert_id
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise PersistenceFailure("Failed to link alert to risk assessment", details={"risk_assessment_id": doc.id})

    def run(self, sample: TelemetrySample, scenario: Optional[str] = None) -> PipelineResult:
        subject = self._get_subject(sample.subject_id)
        # One snapshot per run; guardian edits mid-run do not leak in
        recipients = recipients_snapshot(subject)
        subject_ch = [subject_channel(subject.id)]
        timeline: list[dict[str, Any]] = []

        result = self.classifier.assess(sample.heart_rate_raw, sample.accelerometer_raw)
        c = result.classification
        timeline.append({
            "step": "ai_classification",
            "model_url": result.model_url,
            "result": c.model_dump(),
        })

        doc = self._save_assessment(sample, result)
        timeline.append({"step": "risk_assessment_saved", "id": doc.id})
        publish_safely(
            self.fanout, subject_ch, RISK_ASSESSED,
            {"subject_id": subject.id, "assessment": RiskAssessmentRead.model_validate(doc).model_dump(mode="json")},
        )

        location_id = None
        breaches = []
        coords = sample.coordinates
        if coords:
            location = save_location(self.db, subject.id, coords, device_id=subject.device_id, accuracy=10.0)
            location_id = location.id
            timeline.append({"step": "location_saved", "id": location.id, "device_id": subject.device_id})
            publish_safely(
                self.fanout, subject_ch, LOCATION_UPDATE,
                {"subject_id": subject.id, "location": LocationRead.model_validate(location).model_dump(mode="json")},
            )
            breaches = find_breaches(active_geofences(self.db, subject.id), tuple(coords), self.clock())

        plan = plan_alerts(subject.name, c, breaches)
        outcome = self.escalation.execute(subject.id, plan, recipients, coords)
        timeline.extend(outcome.timeline)

        if outcome.vitals_alert_id is not None:
            self._link_alert(doc, outcome.vitals_alert_id)
            timeline.append({"step": "risk_assessment_linked", "id": doc.id, "alert_id": outcome.vitals_alert_id})

        logger.info(
            "Pipeline done for subject %s: %s (%.1f%%), %d alerts",
            subject.id, c.status_label, c.confidence_percentage, len(outcome.alerts),
        )
        return PipelineResult(
            scenario=scenario or "custom",
            classification=ClassificationSummary(
                prediction_code=c.prediction_code,
                status_label=c.status_label,
                confidence_percentage=c.confidence_percentage,
            ),
            features=c.calculated_features,
            risk_assessment_id=doc.id,
            location_id=location_id,
            triggered_alert_id=outcome.vitals_alert_id,
            timeline=timeline,
        )
