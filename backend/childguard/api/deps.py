from fastapi import Depends, Request
from sqlalchemy.orm import Session

from childguard.db import get_db
from childguard.core.errors import NotFoundError
from childguard.models.subject import Subject
from childguard.services.escalation import EscalationEngine
from childguard.services.fanout import NotificationFanout
from childguard.services.pipeline import TelemetryPipeline


def get_fanout(request: Request) -> NotificationFanout:
    return request.app.state.fanout


def get_pipeline(
    request: Request,
    db: Session = Depends(get_db),
    fanout: NotificationFanout = Depends(get_fanout),
) -> TelemetryPipeline:
    return TelemetryPipeline(db, request.app.state.classifier, fanout)


def get_escalation(
    db: Session = Depends(get_db),
    fanout: NotificationFanout = Depends(get_fanout),
) -> EscalationEngine:
    return EscalationEngine(db, fanout)


def load_subject(db: Session, subject_id: int) -> Subject:
    subject = db.get(Subject, subject_id)
    if subject is None:
        raise NotFoundError("Subject not found", details={"subject_id": subject_id})
    return subject
