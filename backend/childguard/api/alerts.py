from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from childguard.api.deps import get_escalation, load_subject
from childguard.db import get_db
from childguard.models.alert import Alert
from childguard.schemas.alert import AlertCreate, AlertRead
from childguard.services.escalation import EscalationEngine

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.get("/", response_model=list[AlertRead])
def list_alerts(
    subject_id: Optional[int] = Query(None),
    resolved: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
):
    query = db.query(Alert)
    if subject_id is not None:
        query = query.filter(Alert.subject_id == subject_id)
    if resolved is not None:
        query = query.filter(Alert.resolved.is_(resolved))
    # Most recent first
    return query.order_by(Alert.id.desc()).limit(200).all()


@router.post("/", response_model=AlertRead, status_code=201)
def create_alert(
    payload: AlertCreate,
    db: Session = Depends(get_db),
    engine: EscalationEngine = Depends(get_escalation),
):
    subject = load_subject(db, payload.subject_id)
    return engine.create_alert(
        subject,
        type=payload.type.value,
        severity=payload.severity.value,
        message=payload.message,
        coordinates=payload.coordinates,
        recipients=payload.recipients,
        image_url=payload.image_url,
    )


@router.patch("/{alert_id}/resolve", response_model=AlertRead)
def resolve_alert(alert_id: int, engine: EscalationEngine = Depends(get_escalation)):
    return engine.resolve_alert(alert_id)
