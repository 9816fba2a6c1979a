from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from childguard.api.deps import get_escalation, load_subject
from childguard.db import get_db
from childguard.schemas.alert import AlertRead, SosCreate, SosEventRead, SosTriggered
from childguard.services.escalation import EscalationEngine

router = APIRouter(prefix="/sos", tags=["sos"])


@router.post("/", response_model=SosTriggered, status_code=201)
def trigger_sos(
    payload: SosCreate,
    db: Session = Depends(get_db),
    engine: EscalationEngine = Depends(get_escalation),
):
    subject = load_subject(db, payload.subject_id)
    event, alert = engine.trigger_sos(
        subject,
        triggered_by=payload.triggered_by.value,
        coordinates=payload.coordinates,
        image_url=payload.image_url,
    )
    return SosTriggered(
        event=SosEventRead.model_validate(event),
        alert=AlertRead.model_validate(alert),
    )


@router.patch("/{sos_id}/resolve", response_model=SosEventRead)
def resolve_sos(sos_id: int, engine: EscalationEngine = Depends(get_escalation)):
    return engine.resolve_sos(sos_id)
