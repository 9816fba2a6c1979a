from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from childguard.db import get_db
from childguard.models.risk_assessment import RiskAssessment
from childguard.schemas.risk import RiskAssessmentRead

router = APIRouter(prefix="/risk-assessments", tags=["risk"])


@router.get("/", response_model=list[RiskAssessmentRead])
def list_risk_assessments(
    subject_id: Optional[int] = Query(None),
    status_label: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
):
    query = db.query(RiskAssessment)
    if subject_id is not None:
        query = query.filter(RiskAssessment.subject_id == subject_id)
    if status_label is not None:
        query = query.filter(RiskAssessment.status_label == status_label)
    return query.order_by(RiskAssessment.id.desc()).limit(limit).all()
