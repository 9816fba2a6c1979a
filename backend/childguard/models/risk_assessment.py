from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.sql import func
from childguard.db import Base, JSONType


class RiskAssessment(Base):
    __tablename__ = "risk_assessments"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)

    source = Column(String(20), nullable=False, server_default="watch")  # watch, band, manual, device

    # {heart_rate_raw: [...], accelerometer_raw: [...]}
    raw_payload = Column(JSONType, nullable=False)

    prediction_code = Column(Integer, nullable=False)
    confidence_percentage = Column(Float, nullable=False)
    status_label = Column(String(20), nullable=False)
    calculated_features = Column(JSONType, nullable=False)

    # Remote model URL or "local-simulator"
    model_url = Column(String, nullable=True)

    # Set once, only to the vitals alert raised for this assessment
    triggered_alert_id = Column(Integer, ForeignKey("alerts.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
