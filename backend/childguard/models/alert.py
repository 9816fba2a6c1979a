from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey
from sqlalchemy.sql import func
from childguard.db import Base, JSONType


class Alert(Base):
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)

    type = Column(String(20), nullable=False)  # geofence, sos, vitals, movement, custom
    severity = Column(String(20), nullable=False, server_default="medium")  # low, medium, high, critical

    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)
    message = Column(String, nullable=False)

    lon = Column(Float, nullable=True)
    lat = Column(Float, nullable=True)

    # Guardian ids copied at creation time
    recipients = Column(JSONType, nullable=False, default=list)
    image_url = Column(String, nullable=True)
    resolved = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
