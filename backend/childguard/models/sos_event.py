from sqlalchemy import Column, Integer, String, DateTime, Float, ForeignKey
from sqlalchemy.sql import func
from childguard.db import Base


class SosEvent(Base):
    __tablename__ = "sos_events"

    id = Column(Integer, primary_key=True, index=True)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)

    triggered_by = Column(String(20), nullable=False, server_default="child")  # child, device, auto
    status = Column(String(20), nullable=False, server_default="active")  # active -> resolved, never back

    lon = Column(Float, nullable=True)
    lat = Column(Float, nullable=True)
    image_url = Column(String, nullable=True)

    resolved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
