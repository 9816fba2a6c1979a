from sqlalchemy import Column, Integer, String, DateTime
from sqlalchemy.sql import func
from childguard.db import Base


class Device(Base):
    __tablename__ = "devices"

    id = Column(Integer, primary_key=True, index=True)
    serial_number = Column(String, nullable=False, unique=True)
    type = Column(String(20), nullable=False, server_default="watch")  # watch, band, tracker

    # Stamped whenever the device reports a location
    last_seen_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
