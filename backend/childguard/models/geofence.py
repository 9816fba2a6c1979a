from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, ForeignKey
from sqlalchemy.sql import func
from childguard.db import Base, JSONType


class Geofence(Base):
    __tablename__ = "geofences"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    subject_id = Column(Integer, ForeignKey("subjects.id", ondelete="CASCADE"), nullable=False, index=True)

    center_lon = Column(Float, nullable=False)
    center_lat = Column(Float, nullable=False)
    radius_m = Column(Float, nullable=False)

    # {days: [0..6] with 0 = Sunday, start: "HH:MM", end: "HH:MM"}; NULL = always on
    schedule = Column(JSONType, nullable=True)
    active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    @property
    def center(self) -> tuple[float, float]:
        return (self.center_lon, self.center_lat)
