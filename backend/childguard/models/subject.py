from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Table
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from childguard.db import Base


# Which guardians receive a subject's alerts
subject_guardians = Table(
    "subject_guardians",
    Base.metadata,
    Column("subject_id", Integer, ForeignKey("subjects.id", ondelete="CASCADE"), primary_key=True),
    Column("guardian_id", Integer, ForeignKey("guardians.id", ondelete="CASCADE"), primary_key=True),
)


class Guardian(Base):
    __tablename__ = "guardians"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    email = Column(String, nullable=True)

    subjects = relationship("Subject", secondary=subject_guardians, back_populates="guardians")

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Subject(Base):
    """The monitored child."""

    __tablename__ = "subjects"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)

    device_id = Column(Integer, ForeignKey("devices.id", ondelete="SET NULL"), nullable=True)

    guardians = relationship(
        "Guardian",
        secondary=subject_guardians,
        back_populates="subjects",
        order_by="Guardian.id",
    )

    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
