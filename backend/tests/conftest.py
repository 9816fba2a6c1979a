import os

# Use in-memory sqlite for tests; must be set before the engine is created
os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("CLASSIFIER_MODE", "local")

from datetime import datetime  # noqa: E402

import pytest  # noqa: E402

from childguard.db import Base, SessionLocal, engine  # noqa: E402
from childguard.main import app  # noqa: E402,F401  (registers every table)
from childguard.models.device import Device  # noqa: E402
from childguard.models.geofence import Geofence  # noqa: E402
from childguard.models.subject import Guardian, Subject  # noqa: E402

# Cairo city center, (lon, lat)
CAIRO = (31.2357, 30.0444)
# A Monday afternoon
MONDAY_NOON = datetime(2026, 10, 19, 12, 0)


class RecordingFanout:
    def __init__(self):
        self.events = []

    def publish(self, channel, event, payload):
        self.events.append((channel, event, payload))

    def channels_for(self, event):
        return [c for c, e, _ in self.events if e == event]


class FailingFanout:
    def publish(self, channel, event, payload):
        raise RuntimeError("socket server down")


@pytest.fixture(autouse=True)
def fresh_schema():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fanout():
    return RecordingFanout()


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        yield c


def make_subject(db, name="Mariam", guardians=2, with_device=True):
    device = None
    if with_device:
        device = Device(serial_number=f"SN-{name}", type="watch")
        db.add(device)
        db.flush()
    subject = Subject(name=name, device_id=device.id if device else None)
    subject.guardians = [Guardian(name=f"Guardian {i} of {name}") for i in range(guardians)]
    db.add(subject)
    db.commit()
    db.refresh(subject)
    return subject


def make_geofence(db, subject, name="Home", center=CAIRO, radius_m=200.0, schedule=None, active=True):
    fence = Geofence(
        name=name,
        subject_id=subject.id,
        center_lon=center[0],
        center_lat=center[1],
        radius_m=radius_m,
        schedule=schedule,
        active=active,
    )
    db.add(fence)
    db.commit()
    db.refresh(fence)
    return fence


@pytest.fixture
def subject(db):
    return make_subject(db)
