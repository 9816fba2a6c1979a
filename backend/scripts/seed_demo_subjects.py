from childguard.db import Base, SessionLocal, engine
from childguard.main import app  # noqa: F401  (registers every table)
from childguard.models.device import Device
from childguard.models.geofence import Geofence
from childguard.models.subject import Guardian, Subject

# (lon, lat)
HOME = (31.2357, 30.0444)
SCHOOL = (31.2486, 30.0561)

DEMO_FAMILIES = [
    ("Mariam", "WATCH-0001", ["Ahmed", "Salma"]),
    ("Youssef", "WATCH-0002", ["Ahmed"]),
]


def clear_demo_data(db) -> None:
    """Delete demo subjects (cascades to their records) so we can reseed cleanly."""
    names = [name for name, _, _ in DEMO_FAMILIES]
    for subject in db.query(Subject).filter(Subject.name.in_(names)).all():
        db.delete(subject)
    serials = [serial for _, serial, _ in DEMO_FAMILIES]
    db.query(Device).filter(Device.serial_number.in_(serials)).delete(synchronize_session=False)
    db.commit()


def seed_demo_subjects(db) -> None:
    """Insert demo children with a watch, guardians, a home zone and a school-hours zone."""
    guardians = {}
    added = 0
    for name, serial, guardian_names in DEMO_FAMILIES:
        device = Device(serial_number=serial, type="watch")
        db.add(device)
        db.flush()

        subject = Subject(name=name, device_id=device.id)
        for g in guardian_names:
            if g not in guardians:
                guardians[g] = db.query(Guardian).filter(Guardian.name == g).first() or Guardian(name=g)
            subject.guardians.append(guardians[g])
        db.add(subject)
        db.flush()

        db.add_all([
            Geofence(
                name="Home",
                subject_id=subject.id,
                center_lon=HOME[0],
                center_lat=HOME[1],
                radius_m=200,
                active=True,
            ),
            Geofence(
                name="School",
                subject_id=subject.id,
                center_lon=SCHOOL[0],
                center_lat=SCHOOL[1],
                radius_m=300,
                # Sunday through Thursday, school hours
                schedule={"days": [0, 1, 2, 3, 4], "start": "07:30", "end": "14:30"},
                active=True,
            ),
        ])
        added += 1

    db.commit()
    print(f"Seeded {added} demo subjects")


def main():
    Base.metadata.create_all(bind=engine)
    db = SessionLocal()
    try:
        clear_demo_data(db)
        seed_demo_subjects(db)
    finally:
        db.close()


if __name__ == "__main__":
    main()
