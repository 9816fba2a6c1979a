from datetime import datetime

import pytest

from childguard.models.geofence import Geofence
from childguard.services.geofence import distance_meters, find_breaches, is_breached, is_within_schedule

CENTER = (31.2357, 30.0444)
NOON = datetime(2026, 10, 19, 12, 0)  # Monday


def fence(radius_m=200.0, schedule=None, active=True, name="School"):
    return Geofence(
        id=1,
        name=name,
        subject_id=1,
        center_lon=CENTER[0],
        center_lat=CENTER[1],
        radius_m=radius_m,
        schedule=schedule,
        active=active,
    )


def north_of(point, meters):
    # One degree of latitude on the 6,371 km sphere
    return (point[0], point[1] + meters / 111194.92664455873)


def test_distance_one_degree_latitude():
    assert distance_meters((0.0, 0.0), (0.0, 1.0)) == pytest.approx(111194.93, abs=0.01)


def test_distance_is_symmetric_and_zero_on_self():
    p = (29.0, 28.0)
    assert distance_meters(CENTER, CENTER) == 0
    assert distance_meters(CENTER, p) == pytest.approx(distance_meters(p, CENTER))


def test_point_exactly_on_radius_is_not_a_breach():
    point = north_of(CENTER, 500)
    d = distance_meters(CENTER, point)
    assert not is_breached(fence(radius_m=d), point, NOON)


def test_point_one_meter_past_radius_is_a_breach():
    point = north_of(CENTER, 501)
    radius = distance_meters(CENTER, point) - 1
    assert is_breached(fence(radius_m=radius), point, NOON)


def test_inactive_fence_never_breaches():
    assert not is_breached(fence(active=False), (29.0, 28.0), NOON)


def test_out_of_schedule_fence_never_breaches():
    school_hours = {"days": [1, 2, 3, 4, 5], "start": "07:00", "end": "16:00"}
    evening = datetime(2026, 10, 19, 20, 0)
    assert is_breached(fence(schedule=school_hours), (29.0, 28.0), NOON)
    assert not is_breached(fence(schedule=school_hours), (29.0, 28.0), evening)


def test_no_schedule_is_always_active():
    assert is_within_schedule(None, NOON)
    assert is_within_schedule({}, datetime(2026, 10, 18, 3, 0))


@pytest.mark.parametrize(
    "hour, expected",
    [(23, True), (2, True), (12, False), (22, True), (6, True), (7, False)],
)
def test_schedule_wraps_past_midnight(hour, expected):
    night = {"start": "22:00", "end": "06:00"}
    assert is_within_schedule(night, datetime(2026, 10, 19, hour, 0)) is expected


def test_schedule_weekdays_start_on_sunday():
    weekdays = {"days": [1, 2, 3, 4, 5]}
    sunday = datetime(2026, 10, 18, 12, 0)
    assert is_within_schedule(weekdays, NOON)
    assert not is_within_schedule(weekdays, sunday)
    assert is_within_schedule({"days": [0]}, sunday)


def test_schedule_without_times_only_checks_days():
    assert is_within_schedule({"days": [1], "start": None, "end": None}, datetime(2026, 10, 19, 3, 0))


def test_breach_refires_on_every_sample():
    # No in/out transition tracking: staying outside raises a breach each time
    fences = [fence(radius_m=200)]
    far = north_of(CENTER, 5000)
    first = find_breaches(fences, far, NOON)
    second = find_breaches(fences, far, NOON)
    assert len(first) == 1 and len(second) == 1
    assert first[0].fence_name == "School"
    assert first[0].distance_m == pytest.approx(5000, abs=1)


def test_find_breaches_skips_fences_that_contain_point():
    fences = [fence(radius_m=10000, name="District"), fence(radius_m=200, name="Home")]
    breaches = find_breaches(fences, north_of(CENTER, 1000), NOON)
    assert [b.fence_name for b in breaches] == ["Home"]
