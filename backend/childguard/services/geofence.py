"""Geofence evaluation: distance, schedule windows and breach detection.

Every active, in-schedule fence is re-checked on every location sample and
a breach is reported each time the point is outside it. There is no
in/out transition tracking, so a child who stays outside keeps producing
breaches.
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from childguard.core.constants import EARTH_RADIUS_M
from childguard.core.time_utils import hhmm_to_time, minutes_of_day, sunday_weekday
from childguard.models.geofence import Geofence

Point = tuple[float, float]  # (lon, lat)


def distance_meters(a: Point, b: Point) -> float:
    """Return great-circle distance in meters between two (lon, lat) points."""
    lon1, lat1 = a
    lon2, lat2 = b
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlambda = math.radians(lon2 - lon1)
    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlambda / 2) ** 2
    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(min(1.0, h)))


def is_within_schedule(schedule: Optional[dict], now: datetime) -> bool:
    """True when ``now`` falls inside the fence's active window.

    No schedule means always active. The weekday list uses 0 = Sunday.
    A window whose start is after its end wraps past midnight
    (22:00-06:00 covers the night). Both bounds are inclusive.
    """
    if not schedule:
        return True

    days = schedule.get("days")
    if days is not None and sunday_weekday(now) not in days:
        return False

    start = hhmm_to_time(schedule.get("start"))
    end = hhmm_to_time(schedule.get("end"))
    if start is None or end is None:
        return True

    minutes = now.hour * 60 + now.minute
    lo, hi = minutes_of_day(start), minutes_of_day(end)
    if lo <= hi:
        return lo <= minutes <= hi
    return minutes >= lo or minutes <= hi


def is_breached(fence: Geofence, point: Point, now: datetime) -> bool:
    if not fence.active or not is_within_schedule(fence.schedule, now):
        return False
    return distance_meters(fence.center, point) > fence.radius_m


@dataclass(frozen=True)
class GeofenceBreach:
    fence_id: int
    fence_name: str
    radius_m: float
    distance_m: float


def find_breaches(fences: Iterable[Geofence], point: Point, now: datetime) -> list[GeofenceBreach]:
    breaches = []
    for fence in fences:
        if not is_breached(fence, point, now):
            continue
        breaches.append(
            GeofenceBreach(
                fence_id=fence.id,
                fence_name=fence.name,
                radius_m=fence.radius_m,
                distance_m=distance_meters(fence.center, point),
            )
        )
    return breaches
