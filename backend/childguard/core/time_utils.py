from datetime import datetime, time


def hhmm_to_time(hhmm: str):
    """Parse schedule strings into datetime.time.

    Accepts 'HH:MM' and 'HH:MM:SS' (24h). Returns None for empty strings.
    """
    if hhmm is None:
        return None
    s = hhmm.strip()
    if s == "":
        return None

    for fmt in ("%H:%M", "%H:%M:%S"):
        try:
            return datetime.strptime(s, fmt).time()
        except ValueError:
            continue
    raise ValueError("Schedule times must be in 'HH:MM' format")


def minutes_of_day(t: time) -> int:
    return t.hour * 60 + t.minute


def sunday_weekday(dt: datetime) -> int:
    """Weekday number with Sunday = 0 ... Saturday = 6."""
    # datetime.weekday(): Monday = 0, Sunday = 6
    return (dt.weekday() + 1) % 7


def to_local_datetime(dt, tz_name: str | None = None):
    """Convert a datetime (assume UTC if naive) to local or given tz.

    - If `tz_name` is 'local' or None: use system local timezone.
    - If `tz_name` is IANA tz name (e.g., 'Africa/Cairo'): use that.
    """
    from datetime import timezone
    from zoneinfo import ZoneInfo

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    if tz_name and tz_name != "local":
        return dt.astimezone(ZoneInfo(tz_name))
    return dt.astimezone()
