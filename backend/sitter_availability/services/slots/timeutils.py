# backend/sitter_availability/services/slots/timeutils.py
"""
Date / time / interval helpers.

Every day boundary is computed in an explicit zone (ZoneInfo), never in
the host process's local zone. Minutes-of-day are sitter-local, 0..1440.
"""

import re
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

MINUTES_PER_DAY = 24 * 60

ISO_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
TIME_STR_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def parse_iso_date(value) -> date | None:
    """Parse "YYYY-MM-DD" (or pass a date through). None if invalid."""
    if isinstance(value, datetime):
        return None
    if isinstance(value, date):
        return value
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not ISO_DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def time_str_to_minutes(value: str) -> int | None:
    """Convert "HH:MM" to minutes since midnight ("24:00" → 1440)."""
    m = TIME_STR_RE.match(value.strip())
    if not m:
        return None
    hour, minute = int(m.group(1)), int(m.group(2))
    if minute >= 60:
        return None
    total = hour * 60 + minute
    if total > MINUTES_PER_DAY:
        return None
    return total


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to "HH:MM"."""
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def iter_dates(date_start: date, date_end: date) -> list[date]:
    """Dates in [date_start, date_end], both inclusive."""
    dates = []
    current = date_start
    while current <= date_end:
        dates.append(current)
        current += timedelta(days=1)
    return dates


def local_now(tz: ZoneInfo, now: datetime | None = None) -> datetime:
    """Current instant expressed in tz. Naive `now` is taken as UTC."""
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz)


def local_today(tz: ZoneInfo, now: datetime | None = None) -> date:
    return local_now(tz, now).date()


def minute_to_datetime(day: date, minute: int, tz: ZoneInfo) -> datetime:
    """Wall-clock minute of a local day as an aware datetime (1440 → next midnight)."""
    midnight = datetime(day.year, day.month, day.day, tzinfo=tz)
    if minute >= MINUTES_PER_DAY:
        nxt = day + timedelta(days=1)
        return datetime(nxt.year, nxt.month, nxt.day, tzinfo=tz)
    return midnight.replace(hour=minute // 60, minute=minute % 60)


def local_day_bounds(day: date, tz: ZoneInfo) -> tuple[datetime, datetime]:
    """[start, end) instants of a local calendar day."""
    return minute_to_datetime(day, 0, tz), minute_to_datetime(day, MINUTES_PER_DAY, tz)


def ensure_aware(dt: datetime) -> datetime:
    """Naive datetimes coming from storage are UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def parse_instant(value) -> datetime | None:
    """Parse a stored ISO-8601 instant ("Z" suffix allowed)."""
    if isinstance(value, datetime):
        return ensure_aware(value)
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    try:
        return ensure_aware(datetime.fromisoformat(raw))
    except ValueError:
        return None


def to_utc_iso(dt: datetime) -> str:
    """Canonical storage format: UTC, seconds precision, +00:00 offset."""
    return ensure_aware(dt).astimezone(timezone.utc).replace(microsecond=0).isoformat()


def overlaps(a_start, a_end, b_start, b_end) -> bool:
    """Half-open intervals [a_start, a_end) and [b_start, b_end) intersect."""
    return a_start < b_end and b_start < a_end

