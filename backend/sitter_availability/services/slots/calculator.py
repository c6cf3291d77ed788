# backend/sitter_availability/services/slots/calculator.py
"""
Pure availability calculation over read-only snapshots.

No I/O here: the engine (availability.py) fetches rules, exceptions,
bookings and config, then hands them to these functions.

Rejection order, first match wins:
  lead time → booking conflict → exception / rule gap → other
"""

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from .config import EngineConfig
from .domain import (
    ACTIVE_BOOKING_STATUSES,
    BoardingDayVerdict,
    BookingStatus,
    BookingWindow,
    CalendarDay,
    DateException,
    ServiceConfig,
    Slot,
    TimeRange,
    WeeklyRule,
)
from .ranges import covers_whole_day
from .reasons import (
    BEYOND_HORIZON,
    BOOKING_CONFIRMED,
    BOOKING_PENDING,
    EXCEPTION_BLOCKED,
    EXCEPTION_NO_HOURS,
    LEAD_TIME,
    OUTSIDE_RULE,
    RULE_MISSING,
    SERVICE_DISABLED,
    classify,
)
from .timeutils import local_day_bounds, local_today, minute_to_datetime, overlaps


@dataclass(frozen=True)
class DayBase:
    """Resolved base availability of one day."""
    ranges: tuple[TimeRange, ...]
    blocked: bool = False
    from_exception: bool = False


def resolve_day(
    day: date,
    rules: Sequence[WeeklyRule],
    exception: DateException | None,
) -> DayBase:
    """
    Exception for the date wins over the weekly rule.

    A blocked exception keeps the weekly ranges so that the slots it
    removes can still be shown with a reason.
    """
    weekday = day.weekday()
    weekly = tuple(sorted(
        r for rule in rules if rule.day_of_week == weekday for r in rule.ranges
    ))

    if exception is not None:
        if exception.is_blocked:
            return DayBase(ranges=weekly, blocked=True, from_exception=True)
        return DayBase(ranges=tuple(sorted(exception.ranges)), from_exception=True)

    return DayBase(ranges=weekly)


def partition(ranges: Sequence[TimeRange], duration: int) -> list[TimeRange]:
    """Cut each range into back-to-back candidates; drop the overhanging tail."""
    out: list[TimeRange] = []
    for r in ranges:
        t = r.start_min
        while t + duration <= r.end_min:
            out.append(TimeRange(t, t + duration))
            t += duration
    return out


def active_bookings(
    bookings: Sequence[BookingWindow],
    now: datetime,
    pending_hold_minutes: int | None = None,
) -> list[BookingWindow]:
    """Pending / confirmed bookings; pending ones expire after the hold."""
    out = []
    for b in bookings:
        if b.status not in ACTIVE_BOOKING_STATUSES:
            continue
        if (
            b.status == BookingStatus.PENDING.value
            and pending_hold_minutes is not None
            and b.created_at is not None
            and now - b.created_at > timedelta(minutes=pending_hold_minutes)
        ):
            continue
        out.append(b)
    return out


def booking_conflict(
    start_at: datetime,
    end_at: datetime,
    bookings: Sequence[BookingWindow],
    config: ServiceConfig,
) -> str | None:
    """
    Cause token if the window is taken, else None.

    Confirmed bookings are widened by the service buffers. The window is
    taken once the number of overlapping bookings reaches capacity;
    a confirmed booking among them wins the explanation.
    """
    before = timedelta(minutes=config.buffer_before_min)
    after = timedelta(minutes=config.buffer_after_min)

    hits: list[BookingWindow] = []
    for b in bookings:
        b_start, b_end = b.start_at, b.end_at
        if b.is_confirmed:
            b_start, b_end = b_start - before, b_end + after
        if overlaps(start_at, end_at, b_start, b_end):
            hits.append(b)

    if len(hits) < max(1, config.capacity):
        return None
    if any(b.is_confirmed for b in hits):
        return BOOKING_CONFIRMED
    return BOOKING_PENDING


def is_beyond_horizon(day: date, now: datetime, engine_config: EngineConfig) -> bool:
    today = local_today(engine_config.tz, now)
    return day > today + timedelta(days=engine_config.horizon_days)


# ── Point-in-time services ───────────────────────────────────────────────


def build_day_slots(
    *,
    day: date,
    duration: int,
    service_config: ServiceConfig,
    rules: Sequence[WeeklyRule],
    exception: DateException | None,
    bookings: Sequence[BookingWindow],
    now: datetime,
    engine_config: EngineConfig,
) -> list[Slot]:
    """
    Every candidate slot of the day with its verdict, ordered by start.

    `bookings` may contain any booking of the sitter; inactive ones are
    ignored here.
    """
    tz = engine_config.tz
    base = resolve_day(day, rules, exception)
    active = active_bookings(bookings, now, engine_config.pending_hold_minutes)
    earliest_start = now + timedelta(minutes=service_config.lead_time_min)
    beyond_horizon = is_beyond_horizon(day, now, engine_config)

    slots: list[Slot] = []
    for candidate in partition(base.ranges, duration):
        start_at = minute_to_datetime(day, candidate.start_min, tz)
        end_at = minute_to_datetime(day, candidate.end_min, tz)

        cause = None
        if start_at < earliest_start:
            cause = LEAD_TIME
        if cause is None:
            cause = booking_conflict(start_at, end_at, active, service_config)
        if cause is None and base.blocked:
            cause = EXCEPTION_BLOCKED
        if cause is None and beyond_horizon:
            cause = BEYOND_HORIZON
        if cause is None and not service_config.enabled:
            cause = SERVICE_DISABLED

        slots.append(Slot(
            date=day,
            start_min=candidate.start_min,
            end_min=candidate.end_min,
            start_at=start_at,
            end_at=end_at,
            bookable=cause is None,
            reason=classify(cause) if cause else None,
            cause=cause,
        ))

    slots.sort(key=lambda s: (s.start_min, s.end_min))
    return slots


def summarize_day(day: date, slots: Sequence[Slot]) -> CalendarDay:
    """Calendar cell for a point-in-time service."""
    open_count = sum(1 for s in slots if s.bookable)
    if open_count:
        return CalendarDay(date=day, bookable=True, open_slots_count=open_count)

    cause = next((s.cause for s in slots if s.cause), RULE_MISSING)
    return CalendarDay(
        date=day,
        bookable=False,
        open_slots_count=0,
        reason=classify(cause),
        cause=cause,
    )


# ── Boarding ─────────────────────────────────────────────────────────────


def evaluate_boarding_day(
    *,
    day: date,
    is_start_day: bool,
    service_config: ServiceConfig,
    rules: Sequence[WeeklyRule],
    exception: DateException | None,
    bookings: Sequence[BookingWindow],
    now: datetime,
    engine_config: EngineConfig,
) -> BoardingDayVerdict:
    """
    One day of a boarding stay. The day must be available in full:
    resolved ranges chaining from 00:00 to 24:00.

    Lead time is only checked on the first day of the stay, against the
    check-in time.
    """
    tz = engine_config.tz
    cause = None

    if is_start_day:
        check_in = minute_to_datetime(day, service_config.check_in_start_min or 0, tz)
        if check_in < now + timedelta(minutes=service_config.lead_time_min):
            cause = LEAD_TIME

    if cause is None:
        day_start, day_end = local_day_bounds(day, tz)
        active = active_bookings(bookings, now, engine_config.pending_hold_minutes)
        cause = booking_conflict(day_start, day_end, active, service_config)

    if cause is None:
        base = resolve_day(day, rules, exception)
        if base.blocked:
            cause = EXCEPTION_BLOCKED
        elif not base.ranges:
            cause = EXCEPTION_NO_HOURS if base.from_exception else RULE_MISSING
        elif not covers_whole_day(base.ranges):
            cause = OUTSIDE_RULE

    if cause is None and is_beyond_horizon(day, now, engine_config):
        cause = BEYOND_HORIZON
    if cause is None and not service_config.enabled:
        cause = SERVICE_DISABLED

    return BoardingDayVerdict(
        date=day,
        bookable=cause is None,
        reason=classify(cause) if cause else None,
        cause=cause,
    )


def evaluate_boarding_range(
    *,
    days: Sequence[date],
    service_config: ServiceConfig,
    rules: Sequence[WeeklyRule],
    exceptions: Sequence[DateException],
    bookings: Sequence[BookingWindow],
    now: datetime,
    engine_config: EngineConfig,
) -> list[BoardingDayVerdict]:
    """Per-day verdicts for an inclusive list of consecutive days."""
    by_date = {e.date: e for e in exceptions}
    verdicts = []
    for i, day in enumerate(days):
        verdicts.append(evaluate_boarding_day(
            day=day,
            is_start_day=i == 0,
            service_config=service_config,
            rules=rules,
            exception=by_date.get(day),
            bookings=bookings,
            now=now,
            engine_config=engine_config,
        ))
    return verdicts
