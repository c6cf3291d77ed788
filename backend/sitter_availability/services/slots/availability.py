# backend/sitter_availability/services/slots/availability.py
"""
Slot engine: availability queries for one sitter.

Validates input, fetches the snapshots it needs in one concurrent batch
(synchronous reader calls run via asyncio.to_thread), then delegates to
the pure calculator.

Validation errors are raised before any read. Reader failures surface as
Unavailable, a slow batch as FetchTimeout. A day or slot that is not
bookable is a normal result.
"""

import asyncio
import logging
import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Callable

from .calculator import (
    build_day_slots,
    evaluate_boarding_day,
    evaluate_boarding_range,
    summarize_day,
)
from .config import EngineConfig, get_engine_config
from .domain import (
    BoardingRangeResult,
    BookingWindow,
    CalendarDay,
    DateException,
    DaySlotsResult,
    ServiceConfig,
    ServiceType,
    WeeklyRule,
)
from .errors import (
    AvailabilityError,
    FetchTimeout,
    InvalidDate,
    InvalidDuration,
    InvalidRange,
    InvalidService,
    InvalidSitter,
    Unavailable,
)
from .reader import AvailabilityReader
from .timeutils import iter_dates, local_day_bounds, local_now, local_today, parse_iso_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Snapshot:
    config: ServiceConfig
    rules: list[WeeklyRule]
    exceptions: list[DateException]
    bookings: list[BookingWindow]

    def exception_on(self, day: date) -> DateException | None:
        for e in self.exceptions:
            if e.date == day:
                return e
        return None


def _require_sitter(sitter_id) -> str:
    sitter_id = sitter_id.strip() if isinstance(sitter_id, str) else ""
    if not sitter_id:
        raise InvalidSitter()
    return sitter_id


def _parse_duration(value) -> int | None:
    """None when omitted; InvalidDuration when not a finite positive number."""
    if value is None:
        return None
    if isinstance(value, bool):
        raise InvalidDuration()
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            raise InvalidDuration()
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise InvalidDuration()
    if value != int(value):
        raise InvalidDuration("duration must be a whole number of minutes")
    return int(value)


class SlotEngine:
    """Availability queries over an AvailabilityReader."""

    def __init__(
        self,
        reader: AvailabilityReader,
        config: EngineConfig | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.reader = reader
        self.config = config or get_engine_config()
        self.clock = clock

    @property
    def timezone(self) -> str:
        return self.config.timezone

    def _now(self, now: datetime | None) -> datetime:
        if now is None and self.clock is not None:
            now = self.clock()
        return local_now(self.config.tz, now)

    # ── Fetch ────────────────────────────────────────────────────────────

    async def _fetch(
        self,
        sitter_id: str,
        service_type: ServiceType,
        date_start: date,
        date_end: date,
        booking_service: ServiceType | None,
        timeout: float | None,
    ) -> Snapshot:
        """One concurrent batch of reads, bounded by timeout."""
        tz = self.config.tz
        defaults = self.config.defaults_for(service_type)
        # widen by the largest buffer so buffered bookings next to the window count
        pad = timedelta(minutes=max(defaults.buffer_before_min, defaults.buffer_after_min, 24 * 60))
        window_start = local_day_bounds(date_start, tz)[0] - pad
        window_end = local_day_bounds(date_end, tz)[1] + pad

        reads = asyncio.gather(
            asyncio.to_thread(self.reader.get_service_config, sitter_id, service_type),
            asyncio.to_thread(self.reader.list_weekly_rules, sitter_id, service_type),
            asyncio.to_thread(
                self.reader.list_exceptions, sitter_id, service_type, date_start, date_end
            ),
            asyncio.to_thread(
                self.reader.list_bookings, sitter_id, window_start, window_end, booking_service
            ),
        )

        timeout = timeout if timeout is not None else self.config.fetch_timeout_seconds
        try:
            config, rules, exceptions, bookings = await asyncio.wait_for(reads, timeout)
        except asyncio.TimeoutError:
            logger.warning(
                f"Availability fetch timed out after {timeout}s "
                f"(sitter={sitter_id} service={service_type.value})"
            )
            raise FetchTimeout(f"availability fetch exceeded {timeout}s")
        except AvailabilityError:
            raise
        except Exception as e:
            logger.exception(
                f"Availability fetch failed (sitter={sitter_id} service={service_type.value})"
            )
            raise Unavailable(str(e) or "UNAVAILABLE") from e

        return Snapshot(
            config=config or defaults,
            rules=list(rules),
            exceptions=list(exceptions),
            bookings=list(bookings),
        )

    # ── Operation A: point-in-time services ──────────────────────────────

    async def compute_day_slots(
        self,
        sitter_id: str,
        service_type,
        target_date,
        duration_minutes=None,
        *,
        now: datetime | None = None,
        timeout: float | None = None,
    ) -> DaySlotsResult:
        """
        Bookable-or-not verdict for every candidate slot of one day.

        Raises:
            InvalidSitter, InvalidService, InvalidDate, InvalidDuration,
            Unavailable, FetchTimeout
        """
        sitter_id = _require_sitter(sitter_id)
        service = ServiceType.parse(service_type)
        if service is None or not service.is_point_in_time:
            raise InvalidService()
        day = parse_iso_date(target_date)
        if day is None:
            raise InvalidDate()
        duration = _parse_duration(duration_minutes)

        now = self._now(now)
        snapshot = await self._fetch(sitter_id, service, day, day, None, timeout)
        config = snapshot.config

        if duration is None:
            duration = config.default_duration_min
        elif duration > config.max_duration_min:
            raise InvalidDuration(
                f"duration {duration} exceeds maximum {config.max_duration_min}"
            )

        slots = build_day_slots(
            day=day,
            duration=duration,
            service_config=config,
            rules=snapshot.rules,
            exception=snapshot.exception_on(day),
            bookings=snapshot.bookings,
            now=now,
            engine_config=self.config,
        )

        return DaySlotsResult(
            timezone=self.timezone,
            sitter_id=sitter_id,
            service_type=service,
            date=day,
            config=config,
            duration_min=duration,
            slots=slots,
        )

    # ── Operation B: boarding ────────────────────────────────────────────

    async def check_boarding_range(
        self,
        sitter_id: str,
        start_date,
        end_date,
        *,
        now: datetime | None = None,
        timeout: float | None = None,
    ) -> BoardingRangeResult:
        """
        Day-by-day boarding verdict for [start_date, end_date] inclusive.

        Raises:
            InvalidSitter, InvalidRange, Unavailable, FetchTimeout
        """
        sitter_id = _require_sitter(sitter_id)
        start = parse_iso_date(start_date)
        end = parse_iso_date(end_date)
        if start is None or end is None or end <= start:
            raise InvalidRange()

        now = self._now(now)
        snapshot = await self._fetch(
            sitter_id, ServiceType.BOARDING, start, end, ServiceType.BOARDING, timeout
        )

        days = evaluate_boarding_range(
            days=iter_dates(start, end),
            service_config=snapshot.config,
            rules=snapshot.rules,
            exceptions=snapshot.exceptions,
            bookings=snapshot.bookings,
            now=now,
            engine_config=self.config,
        )

        return BoardingRangeResult(
            timezone=self.timezone,
            sitter_id=sitter_id,
            start_date=start,
            end_date=end,
            days=days,
        )

    # ── Calendar (multi-day status) ──────────────────────────────────────

    async def compute_calendar(
        self,
        sitter_id: str,
        service_type,
        start_date=None,
        end_date=None,
        *,
        now: datetime | None = None,
        timeout: float | None = None,
    ) -> tuple[date, date, list[CalendarDay]]:
        """
        Per-day summary between start_date and end_date, clamped to
        [today, today + horizon_days].

        Point services count bookable slots at the default duration;
        boarding reports whether a stay can start that day.
        """
        sitter_id = _require_sitter(sitter_id)
        service = ServiceType.parse(service_type)
        if service is None:
            raise InvalidService()

        now = self._now(now)
        today = local_today(self.config.tz, now)
        max_date = today + timedelta(days=self.config.horizon_days)

        start = today if start_date is None else parse_iso_date(start_date)
        if start is None:
            raise InvalidRange()
        end = start + timedelta(days=self.config.horizon_days) if end_date is None else parse_iso_date(end_date)
        if end is None or end < start:
            raise InvalidRange()

        start = max(start, today)
        end = min(end, max_date)
        if end < start:
            return start, end, []

        booking_service = ServiceType.BOARDING if service is ServiceType.BOARDING else None
        snapshot = await self._fetch(sitter_id, service, start, end, booking_service, timeout)

        days: list[CalendarDay] = []
        for day in iter_dates(start, end):
            exception = snapshot.exception_on(day)
            if service is ServiceType.BOARDING:
                verdict = evaluate_boarding_day(
                    day=day,
                    is_start_day=True,
                    service_config=snapshot.config,
                    rules=snapshot.rules,
                    exception=exception,
                    bookings=snapshot.bookings,
                    now=now,
                    engine_config=self.config,
                )
                days.append(CalendarDay(
                    date=day,
                    bookable=verdict.bookable,
                    open_slots_count=1 if verdict.bookable else 0,
                    reason=verdict.reason,
                    cause=verdict.cause,
                ))
            else:
                slots = build_day_slots(
                    day=day,
                    duration=snapshot.config.default_duration_min,
                    service_config=snapshot.config,
                    rules=snapshot.rules,
                    exception=exception,
                    bookings=snapshot.bookings,
                    now=now,
                    engine_config=self.config,
                )
                days.append(summarize_day(day, slots))

        return start, end, days
