# backend/sitter_availability/services/slots/reader.py
"""
Read side of the availability data.

The engine only depends on the AvailabilityReader protocol. The SQL
implementation opens its own session per call so that reads can run
concurrently in worker threads.
"""

import logging
from collections import defaultdict
from collections.abc import Iterable
from datetime import date, datetime
from typing import Callable, Protocol

from sqlalchemy.orm import Session

from ...models.generated import (
    AvailabilityExceptions,
    AvailabilityRules,
    Bookings,
    ServiceConfigs,
)
from .domain import (
    BookingWindow,
    DateException,
    ExceptionKind,
    ServiceConfig,
    ServiceType,
    TimeRange,
    WeeklyRule,
)
from .timeutils import parse_instant, to_utc_iso

logger = logging.getLogger(__name__)


class AvailabilityReader(Protocol):
    def get_service_config(
        self, sitter_id: str, service_type: ServiceType
    ) -> ServiceConfig | None: ...

    def list_weekly_rules(
        self, sitter_id: str, service_type: ServiceType
    ) -> list[WeeklyRule]: ...

    def list_exceptions(
        self, sitter_id: str, service_type: ServiceType, date_start: date, date_end: date
    ) -> list[DateException]: ...

    def list_bookings(
        self,
        sitter_id: str,
        start_at: datetime,
        end_at: datetime,
        service_type: ServiceType | None = None,
    ) -> list[BookingWindow]: ...


# ── Row → value mapping ──────────────────────────────────────────────────


def config_from_row(row: ServiceConfigs) -> ServiceConfig:
    return ServiceConfig(
        service_type=ServiceType(row.service_type),
        enabled=bool(row.enabled),
        default_duration_min=row.default_duration_min,
        max_duration_min=row.max_duration_min,
        lead_time_min=row.lead_time_min,
        buffer_before_min=row.buffer_before_min or 0,
        buffer_after_min=row.buffer_after_min or 0,
        capacity=row.capacity or 1,
        check_in_start_min=row.check_in_start_min,
    )


def rules_from_rows(
    sitter_id: str,
    service_type: ServiceType,
    rows: Iterable[AvailabilityRules],
) -> list[WeeklyRule]:
    """One WeeklyRule per weekday, ranges sorted."""
    by_day: dict[int, list[TimeRange]] = defaultdict(list)
    for row in rows:
        by_day[row.day_of_week].append(TimeRange(row.start_min, row.end_min))
    return [
        WeeklyRule(
            sitter_id=sitter_id,
            service_type=service_type,
            day_of_week=dow,
            ranges=tuple(sorted(ranges)),
        )
        for dow, ranges in sorted(by_day.items())
    ]


def exceptions_from_rows(
    sitter_id: str,
    service_type: ServiceType,
    rows: Iterable[AvailabilityExceptions],
) -> list[DateException]:
    """One DateException per date. Any blocked row blocks the whole date."""
    kinds: dict[str, ExceptionKind] = {}
    ranges: dict[str, list[TimeRange]] = defaultdict(list)
    for row in rows:
        kind = ExceptionKind(row.kind)
        if kinds.get(row.date) is not ExceptionKind.BLOCKED:
            kinds[row.date] = kind
        if row.start_min is not None and row.end_min is not None:
            ranges[row.date].append(TimeRange(row.start_min, row.end_min))

    out = []
    for date_key in sorted(kinds):
        kind = kinds[date_key]
        out.append(DateException(
            sitter_id=sitter_id,
            service_type=service_type,
            date=date.fromisoformat(date_key),
            kind=kind,
            ranges=() if kind is ExceptionKind.BLOCKED else tuple(sorted(ranges[date_key])),
        ))
    return out


def booking_from_row(row: Bookings) -> BookingWindow | None:
    start_at = parse_instant(row.start_at)
    end_at = parse_instant(row.end_at)
    if start_at is None or end_at is None or end_at <= start_at:
        logger.warning(f"Skipping booking {row.id} with unreadable window")
        return None
    return BookingWindow(
        id=row.id,
        sitter_id=row.sitter_id,
        service_type=ServiceType(row.service_type),
        start_at=start_at,
        end_at=end_at,
        status=(row.status or "").lower(),
        created_at=parse_instant(row.created_at),
    )


# ── SQL reader ───────────────────────────────────────────────────────────


class SqlAvailabilityReader:
    """AvailabilityReader over SQLAlchemy; one session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def get_service_config(
        self, sitter_id: str, service_type: ServiceType
    ) -> ServiceConfig | None:
        db = self.session_factory()
        try:
            row = (
                db.query(ServiceConfigs)
                .filter(
                    ServiceConfigs.sitter_id == sitter_id,
                    ServiceConfigs.service_type == service_type.value,
                )
                .first()
            )
            return config_from_row(row) if row else None
        finally:
            db.close()

    def list_weekly_rules(
        self, sitter_id: str, service_type: ServiceType
    ) -> list[WeeklyRule]:
        db = self.session_factory()
        try:
            rows = (
                db.query(AvailabilityRules)
                .filter(
                    AvailabilityRules.sitter_id == sitter_id,
                    AvailabilityRules.service_type == service_type.value,
                )
                .order_by(AvailabilityRules.day_of_week, AvailabilityRules.start_min)
                .all()
            )
            return rules_from_rows(sitter_id, service_type, rows)
        finally:
            db.close()

    def list_exceptions(
        self, sitter_id: str, service_type: ServiceType, date_start: date, date_end: date
    ) -> list[DateException]:
        db = self.session_factory()
        try:
            rows = (
                db.query(AvailabilityExceptions)
                .filter(
                    AvailabilityExceptions.sitter_id == sitter_id,
                    AvailabilityExceptions.service_type == service_type.value,
                    AvailabilityExceptions.date >= date_start.isoformat(),
                    AvailabilityExceptions.date <= date_end.isoformat(),
                )
                .order_by(AvailabilityExceptions.date, AvailabilityExceptions.start_min)
                .all()
            )
            return exceptions_from_rows(sitter_id, service_type, rows)
        finally:
            db.close()

    def list_bookings(
        self,
        sitter_id: str,
        start_at: datetime,
        end_at: datetime,
        service_type: ServiceType | None = None,
    ) -> list[BookingWindow]:
        db = self.session_factory()
        try:
            q = db.query(Bookings).filter(
                Bookings.sitter_id == sitter_id,
                Bookings.start_at < to_utc_iso(end_at),
                Bookings.end_at > to_utc_iso(start_at),
            )
            if service_type is not None:
                q = q.filter(Bookings.service_type == service_type.value)

            out = []
            for row in q.order_by(Bookings.start_at).all():
                booking = booking_from_row(row)
                if booking is not None:
                    out.append(booking)
            return out
        finally:
            db.close()
