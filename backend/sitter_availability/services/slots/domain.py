# backend/sitter_availability/services/slots/domain.py
"""
Value types shared by the availability engine.

Snapshots (rules, exceptions, bookings, config) are read-only inputs;
Slot / BoardingDayVerdict / CalendarDay are computed per query and
never persisted.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum


class ServiceType(str, Enum):
    WALK = "walk"
    DAY_SITTING = "day_sitting"
    BOARDING = "boarding"

    @property
    def is_point_in_time(self) -> bool:
        return self is not ServiceType.BOARDING

    @classmethod
    def parse(cls, value) -> "ServiceType | None":
        """Lenient parse: "WALK", " walk ", ServiceType.WALK → WALK."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().lower())
        except ValueError:
            return None


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"
    PAYMENT_FAILED = "payment_failed"
    COMPLETED = "completed"


# Only these statuses constrain availability
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING.value, BookingStatus.CONFIRMED.value)


class ExceptionKind(str, Enum):
    BLOCKED = "blocked"
    CUSTOM_HOURS = "custom_hours"


class ReasonBucket(str, Enum):
    EXISTING_BOOKING = "existing_booking"
    PENDING_BOOKING = "pending_booking"
    DATE_EXCEPTION = "date_exception"
    RULE_MISMATCH = "rule_mismatch"
    LEAD_TIME_VIOLATION = "lead_time_violation"
    OUTSIDE_CONFIGURED_HOURS = "outside_configured_hours"
    OTHER = "other"


@dataclass(frozen=True, order=True)
class TimeRange:
    start_min: int
    end_min: int


@dataclass(frozen=True)
class WeeklyRule:
    sitter_id: str
    service_type: ServiceType
    day_of_week: int  # 0 = Monday, 6 = Sunday
    ranges: tuple[TimeRange, ...] = ()


@dataclass(frozen=True)
class DateException:
    sitter_id: str
    service_type: ServiceType
    date: date
    kind: ExceptionKind
    ranges: tuple[TimeRange, ...] = ()

    @property
    def is_blocked(self) -> bool:
        return self.kind is ExceptionKind.BLOCKED


@dataclass(frozen=True)
class BookingWindow:
    sitter_id: str
    service_type: ServiceType
    start_at: datetime
    end_at: datetime
    status: str
    created_at: datetime | None = None
    id: int | None = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == BookingStatus.CONFIRMED.value


@dataclass(frozen=True)
class ServiceConfig:
    """Per sitter & service policy; lead_time_min is the lead-time policy."""
    service_type: ServiceType
    enabled: bool = True
    default_duration_min: int = 60
    max_duration_min: int = 24 * 60
    lead_time_min: int = 0
    buffer_before_min: int = 0
    buffer_after_min: int = 0
    capacity: int = 1
    check_in_start_min: int | None = None

    def to_public(self) -> dict:
        return {
            "enabled": self.enabled,
            "default_duration_min": self.default_duration_min,
            "max_duration_min": self.max_duration_min,
            "lead_time_min": self.lead_time_min,
            "buffer_before_min": self.buffer_before_min,
            "buffer_after_min": self.buffer_after_min,
            "capacity": self.capacity,
            "check_in_start_min": self.check_in_start_min,
        }


SERVICE_DEFAULTS: dict[ServiceType, ServiceConfig] = {
    ServiceType.WALK: ServiceConfig(
        service_type=ServiceType.WALK,
        default_duration_min=30,
        max_duration_min=120,
        lead_time_min=120,
        buffer_before_min=15,
        buffer_after_min=15,
    ),
    ServiceType.DAY_SITTING: ServiceConfig(
        service_type=ServiceType.DAY_SITTING,
        default_duration_min=120,
        max_duration_min=12 * 60,
        lead_time_min=180,
    ),
    ServiceType.BOARDING: ServiceConfig(
        service_type=ServiceType.BOARDING,
        default_duration_min=24 * 60,
        max_duration_min=24 * 60,
        lead_time_min=24 * 60,
        check_in_start_min=8 * 60,
    ),
}


# ── Query results ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Slot:
    date: date
    start_min: int
    end_min: int
    start_at: datetime
    end_at: datetime
    bookable: bool
    reason: ReasonBucket | None = None
    cause: str | None = None


@dataclass(frozen=True)
class DaySlotsResult:
    timezone: str
    sitter_id: str
    service_type: ServiceType
    date: date
    config: ServiceConfig
    duration_min: int
    slots: list[Slot] = field(default_factory=list)

    @property
    def bookable(self) -> bool:
        return any(s.bookable for s in self.slots)

    @property
    def cause(self) -> str | None:
        """First rejection cause when nothing is bookable."""
        if self.bookable:
            return None
        for s in self.slots:
            if s.cause:
                return s.cause
        return "rule_missing"


@dataclass(frozen=True)
class BoardingDayVerdict:
    date: date
    bookable: bool
    reason: ReasonBucket | None = None
    cause: str | None = None


@dataclass(frozen=True)
class BoardingRangeResult:
    timezone: str
    sitter_id: str
    start_date: date
    end_date: date
    days: list[BoardingDayVerdict] = field(default_factory=list)

    @property
    def bookable(self) -> bool:
        return bool(self.days) and all(d.bookable for d in self.days)

    @property
    def blocking_days(self) -> list[BoardingDayVerdict]:
        return [d for d in self.days if not d.bookable]

    @property
    def first_blocking(self) -> BoardingDayVerdict | None:
        blocking = self.blocking_days
        return blocking[0] if blocking else None


@dataclass(frozen=True)
class CalendarDay:
    date: date
    bookable: bool
    open_slots_count: int = 0
    reason: ReasonBucket | None = None
    cause: str | None = None
