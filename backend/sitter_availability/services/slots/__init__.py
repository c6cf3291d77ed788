# backend/sitter_availability/services/slots/__init__.py
"""
Availability & slot engine.

Pure part: ranges, reasons, calculator (no I/O)
Engine:    SlotEngine fetches snapshots through an AvailabilityReader
Cache:     CachedAvailabilityReader (Redis), invalidated on every mutation
"""

from .config import EngineConfig, get_engine_config
from .domain import (
    BoardingDayVerdict,
    BoardingRangeResult,
    BookingWindow,
    CalendarDay,
    DateException,
    DaySlotsResult,
    ExceptionKind,
    ReasonBucket,
    ServiceConfig,
    ServiceType,
    Slot,
    TimeRange,
    WeeklyRule,
)
from .errors import (
    AvailabilityError,
    AvailabilityValidationError,
    DataAccessError,
    FetchTimeout,
    Unavailable,
)
from .ranges import NormalizedRanges, normalize_ranges, parse_ranges
from .reasons import classify, describe, explain
from .reader import AvailabilityReader, SqlAvailabilityReader
from .redis_store import AvailabilityRedisStore, CachedAvailabilityReader
from .invalidator import invalidate_sitter_cache, make_invalidation_listener
from .availability import SlotEngine

__all__ = [
    "EngineConfig",
    "get_engine_config",
    "BoardingDayVerdict",
    "BoardingRangeResult",
    "BookingWindow",
    "CalendarDay",
    "DateException",
    "DaySlotsResult",
    "ExceptionKind",
    "ReasonBucket",
    "ServiceConfig",
    "ServiceType",
    "Slot",
    "TimeRange",
    "WeeklyRule",
    "AvailabilityError",
    "AvailabilityValidationError",
    "DataAccessError",
    "FetchTimeout",
    "Unavailable",
    "NormalizedRanges",
    "normalize_ranges",
    "parse_ranges",
    "classify",
    "describe",
    "explain",
    "AvailabilityReader",
    "SqlAvailabilityReader",
    "AvailabilityRedisStore",
    "CachedAvailabilityReader",
    "invalidate_sitter_cache",
    "make_invalidation_listener",
    "SlotEngine",
]
