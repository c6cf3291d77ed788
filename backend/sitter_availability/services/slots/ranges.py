# backend/sitter_availability/services/slots/ranges.py
"""
Range normalizer.

Turns untrusted minute-of-day input into a sorted, non-overlapping
tuple of TimeRange. All-or-nothing: one bad item fails the whole input.

Accepted item shapes:
  {"start_min": 540, "end_min": 720}
  {"startMin": "540", "endMin": 720.0}
  ["09:00", "12:00"]
"""

import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass

from .domain import TimeRange
from .errors import InvalidRanges
from .timeutils import MINUTES_PER_DAY, time_str_to_minutes

INVALID_RANGES = "INVALID_RANGES"


@dataclass(frozen=True)
class NormalizedRanges:
    """Tagged result: either ranges or an error code."""
    ranges: tuple[TimeRange, ...] | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, ranges) -> "NormalizedRanges":
        return cls(ranges=tuple(ranges))

    @classmethod
    def failure(cls, error: str = INVALID_RANGES) -> "NormalizedRanges":
        return cls(error=error)


def clamp_minute(value) -> int | None:
    """
    Parse one minute-of-day value.

    Numbers and numeric strings are rounded half-up; "HH:MM" strings are
    converted. Returns None when not finite or outside [0, 1440].
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        n = float(value)
    elif isinstance(value, str) and value.strip():
        raw = value.strip()
        if ":" in raw:
            return time_str_to_minutes(raw)
        try:
            n = float(raw)
        except ValueError:
            return None
    else:
        return None

    if not math.isfinite(n):
        return None
    r = math.floor(n + 0.5)
    if r < 0 or r > MINUTES_PER_DAY:
        return None
    return r


def _item_bounds(item) -> tuple | None:
    if isinstance(item, Mapping):
        start = item.get("start_min", item.get("startMin"))
        end = item.get("end_min", item.get("endMin"))
        return start, end
    if isinstance(item, Sequence) and not isinstance(item, (str, bytes)) and len(item) == 2:
        return item[0], item[1]
    return None


def normalize_ranges(raw) -> NormalizedRanges:
    """Validate and sort raw ranges. Never raises on bad input."""
    if isinstance(raw, (str, bytes)) or not isinstance(raw, Sequence):
        return NormalizedRanges.failure()

    out: list[TimeRange] = []
    for item in raw:
        bounds = _item_bounds(item)
        if bounds is None:
            return NormalizedRanges.failure()
        start_min = clamp_minute(bounds[0])
        end_min = clamp_minute(bounds[1])
        if start_min is None or end_min is None:
            return NormalizedRanges.failure()
        if end_min <= start_min:
            return NormalizedRanges.failure()
        out.append(TimeRange(start_min, end_min))

    out.sort()
    for prev, cur in zip(out, out[1:]):
        # touching (cur.start == prev.end) is allowed
        if cur.start_min < prev.end_min:
            return NormalizedRanges.failure()

    return NormalizedRanges.success(out)


def parse_ranges(raw) -> tuple[TimeRange, ...]:
    """Raising variant for mutation paths."""
    result = normalize_ranges(raw)
    if not result.ok:
        raise InvalidRanges()
    return result.ranges


def covers_whole_day(ranges: Sequence[TimeRange]) -> bool:
    """True when sorted ranges chain from 0 to 1440 without a gap."""
    cursor = 0
    for r in sorted(ranges):
        if r.start_min > cursor:
            return False
        cursor = max(cursor, r.end_min)
    return cursor >= MINUTES_PER_DAY
