# backend/sitter_availability/services/slots/config.py
"""
Engine configuration for availability calculation.
"""

from dataclasses import dataclass, field, replace
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .domain import SERVICE_DEFAULTS, ServiceConfig, ServiceType

DEFAULT_TIMEZONE = "Europe/Zurich"


@dataclass(frozen=True)
class EngineConfig:
    """
    Configuration for the slot engine.

    Passed to the engine at construction so tests can inject any policy.

    Attributes:
        timezone: Named zone anchoring "today" and every day boundary
        horizon_days: How many days ahead a slot can be booked
        fetch_timeout_seconds: Upper bound for one batch of reads
        cache_ttl_seconds: Redis TTL for rule/exception/config snapshots
        pending_hold_minutes: Pending bookings older than this stop
            blocking (None = pending bookings always block)
        service_defaults: Config used when a sitter has no stored row
    """
    timezone: str = DEFAULT_TIMEZONE
    horizon_days: int = 180
    fetch_timeout_seconds: float = 12.0
    cache_ttl_seconds: int = 3600
    pending_hold_minutes: int | None = None
    service_defaults: dict[ServiceType, ServiceConfig] = field(
        default_factory=lambda: dict(SERVICE_DEFAULTS)
    )

    def __post_init__(self):
        """Validate configuration."""
        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ValueError(f"unknown timezone: {self.timezone!r}")
        if self.horizon_days < 1:
            raise ValueError(f"horizon_days must be >= 1, got {self.horizon_days}")
        if self.fetch_timeout_seconds <= 0:
            raise ValueError(f"fetch_timeout_seconds must be > 0, got {self.fetch_timeout_seconds}")
        if self.pending_hold_minutes is not None and self.pending_hold_minutes < 0:
            raise ValueError("pending_hold_minutes must be >= 0")

    @property
    def tz(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    def defaults_for(self, service_type: ServiceType) -> ServiceConfig:
        return self.service_defaults.get(service_type) or SERVICE_DEFAULTS[service_type]

    def with_overrides(self, **changes) -> "EngineConfig":
        return replace(self, **changes)


@lru_cache
def get_engine_config() -> EngineConfig:
    """
    Get engine configuration (singleton) from application settings.
    """
    from ...config import settings

    return EngineConfig(
        timezone=settings.timezone,
        horizon_days=settings.horizon_days,
        fetch_timeout_seconds=settings.fetch_timeout_seconds,
        cache_ttl_seconds=settings.cache_ttl_seconds,
        pending_hold_minutes=settings.pending_hold_minutes,
    )
