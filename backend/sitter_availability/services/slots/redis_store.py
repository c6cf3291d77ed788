# backend/sitter_availability/services/slots/redis_store.py
"""
Redis cache for rule / exception / config snapshots.

Key format:
  avail:config:{sitter_id}:{service}        JSON ServiceConfig or sentinel
  avail:rules:{sitter_id}:{service}         JSON list of weekly rules
  avail:exc:{sitter_id}:{service}:{date}    JSON exception or sentinel

Sentinel "__empty__" marks "looked up, nothing stored" so a miss and an
empty answer are distinguishable.

Bookings are never cached: they change outside this service and are
read fresh on every query.
"""

import json
import logging
from datetime import date, datetime

from redis import Redis
from redis.exceptions import RedisError

from .domain import (
    BookingWindow,
    DateException,
    ExceptionKind,
    ServiceConfig,
    ServiceType,
    TimeRange,
    WeeklyRule,
)
from .reader import AvailabilityReader
from .timeutils import iter_dates

logger = logging.getLogger(__name__)

EMPTY_SENTINEL = "__empty__"


def _ranges_to_json(ranges) -> list[list[int]]:
    return [[r.start_min, r.end_min] for r in ranges]


def _ranges_from_json(raw) -> tuple[TimeRange, ...]:
    return tuple(TimeRange(int(a), int(b)) for a, b in raw)


class AvailabilityRedisStore:
    """Redis storage wrapper for availability snapshots."""

    KEY_PREFIX = "avail"

    def __init__(self, redis: Redis, ttl_seconds: int = 3600):
        self.redis = redis
        self.ttl_seconds = ttl_seconds

    def _config_key(self, sitter_id: str, service_type: ServiceType) -> str:
        return f"{self.KEY_PREFIX}:config:{sitter_id}:{service_type.value}"

    def _rules_key(self, sitter_id: str, service_type: ServiceType) -> str:
        return f"{self.KEY_PREFIX}:rules:{sitter_id}:{service_type.value}"

    def _exception_key(self, sitter_id: str, service_type: ServiceType, dt: date) -> str:
        return f"{self.KEY_PREFIX}:exc:{sitter_id}:{service_type.value}:{dt.isoformat()}"

    # ── Config ───────────────────────────────────────────────────────────

    def get_config(
        self, sitter_id: str, service_type: ServiceType
    ) -> tuple[bool, ServiceConfig | None]:
        """(hit, config). A hit with None means "no stored config"."""
        raw = self.redis.get(self._config_key(sitter_id, service_type))
        if raw is None:
            return False, None
        if raw == EMPTY_SENTINEL:
            return True, None
        data = json.loads(raw)
        data["service_type"] = ServiceType(data["service_type"])
        return True, ServiceConfig(**data)

    def store_config(
        self, sitter_id: str, service_type: ServiceType, config: ServiceConfig | None
    ) -> None:
        if config is None:
            value = EMPTY_SENTINEL
        else:
            value = json.dumps({"service_type": config.service_type.value, **config.to_public()})
        self.redis.set(self._config_key(sitter_id, service_type), value, ex=self.ttl_seconds)

    # ── Rules ────────────────────────────────────────────────────────────

    def get_rules(
        self, sitter_id: str, service_type: ServiceType
    ) -> list[WeeklyRule] | None:
        raw = self.redis.get(self._rules_key(sitter_id, service_type))
        if raw is None:
            return None
        return [
            WeeklyRule(
                sitter_id=sitter_id,
                service_type=service_type,
                day_of_week=item["day_of_week"],
                ranges=_ranges_from_json(item["ranges"]),
            )
            for item in json.loads(raw)
        ]

    def store_rules(
        self, sitter_id: str, service_type: ServiceType, rules: list[WeeklyRule]
    ) -> None:
        value = json.dumps([
            {"day_of_week": r.day_of_week, "ranges": _ranges_to_json(r.ranges)}
            for r in rules
        ])
        self.redis.set(self._rules_key(sitter_id, service_type), value, ex=self.ttl_seconds)

    # ── Exceptions ───────────────────────────────────────────────────────

    def mget_exceptions(
        self,
        sitter_id: str,
        service_type: ServiceType,
        dates: list[date],
    ) -> dict[date, DateException | None]:
        """
        Batch get exceptions for dates.

        Returns:
            Dict mapping date → DateException, or None for a cached
            "no exception". Dates missing from the cache are absent.
        """
        if not dates:
            return {}

        keys = [self._exception_key(sitter_id, service_type, dt) for dt in dates]
        values = self.redis.mget(keys)

        result: dict[date, DateException | None] = {}
        for dt, raw in zip(dates, values):
            if raw is None:
                continue
            if raw == EMPTY_SENTINEL:
                result[dt] = None
            else:
                data = json.loads(raw)
                result[dt] = DateException(
                    sitter_id=sitter_id,
                    service_type=service_type,
                    date=dt,
                    kind=ExceptionKind(data["kind"]),
                    ranges=_ranges_from_json(data["ranges"]),
                )
        return result

    def store_exceptions(
        self,
        sitter_id: str,
        service_type: ServiceType,
        days: dict[date, DateException | None],
    ) -> None:
        """Batch store via pipeline; None stores the sentinel."""
        if not days:
            return

        pipe = self.redis.pipeline()
        for dt, exc in days.items():
            if exc is None:
                value = EMPTY_SENTINEL
            else:
                value = json.dumps({"kind": exc.kind.value, "ranges": _ranges_to_json(exc.ranges)})
            pipe.set(self._exception_key(sitter_id, service_type, dt), value, ex=self.ttl_seconds)
        pipe.execute()

    # ── Delete ───────────────────────────────────────────────────────────

    def delete_sitter(
        self,
        sitter_id: str,
        service_type: ServiceType | None = None,
    ) -> int:
        """
        Delete cached snapshots of a sitter.

        Args:
            sitter_id: Sitter ID
            service_type: One service, or None for all services.

        Returns:
            Number of deleted keys.
        """
        services = [service_type] if service_type else list(ServiceType)

        keys: list[str] = []
        for svc in services:
            keys.append(self._config_key(sitter_id, svc))
            keys.append(self._rules_key(sitter_id, svc))
            keys.extend(self.redis.keys(f"{self.KEY_PREFIX}:exc:{sitter_id}:{svc.value}:*"))

        return self.redis.delete(*keys)


class CachedAvailabilityReader:
    """
    AvailabilityReader decorator serving rules, exceptions and config
    from Redis. Redis errors fall through to the wrapped reader.
    """

    def __init__(self, reader: AvailabilityReader, store: AvailabilityRedisStore):
        self.reader = reader
        self.store = store

    def get_service_config(
        self, sitter_id: str, service_type: ServiceType
    ) -> ServiceConfig | None:
        try:
            hit, config = self.store.get_config(sitter_id, service_type)
            if hit:
                return config
        except RedisError:
            logger.warning("Redis read failed for config, using database", exc_info=True)
            return self.reader.get_service_config(sitter_id, service_type)

        config = self.reader.get_service_config(sitter_id, service_type)
        self._safe(self.store.store_config, sitter_id, service_type, config)
        return config

    def list_weekly_rules(
        self, sitter_id: str, service_type: ServiceType
    ) -> list[WeeklyRule]:
        try:
            cached = self.store.get_rules(sitter_id, service_type)
            if cached is not None:
                return cached
        except RedisError:
            logger.warning("Redis read failed for rules, using database", exc_info=True)
            return self.reader.list_weekly_rules(sitter_id, service_type)

        rules = self.reader.list_weekly_rules(sitter_id, service_type)
        self._safe(self.store.store_rules, sitter_id, service_type, rules)
        return rules

    def list_exceptions(
        self, sitter_id: str, service_type: ServiceType, date_start: date, date_end: date
    ) -> list[DateException]:
        dates = iter_dates(date_start, date_end)
        try:
            cached = self.store.mget_exceptions(sitter_id, service_type, dates)
        except RedisError:
            logger.warning("Redis read failed for exceptions, using database", exc_info=True)
            return self.reader.list_exceptions(sitter_id, service_type, date_start, date_end)

        if len(cached) == len(dates):
            return [cached[dt] for dt in dates if cached[dt] is not None]

        exceptions = self.reader.list_exceptions(sitter_id, service_type, date_start, date_end)
        by_date = {e.date: e for e in exceptions}
        self._safe(
            self.store.store_exceptions,
            sitter_id,
            service_type,
            {dt: by_date.get(dt) for dt in dates},
        )
        return exceptions

    def list_bookings(
        self,
        sitter_id: str,
        start_at: datetime,
        end_at: datetime,
        service_type: ServiceType | None = None,
    ) -> list[BookingWindow]:
        return self.reader.list_bookings(sitter_id, start_at, end_at, service_type)

    @staticmethod
    def _safe(fn, *args) -> None:
        try:
            fn(*args)
        except RedisError:
            logger.warning(f"Redis write failed in {fn.__name__}", exc_info=True)
