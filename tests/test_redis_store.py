"""Tests for the Redis snapshot cache and invalidation (Redis mocked)."""
import json
import pytest
from datetime import date
from unittest.mock import MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from sitter_availability.services.audit import AuditAction, MutationEvent
from sitter_availability.services.slots.domain import ServiceType, TimeRange
from sitter_availability.services.slots.invalidator import (
    invalidate_sitter_cache,
    make_invalidation_listener,
)
from sitter_availability.services.slots.redis_store import (
    EMPTY_SENTINEL,
    AvailabilityRedisStore,
    CachedAvailabilityReader,
)

from factories import SITTER, WEDNESDAY, StaticReader, blocked, rule


class DictRedis:
    """Minimal in-memory stand-in for the redis-py calls the store makes."""

    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def set(self, key, value, ex=None):
        self.data[key] = value

    def mget(self, keys):
        return [self.data.get(k) for k in keys]

    def pipeline(self):
        pipe = MagicMock()
        pipe.set.side_effect = self.set
        return pipe


@pytest.fixture
def fake_redis():
    return DictRedis()


@pytest.mark.unit
class TestAvailabilityRedisStore:
    def test_config_miss_then_sentinel(self, fake_redis):
        store = AvailabilityRedisStore(fake_redis)

        assert store.get_config(SITTER, ServiceType.WALK) == (False, None)

        store.store_config(SITTER, ServiceType.WALK, None)
        assert fake_redis.data[f"avail:config:{SITTER}:walk"] == EMPTY_SENTINEL
        assert store.get_config(SITTER, ServiceType.WALK) == (True, None)

    def test_config_round_trip(self, fake_redis, walk_config):
        store = AvailabilityRedisStore(fake_redis)

        store.store_config(SITTER, ServiceType.WALK, walk_config)

        assert store.get_config(SITTER, ServiceType.WALK) == (True, walk_config)

    def test_rules_stored_as_json(self, fake_redis):
        store = AvailabilityRedisStore(fake_redis)

        store.store_rules(SITTER, ServiceType.WALK, [rule(2, (540, 720))])

        raw = json.loads(fake_redis.data[f"avail:rules:{SITTER}:walk"])
        assert raw == [{"day_of_week": 2, "ranges": [[540, 720]]}]
        assert store.get_rules(SITTER, ServiceType.WALK)[0].ranges == (TimeRange(540, 720),)

    def test_exceptions_only_hits_returned(self, fake_redis):
        store = AvailabilityRedisStore(fake_redis)
        store.store_exceptions(SITTER, ServiceType.WALK, {WEDNESDAY: blocked(WEDNESDAY)})

        cached = store.mget_exceptions(SITTER, ServiceType.WALK, [WEDNESDAY, date(2025, 6, 5)])

        assert list(cached) == [WEDNESDAY]
        assert cached[WEDNESDAY].is_blocked

    def test_set_uses_ttl(self):
        redis = MagicMock()
        store = AvailabilityRedisStore(redis, ttl_seconds=600)

        store.store_rules(SITTER, ServiceType.WALK, [])

        redis.set.assert_called_once_with(f"avail:rules:{SITTER}:walk", "[]", ex=600)

    def test_delete_sitter_one_service(self):
        redis = MagicMock()
        redis.keys.return_value = [f"avail:exc:{SITTER}:walk:2025-06-04"]
        redis.delete.return_value = 3

        deleted = AvailabilityRedisStore(redis).delete_sitter(SITTER, ServiceType.WALK)

        assert deleted == 3
        redis.keys.assert_called_once_with(f"avail:exc:{SITTER}:walk:*")
        redis.delete.assert_called_once_with(
            f"avail:config:{SITTER}:walk",
            f"avail:rules:{SITTER}:walk",
            f"avail:exc:{SITTER}:walk:2025-06-04",
        )

    def test_delete_sitter_all_services(self):
        redis = MagicMock()
        redis.keys.return_value = []

        AvailabilityRedisStore(redis).delete_sitter(SITTER)

        assert redis.keys.call_count == len(ServiceType)


@pytest.mark.unit
class TestCachedAvailabilityReader:
    def test_second_read_served_from_cache(self, fake_redis):
        inner = StaticReader(rules=[rule(2, (540, 720))])
        reader = CachedAvailabilityReader(inner, AvailabilityRedisStore(fake_redis))

        first = reader.list_weekly_rules(SITTER, ServiceType.WALK)
        second = reader.list_weekly_rules(SITTER, ServiceType.WALK)

        assert first == second
        assert inner.calls == ["rules"]

    def test_cached_no_exception(self, fake_redis):
        inner = StaticReader()
        reader = CachedAvailabilityReader(inner, AvailabilityRedisStore(fake_redis))

        assert reader.list_exceptions(SITTER, ServiceType.WALK, WEDNESDAY, WEDNESDAY) == []
        assert reader.list_exceptions(SITTER, ServiceType.WALK, WEDNESDAY, WEDNESDAY) == []
        assert inner.calls == ["exceptions"]

    def test_bookings_never_cached(self, fake_redis):
        inner = StaticReader()
        reader = CachedAvailabilityReader(inner, AvailabilityRedisStore(fake_redis))

        reader.list_bookings(SITTER, None, None)
        reader.list_bookings(SITTER, None, None)

        assert inner.calls == ["bookings", "bookings"]

    def test_redis_down_falls_back(self, walk_config):
        redis = MagicMock()
        redis.get.side_effect = RedisConnectionError("down")
        redis.mget.side_effect = RedisConnectionError("down")
        inner = StaticReader(config=walk_config, rules=[rule(2, (540, 720))])
        reader = CachedAvailabilityReader(inner, AvailabilityRedisStore(redis))

        assert reader.get_service_config(SITTER, ServiceType.WALK) == walk_config
        assert len(reader.list_weekly_rules(SITTER, ServiceType.WALK)) == 1
        assert reader.list_exceptions(SITTER, ServiceType.WALK, WEDNESDAY, WEDNESDAY) == []

    def test_cache_write_failure_ignored(self, walk_config):
        redis = MagicMock()
        redis.get.return_value = None
        redis.set.side_effect = RedisConnectionError("down")
        reader = CachedAvailabilityReader(StaticReader(config=walk_config), AvailabilityRedisStore(redis))

        assert reader.get_service_config(SITTER, ServiceType.WALK) == walk_config


@pytest.mark.unit
class TestInvalidation:
    def test_invalidate_sitter_cache(self):
        redis = MagicMock()
        redis.keys.return_value = []
        redis.delete.return_value = 2

        assert invalidate_sitter_cache(redis, SITTER, ServiceType.BOARDING) == 2

    def test_listener_deletes_service_keys(self):
        redis = MagicMock()
        redis.keys.return_value = []
        listener = make_invalidation_listener(redis)

        listener(MutationEvent(sitter_id=SITTER, action=AuditAction.REPLACE_RULES, service_type=ServiceType.WALK))

        redis.delete.assert_called_once_with(f"avail:config:{SITTER}:walk", f"avail:rules:{SITTER}:walk")

    def test_listener_without_redis_is_noop(self):
        listener = make_invalidation_listener(None)

        listener(MutationEvent(sitter_id=SITTER, action=AuditAction.UPSERT_CONFIG))

    def test_listener_swallows_redis_errors(self):
        redis = MagicMock()
        redis.keys.side_effect = RedisConnectionError("down")
        listener = make_invalidation_listener(redis)

        listener(MutationEvent(sitter_id=SITTER, action=AuditAction.UPSERT_CONFIG, service_type=ServiceType.WALK))
