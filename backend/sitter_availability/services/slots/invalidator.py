# backend/sitter_availability/services/slots/invalidator.py
"""
Cache invalidation for availability snapshots.

Triggers (via audit recorder mutation events):
✓ Service config upserted → invalidate that service
✓ Weekly rules replaced → invalidate that service
✓ Exception upserted/deleted → invalidate that service

Does NOT trigger:
✗ Booking created/cancelled (bookings are never cached)
"""

import logging
from typing import Callable

from redis import Redis
from redis.exceptions import RedisError

from .domain import ServiceType
from .redis_store import AvailabilityRedisStore

logger = logging.getLogger(__name__)


def invalidate_sitter_cache(
    redis: Redis,
    sitter_id: str,
    service_type: ServiceType | None = None,
) -> int:
    """
    Invalidate cached snapshots for a sitter.

    Args:
        redis: Redis client
        sitter_id: Sitter ID
        service_type: Only this service, or None for every service

    Returns:
        Number of deleted cache keys
    """
    store = AvailabilityRedisStore(redis)
    return store.delete_sitter(sitter_id, service_type)


def make_invalidation_listener(redis: Redis | None) -> Callable:
    """
    Build an audit-recorder listener that drops the sitter's cache.

    Returns a no-op when Redis is not configured.
    """
    def listener(event) -> None:
        if redis is None:
            return
        try:
            deleted = invalidate_sitter_cache(redis, event.sitter_id, event.service_type)
            logger.info(
                f"Availability cache invalidated: sitter={event.sitter_id} "
                f"service={event.service_type.value if event.service_type else 'all'} "
                f"keys={deleted}"
            )
        except RedisError:
            logger.exception(f"Cache invalidation failed for sitter {event.sitter_id}")

    return listener
