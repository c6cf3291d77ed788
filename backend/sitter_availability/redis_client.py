# backend/sitter_availability/redis_client.py
"""
Shared Redis client.

None when REDIS_URL is not configured: the availability reader then
goes straight to the database.
"""

from redis import Redis

from .config import settings


def create_redis_client(url: str | None) -> Redis | None:
    if not url:
        return None
    return Redis.from_url(url, decode_responses=True, socket_timeout=2.0)


redis_client = create_redis_client(settings.redis_url)
