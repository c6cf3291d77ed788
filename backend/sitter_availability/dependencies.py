# backend/sitter_availability/dependencies.py
"""
FastAPI dependencies wiring the engine, the admin service and the audit
recorder to the database and Redis.

Tests override get_session_factory / get_redis / get_engine_config.
"""

from fastapi import Depends
from redis import Redis

from .database import SessionLocal
from .redis_client import redis_client
from .services.audit import AuditRecorder, SqlAuditStore
from .services.availability_admin import AvailabilityAdmin, SqlAvailabilityStore
from .services.slots import (
    AvailabilityRedisStore,
    CachedAvailabilityReader,
    EngineConfig,
    SlotEngine,
    SqlAvailabilityReader,
    get_engine_config,
    make_invalidation_listener,
)


def get_session_factory():
    return SessionLocal


def get_redis() -> Redis | None:
    return redis_client


def get_reader(
    session_factory=Depends(get_session_factory),
    redis: Redis | None = Depends(get_redis),
    config: EngineConfig = Depends(get_engine_config),
):
    reader = SqlAvailabilityReader(session_factory)
    if redis is None:
        return reader
    return CachedAvailabilityReader(reader, AvailabilityRedisStore(redis, config.cache_ttl_seconds))


def get_slot_engine(
    reader=Depends(get_reader),
    config: EngineConfig = Depends(get_engine_config),
) -> SlotEngine:
    return SlotEngine(reader, config)


def get_audit_recorder(
    session_factory=Depends(get_session_factory),
    redis: Redis | None = Depends(get_redis),
) -> AuditRecorder:
    return AuditRecorder(
        SqlAuditStore(session_factory),
        listeners=[make_invalidation_listener(redis)],
    )


def get_admin(
    session_factory=Depends(get_session_factory),
    recorder: AuditRecorder = Depends(get_audit_recorder),
    config: EngineConfig = Depends(get_engine_config),
) -> AvailabilityAdmin:
    return AvailabilityAdmin(SqlAvailabilityStore(session_factory), recorder, config)
