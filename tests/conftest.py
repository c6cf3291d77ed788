"""Pytest configuration and fixtures for availability engine tests."""
import os

# Module-level engine / settings must not touch a real database or Redis
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ.pop("REDIS_URL", None)

import pytest
from datetime import timedelta
from sqlalchemy.orm import sessionmaker

from sitter_availability.database import build_engine, init_db
from sitter_availability.models.generated import Bookings
from sitter_availability.services.audit import AuditRecorder, SqlAuditStore
from sitter_availability.services.availability_admin import AvailabilityAdmin, SqlAvailabilityStore
from sitter_availability.services.slots import (
    EngineConfig,
    ServiceType,
    SlotEngine,
    SqlAvailabilityReader,
)
from sitter_availability.services.slots.domain import SERVICE_DEFAULTS
from sitter_availability.services.slots.timeutils import to_utc_iso

from factories import NOW, SITTER


@pytest.fixture(scope="function")
def engine_config():
    """Zurich, 180-day horizon, short fetch timeout."""
    return EngineConfig(timezone="Europe/Zurich", horizon_days=180, fetch_timeout_seconds=2.0)


@pytest.fixture(scope="function")
def walk_config():
    return SERVICE_DEFAULTS[ServiceType.WALK]


@pytest.fixture(scope="function")
def boarding_config():
    return SERVICE_DEFAULTS[ServiceType.BOARDING]


@pytest.fixture(scope="function")
def make_engine(engine_config):
    """Factory: SlotEngine over a StaticReader, clock fixed at NOW."""
    def _make(reader, config=None):
        return SlotEngine(reader, config or engine_config, clock=lambda: NOW)
    return _make


@pytest.fixture(scope="function")
def db_engine(tmp_path):
    """File-based SQLite so that worker-thread sessions share the data."""
    engine = build_engine(f"sqlite:///{tmp_path / 'test.db'}")
    init_db(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=db_engine)


@pytest.fixture(scope="function")
def audit_events():
    return []


@pytest.fixture(scope="function")
def recorder(session_factory, audit_events):
    return AuditRecorder(SqlAuditStore(session_factory), listeners=[audit_events.append])


@pytest.fixture(scope="function")
def admin(session_factory, recorder, engine_config):
    return AvailabilityAdmin(SqlAvailabilityStore(session_factory), recorder, engine_config)


@pytest.fixture(scope="function")
def sql_engine(session_factory, engine_config):
    return SlotEngine(SqlAvailabilityReader(session_factory), engine_config, clock=lambda: NOW)


@pytest.fixture(scope="function")
def add_booking(session_factory):
    """Factory fixture inserting a booking row (instants stored as UTC ISO)."""
    def _add(start_at, end_at, status="confirmed", service=ServiceType.WALK, sitter_id=SITTER):
        db = session_factory()
        try:
            row = Bookings(
                sitter_id=sitter_id,
                service_type=service.value,
                start_at=to_utc_iso(start_at),
                end_at=to_utc_iso(end_at),
                status=status,
                created_at=to_utc_iso(NOW - timedelta(minutes=5)),
            )
            db.add(row)
            db.commit()
            return row.id
        finally:
            db.close()
    return _add
