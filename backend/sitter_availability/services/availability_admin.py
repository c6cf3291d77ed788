"""
backend/sitter_availability/services/availability_admin.py

Mutations of the data that feeds the slot engine:
service config, weekly rules, date exceptions.

Each mutation:
1. validates input (validation errors raise, nothing is written)
2. writes in one SQL transaction
3. makes exactly one audit record attempt

An audit failure is logged and reported as audited=False; it never
rolls back the mutation.
"""

import logging
from dataclasses import dataclass, fields, replace
from datetime import date
from typing import Any, Callable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models.generated import AvailabilityExceptions, AvailabilityRules, ServiceConfigs
from .audit import AuditAction, AuditRecorder
from .slots.config import EngineConfig, get_engine_config
from .slots.domain import DateException, ExceptionKind, ServiceConfig, ServiceType, TimeRange, WeeklyRule
from .slots.errors import (
    InvalidConfig,
    InvalidDate,
    InvalidDay,
    InvalidExceptionKind,
    InvalidService,
    InvalidSitter,
    Unavailable,
)
from .slots.ranges import parse_ranges
from .slots.reader import config_from_row, exceptions_from_rows, rules_from_rows
from .slots.timeutils import parse_iso_date

logger = logging.getLogger(__name__)


# field -> (min, max), inclusive
CONFIG_LIMITS = {
    "default_duration_min": (5, 24 * 60),
    "max_duration_min": (5, 24 * 60),
    "lead_time_min": (0, 14 * 24 * 60),
    "buffer_before_min": (0, 24 * 60),
    "buffer_after_min": (0, 24 * 60),
    "capacity": (1, 50),
    "check_in_start_min": (0, 24 * 60),
}

EDITABLE_CONFIG_FIELDS = {f.name for f in fields(ServiceConfig)} - {"service_type"}


@dataclass(frozen=True)
class MutationResult:
    data: Any
    audited: bool


# ── Validation ───────────────────────────────────────────────────────────


def _require_sitter(sitter_id) -> str:
    sitter_id = sitter_id.strip() if isinstance(sitter_id, str) else ""
    if not sitter_id:
        raise InvalidSitter()
    return sitter_id


def _require_service(service_type) -> ServiceType:
    service = ServiceType.parse(service_type)
    if service is None:
        raise InvalidService()
    return service


def _require_date(value) -> date:
    day = parse_iso_date(value)
    if day is None:
        raise InvalidDate()
    return day


def _require_day_of_week(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 <= value <= 6:
        raise InvalidDay()
    return value


def _require_kind(value) -> ExceptionKind:
    if isinstance(value, ExceptionKind):
        return value
    try:
        return ExceptionKind(str(value).strip().lower())
    except ValueError:
        raise InvalidExceptionKind()


def merge_config(base: ServiceConfig, changes: dict) -> ServiceConfig:
    """Apply a partial update and validate the result. Raises InvalidConfig."""
    if not isinstance(changes, dict):
        raise InvalidConfig("changes must be an object")

    unknown = set(changes) - EDITABLE_CONFIG_FIELDS
    if unknown:
        raise InvalidConfig(f"unknown fields: {', '.join(sorted(unknown))}")

    updates = {}
    for key, value in changes.items():
        if key == "enabled":
            if not isinstance(value, bool):
                raise InvalidConfig("enabled must be a boolean")
        elif key == "check_in_start_min" and value is None:
            pass
        elif isinstance(value, bool) or not isinstance(value, int):
            raise InvalidConfig(f"{key} must be an integer")
        updates[key] = value

    merged = replace(base, **updates)
    validate_config(merged)
    return merged


def validate_config(config: ServiceConfig) -> None:
    for key, (low, high) in CONFIG_LIMITS.items():
        value = getattr(config, key)
        if value is None:
            continue
        if not low <= value <= high:
            raise InvalidConfig(f"{key} must be between {low} and {high}")
    if config.max_duration_min < config.default_duration_min:
        raise InvalidConfig("max_duration_min must be >= default_duration_min")


# ── Storage ──────────────────────────────────────────────────────────────


class SqlAvailabilityStore:
    """Write side over SQLAlchemy; one transaction per mutation."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def _run(self, fn):
        db = self.session_factory()
        try:
            result = fn(db)
            db.commit()
            return result
        except SQLAlchemyError as e:
            db.rollback()
            logger.exception("Availability storage failed")
            raise Unavailable(str(e)) from e
        finally:
            db.close()

    def get_config(self, sitter_id: str, service_type: ServiceType) -> ServiceConfig | None:
        def op(db: Session):
            row = (
                db.query(ServiceConfigs)
                .filter(
                    ServiceConfigs.sitter_id == sitter_id,
                    ServiceConfigs.service_type == service_type.value,
                )
                .first()
            )
            return config_from_row(row) if row else None

        return self._run(op)

    def save_config(self, sitter_id: str, config: ServiceConfig) -> None:
        def op(db: Session):
            row = (
                db.query(ServiceConfigs)
                .filter(
                    ServiceConfigs.sitter_id == sitter_id,
                    ServiceConfigs.service_type == config.service_type.value,
                )
                .first()
            )
            if row is None:
                row = ServiceConfigs(sitter_id=sitter_id, service_type=config.service_type.value)
                db.add(row)
            for key, value in config.to_public().items():
                setattr(row, key, value)

        self._run(op)

    def list_rules(self, sitter_id: str, service_type: ServiceType) -> list[WeeklyRule]:
        def op(db: Session):
            rows = (
                db.query(AvailabilityRules)
                .filter(
                    AvailabilityRules.sitter_id == sitter_id,
                    AvailabilityRules.service_type == service_type.value,
                )
                .order_by(AvailabilityRules.day_of_week, AvailabilityRules.start_min)
                .all()
            )
            return rules_from_rows(sitter_id, service_type, rows)

        return self._run(op)

    def replace_rules(
        self,
        sitter_id: str,
        service_type: ServiceType,
        day_of_week: int,
        ranges: tuple[TimeRange, ...],
    ) -> None:
        def op(db: Session):
            (
                db.query(AvailabilityRules)
                .filter(
                    AvailabilityRules.sitter_id == sitter_id,
                    AvailabilityRules.service_type == service_type.value,
                    AvailabilityRules.day_of_week == day_of_week,
                )
                .delete(synchronize_session=False)
            )
            for r in ranges:
                db.add(AvailabilityRules(
                    sitter_id=sitter_id,
                    service_type=service_type.value,
                    day_of_week=day_of_week,
                    start_min=r.start_min,
                    end_min=r.end_min,
                ))

        self._run(op)

    def list_exceptions(
        self,
        sitter_id: str,
        service_type: ServiceType,
        date_start: date | None = None,
        date_end: date | None = None,
    ) -> list[DateException]:
        def op(db: Session):
            q = db.query(AvailabilityExceptions).filter(
                AvailabilityExceptions.sitter_id == sitter_id,
                AvailabilityExceptions.service_type == service_type.value,
            )
            if date_start is not None:
                q = q.filter(AvailabilityExceptions.date >= date_start.isoformat())
            if date_end is not None:
                q = q.filter(AvailabilityExceptions.date <= date_end.isoformat())
            rows = q.order_by(AvailabilityExceptions.date, AvailabilityExceptions.start_min).all()
            return exceptions_from_rows(sitter_id, service_type, rows)

        return self._run(op)

    def _delete_exception_rows(
        self, db: Session, sitter_id: str, service_type: ServiceType, day: date
    ) -> int:
        return (
            db.query(AvailabilityExceptions)
            .filter(
                AvailabilityExceptions.sitter_id == sitter_id,
                AvailabilityExceptions.service_type == service_type.value,
                AvailabilityExceptions.date == day.isoformat(),
            )
            .delete(synchronize_session=False)
        )

    def upsert_exception(self, exception: DateException) -> None:
        def op(db: Session):
            self._delete_exception_rows(
                db, exception.sitter_id, exception.service_type, exception.date
            )
            base = dict(
                sitter_id=exception.sitter_id,
                service_type=exception.service_type.value,
                date=exception.date.isoformat(),
                kind=exception.kind.value,
            )
            if exception.is_blocked or not exception.ranges:
                db.add(AvailabilityExceptions(**base))
                return
            for r in exception.ranges:
                db.add(AvailabilityExceptions(**base, start_min=r.start_min, end_min=r.end_min))

        self._run(op)

    def delete_exception(self, sitter_id: str, service_type: ServiceType, day: date) -> int:
        return self._run(
            lambda db: self._delete_exception_rows(db, sitter_id, service_type, day)
        )


# ── Service ──────────────────────────────────────────────────────────────


class AvailabilityAdmin:
    def __init__(
        self,
        store: SqlAvailabilityStore,
        recorder: AuditRecorder,
        engine_config: EngineConfig | None = None,
    ):
        self.store = store
        self.recorder = recorder
        self.engine_config = engine_config or get_engine_config()

    def _audit(self, sitter_id: str, actor_id: str, action: AuditAction, **kwargs) -> bool:
        try:
            return self.recorder.record(sitter_id, actor_id, action, **kwargs) is not None
        except Exception:
            logger.exception(f"Audit recording failed: {action.value} sitter={sitter_id}")
            return False

    # ── Reads ────────────────────────────────────────────────────────────

    def get_config(self, sitter_id, service_type) -> tuple[ServiceConfig, bool]:
        """(effective config, stored?)"""
        sitter_id = _require_sitter(sitter_id)
        service = _require_service(service_type)
        stored = self.store.get_config(sitter_id, service)
        if stored is not None:
            return stored, True
        return self.engine_config.defaults_for(service), False

    def list_rules(self, sitter_id, service_type) -> list[WeeklyRule]:
        return self.store.list_rules(_require_sitter(sitter_id), _require_service(service_type))

    def list_exceptions(
        self, sitter_id, service_type=None, date_start=None, date_end=None
    ) -> list[DateException]:
        sitter_id = _require_sitter(sitter_id)
        services = list(ServiceType) if service_type is None else [_require_service(service_type)]
        start = _require_date(date_start) if date_start is not None else None
        end = _require_date(date_end) if date_end is not None else None

        out: list[DateException] = []
        for service in services:
            out.extend(self.store.list_exceptions(sitter_id, service, start, end))
        out.sort(key=lambda e: (e.date, e.service_type.value))
        return out

    # ── Mutations ────────────────────────────────────────────────────────

    def upsert_config(self, sitter_id, actor_id, service_type, changes: dict) -> MutationResult:
        sitter_id = _require_sitter(sitter_id)
        service = _require_service(service_type)

        base, _ = self.get_config(sitter_id, service)
        merged = merge_config(base, changes)
        self.store.save_config(sitter_id, merged)

        audited = self._audit(
            sitter_id, actor_id, AuditAction.UPSERT_CONFIG,
            service_type=service,
            payload_summary={"keys": sorted(changes)},
        )
        return MutationResult(data=merged, audited=audited)

    def replace_rules(
        self, sitter_id, actor_id, service_type, day_of_week, ranges
    ) -> MutationResult:
        """Replace every range of one weekday; an empty list clears the day."""
        sitter_id = _require_sitter(sitter_id)
        service = _require_service(service_type)
        day_of_week = _require_day_of_week(day_of_week)
        normalized = parse_ranges(ranges)

        self.store.replace_rules(sitter_id, service, day_of_week, normalized)

        audited = self._audit(
            sitter_id, actor_id, AuditAction.REPLACE_RULES,
            service_type=service,
            payload_summary={"day_of_week": day_of_week, "rules": len(normalized)},
        )
        rule = WeeklyRule(
            sitter_id=sitter_id,
            service_type=service,
            day_of_week=day_of_week,
            ranges=normalized,
        )
        return MutationResult(data=rule, audited=audited)

    def upsert_exception(
        self, sitter_id, actor_id, service_type, date, kind, ranges=None
    ) -> MutationResult:
        """blocked ignores ranges; custom_hours replaces the weekly rule for the date."""
        sitter_id = _require_sitter(sitter_id)
        service = _require_service(service_type)
        day = _require_date(date)
        kind = _require_kind(kind)
        normalized = () if kind is ExceptionKind.BLOCKED else parse_ranges(ranges or [])

        exception = DateException(
            sitter_id=sitter_id,
            service_type=service,
            date=day,
            kind=kind,
            ranges=normalized,
        )
        self.store.upsert_exception(exception)

        audited = self._audit(
            sitter_id, actor_id, AuditAction.UPSERT_EXCEPTION,
            service_type=service,
            date_key=day.isoformat(),
            payload_summary={"kind": kind.value, "ranges": len(normalized)},
        )
        return MutationResult(data=exception, audited=audited)

    def delete_exception(self, sitter_id, actor_id, service_type, date) -> MutationResult:
        sitter_id = _require_sitter(sitter_id)
        service = _require_service(service_type)
        day = _require_date(date)

        deleted = self.store.delete_exception(sitter_id, service, day)

        audited = self._audit(
            sitter_id, actor_id, AuditAction.DELETE_EXCEPTION,
            service_type=service,
            date_key=day.isoformat(),
            payload_summary={"deleted": deleted},
        )
        return MutationResult(data=deleted, audited=audited)
