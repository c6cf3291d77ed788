"""
backend/sitter_availability/services/audit.py

Audit recorder for availability-configuration mutations.

Every mutation of rules / exceptions / service config produces one
immutable entry (who, what, when). Listeners receive a MutationEvent on
every call; the cache invalidator is one of them.

Recording is best-effort for callers: storage errors propagate from
record(), the admin service logs them and carries on.
"""

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Protocol

from sqlalchemy.orm import Session

from ..models.generated import AvailabilityAuditLog
from .slots.domain import ServiceType

logger = logging.getLogger(__name__)

DEFAULT_LIST_LIMIT = 50
MAX_LIST_LIMIT = 200


class AuditAction(str, Enum):
    UPSERT_CONFIG = "upsert_config"
    REPLACE_RULES = "replace_rules"
    UPSERT_EXCEPTION = "upsert_exception"
    DELETE_EXCEPTION = "delete_exception"


@dataclass(frozen=True)
class AuditEntry:
    sitter_id: str
    actor_user_id: str
    action: AuditAction
    created_at: datetime
    service_type: ServiceType | None = None
    date_key: str | None = None
    payload_summary: dict = field(default_factory=dict)
    id: int | None = None


@dataclass(frozen=True)
class MutationEvent:
    """Published on every recorded mutation, whether or not it was stored."""
    sitter_id: str
    action: AuditAction
    service_type: ServiceType | None = None
    date_key: str | None = None


def clamp_limit(limit) -> int:
    try:
        n = int(limit)
    except (TypeError, ValueError):
        return DEFAULT_LIST_LIMIT
    return max(1, min(n, MAX_LIST_LIMIT))


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ── Storage ──────────────────────────────────────────────────────────────


class AuditStore(Protocol):
    def append(self, entry: AuditEntry) -> AuditEntry: ...

    def list_entries(
        self, sitter_id: str, service_type: ServiceType | None, limit: int
    ) -> list[AuditEntry]: ...


def entry_from_row(row: AvailabilityAuditLog) -> AuditEntry:
    try:
        payload = json.loads(row.payload_summary) if row.payload_summary else {}
    except ValueError:
        logger.warning(f"Audit entry {row.id} has unreadable payload")
        payload = {}
    return AuditEntry(
        id=row.id,
        sitter_id=row.sitter_id,
        actor_user_id=row.actor_user_id,
        action=AuditAction(row.action),
        service_type=ServiceType(row.service_type) if row.service_type else None,
        date_key=row.date_key,
        payload_summary=payload,
        created_at=datetime.fromisoformat(row.created_at),
    )


class SqlAuditStore:
    """Append-only audit table; one session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self.session_factory = session_factory

    def append(self, entry: AuditEntry) -> AuditEntry:
        db = self.session_factory()
        try:
            row = AvailabilityAuditLog(
                sitter_id=entry.sitter_id,
                actor_user_id=entry.actor_user_id,
                action=entry.action.value,
                service_type=entry.service_type.value if entry.service_type else None,
                date_key=entry.date_key,
                payload_summary=json.dumps(entry.payload_summary, ensure_ascii=False),
                created_at=entry.created_at.isoformat(timespec="microseconds"),
            )
            db.add(row)
            db.commit()
            db.refresh(row)
            return entry_from_row(row)
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def list_entries(
        self,
        sitter_id: str,
        service_type: ServiceType | None = None,
        limit: int = DEFAULT_LIST_LIMIT,
    ) -> list[AuditEntry]:
        db = self.session_factory()
        try:
            q = db.query(AvailabilityAuditLog).filter(
                AvailabilityAuditLog.sitter_id == sitter_id
            )
            if service_type is not None:
                q = q.filter(AvailabilityAuditLog.service_type == service_type.value)
            rows = (
                q.order_by(
                    AvailabilityAuditLog.created_at.desc(),
                    AvailabilityAuditLog.id.desc(),
                )
                .limit(clamp_limit(limit))
                .all()
            )
            return [entry_from_row(r) for r in rows]
        finally:
            db.close()


# ── Recorder ─────────────────────────────────────────────────────────────


class AuditRecorder:
    def __init__(
        self,
        store: AuditStore,
        listeners: Iterable[Callable[[MutationEvent], None]] = (),
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.store = store
        self.listeners = list(listeners)
        self.clock = clock

    def _publish(self, event: MutationEvent) -> None:
        for listener in self.listeners:
            try:
                listener(event)
            except Exception:
                logger.exception(f"Mutation listener failed for sitter {event.sitter_id}")

    def record(
        self,
        sitter_id: str,
        actor_user_id: str,
        action: AuditAction,
        service_type: ServiceType | None = None,
        date_key: str | None = None,
        payload_summary: dict | None = None,
    ) -> AuditEntry | None:
        """
        Append one audit entry and notify listeners.

        Returns None (nothing stored) when the sitter or actor is blank.
        Storage errors propagate.
        """
        sitter_id = (sitter_id or "").strip()
        actor_user_id = (actor_user_id or "").strip()

        try:
            if not sitter_id or not actor_user_id:
                logger.warning(
                    f"Audit entry skipped: missing sitter or actor (action={action.value})"
                )
                return None

            entry = AuditEntry(
                sitter_id=sitter_id,
                actor_user_id=actor_user_id,
                action=action,
                service_type=service_type,
                date_key=date_key,
                payload_summary=payload_summary or {},
                created_at=self.clock(),
            )
            stored = self.store.append(entry)
            logger.info(
                f"Audit: {action.value} sitter={sitter_id} actor={actor_user_id} "
                f"service={service_type.value if service_type else '-'} date={date_key or '-'}"
            )
            return stored
        finally:
            if sitter_id:
                self._publish(MutationEvent(
                    sitter_id=sitter_id,
                    action=action,
                    service_type=service_type,
                    date_key=date_key,
                ))

    def list_entries(
        self,
        sitter_id: str,
        service_type: ServiceType | None = None,
        limit=DEFAULT_LIST_LIMIT,
    ) -> list[AuditEntry]:
        return self.store.list_entries(sitter_id, service_type, clamp_limit(limit))
