# backend/sitter_availability/routers/audit_log.py

from fastapi import APIRouter, Depends

from ..dependencies import get_audit_recorder
from ..schemas.audit_log import AuditEntryRead
from ..services.audit import DEFAULT_LIST_LIMIT, AuditRecorder
from ..services.slots.domain import ServiceType
from ..services.slots.errors import InvalidService, InvalidSitter


router = APIRouter(prefix="/sitters/{sitter_id}/audit", tags=["audit"])


@router.get("", response_model=list[AuditEntryRead])
def list_audit(
    sitter_id: str,
    service: str | None = None,
    limit: int = DEFAULT_LIST_LIMIT,
    recorder: AuditRecorder = Depends(get_audit_recorder),
):
    """
    Read-only availability audit log, most recent first.

    Filters:
    - service (exact match)
    - limit (default 50, clamped to 1..200)
    """
    sitter_id = sitter_id.strip()
    if not sitter_id:
        raise InvalidSitter()

    service_type = None
    if service is not None:
        service_type = ServiceType.parse(service)
        if service_type is None:
            raise InvalidService()

    return recorder.list_entries(sitter_id, service_type, limit)
