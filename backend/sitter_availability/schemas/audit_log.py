# backend/sitter_availability/schemas/audit_log.py

from datetime import datetime
from typing import Optional
from pydantic import BaseModel

from ..services.audit import AuditAction
from ..services.slots.domain import ServiceType


class AuditEntryRead(BaseModel):
    id: int
    sitter_id: str
    actor_user_id: str
    action: AuditAction

    service_type: Optional[ServiceType] = None
    date_key: Optional[str] = None

    payload_summary: dict = {}
    created_at: datetime

    model_config = {"from_attributes": True}
