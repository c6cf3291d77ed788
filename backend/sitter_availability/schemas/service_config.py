# backend/sitter_availability/schemas/service_config.py

from typing import Optional
from pydantic import BaseModel


class ServiceConfigRead(BaseModel):
    service_type: str
    enabled: bool
    default_duration_min: int
    max_duration_min: int
    lead_time_min: int
    buffer_before_min: int
    buffer_after_min: int
    capacity: int
    check_in_start_min: Optional[int] = None
    stored: bool = True

    model_config = {"from_attributes": True}


class ServiceConfigUpdate(BaseModel):
    """Partial update; only the fields sent are changed."""
    enabled: Optional[bool] = None
    default_duration_min: Optional[int] = None
    max_duration_min: Optional[int] = None
    lead_time_min: Optional[int] = None
    buffer_before_min: Optional[int] = None
    buffer_after_min: Optional[int] = None
    capacity: Optional[int] = None
    check_in_start_min: Optional[int] = None

    model_config = {"extra": "forbid"}


class ServiceConfigMutation(BaseModel):
    ok: bool = True
    audited: bool
    config: ServiceConfigRead
