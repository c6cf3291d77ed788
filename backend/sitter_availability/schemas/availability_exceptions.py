# backend/sitter_availability/schemas/availability_exceptions.py

from datetime import date
from typing import Any, Optional
from pydantic import BaseModel

from .availability_rules import TimeRangeRead


class DateExceptionRead(BaseModel):
    service_type: str
    date: date
    kind: str  # blocked / custom_hours
    ranges: list[TimeRangeRead] = []

    model_config = {"from_attributes": True}


class DateExceptionUpsert(BaseModel):
    service_type: str
    date: str  # YYYY-MM-DD, validated by the service
    kind: str
    ranges: Optional[list[Any]] = None


class DateExceptionMutation(BaseModel):
    ok: bool = True
    audited: bool
    exception: DateExceptionRead


class DateExceptionDeleted(BaseModel):
    ok: bool = True
    audited: bool
    deleted: int
