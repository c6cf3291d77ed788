# backend/sitter_availability/schemas/slots.py
"""
Pydantic schemas for availability queries.
"""

from datetime import date, datetime
from typing import Optional
from pydantic import BaseModel, Field

from .service_config import ServiceConfigRead


class SlotRead(BaseModel):
    """One candidate slot with its verdict."""
    start_min: int
    end_min: int
    start: str  # "HH:MM", sitter-local
    end: str
    start_at: datetime
    end_at: datetime
    bookable: bool
    reason: Optional[str] = None
    reason_label: Optional[str] = None
    cause: Optional[str] = Field(default=None, description="Internal cause token")

    model_config = {"from_attributes": True}


class DaySlotsResponse(BaseModel):
    """Slots of one day for a point-in-time service (walk, day_sitting)."""
    timezone: str
    sitter_id: str
    service_type: str
    date: date
    duration_min: int
    bookable: bool
    reason: Optional[str] = None
    reason_label: Optional[str] = None
    reason_detail: Optional[str] = None
    config: ServiceConfigRead
    slots: list[SlotRead]

    model_config = {"from_attributes": True}


class BoardingDayRead(BaseModel):
    date: date
    bookable: bool
    reason: Optional[str] = None
    reason_label: Optional[str] = None
    cause: Optional[str] = None

    model_config = {"from_attributes": True}


class BoardingStatusResponse(BaseModel):
    """Day-by-day boarding verdict for an inclusive date range."""
    timezone: str
    sitter_id: str
    start_date: date
    end_date: date
    bookable: bool
    reason: Optional[str] = None
    reason_label: Optional[str] = None
    reason_detail: Optional[str] = None
    first_blocking_date: Optional[date] = None
    blocking_days: list[date] = []
    days: list[BoardingDayRead]

    model_config = {"from_attributes": True}


class CalendarDayRead(BaseModel):
    """Status of a single day in calendar."""
    date: date
    bookable: bool
    open_slots_count: int = 0
    reason: Optional[str] = None

    model_config = {"from_attributes": True}


class CalendarResponse(BaseModel):
    """Response with calendar of available days."""
    timezone: str
    sitter_id: str
    service_type: str
    start_date: date
    end_date: date
    days: list[CalendarDayRead]

    # Metadata
    horizon_days: int

    model_config = {"from_attributes": True}
