# backend/sitter_availability/routers/slots.py
"""
Availability API endpoints.

GET /sitters/{sitter_id}/slots           - Slots of a day (walk, day_sitting)
GET /sitters/{sitter_id}/boarding-status - Boarding verdict for a date range
GET /sitters/{sitter_id}/calendar        - Per-day summary up to the horizon
POST /sitters/{sitter_id}/cache/invalidate - Drop cached snapshots (admin)

Engine errors (AvailabilityError) are mapped to HTTP in main.py.
"""

from fastapi import APIRouter, Depends, Query
from redis import Redis
from redis.exceptions import RedisError

from ..config import settings
from ..dependencies import get_redis, get_slot_engine
from ..schemas.service_config import ServiceConfigRead
from ..schemas.slots import (
    BoardingDayRead,
    BoardingStatusResponse,
    CalendarDayRead,
    CalendarResponse,
    DaySlotsResponse,
    SlotRead,
)
from ..services.slots import SlotEngine, describe, invalidate_sitter_cache
from ..services.slots.domain import ServiceConfig, ServiceType
from ..services.slots.errors import InvalidService, Unavailable
from ..services.slots.reasons import label
from ..services.slots.timeutils import minutes_to_time_str


router = APIRouter(prefix="/sitters/{sitter_id}", tags=["availability"])


def config_read(config: ServiceConfig, stored: bool = True) -> ServiceConfigRead:
    return ServiceConfigRead(
        service_type=config.service_type.value,
        stored=stored,
        **config.to_public(),
    )


@router.get("/slots", response_model=DaySlotsResponse)
async def get_day_slots(
    sitter_id: str,
    service: str = "walk",
    target_date: str = Query(..., alias="date"),
    duration: str | None = None,
    lang: str | None = None,
    engine: SlotEngine = Depends(get_slot_engine),
):
    """Every candidate slot of the day, bookable or not with a reason."""
    lang = lang or settings.default_lang
    result = await engine.compute_day_slots(sitter_id, service, target_date, duration)

    slots = [
        SlotRead(
            start_min=s.start_min,
            end_min=s.end_min,
            start=minutes_to_time_str(s.start_min),
            end=minutes_to_time_str(s.end_min),
            start_at=s.start_at,
            end_at=s.end_at,
            bookable=s.bookable,
            reason=s.reason.value if s.reason else None,
            reason_label=label(s.reason, lang) if s.reason else None,
            cause=s.cause,
        )
        for s in result.slots
    ]

    reason = describe(result.cause, lang) if not result.bookable else None

    return DaySlotsResponse(
        timezone=result.timezone,
        sitter_id=result.sitter_id,
        service_type=result.service_type.value,
        date=result.date,
        duration_min=result.duration_min,
        bookable=result.bookable,
        reason=reason.bucket.value if reason else None,
        reason_label=reason.label if reason else None,
        reason_detail=reason.detail if reason else None,
        config=config_read(result.config),
        slots=slots,
    )


@router.get("/boarding-status", response_model=BoardingStatusResponse)
async def get_boarding_status(
    sitter_id: str,
    start: str,
    end: str,
    lang: str | None = None,
    engine: SlotEngine = Depends(get_slot_engine),
):
    """Boarding is bookable only if every day in [start, end] is."""
    lang = lang or settings.default_lang
    result = await engine.check_boarding_range(sitter_id, start, end)

    first = result.first_blocking
    reason = describe(first.cause, lang) if first else None

    return BoardingStatusResponse(
        timezone=result.timezone,
        sitter_id=result.sitter_id,
        start_date=result.start_date,
        end_date=result.end_date,
        bookable=result.bookable,
        reason=reason.bucket.value if reason else None,
        reason_label=reason.label if reason else None,
        reason_detail=reason.detail if reason else None,
        first_blocking_date=first.date if first else None,
        blocking_days=[d.date for d in result.blocking_days],
        days=[
            BoardingDayRead(
                date=d.date,
                bookable=d.bookable,
                reason=d.reason.value if d.reason else None,
                reason_label=label(d.reason, lang) if d.reason else None,
                cause=d.cause,
            )
            for d in result.days
        ],
    )


@router.get("/calendar", response_model=CalendarResponse)
async def get_calendar(
    sitter_id: str,
    service: str = "walk",
    start: str | None = None,
    end: str | None = None,
    engine: SlotEngine = Depends(get_slot_engine),
):
    """Calendar of available days, clamped to [today, today + horizon]."""
    start_date, end_date, days = await engine.compute_calendar(sitter_id, service, start, end)

    return CalendarResponse(
        timezone=engine.timezone,
        sitter_id=sitter_id.strip(),
        service_type=ServiceType.parse(service).value,
        start_date=start_date,
        end_date=end_date,
        horizon_days=engine.config.horizon_days,
        days=[
            CalendarDayRead(
                date=d.date,
                bookable=d.bookable,
                open_slots_count=d.open_slots_count,
                reason=d.reason.value if d.reason else None,
            )
            for d in days
        ],
    )


@router.post("/cache/invalidate")
def invalidate_availability_cache(
    sitter_id: str,
    service: str | None = None,
    redis: Redis | None = Depends(get_redis),
):
    """Manually invalidate cached snapshots for a sitter (admin endpoint)."""
    service_type = None
    if service is not None:
        service_type = ServiceType.parse(service)
        if service_type is None:
            raise InvalidService()

    deleted = 0
    if redis is not None:
        try:
            deleted = invalidate_sitter_cache(redis, sitter_id, service_type)
        except RedisError as e:
            raise Unavailable(str(e)) from e

    return {
        "ok": True,
        "sitter_id": sitter_id,
        "deleted_keys": deleted,
        "service": service_type.value if service_type else "all",
    }
