# backend/sitter_availability/routers/availability_exceptions.py
# One exception per (sitter, service, date); PUT replaces it, DELETE removes it

from fastapi import APIRouter, Depends, Header

from ..dependencies import get_admin
from ..schemas.availability_exceptions import (
    DateExceptionDeleted,
    DateExceptionMutation,
    DateExceptionRead,
    DateExceptionUpsert,
)
from ..services.availability_admin import AvailabilityAdmin
from ..services.slots.domain import DateException
from .availability_rules import range_read

router = APIRouter(
    prefix="/sitters/{sitter_id}/availability-exceptions",
    tags=["availability_exceptions"],
)


def exception_read(exception: DateException) -> DateExceptionRead:
    return DateExceptionRead(
        service_type=exception.service_type.value,
        date=exception.date,
        kind=exception.kind.value,
        ranges=[range_read(r) for r in exception.ranges],
    )


@router.get("", response_model=list[DateExceptionRead])
def list_availability_exceptions(
    sitter_id: str,
    service: str | None = None,
    start: str | None = None,
    end: str | None = None,
    admin: AvailabilityAdmin = Depends(get_admin),
):
    """
    Exceptions of a sitter.

    Filters:
    - service (all services when omitted)
    - start / end (YYYY-MM-DD, inclusive)
    """
    return [exception_read(e) for e in admin.list_exceptions(sitter_id, service, start, end)]


@router.put("", response_model=DateExceptionMutation)
def upsert_availability_exception(
    sitter_id: str,
    data: DateExceptionUpsert,
    x_actor_id: str | None = Header(None),
    admin: AvailabilityAdmin = Depends(get_admin),
):
    result = admin.upsert_exception(
        sitter_id, x_actor_id, data.service_type, data.date, data.kind, data.ranges
    )
    return DateExceptionMutation(audited=result.audited, exception=exception_read(result.data))


@router.delete("/{service}/{date}", response_model=DateExceptionDeleted)
def delete_availability_exception(
    sitter_id: str,
    service: str,
    date: str,
    x_actor_id: str | None = Header(None),
    admin: AvailabilityAdmin = Depends(get_admin),
):
    result = admin.delete_exception(sitter_id, x_actor_id, service, date)
    return DateExceptionDeleted(audited=result.audited, deleted=result.data)
