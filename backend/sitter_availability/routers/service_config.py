# backend/sitter_availability/routers/service_config.py

from fastapi import APIRouter, Depends, Header

from ..dependencies import get_admin
from ..schemas.service_config import (
    ServiceConfigMutation,
    ServiceConfigRead,
    ServiceConfigUpdate,
)
from ..services.availability_admin import AvailabilityAdmin
from .slots import config_read

router = APIRouter(prefix="/sitters/{sitter_id}/service-config", tags=["service_config"])


@router.get("", response_model=ServiceConfigRead)
def get_service_config(
    sitter_id: str,
    service: str,
    admin: AvailabilityAdmin = Depends(get_admin),
):
    """Effective config; stored=false means service defaults."""
    config, stored = admin.get_config(sitter_id, service)
    return config_read(config, stored)


@router.put("", response_model=ServiceConfigMutation)
def put_service_config(
    sitter_id: str,
    service: str,
    data: ServiceConfigUpdate,
    x_actor_id: str | None = Header(None),
    admin: AvailabilityAdmin = Depends(get_admin),
):
    result = admin.upsert_config(
        sitter_id, x_actor_id, service, data.model_dump(exclude_unset=True)
    )
    return ServiceConfigMutation(audited=result.audited, config=config_read(result.data))
