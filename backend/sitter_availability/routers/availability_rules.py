# backend/sitter_availability/routers/availability_rules.py
# PUT replaces all ranges of one weekday

from fastapi import APIRouter, Depends, Header

from ..dependencies import get_admin
from ..schemas.availability_rules import (
    TimeRangeRead,
    WeeklyRuleMutation,
    WeeklyRuleRead,
    WeeklyRuleReplace,
    WeeklyRulesRead,
)
from ..services.availability_admin import AvailabilityAdmin
from ..services.slots.domain import ServiceType, TimeRange, WeeklyRule
from ..services.slots.timeutils import minutes_to_time_str

router = APIRouter(prefix="/sitters/{sitter_id}/availability-rules", tags=["availability_rules"])


def range_read(r: TimeRange) -> TimeRangeRead:
    return TimeRangeRead(
        start_min=r.start_min,
        end_min=r.end_min,
        start=minutes_to_time_str(r.start_min),
        end=minutes_to_time_str(r.end_min),
    )


def rule_read(rule: WeeklyRule) -> WeeklyRuleRead:
    return WeeklyRuleRead(
        day_of_week=rule.day_of_week,
        ranges=[range_read(r) for r in rule.ranges],
    )


@router.get("", response_model=WeeklyRulesRead)
def list_availability_rules(
    sitter_id: str,
    service: str,
    admin: AvailabilityAdmin = Depends(get_admin),
):
    rules = admin.list_rules(sitter_id, service)
    return WeeklyRulesRead(
        sitter_id=sitter_id.strip(),
        service_type=ServiceType.parse(service).value,
        rules=[rule_read(r) for r in rules],
    )


@router.put("", response_model=WeeklyRuleMutation)
def replace_availability_rules(
    sitter_id: str,
    service: str,
    data: WeeklyRuleReplace,
    x_actor_id: str | None = Header(None),
    admin: AvailabilityAdmin = Depends(get_admin),
):
    result = admin.replace_rules(sitter_id, x_actor_id, service, data.day_of_week, data.ranges)
    return WeeklyRuleMutation(audited=result.audited, rule=rule_read(result.data))
