# backend/sitter_availability/schemas/availability_rules.py

from typing import Any
from pydantic import BaseModel


class TimeRangeRead(BaseModel):
    start_min: int
    end_min: int
    start: str  # "HH:MM"
    end: str

    model_config = {"from_attributes": True}


class WeeklyRuleRead(BaseModel):
    day_of_week: int  # 0 = Monday
    ranges: list[TimeRangeRead]

    model_config = {"from_attributes": True}


class WeeklyRulesRead(BaseModel):
    sitter_id: str
    service_type: str
    rules: list[WeeklyRuleRead]


class WeeklyRuleReplace(BaseModel):
    """
    Replace every range of one weekday.

    ranges items: {"start_min": 540, "end_min": 720} or ["09:00", "12:00"];
    an empty list clears the day.
    """
    day_of_week: int
    ranges: list[Any] = []


class WeeklyRuleMutation(BaseModel):
    ok: bool = True
    audited: bool
    rule: WeeklyRuleRead
