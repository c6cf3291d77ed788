# backend/sitter_availability/services/slots/reasons.py
"""
Reason classifier.

Maps internal cause tokens produced by the engine to the closed set of
user-facing buckets. Total and pure: unknown or missing causes → OTHER.

Cause tokens:
  booking_confirmed_overlap   confirmed booking in the way
  booking_pending_overlap     pending booking in the way
  exception_*                 date exception (blocked, no hours)
  rule_*                      no weekly rule / rule gap
  lead_time                   starts before now + lead time
  outside_rule                day not covered by configured hours
  beyond_horizon, service_disabled, ... → OTHER
"""

from dataclasses import dataclass

from ...i18n.loader import t
from .domain import ReasonBucket

LEAD_TIME = "lead_time"
BOOKING_CONFIRMED = "booking_confirmed_overlap"
BOOKING_PENDING = "booking_pending_overlap"
EXCEPTION_BLOCKED = "exception_blocked"
EXCEPTION_NO_HOURS = "exception_no_hours"
RULE_MISSING = "rule_missing"
OUTSIDE_RULE = "outside_rule"
BEYOND_HORIZON = "beyond_horizon"
SERVICE_DISABLED = "service_disabled"


@dataclass(frozen=True)
class Reason:
    bucket: ReasonBucket
    label: str
    detail: str


def classify(cause: str | None) -> ReasonBucket:
    r = cause if isinstance(cause, str) else ""
    if not r:
        return ReasonBucket.OTHER

    if r.startswith("booking_") and "confirmed" in r:
        return ReasonBucket.EXISTING_BOOKING
    if r.startswith("booking_pending"):
        return ReasonBucket.PENDING_BOOKING
    if r.startswith("exception_"):
        return ReasonBucket.DATE_EXCEPTION
    if r.startswith("rule_"):
        return ReasonBucket.RULE_MISMATCH
    if r == LEAD_TIME:
        return ReasonBucket.LEAD_TIME_VIOLATION
    if r == OUTSIDE_RULE:
        return ReasonBucket.OUTSIDE_CONFIGURED_HOURS

    return ReasonBucket.OTHER


def label(bucket: ReasonBucket, lang: str | None = None) -> str:
    return t(f"reason:{bucket.value}:label", lang)


def explain(bucket: ReasonBucket, lang: str | None = None) -> str:
    return t(f"reason:{bucket.value}:detail", lang)


def describe(cause: str | None, lang: str | None = None) -> Reason:
    bucket = classify(cause)
    return Reason(bucket=bucket, label=label(bucket, lang), detail=explain(bucket, lang))
