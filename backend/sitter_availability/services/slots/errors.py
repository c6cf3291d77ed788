# backend/sitter_availability/services/slots/errors.py
"""
Error taxonomy of the availability engine.

Validation errors: caller input is malformed (HTTP 400), never retried.
Data-access errors: the reader failed or timed out, safe to retry.

A slot or day that is simply not bookable is NOT an error.
"""


class AvailabilityError(Exception):
    code = "AVAILABILITY_ERROR"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.code)
        self.message = message or self.code


# ── Validation ───────────────────────────────────────────────────────────


class AvailabilityValidationError(AvailabilityError):
    code = "INVALID_INPUT"


class InvalidRanges(AvailabilityValidationError):
    code = "INVALID_RANGES"


class InvalidDuration(AvailabilityValidationError):
    code = "INVALID_DURATION"


class InvalidService(AvailabilityValidationError):
    code = "INVALID_SERVICE"


class InvalidSitter(AvailabilityValidationError):
    code = "INVALID_SITTER"


class InvalidRange(AvailabilityValidationError):
    code = "INVALID_RANGE"


class InvalidDate(AvailabilityValidationError):
    code = "INVALID_DATE"


class InvalidDay(AvailabilityValidationError):
    code = "INVALID_DAY"


class InvalidConfig(AvailabilityValidationError):
    code = "INVALID_CONFIG"


class InvalidExceptionKind(AvailabilityValidationError):
    code = "INVALID_EXCEPTION_KIND"


# ── Data access ──────────────────────────────────────────────────────────


class DataAccessError(AvailabilityError):
    code = "DATA_ACCESS_ERROR"


class Unavailable(DataAccessError):
    code = "UNAVAILABLE"


class FetchTimeout(DataAccessError):
    code = "TIMEOUT"
