"""Admission rules for leave requests.

Both validators are pure: the validation instant is passed in (or read once
from the clock) and nothing is persisted. Rules are evaluated in order and
the first failure wins.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from zoneinfo import ZoneInfo

from pydantic import BaseModel, ConfigDict

from leave_ledger.exceptions import (
    ExceedsMaximum,
    InsufficientBalance,
    InsufficientNotice,
    InvalidDate,
    LateSubmission,
    LeaveValidationError,
)
from leave_ledger.models.enums import ValidationErrorCode
from leave_ledger.services.duration import count_business_days

VACATION_NOTICE_DAYS = 14
SICK_LEAVE_GRACE_DAYS = 3
SICK_LEAVE_MAX_DAYS = 30

_ERRORS: dict[ValidationErrorCode, type[LeaveValidationError]] = {
    ValidationErrorCode.INVALID_DATE: InvalidDate,
    ValidationErrorCode.INSUFFICIENT_BALANCE: InsufficientBalance,
    ValidationErrorCode.INSUFFICIENT_NOTICE: InsufficientNotice,
    ValidationErrorCode.LATE_SUBMISSION: LateSubmission,
    ValidationErrorCode.EXCEEDS_MAXIMUM: ExceedsMaximum,
}


class ValidationResult(BaseModel):
    """Outcome of an admission check."""

    model_config = ConfigDict(frozen=True)

    ok: bool
    requested_days: int | None = None
    error: ValidationErrorCode | None = None
    reason: str | None = None

    def raise_for_error(self) -> None:
        """Raise the matching ``LeaveValidationError`` if the check failed."""
        if self.ok or self.error is None:
            return
        raise _ERRORS[self.error](self.reason or self.error.value, requested_days=self.requested_days)


def _accept(requested_days: int) -> ValidationResult:
    return ValidationResult(ok=True, requested_days=requested_days)


def _reject(error: ValidationErrorCode, reason: str, requested_days: int | None = None) -> ValidationResult:
    return ValidationResult(ok=False, error=error, reason=reason, requested_days=requested_days)


def reference_today(now: datetime | None = None, tz_name: str = "UTC") -> date:
    """Calendar date of the validation instant in the reference time zone."""
    if now is None:
        now = datetime.now(UTC)
    if now.tzinfo is None:
        return now.date()
    return now.astimezone(ZoneInfo(tz_name)).date()


def validate_vacation(
    start: date,
    end: date,
    available_days: int,
    *,
    now: datetime | None = None,
    tz_name: str = "UTC",
) -> ValidationResult:
    """Check a vacation request against the remaining balance and notice period."""
    today = reference_today(now, tz_name)

    if start <= today:
        return _reject(ValidationErrorCode.INVALID_DATE, "Start date must be in the future")

    if end < start:
        return _reject(ValidationErrorCode.INVALID_DATE, "End date must be after start date")

    requested_days = count_business_days(start, end)
    if requested_days > available_days:
        return _reject(
            ValidationErrorCode.INSUFFICIENT_BALANCE,
            f"Requested {requested_days} days exceeds available balance of {available_days} days",
            requested_days,
        )

    if start < today + timedelta(days=VACATION_NOTICE_DAYS):
        return _reject(
            ValidationErrorCode.INSUFFICIENT_NOTICE,
            "Vacation requests must be submitted at least 2 weeks in advance",
            requested_days,
        )

    return _accept(requested_days)


def validate_sick_leave(
    start: date,
    end: date,
    *,
    now: datetime | None = None,
    tz_name: str = "UTC",
) -> ValidationResult:
    """Check a sick-leave request. Balance is deliberately not consulted."""
    today = reference_today(now, tz_name)

    if start < today - timedelta(days=SICK_LEAVE_GRACE_DAYS):
        return _reject(
            ValidationErrorCode.LATE_SUBMISSION,
            "Sick leave requests cannot be submitted more than 3 days after the start date",
        )

    if end < start:
        return _reject(ValidationErrorCode.INVALID_DATE, "End date must be after start date")

    requested_days = count_business_days(start, end)
    if requested_days > SICK_LEAVE_MAX_DAYS:
        return _reject(
            ValidationErrorCode.EXCEEDS_MAXIMUM,
            f"Sick leave cannot exceed {SICK_LEAVE_MAX_DAYS} days",
            requested_days,
        )

    return _accept(requested_days)
