"""Custom application exceptions."""

from enum import Enum
from typing import Any


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: dict[str, Any] | None = None,
    ):
        """Initialize exception with message, status code and optional details."""
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)

    @property
    def error_code(self) -> str:
        """Stable identifier surfaced to API callers."""
        return self.__class__.__name__


class SchedulingErrorKind(str, Enum):
    """Every expected outcome a scheduling operation can fail with."""

    # Validation: caller input is wrong
    INVALID_DURATION = "InvalidDuration"
    OUTSIDE_WORKING_HOURS = "OutsideWorkingHours"
    PAST_DATE = "PastDate"
    INSUFFICIENT_LEAD_TIME = "InsufficientLeadTime"
    # Conflict: re-query availability and pick another slot
    PATIENT_CONFLICT = "PatientConflict"
    CLINICIAN_CONFLICT = "ClinicianConflict"
    # Lifecycle
    INVALID_STATUS_TRANSITION = "InvalidStatusTransition"
    # Reference
    NOT_FOUND = "NotFound"
    PATIENT_NOT_FOUND = "PatientNotFound"
    FORBIDDEN = "Forbidden"
    # Infrastructure
    STORE_UNAVAILABLE = "StoreUnavailable"


VALIDATION_KINDS = frozenset(
    {
        SchedulingErrorKind.INVALID_DURATION,
        SchedulingErrorKind.OUTSIDE_WORKING_HOURS,
        SchedulingErrorKind.PAST_DATE,
        SchedulingErrorKind.INSUFFICIENT_LEAD_TIME,
    }
)

CONFLICT_KINDS = frozenset(
    {SchedulingErrorKind.PATIENT_CONFLICT, SchedulingErrorKind.CLINICIAN_CONFLICT}
)

_STATUS_CODES = {
    **dict.fromkeys(VALIDATION_KINDS, 422),
    **dict.fromkeys(CONFLICT_KINDS, 409),
    SchedulingErrorKind.INVALID_STATUS_TRANSITION: 409,
    SchedulingErrorKind.NOT_FOUND: 404,
    SchedulingErrorKind.PATIENT_NOT_FOUND: 404,
    SchedulingErrorKind.FORBIDDEN: 403,
    SchedulingErrorKind.STORE_UNAVAILABLE: 503,
}


class SchedulingError(AppException):
    """
    A booking, reschedule or status change was refused.

    Callers branch on ``kind``; the message is for humans only.
    """

    def __init__(self, kind: SchedulingErrorKind, message: str, **details: Any):
        """Initialize with the error kind and any identifying details."""
        self.kind = kind
        super().__init__(message, status_code=_STATUS_CODES[kind], details=details)

    @property
    def error_code(self) -> str:
        return self.kind.value

    def __repr__(self) -> str:
        return f"SchedulingError({self.kind.value}: {self.message})"
