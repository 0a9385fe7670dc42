"""Appointment status state machine."""

from datetime import datetime

from practice_scheduler.core.exceptions import SchedulingError, SchedulingErrorKind
from practice_scheduler.schemas.appointments import AppointmentStatus

S = AppointmentStatus

ALLOWED_TRANSITIONS: dict[AppointmentStatus, frozenset[AppointmentStatus]] = {
    S.SCHEDULED: frozenset({S.CONFIRMED, S.CANCELLED, S.NO_SHOW}),
    S.CONFIRMED: frozenset({S.IN_PROGRESS, S.CANCELLED, S.NO_SHOW}),
    S.IN_PROGRESS: frozenset({S.COMPLETED, S.CANCELLED}),
    S.COMPLETED: frozenset(),
    S.CANCELLED: frozenset(),
    S.NO_SHOW: frozenset(),
}

TERMINAL_STATUSES = frozenset(s for s, targets in ALLOWED_TRANSITIONS.items() if not targets)

# Statuses that no longer hold their slot
RELEASED_STATUSES = frozenset({S.CANCELLED, S.NO_SHOW})
BLOCKING_STATUSES = frozenset(S) - RELEASED_STATUSES

RESCHEDULABLE_STATUSES = frozenset({S.SCHEDULED, S.CONFIRMED})


def _reject(current: AppointmentStatus, requested: AppointmentStatus, reason: str) -> None:
    raise SchedulingError(
        SchedulingErrorKind.INVALID_STATUS_TRANSITION,
        f"Cannot change appointment from '{current.value}' to '{requested.value}': {reason}",
        current_status=current.value,
        requested_status=requested.value,
    )


def check_transition(
    current: AppointmentStatus,
    requested: AppointmentStatus,
    *,
    starts_at: datetime,
    now: datetime,
) -> None:
    """
    Ensure ``current -> requested`` is a legal status change.

    Transitions are strict: asking for the current status is rejected too.

    Args:
        current: Status stored on the appointment
        requested: Status the caller asked for
        starts_at: Start instant of the appointment
        now: Current instant

    Raises:
        SchedulingError: ``InvalidStatusTransition`` naming both statuses
    """
    if current == requested:
        _reject(current, requested, "appointment already has this status")
    if current in TERMINAL_STATUSES:
        _reject(current, requested, "status is terminal")
    if requested not in ALLOWED_TRANSITIONS[current]:
        _reject(current, requested, "transition not allowed")
    if requested == S.NO_SHOW and now < starts_at:
        _reject(current, requested, "appointment has not started yet")


def ensure_reschedulable(current: AppointmentStatus) -> None:
    """Only scheduled or confirmed appointments may change date, time or duration."""
    if current not in RESCHEDULABLE_STATUSES:
        raise SchedulingError(
            SchedulingErrorKind.INVALID_STATUS_TRANSITION,
            f"Appointments in status '{current.value}' cannot be rescheduled",
            current_status=current.value,
            operation="reschedule",
        )
