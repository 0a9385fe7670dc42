"""Tests for the appointment status state machine."""

from datetime import UTC, datetime, timedelta

import pytest

from practice_scheduler.core.exceptions import SchedulingError, SchedulingErrorKind
from practice_scheduler.scheduling.lifecycle import (
    ALLOWED_TRANSITIONS,
    BLOCKING_STATUSES,
    RELEASED_STATUSES,
    TERMINAL_STATUSES,
    check_transition,
    ensure_reschedulable,
)
from practice_scheduler.schemas.appointments import AppointmentStatus as S

STARTS_AT = datetime(2030, 3, 5, 10, 0, tzinfo=UTC)
BEFORE_START = STARTS_AT - timedelta(hours=1)
AFTER_START = STARTS_AT + timedelta(minutes=15)


@pytest.mark.parametrize(
    ("current", "requested"),
    [
        (S.SCHEDULED, S.CONFIRMED),
        (S.SCHEDULED, S.CANCELLED),
        (S.CONFIRMED, S.IN_PROGRESS),
        (S.CONFIRMED, S.CANCELLED),
        (S.IN_PROGRESS, S.COMPLETED),
        (S.IN_PROGRESS, S.CANCELLED),
    ],
)
def test_allowed_transitions(current: S, requested: S) -> None:
    check_transition(current, requested, starts_at=STARTS_AT, now=BEFORE_START)


@pytest.mark.parametrize(
    ("current", "requested"),
    [
        (S.SCHEDULED, S.IN_PROGRESS),
        (S.SCHEDULED, S.COMPLETED),
        (S.CONFIRMED, S.SCHEDULED),
        (S.IN_PROGRESS, S.SCHEDULED),
        (S.IN_PROGRESS, S.NO_SHOW),
        (S.COMPLETED, S.CANCELLED),
        (S.CANCELLED, S.SCHEDULED),
        (S.NO_SHOW, S.CONFIRMED),
    ],
)
def test_forbidden_transitions(current: S, requested: S) -> None:
    with pytest.raises(SchedulingError) as excinfo:
        check_transition(current, requested, starts_at=STARTS_AT, now=AFTER_START)

    assert excinfo.value.kind == SchedulingErrorKind.INVALID_STATUS_TRANSITION
    assert excinfo.value.details == {
        "current_status": current.value,
        "requested_status": requested.value,
    }


@pytest.mark.parametrize("status", list(S))
def test_same_status_is_rejected(status: S) -> None:
    """Transitions are strict; re-applying the current status is an error."""
    with pytest.raises(SchedulingError) as excinfo:
        check_transition(status, status, starts_at=STARTS_AT, now=AFTER_START)

    assert excinfo.value.kind == SchedulingErrorKind.INVALID_STATUS_TRANSITION


def test_no_show_only_after_start() -> None:
    with pytest.raises(SchedulingError):
        check_transition(S.CONFIRMED, S.NO_SHOW, starts_at=STARTS_AT, now=BEFORE_START)

    check_transition(S.CONFIRMED, S.NO_SHOW, starts_at=STARTS_AT, now=STARTS_AT)
    check_transition(S.SCHEDULED, S.NO_SHOW, starts_at=STARTS_AT, now=AFTER_START)


def test_terminal_statuses_have_no_way_out() -> None:
    assert TERMINAL_STATUSES == {S.COMPLETED, S.CANCELLED, S.NO_SHOW}
    for status in TERMINAL_STATUSES:
        assert not ALLOWED_TRANSITIONS[status]


def test_released_statuses_do_not_block() -> None:
    assert RELEASED_STATUSES == {S.CANCELLED, S.NO_SHOW}
    assert BLOCKING_STATUSES.isdisjoint(RELEASED_STATUSES)
    assert S.COMPLETED in BLOCKING_STATUSES


@pytest.mark.parametrize("status", [S.SCHEDULED, S.CONFIRMED])
def test_reschedulable(status: S) -> None:
    ensure_reschedulable(status)


@pytest.mark.parametrize("status", [S.IN_PROGRESS, S.COMPLETED, S.CANCELLED, S.NO_SHOW])
def test_not_reschedulable(status: S) -> None:
    with pytest.raises(SchedulingError) as excinfo:
        ensure_reschedulable(status)

    assert excinfo.value.kind == SchedulingErrorKind.INVALID_STATUS_TRANSITION
    assert excinfo.value.status_code == 409
