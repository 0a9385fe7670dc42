"""Tests for the booking rules."""

from datetime import UTC, date, datetime, time, timedelta
from zoneinfo import ZoneInfoNotFoundError

import pytest

from practice_scheduler.core.exceptions import SchedulingError, SchedulingErrorKind
from practice_scheduler.scheduling.config import SchedulingConfig
from practice_scheduler.scheduling.rules import validate_booking

NOW = datetime(2030, 3, 4, 9, 0, tzinfo=UTC)
TODAY = NOW.date()
TOMORROW = TODAY + timedelta(days=1)


def kind_of(excinfo: pytest.ExceptionInfo[SchedulingError]) -> SchedulingErrorKind:
    return excinfo.value.kind


@pytest.fixture
def config() -> SchedulingConfig:
    return SchedulingConfig()


def test_valid_booking_returns_interval(config: SchedulingConfig) -> None:
    interval = validate_booking(TOMORROW, time(10, 0), 45, now=NOW, config=config)

    assert interval.appointment_date == TOMORROW
    assert interval.start_minute == 600
    assert interval.end_minute == 645
    assert interval.duration_minutes == 45
    assert interval.end_time == time(10, 45)


@pytest.mark.parametrize("duration", [0, 14, 481, -30])
def test_duration_outside_bounds(config: SchedulingConfig, duration: int) -> None:
    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(TOMORROW, time(10, 0), duration, now=NOW, config=config)

    assert kind_of(excinfo) == SchedulingErrorKind.INVALID_DURATION
    assert excinfo.value.status_code == 422


@pytest.mark.parametrize(
    ("start", "duration"),
    [(time(7, 59), 30), (time(19, 45), 30), (time(6, 0), 15), (time(20, 0), 15)],
)
def test_outside_working_hours(config: SchedulingConfig, start: time, duration: int) -> None:
    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(TOMORROW, start, duration, now=NOW, config=config)

    assert kind_of(excinfo) == SchedulingErrorKind.OUTSIDE_WORKING_HOURS


def test_window_edges_are_bookable(config: SchedulingConfig) -> None:
    """The first minute of the window and a booking ending exactly at close are fine."""
    validate_booking(TOMORROW, time(8, 0), 30, now=NOW, config=config)
    validate_booking(TOMORROW, time(19, 30), 30, now=NOW, config=config)


def test_past_date(config: SchedulingConfig) -> None:
    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(TODAY - timedelta(days=1), time(10, 0), 30, now=NOW, config=config)

    assert kind_of(excinfo) == SchedulingErrorKind.PAST_DATE


def test_earlier_today_is_past(config: SchedulingConfig) -> None:
    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(TODAY, time(8, 30), 30, now=NOW, config=config)

    assert kind_of(excinfo) == SchedulingErrorKind.PAST_DATE


def test_insufficient_lead_time(config: SchedulingConfig) -> None:
    """Booking 30 minutes from now with a 60 minute lead time is refused."""
    start = (NOW + timedelta(minutes=30)).time()

    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(TODAY, start, 30, now=NOW, config=config)

    assert kind_of(excinfo) == SchedulingErrorKind.INSUFFICIENT_LEAD_TIME


def test_lead_time_boundary_is_allowed(config: SchedulingConfig) -> None:
    validate_booking(TODAY, time(10, 0), 30, now=NOW, config=config)


def test_first_violated_rule_wins(config: SchedulingConfig) -> None:
    """A past, out-of-hours booking with a bad duration reports the duration."""
    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(date(2020, 1, 1), time(5, 0), 5, now=NOW, config=config)
    assert kind_of(excinfo) == SchedulingErrorKind.INVALID_DURATION

    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(date(2020, 1, 1), time(5, 0), 30, now=NOW, config=config)
    assert kind_of(excinfo) == SchedulingErrorKind.OUTSIDE_WORKING_HOURS

    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(date(2020, 1, 1), time(10, 0), 30, now=NOW, config=config)
    assert kind_of(excinfo) == SchedulingErrorKind.PAST_DATE


def test_clinic_timezone_places_booking_on_timeline() -> None:
    """10:30 in Berlin is 09:30 UTC in March, only 30 minutes after NOW."""
    config = SchedulingConfig(timezone="Europe/Berlin")

    with pytest.raises(SchedulingError) as excinfo:
        validate_booking(TODAY, time(10, 30), 30, now=NOW, config=config)
    assert kind_of(excinfo) == SchedulingErrorKind.INSUFFICIENT_LEAD_TIME

    validate_booking(TODAY, time(11, 0), 30, now=NOW, config=config)


def test_custom_rules() -> None:
    config = SchedulingConfig(
        working_window_start=time(9, 0),
        working_window_end=time(12, 0),
        min_duration_minutes=30,
        max_duration_minutes=60,
        min_lead_time_minutes=0,
    )

    validate_booking(TODAY, time(9, 0), 60, now=NOW, config=config)
    with pytest.raises(SchedulingError):
        validate_booking(TODAY, time(11, 30), 60, now=NOW, config=config)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"working_window_start": time(20, 0), "working_window_end": time(8, 0)},
        {"min_duration_minutes": 0},
        {"min_duration_minutes": 60, "max_duration_minutes": 30},
        {"min_lead_time_minutes": -1},
        {"slot_granularity_minutes": 0},
    ],
)
def test_inconsistent_config_is_rejected(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        SchedulingConfig(**kwargs)


def test_unknown_timezone_is_rejected() -> None:
    with pytest.raises(ZoneInfoNotFoundError):
        SchedulingConfig(timezone="Mars/Olympus_Mons")
