"""Booking rules applied to every new or moved appointment."""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from practice_scheduler.core.exceptions import SchedulingError, SchedulingErrorKind
from practice_scheduler.scheduling.config import SchedulingConfig
from practice_scheduler.scheduling.timeutil import format_hhmm, from_minutes, to_minutes


@dataclass(frozen=True)
class BookingInterval:
    """A validated ``[start_minute, end_minute)`` interval on one calendar day."""

    appointment_date: date
    start_minute: int
    end_minute: int

    @property
    def duration_minutes(self) -> int:
        return self.end_minute - self.start_minute

    @property
    def start_time(self) -> time:
        return from_minutes(self.start_minute)

    @property
    def end_time(self) -> time:
        return from_minutes(self.end_minute)


def check_duration(duration_minutes: int, config: SchedulingConfig) -> None:
    """Raise ``InvalidDuration`` unless the duration is within the configured bounds."""
    if not config.min_duration_minutes <= duration_minutes <= config.max_duration_minutes:
        raise SchedulingError(
            SchedulingErrorKind.INVALID_DURATION,
            f"Duration must be between {config.min_duration_minutes} and "
            f"{config.max_duration_minutes} minutes",
            duration_minutes=duration_minutes,
        )


def validate_booking(
    appointment_date: date,
    start_time: time,
    duration_minutes: int,
    *,
    now: datetime,
    config: SchedulingConfig,
) -> BookingInterval:
    """
    Check a candidate booking against the business rules.

    Rules are applied in a fixed order and the first violation wins:
    duration bounds, working window, past date, minimum lead time.

    Args:
        appointment_date: Calendar day of the booking
        start_time: Clinic-local start time
        duration_minutes: Requested length
        now: Current instant (timezone-aware)
        config: Scheduling rules

    Returns:
        The validated interval

    Raises:
        SchedulingError: With a validation kind describing the first broken rule
    """
    check_duration(duration_minutes, config)

    start_minute = to_minutes(start_time)
    end_minute = start_minute + duration_minutes
    if start_minute < config.window_start_minute or end_minute > config.window_end_minute:
        raise SchedulingError(
            SchedulingErrorKind.OUTSIDE_WORKING_HOURS,
            f"Appointments must fit between {format_hhmm(config.working_window_start)} "
            f"and {format_hhmm(config.working_window_end)}",
            start_time=format_hhmm(start_time),
            duration_minutes=duration_minutes,
        )

    starts_at = config.starts_at(appointment_date, from_minutes(start_minute))
    if starts_at < now:
        raise SchedulingError(
            SchedulingErrorKind.PAST_DATE,
            "Appointments cannot be booked in the past",
            appointment_date=appointment_date.isoformat(),
            start_time=format_hhmm(start_time),
        )

    if starts_at - now < timedelta(minutes=config.min_lead_time_minutes):
        raise SchedulingError(
            SchedulingErrorKind.INSUFFICIENT_LEAD_TIME,
            f"Appointments must be booked at least {config.min_lead_time_minutes} "
            "minutes in advance",
            appointment_date=appointment_date.isoformat(),
            start_time=format_hhmm(start_time),
        )

    return BookingInterval(appointment_date, start_minute, end_minute)
