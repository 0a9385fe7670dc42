"""Scheduling configuration and clock."""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, date, datetime, time, tzinfo
from functools import cached_property
from zoneinfo import ZoneInfo

from practice_scheduler.scheduling.timeutil import to_minutes

# Returns the current instant; must be timezone-aware
Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


@dataclass(frozen=True)
class SchedulingConfig:
    """Business rules shared by every scheduling component."""

    working_window_start: time = time(8, 0)
    working_window_end: time = time(20, 0)
    min_duration_minutes: int = 15
    max_duration_minutes: int = 480
    min_lead_time_minutes: int = 60
    slot_granularity_minutes: int = 30
    timezone: str = "UTC"

    def __post_init__(self) -> None:
        """Reject inconsistent rule sets."""
        if self.window_start_minute >= self.window_end_minute:
            raise ValueError("Working window start must be before its end")
        if self.min_duration_minutes <= 0:
            raise ValueError("Minimum duration must be positive")
        if self.min_duration_minutes > self.max_duration_minutes:
            raise ValueError("Minimum duration cannot exceed maximum duration")
        if self.min_lead_time_minutes < 0:
            raise ValueError("Minimum lead time cannot be negative")
        if self.slot_granularity_minutes <= 0:
            raise ValueError("Slot granularity must be positive")
        # Unknown zones fail here, at startup
        _ = self.tz

    @property
    def window_start_minute(self) -> int:
        return to_minutes(self.working_window_start)

    @property
    def window_end_minute(self) -> int:
        return to_minutes(self.working_window_end)

    @cached_property
    def tz(self) -> tzinfo:
        """Clinic time zone used to place a booking's date and time on the timeline."""
        return ZoneInfo(self.timezone)

    def local_today(self, now: datetime) -> date:
        """Return the clinic-local calendar day of ``now``."""
        return now.astimezone(self.tz).date()

    def starts_at(self, appointment_date: date, start: time) -> datetime:
        """Return the aware instant at which a booking starts."""
        return datetime.combine(appointment_date, start, tzinfo=self.tz)
