"""Free-slot enumeration over a clinician's day."""

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import time

from practice_scheduler.scheduling.config import SchedulingConfig
from practice_scheduler.scheduling.timeutil import format_hhmm, from_minutes, overlaps_any


@dataclass(frozen=True)
class SlotPlan:
    """
    Lazily enumerated free start times for one day.

    Iterating twice yields the same sequence; nothing is computed until iterated.
    """

    busy: tuple[tuple[int, int], ...]
    duration_minutes: int
    granularity_minutes: int
    window_start_minute: int
    window_end_minute: int

    def __post_init__(self) -> None:
        """Reject degenerate enumeration parameters."""
        if self.duration_minutes <= 0:
            raise ValueError("Duration must be positive")
        if self.granularity_minutes <= 0:
            raise ValueError("Slot granularity must be positive")

    def __iter__(self) -> Iterator[time]:
        last_start = self.window_end_minute - self.duration_minutes
        for start in range(self.window_start_minute, last_start + 1, self.granularity_minutes):
            if not overlaps_any(self.busy, start, start + self.duration_minutes):
                yield from_minutes(start)

    def as_strings(self) -> list[str]:
        """Materialize the plan as ``HH:MM`` strings."""
        return [format_hhmm(slot) for slot in self]


def plan_slots(
    busy: list[tuple[int, int]] | tuple[tuple[int, int], ...],
    duration_minutes: int,
    config: SchedulingConfig,
    granularity_minutes: int | None = None,
) -> SlotPlan:
    """
    Build the slot plan for a day given the clinician's busy intervals.

    Args:
        busy: Blocking ``(start_minute, end_minute)`` intervals of the day
        duration_minutes: Length of the appointment to place
        config: Scheduling rules (working window and default granularity)
        granularity_minutes: Step between candidate starts, defaults to the configured one

    Returns:
        A restartable iterable of free start times; empty when the duration
        does not fit in the working window
    """
    return SlotPlan(
        busy=tuple(sorted(busy)),
        duration_minutes=duration_minutes,
        granularity_minutes=(
            granularity_minutes
            if granularity_minutes is not None
            else config.slot_granularity_minutes
        ),
        window_start_minute=config.window_start_minute,
        window_end_minute=config.window_end_minute,
    )
