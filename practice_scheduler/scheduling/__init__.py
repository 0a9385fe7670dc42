"""Appointment scheduling engine: rules, overlap arithmetic, slots and lifecycle."""

from practice_scheduler.scheduling.availability import SlotPlan, plan_slots
from practice_scheduler.scheduling.config import Clock, SchedulingConfig, utc_now
from practice_scheduler.scheduling.lifecycle import (
    BLOCKING_STATUSES,
    RELEASED_STATUSES,
    RESCHEDULABLE_STATUSES,
    TERMINAL_STATUSES,
    check_transition,
    ensure_reschedulable,
)
from practice_scheduler.scheduling.rules import BookingInterval, check_duration, validate_booking
from practice_scheduler.scheduling.timeutil import (
    add_minutes,
    format_hhmm,
    from_minutes,
    overlaps,
    overlaps_any,
    parse_hhmm,
    to_minutes,
)

__all__ = [
    "BLOCKING_STATUSES",
    "RELEASED_STATUSES",
    "RESCHEDULABLE_STATUSES",
    "TERMINAL_STATUSES",
    "BookingInterval",
    "Clock",
    "SchedulingConfig",
    "SlotPlan",
    "add_minutes",
    "check_duration",
    "check_transition",
    "ensure_reschedulable",
    "format_hhmm",
    "from_minutes",
    "overlaps",
    "overlaps_any",
    "parse_hhmm",
    "plan_slots",
    "to_minutes",
    "utc_now",
    "validate_booking",
]
