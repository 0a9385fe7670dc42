"""Availability queries for clinicians."""

from datetime import date
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from practice_scheduler.scheduling.availability import SlotPlan, plan_slots
from practice_scheduler.scheduling.config import SchedulingConfig
from practice_scheduler.scheduling.rules import check_duration
from practice_scheduler.schemas.appointments import ConflictScope
from practice_scheduler.services.conflict_service import ConflictDetector


class AvailabilityService:
    """Computes free start times from a clinician's bookings for the day."""

    def __init__(self, db: AsyncSession, config: SchedulingConfig):
        """Initialize service with database session and scheduling rules."""
        self.config = config
        self.conflicts = ConflictDetector(db)

    async def available_slots(
        self,
        clinician_id: UUID,
        appointment_date: date,
        duration_minutes: int,
        granularity_minutes: int | None = None,
    ) -> SlotPlan:
        """
        List the start times at which a booking of ``duration_minutes`` would fit.

        The day's bookings are read once; candidates are then filtered with the
        same overlap predicate the conflict checks use.

        Raises:
            SchedulingError: ``InvalidDuration`` for a duration no booking could have
            ValueError: For a non-positive ``granularity_minutes``; the HTTP layer
                refuses such values before they reach the service
        """
        check_duration(duration_minutes, self.config)
        if granularity_minutes is not None and granularity_minutes <= 0:
            raise ValueError("granularity_minutes must be positive")
        busy = await self.conflicts.day_intervals(
            ConflictScope.CLINICIAN, clinician_id, appointment_date
        )
        return plan_slots(busy, duration_minutes, self.config, granularity_minutes)
