"""Overlap detection for one patient or one clinician on one day."""

from datetime import date
from uuid import UUID

from sqlalchemy import and_, select
from sqlalchemy.ext.asyncio import AsyncSession

from practice_scheduler.models.appointments import appointments
from practice_scheduler.scheduling.lifecycle import RELEASED_STATUSES
from practice_scheduler.scheduling.timeutil import overlaps_any
from practice_scheduler.schemas.appointments import ConflictScope

_SCOPE_COLUMNS = {
    ConflictScope.PATIENT: appointments.c.patient_id,
    ConflictScope.CLINICIAN: appointments.c.clinician_id,
}


class ConflictDetector:
    """
    Finds blocking bookings that overlap a candidate interval.

    Lookups are keyed by ``(scope, day)`` so the candidate set is a single
    day's bookings regardless of how much history exists.
    """

    def __init__(self, db: AsyncSession):
        """Initialize detector with database session."""
        self.db = db

    async def day_intervals(
        self,
        scope: ConflictScope,
        scope_id: UUID,
        appointment_date: date,
        exclude_appointment_id: UUID | None = None,
    ) -> list[tuple[int, int]]:
        """
        Load the busy intervals of a scope on one day.

        Args:
            scope: Patient or clinician
            scope_id: ID of the patient or clinician
            appointment_date: Day to inspect
            exclude_appointment_id: Appointment to ignore (the one being moved)

        Returns:
            ``(start_minute, end_minute)`` pairs of blocking appointments, by start
        """
        conditions = [
            _SCOPE_COLUMNS[scope] == scope_id,
            appointments.c.appointment_date == appointment_date,
            appointments.c.status.not_in([s.value for s in RELEASED_STATUSES]),
        ]
        if exclude_appointment_id is not None:
            conditions.append(appointments.c.id != exclude_appointment_id)

        stmt = (
            select(appointments.c.start_minute, appointments.c.end_minute)
            .where(and_(*conditions))
            .order_by(appointments.c.start_minute)
        )
        result = await self.db.execute(stmt)
        return [(row.start_minute, row.end_minute) for row in result]

    async def has_conflict(
        self,
        scope: ConflictScope,
        scope_id: UUID,
        appointment_date: date,
        start_minute: int,
        end_minute: int,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        """Return True if ``[start_minute, end_minute)`` overlaps a blocking booking."""
        busy = await self.day_intervals(scope, scope_id, appointment_date, exclude_appointment_id)
        return overlaps_any(busy, start_minute, end_minute)
