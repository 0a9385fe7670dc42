"""Read-only patient lookups used by the scheduler."""

from typing import Protocol
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from practice_scheduler.models.patients import patients


class PatientLookup(Protocol):
    """What the scheduler needs to know about a patient."""

    async def patient_exists(self, patient_id: UUID) -> bool: ...

    async def patient_is_active(self, patient_id: UUID) -> bool: ...


class PatientService:
    """Patient lookups backed by the ``patients`` table."""

    def __init__(self, db: AsyncSession):
        """Initialize service with database session."""
        self.db = db

    async def _is_active(self, patient_id: UUID) -> bool | None:
        result = await self.db.execute(
            select(patients.c.is_active).where(patients.c.id == patient_id)
        )
        return result.scalar_one_or_none()

    async def patient_exists(self, patient_id: UUID) -> bool:
        """Return True if a patient record exists, active or not."""
        return await self._is_active(patient_id) is not None

    async def patient_is_active(self, patient_id: UUID) -> bool:
        """Return True only for existing, active patients."""
        return bool(await self._is_active(patient_id))
