"""FastAPI dependencies."""

from typing import Annotated
from uuid import UUID

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from practice_scheduler.config import settings
from practice_scheduler.core.security import decode_access_token
from practice_scheduler.database import get_db
from practice_scheduler.scheduling.config import Clock, SchedulingConfig, utc_now
from practice_scheduler.services.appointment_service import AppointmentService

# Security
security = HTTPBearer()


def _credentials_error(detail: str = "Could not validate credentials") -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_clinician_id(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(security)],
) -> UUID:
    """
    Extract the clinician ID from the bearer token.

    Args:
        credentials: Bearer token credentials

    Returns:
        Clinician ID from the ``sub`` claim

    Raises:
        HTTPException: If token is invalid or expired
    """
    payload = decode_access_token(credentials.credentials)
    if payload is None:
        raise _credentials_error()

    clinician_id = payload.get("sub")
    if clinician_id is None or not isinstance(clinician_id, str):
        raise _credentials_error()

    try:
        return UUID(clinician_id)
    except ValueError:
        raise _credentials_error("Invalid clinician ID format")


def get_scheduling_config() -> SchedulingConfig:
    """Scheduling rules from settings."""
    return settings.scheduling


def get_clock() -> Clock:
    """Source of the current instant."""
    return utc_now


async def get_appointment_service(
    db: Annotated[AsyncSession, Depends(get_db)],
    config: Annotated[SchedulingConfig, Depends(get_scheduling_config)],
    clock: Annotated[Clock, Depends(get_clock)],
) -> AppointmentService:
    """Appointment service bound to the request's session."""
    return AppointmentService(db, config, clock)


# Type aliases for dependency injection
CurrentClinicianId = Annotated[UUID, Depends(get_current_clinician_id)]
Scheduler = Annotated[AppointmentService, Depends(get_appointment_service)]
