"""Appointment endpoints."""

from datetime import date, time
from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, Response, status

from practice_scheduler.dependencies import CurrentClinicianId, Scheduler
from practice_scheduler.scheduling.timeutil import format_hhmm, to_minutes
from practice_scheduler.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentKind,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    AvailabilityResponse,
    ConflictCheckResponse,
    ConflictScope,
)

router = APIRouter()


@router.post(
    "/",
    response_model=AppointmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Book an appointment",
)
async def create_appointment(
    data: AppointmentCreate,
    clinician_id: CurrentClinicianId,
    service: Scheduler,
) -> AppointmentResponse:
    """
    Book an appointment with the authenticated clinician.

    Args:
        data: Appointment creation data
        clinician_id: Authenticated clinician
        service: Appointment service

    Returns:
        Created appointment
    """
    return await service.create_appointment(clinician_id, data)


@router.get(
    "/",
    response_model=AppointmentListResponse,
    status_code=status.HTTP_200_OK,
    summary="List appointments",
)
async def list_appointments(
    clinician_id: CurrentClinicianId,
    service: Scheduler,
    patient_id: UUID | None = Query(None),
    status_filter: AppointmentStatus | None = Query(None, alias="status"),
    kind: AppointmentKind | None = Query(None),
    from_date: date | None = Query(None),
    to_date: date | None = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
) -> AppointmentListResponse:
    """List the authenticated clinician's appointments, latest first."""
    filters = AppointmentFilters(
        patient_id=patient_id,
        status=status_filter,
        kind=kind,
        from_date=from_date,
        to_date=to_date,
        page=page,
        page_size=page_size,
    )
    return await service.list_appointments(clinician_id, filters)


@router.get(
    "/availability",
    response_model=AvailabilityResponse,
    status_code=status.HTTP_200_OK,
    summary="List free start times",
)
async def list_availability(
    current_clinician_id: CurrentClinicianId,
    service: Scheduler,
    appointment_date: date = Query(..., alias="date"),
    duration_minutes: int = Query(..., ge=1),
    granularity_minutes: int | None = Query(None, ge=1),
    clinician_id: UUID | None = Query(None),
) -> AvailabilityResponse:
    """
    Free start times for a clinician on one day.

    Args:
        current_clinician_id: Authenticated clinician, the default subject
        service: Appointment service
        appointment_date: Day to inspect
        duration_minutes: Length of the appointment to place
        granularity_minutes: Step between candidate starts
        clinician_id: Another clinician to inspect

    Returns:
        Start times in ascending order
    """
    subject = clinician_id or current_clinician_id
    plan = await service.list_availability(
        subject, appointment_date, duration_minutes, granularity_minutes
    )
    return AvailabilityResponse(
        clinician_id=subject,
        appointment_date=appointment_date,
        duration_minutes=plan.duration_minutes,
        granularity_minutes=plan.granularity_minutes,
        available_slots=plan.as_strings(),
    )


@router.get(
    "/conflicts",
    response_model=ConflictCheckResponse,
    status_code=status.HTTP_200_OK,
    summary="Check an interval for overlaps",
)
async def find_conflicts(
    clinician_id: CurrentClinicianId,
    service: Scheduler,
    scope: ConflictScope = Query(...),
    scope_id: UUID = Query(...),
    appointment_date: date = Query(..., alias="date"),
    start_time: time = Query(...),
    end_time: time = Query(...),
    exclude_appointment_id: UUID | None = Query(None),
) -> ConflictCheckResponse:
    """Report whether ``[start_time, end_time)`` overlaps a blocking booking of the scope."""
    start_minute = to_minutes(start_time)
    end_minute = to_minutes(end_time)
    if end_minute <= start_minute:
        raise HTTPException(
            status_code=422,
            detail="end_time must be after start_time",
        )

    has_conflict = await service.find_conflicts(
        scope, scope_id, appointment_date, start_minute, end_minute, exclude_appointment_id
    )
    return ConflictCheckResponse(
        scope=scope,
        scope_id=scope_id,
        appointment_date=appointment_date,
        start_time=format_hhmm(start_time),
        end_time=format_hhmm(end_time),
        has_conflict=has_conflict,
    )


@router.get(
    "/today",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="Today's appointments",
)
async def today_appointments(
    clinician_id: CurrentClinicianId,
    service: Scheduler,
) -> list[AppointmentResponse]:
    """The authenticated clinician's appointments for the clinic-local day."""
    return await service.list_today(clinician_id)


@router.get(
    "/upcoming",
    response_model=list[AppointmentResponse],
    status_code=status.HTTP_200_OK,
    summary="Upcoming appointments",
)
async def upcoming_appointments(
    clinician_id: CurrentClinicianId,
    service: Scheduler,
    days: int = Query(7, ge=1, le=90),
) -> list[AppointmentResponse]:
    """Scheduled and confirmed appointments in the next ``days`` days."""
    return await service.list_upcoming(clinician_id, days)


@router.get(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Get appointment by ID",
)
async def get_appointment(
    appointment_id: UUID,
    clinician_id: CurrentClinicianId,
    service: Scheduler,
) -> AppointmentResponse:
    """
    Get a specific appointment by ID.

    Raises:
        SchedulingError: If appointment not found or belongs to another clinician
    """
    return await service.get_appointment(appointment_id, clinician_id)


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment details",
)
async def update_appointment(
    appointment_id: UUID,
    data: AppointmentUpdate,
    clinician_id: CurrentClinicianId,
    service: Scheduler,
) -> AppointmentResponse:
    """Update the kind or notes of an appointment."""
    return await service.update_appointment(appointment_id, clinician_id, data)


@router.patch(
    "/{appointment_id}/schedule",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Reschedule appointment",
)
async def reschedule_appointment(
    appointment_id: UUID,
    data: AppointmentReschedule,
    clinician_id: CurrentClinicianId,
    service: Scheduler,
) -> AppointmentResponse:
    """
    Move an appointment to a new date, start time or duration.

    Args:
        appointment_id: Appointment ID
        data: Fields to change
        clinician_id: Authenticated clinician
        service: Appointment service

    Returns:
        Rescheduled appointment
    """
    return await service.reschedule_appointment(appointment_id, clinician_id, data)


@router.patch(
    "/{appointment_id}/status",
    response_model=AppointmentResponse,
    status_code=status.HTTP_200_OK,
    summary="Update appointment status",
)
async def update_appointment_status(
    appointment_id: UUID,
    data: AppointmentStatusUpdate,
    clinician_id: CurrentClinicianId,
    service: Scheduler,
) -> AppointmentResponse:
    """
    Update appointment status (e.g., confirm, cancel, complete).

    Raises:
        SchedulingError: ``InvalidStatusTransition`` for a move the lifecycle forbids
    """
    return await service.update_appointment_status(appointment_id, clinician_id, data)


@router.delete(
    "/{appointment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete appointment",
)
async def delete_appointment(
    appointment_id: UUID,
    clinician_id: CurrentClinicianId,
    service: Scheduler,
) -> None:
    """Permanently delete an appointment."""
    await service.delete_appointment(appointment_id, clinician_id)
