"""Appointment service: the scheduling store."""

from collections.abc import Awaitable, Callable
from datetime import date, timedelta
from typing import Any, TypeVar
from uuid import UUID, uuid4

import structlog
from sqlalchemy import and_, delete, func, insert, select, update
from sqlalchemy.engine import Row
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from practice_scheduler.core.exceptions import SchedulingError, SchedulingErrorKind
from practice_scheduler.models.appointments import (
    CLINICIAN_OVERLAP_CONSTRAINT,
    PATIENT_OVERLAP_CONSTRAINT,
    appointments,
)
from practice_scheduler.scheduling.availability import SlotPlan
from practice_scheduler.scheduling.config import Clock, SchedulingConfig, utc_now
from practice_scheduler.scheduling.lifecycle import check_transition, ensure_reschedulable
from practice_scheduler.scheduling.rules import BookingInterval, validate_booking
from practice_scheduler.scheduling.timeutil import format_hhmm, from_minutes
from practice_scheduler.schemas.appointments import (
    AppointmentCreate,
    AppointmentFilters,
    AppointmentListResponse,
    AppointmentReschedule,
    AppointmentResponse,
    AppointmentStatus,
    AppointmentStatusUpdate,
    AppointmentUpdate,
    ConflictScope,
)
from practice_scheduler.services.availability_service import AvailabilityService
from practice_scheduler.services.conflict_service import ConflictDetector
from practice_scheduler.services.patient_service import PatientLookup, PatientService

logger = structlog.get_logger()

T = TypeVar("T")

# Serialization failure and deadlock
TRANSIENT_SQLSTATES = frozenset({"40001", "40P01"})


def _is_transient(exc: DBAPIError) -> bool:
    if isinstance(exc, OperationalError):
        return True
    code = getattr(exc.orig, "sqlstate", None) or getattr(exc.orig, "pgcode", None)
    return code in TRANSIENT_SQLSTATES


def _conflict_from_integrity_error(exc: IntegrityError) -> SchedulingError | None:
    """Translate a rejected commit from an overlap constraint into a conflict error."""
    message = str(exc.orig)
    if PATIENT_OVERLAP_CONSTRAINT in message:
        return SchedulingError(
            SchedulingErrorKind.PATIENT_CONFLICT,
            "The patient already has an appointment at that time",
        )
    if CLINICIAN_OVERLAP_CONSTRAINT in message:
        return SchedulingError(
            SchedulingErrorKind.CLINICIAN_CONFLICT,
            "The clinician already has an appointment at that time",
        )
    return None


def _to_response(row: Row) -> AppointmentResponse:
    return AppointmentResponse.model_validate(dict(row._mapping))


class AppointmentService:
    """
    Service for booking and managing appointments.

    Creates and reschedules run the booking rules, both conflict scopes and
    the write inside one transaction; the overlap constraints on the
    ``appointments`` table reject anything a concurrent transaction slipped in.
    """

    # Extra attempts after a transient store failure
    TRANSIENT_RETRIES = 1
    UPCOMING_LIMIT = 100

    def __init__(
        self,
        db: AsyncSession,
        config: SchedulingConfig,
        clock: Clock = utc_now,
        patients: PatientLookup | None = None,
    ):
        """Initialize service with database session, scheduling rules and clock."""
        self.db = db
        self.config = config
        self.clock = clock
        self.patients = patients or PatientService(db)
        self.conflicts = ConflictDetector(db)
        self.availability = AvailabilityService(db, config)

    async def _atomic(self, operation: str, work: Callable[[], Awaitable[T]]) -> T:
        """
        Run ``work`` and commit it as a single transaction.

        Any failure rolls back. Overlap constraint violations become conflict
        errors; transient store errors are retried with a fresh transaction
        and reported as ``StoreUnavailable`` once retries run out.
        """
        last_error: DBAPIError | None = None
        for attempt in range(1, self.TRANSIENT_RETRIES + 2):
            try:
                result = await work()
                await self.db.commit()
                return result
            except SchedulingError as exc:
                await self.db.rollback()
                logger.info(
                    "booking_rejected",
                    operation=operation,
                    error=exc.error_code,
                    message=exc.message,
                )
                raise
            except IntegrityError as exc:
                await self.db.rollback()
                conflict = _conflict_from_integrity_error(exc)
                if conflict is None:
                    raise
                logger.info(
                    "booking_rejected",
                    operation=operation,
                    error=conflict.error_code,
                    source="store_constraint",
                )
                raise conflict from exc
            except DBAPIError as exc:
                await self.db.rollback()
                if not _is_transient(exc):
                    raise
                last_error = exc
                logger.warning(
                    "scheduling_transaction_retry",
                    operation=operation,
                    attempt=attempt,
                    error=str(exc.orig),
                )

        logger.error("store_unavailable", operation=operation, error=str(last_error))
        raise SchedulingError(
            SchedulingErrorKind.STORE_UNAVAILABLE,
            "The schedule is temporarily unavailable, please retry",
            operation=operation,
        ) from last_error

    async def _get_row(
        self,
        appointment_id: UUID,
        clinician_id: UUID,
        for_update: bool = False,
    ) -> Row:
        """
        Load an appointment owned by ``clinician_id``.

        Raises:
            SchedulingError: ``NotFound`` or ``Forbidden``
        """
        stmt = select(appointments).where(appointments.c.id == appointment_id)
        if for_update:
            stmt = stmt.with_for_update()

        result = await self.db.execute(stmt)
        row = result.fetchone()

        if not row:
            raise SchedulingError(
                SchedulingErrorKind.NOT_FOUND,
                "Appointment not found",
                appointment_id=appointment_id,
            )

        if row.clinician_id != clinician_id:
            raise SchedulingError(
                SchedulingErrorKind.FORBIDDEN,
                "Access denied to this appointment",
                appointment_id=appointment_id,
            )

        return row

    async def _ensure_patient_active(self, patient_id: UUID) -> None:
        if not await self.patients.patient_exists(patient_id):
            raise SchedulingError(
                SchedulingErrorKind.PATIENT_NOT_FOUND,
                "Patient not found",
                patient_id=patient_id,
            )
        if not await self.patients.patient_is_active(patient_id):
            raise SchedulingError(
                SchedulingErrorKind.PATIENT_NOT_FOUND,
                "Patient is inactive",
                patient_id=patient_id,
                inactive=True,
            )

    async def _ensure_free(
        self,
        patient_id: UUID,
        clinician_id: UUID,
        interval: BookingInterval,
        exclude_appointment_id: UUID | None = None,
    ) -> None:
        """Check the patient scope, then the clinician scope."""
        checks = (
            (ConflictScope.PATIENT, patient_id, SchedulingErrorKind.PATIENT_CONFLICT),
            (ConflictScope.CLINICIAN, clinician_id, SchedulingErrorKind.CLINICIAN_CONFLICT),
        )
        for scope, scope_id, kind in checks:
            if await self.conflicts.has_conflict(
                scope,
                scope_id,
                interval.appointment_date,
                interval.start_minute,
                interval.end_minute,
                exclude_appointment_id,
            ):
                raise SchedulingError(
                    kind,
                    f"The {scope.value} already has an appointment at that time",
                    appointment_date=interval.appointment_date,
                    start_time=format_hhmm(interval.start_time),
                    end_time=format_hhmm(interval.end_time),
                )

    async def create_appointment(
        self,
        clinician_id: UUID,
        data: AppointmentCreate,
    ) -> AppointmentResponse:
        """
        Book a new appointment.

        Args:
            clinician_id: ID of the clinician the appointment is booked with
            data: Appointment creation data

        Returns:
            Created appointment, status ``scheduled``

        Raises:
            SchedulingError: A validation kind, ``PatientNotFound``,
                ``PatientConflict`` or ``ClinicianConflict``
        """

        async def book() -> Row:
            now = self.clock()
            interval = validate_booking(
                data.appointment_date,
                data.start_time,
                data.duration_minutes,
                now=now,
                config=self.config,
            )
            await self._ensure_patient_active(data.patient_id)
            await self._ensure_free(data.patient_id, clinician_id, interval)

            stmt = (
                insert(appointments)
                .values(
                    id=uuid4(),
                    patient_id=data.patient_id,
                    clinician_id=clinician_id,
                    appointment_date=interval.appointment_date,
                    start_minute=interval.start_minute,
                    end_minute=interval.end_minute,
                    duration_minutes=interval.duration_minutes,
                    kind=data.kind.value,
                    status=AppointmentStatus.SCHEDULED.value,
                    notes=data.notes.strip() if data.notes and data.notes.strip() else None,
                    created_at=now,
                    updated_at=now,
                )
                .returning(appointments)
            )
            result = await self.db.execute(stmt)
            return result.one()

        row = await self._atomic("create", book)
        logger.info(
            "appointment_created",
            appointment_id=str(row.id),
            clinician_id=str(clinician_id),
            appointment_date=row.appointment_date.isoformat(),
            start_time=format_hhmm(from_minutes(row.start_minute)),
            duration_minutes=row.duration_minutes,
        )
        return _to_response(row)

    async def reschedule_appointment(
        self,
        appointment_id: UUID,
        clinician_id: UUID,
        data: AppointmentReschedule,
    ) -> AppointmentResponse:
        """
        Move an appointment to a new date, start time or duration.

        Omitted fields keep their current value. The appointment's own interval
        is ignored by the conflict checks.

        Raises:
            SchedulingError: ``NotFound``, ``Forbidden``, ``InvalidStatusTransition``,
                a validation kind, ``PatientConflict`` or ``ClinicianConflict``
        """

        async def move() -> Row:
            row = await self._get_row(appointment_id, clinician_id, for_update=True)
            ensure_reschedulable(AppointmentStatus(row.status))

            now = self.clock()
            interval = validate_booking(
                data.appointment_date if data.appointment_date is not None
                else row.appointment_date,
                data.start_time if data.start_time is not None
                else from_minutes(row.start_minute),
                data.duration_minutes if data.duration_minutes is not None
                else row.duration_minutes,
                now=now,
                config=self.config,
            )
            await self._ensure_free(row.patient_id, row.clinician_id, interval, row.id)

            stmt = (
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(
                    appointment_date=interval.appointment_date,
                    start_minute=interval.start_minute,
                    end_minute=interval.end_minute,
                    duration_minutes=interval.duration_minutes,
                    updated_at=now,
                )
                .returning(appointments)
            )
            result = await self.db.execute(stmt)
            return result.one()

        row = await self._atomic("reschedule", move)
        logger.info(
            "appointment_rescheduled",
            appointment_id=str(appointment_id),
            appointment_date=row.appointment_date.isoformat(),
            start_time=format_hhmm(from_minutes(row.start_minute)),
            duration_minutes=row.duration_minutes,
        )
        return _to_response(row)

    async def update_appointment_status(
        self,
        appointment_id: UUID,
        clinician_id: UUID,
        data: AppointmentStatusUpdate,
    ) -> AppointmentResponse:
        """
        Move an appointment through its lifecycle.

        Raises:
            SchedulingError: ``NotFound``, ``Forbidden`` or ``InvalidStatusTransition``
        """

        async def transition() -> tuple[AppointmentStatus, Row]:
            row = await self._get_row(appointment_id, clinician_id, for_update=True)
            current = AppointmentStatus(row.status)
            now = self.clock()
            check_transition(
                current,
                data.status,
                starts_at=self.config.starts_at(
                    row.appointment_date, from_minutes(row.start_minute)
                ),
                now=now,
            )

            values: dict[str, Any] = {
                "status": data.status.value,
                "updated_at": now,
            }
            if data.status == AppointmentStatus.CANCELLED:
                values["cancelled_at"] = now

            stmt = (
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(**values)
                .returning(appointments)
            )
            result = await self.db.execute(stmt)
            return current, result.one()

        old_status, row = await self._atomic("set_status", transition)
        logger.info(
            "appointment_status_changed",
            appointment_id=str(appointment_id),
            old_status=old_status.value,
            new_status=row.status,
        )
        return _to_response(row)

    async def update_appointment(
        self,
        appointment_id: UUID,
        clinician_id: UUID,
        data: AppointmentUpdate,
    ) -> AppointmentResponse:
        """Edit the kind or notes of an appointment."""
        update_values: dict[str, Any] = {}
        for field, value in data.model_dump(exclude_unset=True).items():
            if value is not None:
                update_values[field] = getattr(value, "value", value)

        async def edit() -> Row:
            row = await self._get_row(appointment_id, clinician_id, for_update=True)
            if not update_values:
                return row

            stmt = (
                update(appointments)
                .where(appointments.c.id == appointment_id)
                .values(**update_values, updated_at=self.clock())
                .returning(appointments)
            )
            result = await self.db.execute(stmt)
            return result.one()

        return _to_response(await self._atomic("update", edit))

    async def delete_appointment(self, appointment_id: UUID, clinician_id: UUID) -> None:
        """
        Permanently delete an appointment.

        Cancelling is preferred when the history should be kept.
        """

        async def remove() -> None:
            await self._get_row(appointment_id, clinician_id, for_update=True)
            await self.db.execute(delete(appointments).where(appointments.c.id == appointment_id))

        await self._atomic("delete", remove)
        logger.info("appointment_deleted", appointment_id=str(appointment_id))

    async def get_appointment(
        self,
        appointment_id: UUID,
        clinician_id: UUID,
    ) -> AppointmentResponse:
        """
        Get appointment by ID.

        Raises:
            SchedulingError: ``NotFound`` or ``Forbidden``
        """
        return _to_response(await self._get_row(appointment_id, clinician_id))

    async def list_appointments(
        self,
        clinician_id: UUID,
        filters: AppointmentFilters,
    ) -> AppointmentListResponse:
        """
        List a clinician's appointments with filtering and pagination.

        Args:
            clinician_id: ID of requesting clinician
            filters: Filter and pagination parameters

        Returns:
            Paginated list of appointments, latest first
        """
        conditions = [appointments.c.clinician_id == clinician_id]

        if filters.patient_id:
            conditions.append(appointments.c.patient_id == filters.patient_id)

        if filters.status:
            conditions.append(appointments.c.status == filters.status.value)

        if filters.kind:
            conditions.append(appointments.c.kind == filters.kind.value)

        if filters.from_date:
            conditions.append(appointments.c.appointment_date >= filters.from_date)

        if filters.to_date:
            conditions.append(appointments.c.appointment_date <= filters.to_date)

        # Count total
        count_stmt = select(func.count()).select_from(appointments).where(and_(*conditions))
        total_result = await self.db.execute(count_stmt)
        total = total_result.scalar() or 0

        # Get paginated results
        offset = (filters.page - 1) * filters.page_size

        stmt = (
            select(appointments)
            .where(and_(*conditions))
            .order_by(appointments.c.appointment_date.desc(), appointments.c.start_minute.desc())
            .limit(filters.page_size)
            .offset(offset)
        )

        result = await self.db.execute(stmt)
        items = [_to_response(row) for row in result.fetchall()]

        return AppointmentListResponse(
            total=total,
            page=filters.page,
            page_size=filters.page_size,
            items=items,
        )

    async def list_today(self, clinician_id: UUID) -> list[AppointmentResponse]:
        """The clinician's appointments for the clinic-local current day."""
        today = self.config.local_today(self.clock())
        stmt = (
            select(appointments)
            .where(
                and_(
                    appointments.c.clinician_id == clinician_id,
                    appointments.c.appointment_date == today,
                )
            )
            .order_by(appointments.c.start_minute)
        )
        result = await self.db.execute(stmt)
        return [_to_response(row) for row in result.fetchall()]

    async def list_upcoming(self, clinician_id: UUID, days: int = 7) -> list[AppointmentResponse]:
        """Scheduled or confirmed appointments after today and within ``days``."""
        today = self.config.local_today(self.clock())
        stmt = (
            select(appointments)
            .where(
                and_(
                    appointments.c.clinician_id == clinician_id,
                    appointments.c.appointment_date > today,
                    appointments.c.appointment_date <= today + timedelta(days=days),
                    appointments.c.status.in_(
                        [AppointmentStatus.SCHEDULED.value, AppointmentStatus.CONFIRMED.value]
                    ),
                )
            )
            .order_by(appointments.c.appointment_date, appointments.c.start_minute)
            .limit(self.UPCOMING_LIMIT)
        )
        result = await self.db.execute(stmt)
        return [_to_response(row) for row in result.fetchall()]

    async def find_conflicts(
        self,
        scope: ConflictScope,
        scope_id: UUID,
        appointment_date: date,
        start_minute: int,
        end_minute: int,
        exclude_appointment_id: UUID | None = None,
    ) -> bool:
        """Pre-flight overlap check for one scope; nothing is locked or written."""
        return await self.conflicts.has_conflict(
            scope, scope_id, appointment_date, start_minute, end_minute, exclude_appointment_id
        )

    async def list_availability(
        self,
        clinician_id: UUID,
        appointment_date: date,
        duration_minutes: int,
        granularity_minutes: int | None = None,
    ) -> SlotPlan:
        """Free start times for the clinician on ``appointment_date``."""
        return await self.availability.available_slots(
            clinician_id, appointment_date, duration_minutes, granularity_minutes
        )
