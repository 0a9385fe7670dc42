"""Appointment schemas for request/response validation."""

from datetime import date, datetime, time
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field, field_serializer, field_validator, model_validator


class AppointmentStatus(str, Enum):
    """Appointment status enumeration."""

    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no_show"


class AppointmentKind(str, Enum):
    """Appointment category; carried as-is by the scheduling engine."""

    CONSULTATION = "consultation"
    FOLLOW_UP = "follow_up"
    EMERGENCY = "emergency"
    EVALUATION = "evaluation"
    THERAPY = "therapy"
    MEDICATION_REVIEW = "medication_review"


class ConflictScope(str, Enum):
    """Entity against which bookings must not overlap."""

    PATIENT = "patient"
    CLINICIAN = "clinician"


def _minute_to_time(minute: int) -> time:
    return time(minute // 60, minute % 60)


def _whole_minute(v: time | None) -> time | None:
    if v is not None and (v.second or v.microsecond):
        raise ValueError("Times must be given as HH:MM")
    if v is not None and v.tzinfo is not None:
        raise ValueError("Times are clinic-local and must not carry a UTC offset")
    return v


class AppointmentCreate(BaseModel):
    """Schema for booking a new appointment."""

    patient_id: UUID
    appointment_date: date
    start_time: time
    duration_minutes: int
    kind: AppointmentKind
    notes: str | None = Field(None, max_length=2000)

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v: time) -> time:
        """Reject seconds and offsets; the engine works in whole minutes."""
        return _whole_minute(v)  # type: ignore[return-value]


class AppointmentReschedule(BaseModel):
    """Schema for moving an appointment; omitted fields keep their current value."""

    appointment_date: date | None = None
    start_time: time | None = None
    duration_minutes: int | None = None

    @field_validator("start_time")
    @classmethod
    def validate_start_time(cls, v: time | None) -> time | None:
        """Reject seconds and offsets; the engine works in whole minutes."""
        return _whole_minute(v)

    @model_validator(mode="after")
    def validate_not_empty(self) -> "AppointmentReschedule":
        """At least one temporal field must be supplied."""
        if self.appointment_date is None and self.start_time is None and (
            self.duration_minutes is None
        ):
            raise ValueError("Provide appointment_date, start_time or duration_minutes")
        return self


class AppointmentUpdate(BaseModel):
    """Schema for editing the descriptive fields of an appointment."""

    kind: AppointmentKind | None = None
    notes: str | None = Field(None, max_length=2000)


class AppointmentStatusUpdate(BaseModel):
    """Schema for updating appointment status."""

    status: AppointmentStatus


class AppointmentResponse(BaseModel):
    """Schema for appointment response."""

    id: UUID
    patient_id: UUID
    clinician_id: UUID
    appointment_date: date
    start_time: time
    end_time: time
    duration_minutes: int
    kind: AppointmentKind
    status: AppointmentStatus
    notes: str | None = None
    created_at: datetime
    updated_at: datetime
    cancelled_at: datetime | None = None

    model_config = {"from_attributes": True}

    @model_validator(mode="before")
    @classmethod
    def from_minute_columns(cls, data: Any) -> Any:
        """Build start and end times from the stored minute offsets."""
        if isinstance(data, dict) and "start_minute" in data:
            data = dict(data)
            data.setdefault("start_time", _minute_to_time(data.pop("start_minute")))
            data.setdefault("end_time", _minute_to_time(data.pop("end_minute")))
        return data

    @field_serializer("start_time", "end_time")
    def serialize_time(self, v: time) -> str:
        """Times are exchanged as HH:MM."""
        return v.strftime("%H:%M")


class AppointmentListResponse(BaseModel):
    """Schema for paginated appointment list response."""

    total: int
    page: int
    page_size: int
    items: list[AppointmentResponse]


class AppointmentFilters(BaseModel):
    """Schema for appointment filtering."""

    patient_id: UUID | None = None
    status: AppointmentStatus | None = None
    kind: AppointmentKind | None = None
    from_date: date | None = None
    to_date: date | None = None
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=20, ge=1, le=100)


class AvailabilityResponse(BaseModel):
    """Free start times for a clinician on one day."""

    clinician_id: UUID
    appointment_date: date
    duration_minutes: int
    granularity_minutes: int
    available_slots: list[str]


class ConflictCheckResponse(BaseModel):
    """Result of a pre-flight overlap check."""

    scope: ConflictScope
    scope_id: UUID
    appointment_date: date
    start_time: str
    end_time: str
    has_conflict: bool
