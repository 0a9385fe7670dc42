"""Database models."""

from practice_scheduler.models.appointments import appointments
from practice_scheduler.models.patients import metadata, patients

__all__ = [
    "appointments",
    "metadata",
    "patients",
]
