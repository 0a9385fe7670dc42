"""Appointments table model using SQLAlchemy Core."""

from sqlalchemy import (
    DDL,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Table,
    Text,
    Uuid,
    event,
)

from practice_scheduler.models.patients import metadata

# Constraint names double as the identifiers the store maps back to conflict kinds
PATIENT_OVERLAP_CONSTRAINT = "appointments_patient_no_overlap"
CLINICIAN_OVERLAP_CONSTRAINT = "appointments_clinician_no_overlap"

RELEASED_STATUS_SQL = "('cancelled', 'no_show')"

# Appointments table
appointments = Table(
    "appointments",
    metadata,
    Column("id", Uuid, primary_key=True),
    # Scope references
    Column(
        "patient_id",
        Uuid,
        ForeignKey("patients.id", ondelete="RESTRICT"),
        nullable=False,
    ),
    Column("clinician_id", Uuid, nullable=False),
    # Interval: [start_minute, end_minute) on appointment_date, clinic-local
    Column("appointment_date", Date, nullable=False),
    Column("start_minute", Integer, nullable=False),
    Column("end_minute", Integer, nullable=False),
    Column("duration_minutes", Integer, nullable=False),
    # Details
    Column("kind", Text, nullable=False),
    Column("status", Text, nullable=False, server_default="scheduled"),
    Column("notes", Text, nullable=True),
    # Audit fields, written by the store
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
    Column("cancelled_at", DateTime(timezone=True), nullable=True),
    # Constraints
    # Bounds are configurable and enforced by the booking rules
    CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
    CheckConstraint(
        "end_minute = start_minute + duration_minutes",
        name="appointments_end_minute_check",
    ),
    CheckConstraint(
        "start_minute >= 0 AND end_minute <= 1439",
        name="appointments_same_day_check",
    ),
    CheckConstraint(
        "kind IN ('consultation', 'follow_up', 'emergency', 'evaluation', 'therapy', "
        "'medication_review')",
        name="appointments_kind_check",
    ),
    CheckConstraint(
        "status IN ('scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', "
        "'no_show')",
        name="appointments_status_check",
    ),
    Index("idx_appointments_patient_date", "patient_id", "appointment_date"),
    Index("idx_appointments_clinician_date", "clinician_id", "appointment_date"),
    Index("idx_appointments_status", "status"),
)

SCOPE_COLUMNS = {
    PATIENT_OVERLAP_CONSTRAINT: "patient_id",
    CLINICIAN_OVERLAP_CONSTRAINT: "clinician_id",
}


def _postgres_exclusion(name: str, column: str) -> str:
    return f"""
        ALTER TABLE appointments
        ADD CONSTRAINT {name} EXCLUDE USING gist (
            {column} WITH =,
            appointment_date WITH =,
            int4range(start_minute, end_minute) WITH &&
        ) WHERE (status NOT IN {RELEASED_STATUS_SQL})
    """


def _sqlite_overlap_trigger(name: str, column: str, operation: str) -> str:
    # SQLite has no exclusion constraints; a trigger raising with the
    # constraint name gives the same commit-time guarantee.
    exclude_self = "AND a.id != NEW.id" if operation == "UPDATE" else ""
    return f"""
        CREATE TRIGGER {name}_{operation.lower()}
        BEFORE {operation} ON appointments
        WHEN NEW.status NOT IN {RELEASED_STATUS_SQL}
        BEGIN
            SELECT RAISE(ABORT, '{name}')
            WHERE EXISTS (
                SELECT 1 FROM appointments AS a
                WHERE a.{column} = NEW.{column}
                  AND a.appointment_date = NEW.appointment_date
                  AND a.status NOT IN {RELEASED_STATUS_SQL}
                  AND a.start_minute < NEW.end_minute
                  AND NEW.start_minute < a.end_minute
                  {exclude_self}
            );
        END
    """


event.listen(
    metadata,
    "before_create",
    DDL("CREATE EXTENSION IF NOT EXISTS btree_gist").execute_if(dialect="postgresql"),
)

for _name, _column in SCOPE_COLUMNS.items():
    event.listen(
        appointments,
        "after_create",
        DDL(_postgres_exclusion(_name, _column)).execute_if(dialect="postgresql"),
    )
    for _operation in ("INSERT", "UPDATE"):
        event.listen(
            appointments,
            "after_create",
            DDL(_sqlite_overlap_trigger(_name, _column, _operation)).execute_if(
                dialect="sqlite"
            ),
        )
