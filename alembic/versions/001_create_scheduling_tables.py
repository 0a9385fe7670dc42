"""Create patients and appointments tables with overlap constraints.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

RELEASED_STATUSES = "('cancelled', 'no_show')"


def upgrade() -> None:
    """Upgrade database schema."""
    # gist indexes over the scope uuid columns need btree_gist
    op.execute("CREATE EXTENSION IF NOT EXISTS btree_gist")

    op.create_table(
        "patients",
        sa.Column("id", postgresql.UUID(), nullable=False),
        sa.Column("full_name", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column(
            "created_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            postgresql.TIMESTAMP(timezone=True),
            server_default=sa.text("NOW()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "appointments",
        sa.Column("id", postgresql.UUID(), nullable=False),
        sa.Column("patient_id", postgresql.UUID(), nullable=False),
        sa.Column("clinician_id", postgresql.UUID(), nullable=False),
        sa.Column("appointment_date", sa.Date(), nullable=False),
        sa.Column("start_minute", sa.Integer(), nullable=False),
        sa.Column("end_minute", sa.Integer(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("kind", sa.Text(), nullable=False),
        sa.Column("status", sa.Text(), server_default="scheduled", nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("updated_at", postgresql.TIMESTAMP(timezone=True), nullable=False),
        sa.Column("cancelled_at", postgresql.TIMESTAMP(timezone=True), nullable=True),
        sa.CheckConstraint("duration_minutes > 0", name="appointments_duration_check"),
        sa.CheckConstraint(
            "end_minute = start_minute + duration_minutes",
            name="appointments_end_minute_check",
        ),
        sa.CheckConstraint(
            "start_minute >= 0 AND end_minute <= 1439",
            name="appointments_same_day_check",
        ),
        sa.CheckConstraint(
            "kind IN ('consultation', 'follow_up', 'emergency', 'evaluation', 'therapy', "
            "'medication_review')",
            name="appointments_kind_check",
        ),
        sa.CheckConstraint(
            "status IN ('scheduled', 'confirmed', 'in_progress', 'completed', 'cancelled', "
            "'no_show')",
            name="appointments_status_check",
        ),
        sa.ForeignKeyConstraint(["patient_id"], ["patients.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_index(
        "idx_appointments_patient_date", "appointments", ["patient_id", "appointment_date"]
    )
    op.create_index(
        "idx_appointments_clinician_date", "appointments", ["clinician_id", "appointment_date"]
    )
    op.create_index("idx_appointments_status", "appointments", ["status"])

    # Final arbitration between concurrent bookings of the same scope
    for name, column in (
        ("appointments_patient_no_overlap", "patient_id"),
        ("appointments_clinician_no_overlap", "clinician_id"),
    ):
        op.execute(
            f"""
            ALTER TABLE appointments
            ADD CONSTRAINT {name} EXCLUDE USING gist (
                {column} WITH =,
                appointment_date WITH =,
                int4range(start_minute, end_minute) WITH &&
            ) WHERE (status NOT IN {RELEASED_STATUSES})
            """
        )


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_constraint("appointments_clinician_no_overlap", "appointments")
    op.drop_constraint("appointments_patient_no_overlap", "appointments")

    op.drop_index("idx_appointments_status", table_name="appointments")
    op.drop_index("idx_appointments_clinician_date", table_name="appointments")
    op.drop_index("idx_appointments_patient_date", table_name="appointments")

    op.drop_table("appointments")
    op.drop_table("patients")
