"""Initial schema: services, clinic_time_slots, reservations, service_reservation_limits,
manual_time_closures.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

DAY_OF_WEEK = sa.Enum(
    "MONDAY", "TUESDAY", "WEDNESDAY", "THURSDAY", "FRIDAY", "SATURDAY", "SUNDAY",
    name="dayofweek",
)
PERIOD = sa.Enum("MORNING", "AFTERNOON", name="period")
RESERVATION_STATUS = sa.Enum(
    "PENDING", "CONFIRMED", "COMPLETED", "CANCELLED", "NO_SHOW", "REJECTED",
    name="reservationstatus",
)


def upgrade() -> None:
    op.create_table(
        "services",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("category", sa.String(), nullable=True),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("buffer_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_services_code"), "services", ["code"], unique=True)

    op.create_table(
        "clinic_time_slots",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("day_of_week", DAY_OF_WEEK, nullable=False),
        sa.Column("period", PERIOD, nullable=False),
        sa.Column("start_time", sa.Time(), nullable=False),
        sa.Column("end_time", sa.Time(), nullable=False),
        sa.Column("slot_interval_minutes", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("max_concurrent", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("service_id", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_clinic_time_slots_day_of_week"), "clinic_time_slots", ["day_of_week"], unique=False)
    op.create_index(op.f("ix_clinic_time_slots_service_id"), "clinic_time_slots", ["service_id"], unique=False)

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("patient_name", sa.String(), nullable=False),
        sa.Column("phone", sa.String(), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("notes", sa.String(), nullable=True),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("preferred_date", sa.Date(), nullable=False),
        sa.Column("preferred_time", sa.Time(), nullable=False),
        sa.Column("period", PERIOD, nullable=False),
        sa.Column("time_slot_start", sa.Time(), nullable=False),
        sa.Column("time_slot_end", sa.Time(), nullable=False),
        sa.Column("estimated_duration", sa.Integer(), nullable=False),
        sa.Column("status", RESERVATION_STATUS, nullable=False, server_default="PENDING"),
        sa.Column("admin_notes", sa.String(), nullable=True),
        sa.Column("status_changed_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_reservations_service_id"), "reservations", ["service_id"], unique=False)
    op.create_index(op.f("ix_reservations_preferred_date"), "reservations", ["preferred_date"], unique=False)
    op.create_index(op.f("ix_reservations_status"), "reservations", ["status"], unique=False)

    op.create_table(
        "service_reservation_limits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("service_id", sa.Integer(), nullable=False),
        sa.Column("daily_limit", sa.Integer(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("updated_by", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("daily_limit >= 0", name="ck_service_reservation_limits_daily_limit"),
    )
    op.create_index(
        op.f("ix_service_reservation_limits_service_id"), "service_reservation_limits", ["service_id"], unique=True
    )

    op.create_table(
        "manual_time_closures",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("closure_date", sa.Date(), nullable=False),
        sa.Column("period", PERIOD, nullable=False),
        sa.Column("time_slot_start", sa.Time(), nullable=False),
        sa.Column("time_slot_end", sa.Time(), nullable=True),
        sa.Column("service_id", sa.Integer(), nullable=True),
        sa.Column("reason", sa.String(), nullable=True),
        sa.Column("created_by", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("deactivated_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_manual_time_closures_closure_date"), "manual_time_closures", ["closure_date"], unique=False)
    op.create_index(op.f("ix_manual_time_closures_service_id"), "manual_time_closures", ["service_id"], unique=False)
    op.create_index(op.f("ix_manual_time_closures_is_active"), "manual_time_closures", ["is_active"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_manual_time_closures_is_active"), table_name="manual_time_closures")
    op.drop_index(op.f("ix_manual_time_closures_service_id"), table_name="manual_time_closures")
    op.drop_index(op.f("ix_manual_time_closures_closure_date"), table_name="manual_time_closures")
    op.drop_table("manual_time_closures")
    op.drop_index(op.f("ix_service_reservation_limits_service_id"), table_name="service_reservation_limits")
    op.drop_table("service_reservation_limits")
    op.drop_index(op.f("ix_reservations_status"), table_name="reservations")
    op.drop_index(op.f("ix_reservations_preferred_date"), table_name="reservations")
    op.drop_index(op.f("ix_reservations_service_id"), table_name="reservations")
    op.drop_table("reservations")
    op.drop_index(op.f("ix_clinic_time_slots_service_id"), table_name="clinic_time_slots")
    op.drop_index(op.f("ix_clinic_time_slots_day_of_week"), table_name="clinic_time_slots")
    op.drop_table("clinic_time_slots")
    op.drop_index(op.f("ix_services_code"), table_name="services")
    op.drop_table("services")
    for enum in (RESERVATION_STATUS, PERIOD, DAY_OF_WEEK):
        enum.drop(op.get_bind(), checkfirst=True)
