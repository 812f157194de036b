"""initial cargo scheduling schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("full_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("role", sa.String(length=30), nullable=False),
        sa.Column("company_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_role", "users", ["role"], unique=False)

    op.create_table(
        "schedule_slots",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("date_str", sa.String(length=10), nullable=False),
        sa.Column("time_slot", sa.String(length=5), nullable=False),
        sa.Column("service_type", sa.String(length=30), nullable=False, server_default="loading"),
        sa.Column("is_available", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("max_capacity", sa.Integer(), nullable=False, server_default="5"),
        sa.Column("current_bookings", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.UniqueConstraint("date_str", "time_slot", name="uq_schedule_slot_date_time"),
        sa.CheckConstraint("current_bookings >= 0 AND current_bookings <= max_capacity", name="ck_schedule_slot_occupancy"),
    )
    op.create_index("ix_schedule_slots_date_str", "schedule_slots", ["date_str"], unique=False)

    op.create_table(
        "external_persons",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("full_name", sa.String(length=200), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("document", sa.String(length=20), nullable=False, server_default=""),
        sa.Column("company_name", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("external_company", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("position", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("person_type", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="active"),
        sa.Column("has_system_access", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("allowed_modules", sa.Text(), nullable=False, server_default=""),
        sa.Column("access_level", sa.String(length=20), nullable=False, server_default="basic"),
        sa.Column("visit_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_visit_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_external_persons_email", "external_persons", ["email"], unique=True)
    op.create_index("ix_external_persons_document", "external_persons", ["document"], unique=False)
    op.create_index("ix_external_persons_person_type", "external_persons", ["person_type"], unique=False)

    op.create_table(
        "cargo_bookings",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("slot_id", sa.String(length=36), nullable=False),
        sa.Column("date_str", sa.String(length=10), nullable=False),
        sa.Column("time_slot", sa.String(length=5), nullable=False),
        sa.Column("client_id", sa.String(length=36), nullable=False, server_default="guest"),
        sa.Column("external_person_id", sa.String(length=36), nullable=True),
        sa.Column("company_name", sa.String(length=200), nullable=False),
        sa.Column("contact_person", sa.String(length=200), nullable=False),
        sa.Column("contact_email", sa.String(length=320), nullable=False),
        sa.Column("contact_phone", sa.String(length=40), nullable=False, server_default=""),
        sa.Column("manager", sa.String(length=200), nullable=False, server_default=""),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="scheduled"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("manager_notes", sa.Text(), nullable=True),
        sa.Column("cancellation_reason", sa.Text(), nullable=True),
        sa.Column("cancelled_by", sa.String(length=20), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_cargo_bookings_slot_id", "cargo_bookings", ["slot_id"], unique=False)
    op.create_index("ix_cargo_bookings_date_str", "cargo_bookings", ["date_str"], unique=False)
    op.create_index("ix_cargo_bookings_client_id", "cargo_bookings", ["client_id"], unique=False)
    op.create_index("ix_cargo_bookings_status", "cargo_bookings", ["status"], unique=False)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("actor_user_id", sa.String(length=36), nullable=False),
        sa.Column("action", sa.String(length=80), nullable=False),
        sa.Column("entity_type", sa.String(length=40), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column("details_json", sa.Text(), nullable=False, server_default="{}"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_audit_logs_actor_user_id", "audit_logs", ["actor_user_id"], unique=False)
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"], unique=False)
    op.create_index("ix_audit_logs_entity_type", "audit_logs", ["entity_type"], unique=False)
    op.create_index("ix_audit_logs_entity_id", "audit_logs", ["entity_id"], unique=False)

    op.create_table(
        "email_logs",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("to_email", sa.String(length=320), nullable=False),
        sa.Column("subject", sa.String(length=200), nullable=False),
        sa.Column("body", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=30), nullable=False, server_default="queued"),
        sa.Column("related_booking_id", sa.String(length=36), nullable=False, server_default=""),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_email_logs_to_email", "email_logs", ["to_email"], unique=False)


def downgrade() -> None:
    op.drop_table("email_logs")
    op.drop_table("audit_logs")
    op.drop_table("cargo_bookings")
    op.drop_table("external_persons")
    op.drop_table("schedule_slots")
    op.drop_table("users")
