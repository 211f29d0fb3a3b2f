"""Ops portal schema: orgs, users, timesheets, reference data, helpdesk,
notifications, audit log and view preferences.

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import UUID

revision = "001"
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column("id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()"))


def _created():
    return sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def _updated():
    return sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now())


def upgrade():
    # ── tenants and people ──
    op.create_table(
        "orgs",
        sa.Column("org_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("org_code", sa.String(50), nullable=False, unique=True, index=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "users",
        sa.Column("user_id", UUID(as_uuid=True), primary_key=True, server_default=sa.text("gen_random_uuid()")),
        sa.Column("org_id", UUID(as_uuid=True), sa.ForeignKey("orgs.org_id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("employee_id", sa.String(50), nullable=False, index=True),
        sa.Column("email", sa.String(255), nullable=True, index=True),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(50), nullable=False, server_default="employee"),
        sa.Column("name", sa.String(200), nullable=True),
        sa.Column("department", sa.String(100), nullable=True),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("manager_id", UUID(as_uuid=True), sa.ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # ── timesheets ──
    op.create_table(
        "timesheet_entries",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False),
        sa.Column("employee_id", sa.String(50), nullable=False),
        sa.Column("employee_name", sa.String(200), nullable=False),
        sa.Column("date", sa.Date, nullable=False),
        sa.Column("project_id", sa.String(100), nullable=False, server_default="N/A"),
        sa.Column("project_code", sa.String(100), nullable=False, server_default=""),
        sa.Column("project_name", sa.String(200), nullable=False, server_default=""),
        sa.Column("uda_id", sa.String(100), nullable=False),
        sa.Column("uda_name", sa.String(200), nullable=False),
        sa.Column("type", sa.String(50), nullable=False, server_default="General"),
        sa.Column("financial_line_item", sa.String(200), nullable=False, server_default=""),
        sa.Column("billable", sa.String(30), nullable=False, server_default="Billable"),
        sa.Column("hours", sa.String(5), nullable=False),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="submitted"),
        sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_status", sa.String(30), nullable=False, server_default="pending", index=True),
        sa.Column("approved_by", sa.String(50), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_reason", sa.Text, nullable=True),
        _created(),
        _updated(),
        sa.UniqueConstraint("org_id", "employee_id", "date", "project_id", "uda_id", name="uq_ts_cell"),
    )
    op.create_index("ix_ts_employee_date", "timesheet_entries", ["employee_id", "date"])
    op.create_index("ix_ts_project_date", "timesheet_entries", ["project_id", "date"])

    # ── reference data ──
    op.create_table(
        "projects",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("project_id", sa.String(100), nullable=False, index=True),
        sa.Column("project_code", sa.String(100), nullable=True),
        sa.Column("project_name", sa.String(200), nullable=False),
        sa.Column("project_start_date", sa.Date, nullable=True),
        sa.Column("project_end_date", sa.Date, nullable=True),
        sa.Column("manager_employee_id", sa.String(50), nullable=True, index=True),
        sa.Column("manager_name", sa.String(200), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="active"),
        _created(),
    )

    op.create_table(
        "allocations",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("employee_id", sa.String(50), nullable=False, index=True),
        sa.Column("project_id", sa.String(100), nullable=False, index=True),
        sa.Column("allocation", sa.Integer, nullable=False, server_default="100"),
        sa.Column("start_date", sa.Date, nullable=False),
        sa.Column("end_date", sa.Date, nullable=True),
        sa.Column("role", sa.String(100), nullable=True),
        sa.Column("billable", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("status", sa.String(20), nullable=False, server_default="active"),
        _created(),
    )

    op.create_table(
        "holidays",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("date", sa.Date, nullable=False, index=True),
        sa.Column("type", sa.String(50), nullable=False, server_default="Public Holiday"),
        sa.Column("description", sa.Text, nullable=True),
        _created(),
    )

    # ── helpdesk ──
    op.create_table(
        "sub_category_configs",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("high_level_category", sa.String(30), nullable=False),
        sa.Column("sub_category", sa.String(200), nullable=False),
        sa.Column("requires_approval", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("processing_queue", sa.String(100), nullable=False),
        sa.Column("specialist_queue", sa.String(100), nullable=False),
        sa.Column("order", sa.Integer, nullable=False, server_default="999"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column("approval_config", sa.JSON, nullable=False),
        _created(),
        _updated(),
        sa.UniqueConstraint("org_id", "high_level_category", "sub_category", name="uq_subcat"),
    )

    op.create_table(
        "helpdesk_tickets",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("ticket_number", sa.String(30), nullable=False, index=True),
        sa.Column("module", sa.String(30), nullable=True),
        sa.Column("high_level_category", sa.String(30), nullable=False),
        sa.Column("sub_category", sa.String(200), nullable=True),
        sa.Column("subject", sa.String(500), nullable=False),
        sa.Column("description", sa.Text, nullable=True),
        sa.Column("urgency", sa.String(20), nullable=False, server_default="Medium"),
        sa.Column("user_id", sa.String(50), nullable=False),
        sa.Column("user_name", sa.String(200), nullable=False),
        sa.Column("user_email", sa.String(255), nullable=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="open"),
        sa.Column("requires_approval", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("approval_completed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("routed_to", sa.String(30), nullable=True),
        sa.Column("current_approval_level", sa.String(5), nullable=True),
        sa.Column("approval_status", sa.String(20), nullable=True),
        sa.Column("approver_history", sa.JSON, nullable=False),
        sa.Column("assignment", sa.JSON, nullable=True),
        sa.Column("history", sa.JSON, nullable=False),
        _created(),
        _updated(),
    )

    op.create_table(
        "it_specialists",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("employee_id", sa.String(50), nullable=False, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("specializations", sa.JSON, nullable=False),
        sa.Column("active_ticket_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean, nullable=False, server_default=sa.true()),
    )

    # ── side channels ──
    op.create_table(
        "notifications",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("user_id", sa.String(50), nullable=True, index=True),
        sa.Column("role", sa.String(30), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("description", sa.Text, nullable=False),
        sa.Column("is_read", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("meta", sa.JSON, nullable=False),
        _created(),
    )

    op.create_table(
        "audit_log",
        _id(),
        sa.Column("org_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("actor_id", sa.String(50), nullable=False),
        sa.Column("action", sa.String(100), nullable=False),
        sa.Column("resource_type", sa.String(100), nullable=False),
        sa.Column("resource_id", sa.String(255), nullable=True),
        sa.Column("details", sa.JSON, nullable=True),
        _created(),
    )

    op.create_table(
        "view_preferences",
        _id(),
        sa.Column("user_id", UUID(as_uuid=True), nullable=False, index=True),
        sa.Column("view", sa.String(100), nullable=False),
        sa.Column("data", sa.JSON, nullable=False),
        _updated(),
        sa.UniqueConstraint("user_id", "view", name="uq_pref_user_view"),
    )


def downgrade():
    for table in (
        "view_preferences", "audit_log", "notifications", "it_specialists",
        "helpdesk_tickets", "sub_category_configs", "holidays", "allocations",
        "projects", "timesheet_entries", "users", "orgs",
    ):
        op.drop_table(table)
