"""create job tables

Revision ID: 0001
Revises:
Create Date: 2030-01-01 00:00:00

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _tenant_fk() -> sa.Column:
    return sa.Column("tenant_id", sa.String(128), sa.ForeignKey("tenants.tenant_id"), nullable=False, index=True)


def upgrade() -> None:
    op.create_table(
        "tenants",
        sa.Column("tenant_id", sa.String(128), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("subscription_tier", sa.String(20), nullable=False, server_default="single"),
        *_timestamps(),
    )
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(128), primary_key=True),
        _tenant_fk(),
        sa.Column("email", sa.String(320), nullable=False, unique=True, index=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("role", sa.String(20), nullable=False, server_default="employee"),
        sa.Column("can_create_jobs", sa.Boolean(), nullable=True),
        sa.Column("can_schedule_appointments", sa.Boolean(), nullable=True),
        sa.Column("can_see_other_jobs", sa.Boolean(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        "contacts",
        sa.Column("contact_id", sa.String(128), primary_key=True),
        _tenant_fk(),
        sa.Column("first_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(100), nullable=False, server_default=""),
        sa.Column("email", sa.String(320), nullable=True),
        sa.Column("phone", sa.String(40), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        "services",
        sa.Column("service_id", sa.String(128), primary_key=True),
        _tenant_fk(),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=True),
        *_timestamps(),
    )
    for table, number_col in (("quotes", "quote_number"), ("invoices", "invoice_number")):
        op.create_table(
            table,
            sa.Column(f"{table[:-1]}_id", sa.String(128), primary_key=True),
            _tenant_fk(),
            sa.Column(number_col, sa.String(50), nullable=False),
            sa.Column("status", sa.String(30), nullable=False, server_default="draft"),
            sa.Column("total", sa.Float(), nullable=True),
            *_timestamps(),
        )

    op.create_table(
        "job_recurrences",
        sa.Column("recurrence_id", sa.String(128), primary_key=True),
        _tenant_fk(),
        sa.Column("contact_id", sa.String(128), sa.ForeignKey("contacts.contact_id"), nullable=False, index=True),
        sa.Column("service_id", sa.String(128), sa.ForeignKey("services.service_id"), nullable=True),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("frequency", sa.String(20), nullable=False),
        sa.Column("interval", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("count", sa.Integer(), nullable=True),
        sa.Column("until_date", sa.Date(), nullable=True),
        sa.Column("days_of_week", sa.JSON(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
    )
    op.create_table(
        "jobs",
        sa.Column("job_id", sa.String(128), primary_key=True),
        _tenant_fk(),
        sa.Column("title", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("location", sa.String(500), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("contact_id", sa.String(128), sa.ForeignKey("contacts.contact_id"), nullable=False, index=True),
        sa.Column("service_id", sa.String(128), sa.ForeignKey("services.service_id"), nullable=True),
        sa.Column("quote_id", sa.String(128), sa.ForeignKey("quotes.quote_id"), nullable=True),
        sa.Column("invoice_id", sa.String(128), sa.ForeignKey("invoices.invoice_id"), nullable=True),
        sa.Column(
            "recurrence_id",
            sa.String(128),
            sa.ForeignKey("job_recurrences.recurrence_id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        ),
        sa.Column("created_by_id", sa.String(128), sa.ForeignKey("users.user_id"), nullable=True),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("to_be_scheduled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("status", sa.String(32), nullable=False, server_default="scheduled"),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("assigned_to", sa.JSON(), nullable=False),
        sa.Column("breaks", sa.JSON(), nullable=False),
        sa.Column("decline_reason", sa.Text(), nullable=True),
        sa.Column("archived_at", sa.DateTime(timezone=True), nullable=True, index=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    # Retention sweep scans per tenant on these two columns.
    op.create_index("ix_jobs_tenant_end_time", "jobs", ["tenant_id", "end_time"])
    op.create_index("ix_jobs_tenant_archived_at", "jobs", ["tenant_id", "archived_at"])


def downgrade() -> None:
    op.drop_index("ix_jobs_tenant_archived_at", table_name="jobs")
    op.drop_index("ix_jobs_tenant_end_time", table_name="jobs")
    for table in ("jobs", "job_recurrences", "invoices", "quotes", "services", "contacts", "users", "tenants"):
        op.drop_table(table)
