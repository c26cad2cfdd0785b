"""init

Revision ID: 0001_init
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamp(name: str, *, nullable: bool = False) -> sa.Column:
    return sa.Column(name, sa.DateTime(timezone=True), nullable=nullable, server_default=sa.func.now())


def upgrade() -> None:
    op.create_table(
        "organizations",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("owner_principal_id", sa.Integer(), nullable=False),
        sa.Column("org_database", sa.String(255), nullable=False, unique=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )
    op.create_index("ix_organizations_slug", "organizations", ["slug"], unique=True)
    op.create_index("ix_organizations_owner_principal_id", "organizations", ["owner_principal_id"])

    op.create_table(
        "memberships",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("principal_id", sa.Integer(), nullable=False),
        # Enum values are stored as plain strings; the application owns the vocabulary.
        sa.Column("role", sa.String(32), nullable=False),
        _timestamp("joined_at"),
        sa.UniqueConstraint("organization_id", "principal_id", name="uq_memberships_org_principal"),
    )
    op.create_index("ix_memberships_organization_id", "memberships", ["organization_id"])
    op.create_index("ix_memberships_principal", "memberships", ["principal_id"])

    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("slug", sa.String(255), nullable=False),
        sa.Column("organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False),
        sa.Column("region", sa.String(50), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("database_name", sa.String(255), nullable=False),
        sa.Column("database_schema", sa.String(255), nullable=False, unique=True),
        sa.Column("database_host", sa.String(255), nullable=True),
        sa.Column("database_port", sa.Integer(), nullable=True),
        sa.Column("paused_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    )
    # Global slug uniqueness closes the check-then-insert race between concurrent creates.
    op.create_index("ix_projects_slug", "projects", ["slug"], unique=True)
    op.create_index("ix_projects_org_status", "projects", ["organization_id", "status"])

    op.create_table(
        "project_credentials",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False, unique=True),
        sa.Column("signing_secret", sa.String(255), nullable=False),
        sa.Column("anon_token", sa.Text(), nullable=False),
        sa.Column("service_token", sa.Text(), nullable=False),
        sa.Column("db_username", sa.String(255), nullable=False),
        sa.Column("db_password", sa.String(255), nullable=False),
        sa.Column("storage_bucket", sa.String(255), nullable=False),
        sa.Column("connection_descriptor", sa.Text(), nullable=True),
        _timestamp("created_at"),
        _timestamp("updated_at"),
    )

    op.create_table(
        "subscriptions",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "organization_id", sa.Integer(), sa.ForeignKey("organizations.id"), nullable=False, unique=True
        ),
        sa.Column("plan_type", sa.String(32), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("billing_cycle", sa.String(32), nullable=False),
        sa.Column("current_period_start", sa.DateTime(timezone=True), nullable=False),
        sa.Column("current_period_end", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        _timestamp("created_at"),
    )

    op.create_table(
        "plan_limits",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("plan_type", sa.String(32), nullable=False, unique=True),
        sa.Column("max_projects", sa.Integer(), nullable=False),
        sa.Column("max_database_size_mb", sa.Integer(), nullable=False),
        sa.Column("max_storage_gb", sa.Integer(), nullable=False),
        sa.Column("max_bandwidth_gb", sa.Integer(), nullable=False),
        sa.Column("max_api_calls_per_month", sa.Integer(), nullable=False),
        sa.Column("max_edge_functions", sa.Integer(), nullable=False),
        sa.Column("max_realtime_connections", sa.Integer(), nullable=False),
        sa.Column("custom_domain", sa.Boolean(), nullable=False),
        sa.Column("priority_support", sa.Boolean(), nullable=False),
    )

    op.create_table(
        "audit_log_entries",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("principal_id", sa.Integer(), nullable=True),
        sa.Column("organization_id", sa.Integer(), nullable=True),
        sa.Column("project_id", sa.Integer(), nullable=True),
        sa.Column("action", sa.String(128), nullable=False),
        sa.Column("resource_type", sa.String(64), nullable=False),
        sa.Column("resource_id", sa.Integer(), nullable=True),
        sa.Column("metadata_json", postgresql.JSONB(), nullable=True),
        _timestamp("occurred_at"),
    )
    op.create_index(
        "ix_audit_log_entries_org_occurred", "audit_log_entries", ["organization_id", "occurred_at"]
    )
    op.create_index("ix_audit_log_entries_project", "audit_log_entries", ["project_id"])
    op.create_index("ix_audit_log_entries_action", "audit_log_entries", ["action"])

    # Seed the plan catalog so new organizations can create projects immediately.
    op.bulk_insert(
        sa.table(
            "plan_limits",
            sa.column("plan_type", sa.String()),
            sa.column("max_projects", sa.Integer()),
            sa.column("max_database_size_mb", sa.Integer()),
            sa.column("max_storage_gb", sa.Integer()),
            sa.column("max_bandwidth_gb", sa.Integer()),
            sa.column("max_api_calls_per_month", sa.Integer()),
            sa.column("max_edge_functions", sa.Integer()),
            sa.column("max_realtime_connections", sa.Integer()),
            sa.column("custom_domain", sa.Boolean()),
            sa.column("priority_support", sa.Boolean()),
        ),
        [
            {
                "plan_type": "free",
                "max_projects": 2,
                "max_database_size_mb": 500,
                "max_storage_gb": 1,
                "max_bandwidth_gb": 2,
                "max_api_calls_per_month": 50000,
                "max_edge_functions": 10,
                "max_realtime_connections": 200,
                "custom_domain": False,
                "priority_support": False,
            },
            {
                "plan_type": "pro",
                "max_projects": 10,
                "max_database_size_mb": 8000,
                "max_storage_gb": 100,
                "max_bandwidth_gb": 250,
                "max_api_calls_per_month": 5000000,
                "max_edge_functions": 100,
                "max_realtime_connections": 5000,
                "custom_domain": True,
                "priority_support": True,
            },
            {
                "plan_type": "enterprise",
                "max_projects": 100,
                "max_database_size_mb": 100000,
                "max_storage_gb": 1000,
                "max_bandwidth_gb": 5000,
                "max_api_calls_per_month": 100000000,
                "max_edge_functions": 1000,
                "max_realtime_connections": 50000,
                "custom_domain": True,
                "priority_support": True,
            },
        ],
    )


def downgrade() -> None:
    op.drop_index("ix_audit_log_entries_action", table_name="audit_log_entries")
    op.drop_index("ix_audit_log_entries_project", table_name="audit_log_entries")
    op.drop_index("ix_audit_log_entries_org_occurred", table_name="audit_log_entries")
    op.drop_table("audit_log_entries")
    op.drop_table("plan_limits")
    op.drop_table("subscriptions")
    op.drop_table("project_credentials")
    op.drop_index("ix_projects_org_status", table_name="projects")
    op.drop_index("ix_projects_slug", table_name="projects")
    op.drop_table("projects")
    op.drop_index("ix_memberships_principal", table_name="memberships")
    op.drop_index("ix_memberships_organization_id", table_name="memberships")
    op.drop_table("memberships")
    op.drop_index("ix_organizations_owner_principal_id", table_name="organizations")
    op.drop_index("ix_organizations_slug", table_name="organizations")
    op.drop_table("organizations")
