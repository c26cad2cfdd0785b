from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from baseplane.domain.types import (
    BillingCycle,
    PlanType,
    ProjectStatus,
    Role,
    SubscriptionStatus,
)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _enum_column(enum_cls: type) -> Enum:
    # Persist enum values (not member names) as plain strings so migrations stay dialect-neutral.
    return Enum(
        enum_cls,
        native_enum=False,
        length=32,
        values_callable=lambda members: [member.value for member in members],
        validate_strings=True,
    )


_JSON = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    pass


class Organization(Base):
    __tablename__ = "organizations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    owner_principal_id: Mapped[int] = mapped_column(Integer, index=True)
    # Dedicated data store for the organization; project schemas live inside it.
    org_database: Mapped[str] = mapped_column(String(255), unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class Membership(Base):
    __tablename__ = "memberships"
    __table_args__ = (
        UniqueConstraint("organization_id", "principal_id", name="uq_memberships_org_principal"),
        Index("ix_memberships_principal", "principal_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), index=True)
    principal_id: Mapped[int] = mapped_column(Integer)
    role: Mapped[Role] = mapped_column(_enum_column(Role))
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class Project(Base):
    __tablename__ = "projects"
    __table_args__ = (
        Index("ix_projects_org_status", "organization_id", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255))
    # Globally unique; the constraint closes the check-then-insert race between concurrent creates.
    slug: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    organization_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"))
    region: Mapped[str] = mapped_column(String(50), default="us-west-1")
    status: Mapped[ProjectStatus] = mapped_column(
        _enum_column(ProjectStatus), default=ProjectStatus.PROVISIONING
    )
    # The organization's data store plus this project's schema inside it.
    database_name: Mapped[str] = mapped_column(String(255))
    database_schema: Mapped[str] = mapped_column(String(255), unique=True)
    database_host: Mapped[str | None] = mapped_column(String(255), nullable=True)
    database_port: Mapped[int | None] = mapped_column(Integer, nullable=True, default=5432)
    paused_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )
    # Optimistic concurrency counter; racing writers on the same row fail with StaleDataError.
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version}


class ProjectCredential(Base):
    __tablename__ = "project_credentials"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    project_id: Mapped[int] = mapped_column(Integer, ForeignKey("projects.id"), unique=True)
    signing_secret: Mapped[str] = mapped_column(String(255))
    anon_token: Mapped[str] = mapped_column(Text)
    service_token: Mapped[str] = mapped_column(Text)
    db_username: Mapped[str] = mapped_column(String(255))
    db_password: Mapped[str] = mapped_column(String(255))
    storage_bucket: Mapped[str] = mapped_column(String(255))
    connection_descriptor: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, server_default=func.now()
    )


class Subscription(Base):
    __tablename__ = "subscriptions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    organization_id: Mapped[int] = mapped_column(Integer, ForeignKey("organizations.id"), unique=True)
    plan_type: Mapped[PlanType] = mapped_column(_enum_column(PlanType), default=PlanType.FREE)
    status: Mapped[SubscriptionStatus] = mapped_column(
        _enum_column(SubscriptionStatus), default=SubscriptionStatus.ACTIVE
    )
    billing_cycle: Mapped[BillingCycle] = mapped_column(
        _enum_column(BillingCycle), default=BillingCycle.MONTHLY
    )
    current_period_start: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    current_period_end: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    cancelled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )


class PlanLimit(Base):
    __tablename__ = "plan_limits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    plan_type: Mapped[PlanType] = mapped_column(_enum_column(PlanType), unique=True)
    # -1 means unlimited.
    max_projects: Mapped[int] = mapped_column(Integer)
    max_database_size_mb: Mapped[int] = mapped_column(Integer, default=500)
    max_storage_gb: Mapped[int] = mapped_column(Integer, default=1)
    max_bandwidth_gb: Mapped[int] = mapped_column(Integer, default=2)
    max_api_calls_per_month: Mapped[int] = mapped_column(Integer, default=50000)
    max_edge_functions: Mapped[int] = mapped_column(Integer, default=10)
    max_realtime_connections: Mapped[int] = mapped_column(Integer, default=200)
    custom_domain: Mapped[bool] = mapped_column(Boolean, default=False)
    priority_support: Mapped[bool] = mapped_column(Boolean, default=False)


class AuditLogEntry(Base):
    __tablename__ = "audit_log_entries"
    __table_args__ = (
        Index("ix_audit_log_entries_org_occurred", "organization_id", "occurred_at"),
        Index("ix_audit_log_entries_project", "project_id"),
        Index("ix_audit_log_entries_action", "action"),
    )

    # Append-only; rows are never updated or deleted by the control plane.
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    principal_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    organization_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    project_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    action: Mapped[str] = mapped_column(String(128))
    resource_type: Mapped[str] = mapped_column(String(64))
    resource_id: Mapped[int | None] = mapped_column(Integer, nullable=True)
    metadata_json: Mapped[dict[str, Any] | None] = mapped_column(_JSON, nullable=True)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=_utc_now, server_default=func.now()
    )
