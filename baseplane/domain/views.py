from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from baseplane.domain.models import (
    AuditLogEntry,
    Membership,
    Organization,
    PlanLimit,
    Project,
    ProjectCredential,
    Subscription,
)
from baseplane.domain.types import BillingCycle, PlanType, ProjectStatus, Role, SubscriptionStatus


# Detached snapshots returned by services so callers never touch live ORM rows
# after the unit of work has committed or rolled back.


@dataclass(frozen=True)
class OrganizationView:
    id: int
    name: str
    slug: str
    owner_principal_id: int
    org_database: str
    role: Role | None = None

    @classmethod
    def from_model(cls, row: Organization, role: Role | None = None) -> OrganizationView:
        return cls(
            id=row.id,
            name=row.name,
            slug=row.slug,
            owner_principal_id=row.owner_principal_id,
            org_database=row.org_database,
            role=role,
        )


@dataclass(frozen=True)
class MembershipView:
    id: int
    organization_id: int
    principal_id: int
    role: Role
    joined_at: datetime | None

    @classmethod
    def from_model(cls, row: Membership) -> MembershipView:
        return cls(
            id=row.id,
            organization_id=row.organization_id,
            principal_id=row.principal_id,
            role=row.role,
            joined_at=row.joined_at,
        )


@dataclass(frozen=True)
class ProjectView:
    id: int
    name: str
    slug: str
    organization_id: int
    region: str
    status: ProjectStatus
    database_name: str
    database_schema: str
    database_host: str | None
    database_port: int | None
    paused_at: datetime | None
    deleted_at: datetime | None
    updated_at: datetime | None = None

    @classmethod
    def from_model(cls, row: Project) -> ProjectView:
        return cls(
            id=row.id,
            name=row.name,
            slug=row.slug,
            organization_id=row.organization_id,
            region=row.region,
            status=row.status,
            database_name=row.database_name,
            database_schema=row.database_schema,
            database_host=row.database_host,
            database_port=row.database_port,
            paused_at=row.paused_at,
            deleted_at=row.deleted_at,
            updated_at=row.updated_at,
        )


@dataclass(frozen=True)
class CredentialView:
    project_id: int
    signing_secret: str
    anon_token: str
    service_token: str
    storage_bucket: str
    connection_descriptor: str | None

    @classmethod
    def from_model(cls, row: ProjectCredential) -> CredentialView:
        return cls(
            project_id=row.project_id,
            signing_secret=row.signing_secret,
            anon_token=row.anon_token,
            service_token=row.service_token,
            storage_bucket=row.storage_bucket,
            connection_descriptor=row.connection_descriptor,
        )


@dataclass(frozen=True)
class AuditEntryView:
    id: int
    principal_id: int | None
    organization_id: int | None
    project_id: int | None
    action: str
    resource_type: str
    resource_id: int | None
    metadata: dict[str, Any]
    occurred_at: datetime

    @classmethod
    def from_model(cls, row: AuditLogEntry) -> AuditEntryView:
        return cls(
            id=row.id,
            principal_id=row.principal_id,
            organization_id=row.organization_id,
            project_id=row.project_id,
            action=row.action,
            resource_type=row.resource_type,
            resource_id=row.resource_id,
            metadata=dict(row.metadata_json or {}),
            occurred_at=row.occurred_at,
        )


@dataclass(frozen=True)
class SubscriptionView:
    organization_id: int
    plan_type: PlanType
    status: SubscriptionStatus
    billing_cycle: BillingCycle
    current_period_start: datetime
    current_period_end: datetime

    @classmethod
    def from_model(cls, row: Subscription) -> SubscriptionView:
        return cls(
            organization_id=row.organization_id,
            plan_type=row.plan_type,
            status=row.status,
            billing_cycle=row.billing_cycle,
            current_period_start=row.current_period_start,
            current_period_end=row.current_period_end,
        )


@dataclass(frozen=True)
class PlanLimitView:
    plan_type: PlanType
    max_projects: int
    max_database_size_mb: int
    max_storage_gb: int
    max_bandwidth_gb: int
    max_api_calls_per_month: int
    max_edge_functions: int
    max_realtime_connections: int
    custom_domain: bool
    priority_support: bool

    @classmethod
    def from_model(cls, row: PlanLimit) -> PlanLimitView:
        return cls(
            plan_type=row.plan_type,
            max_projects=row.max_projects,
            max_database_size_mb=row.max_database_size_mb,
            max_storage_gb=row.max_storage_gb,
            max_bandwidth_gb=row.max_bandwidth_gb,
            max_api_calls_per_month=row.max_api_calls_per_month,
            max_edge_functions=row.max_edge_functions,
            max_realtime_connections=row.max_realtime_connections,
            custom_domain=row.custom_domain,
            priority_support=row.priority_support,
        )
