from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class ProjectStatus(str, Enum):
    PROVISIONING = "provisioning"
    ACTIVE = "active"
    PAUSED = "paused"
    DELETING = "deleting"
    DELETED = "deleted"


class PlanType(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


class SubscriptionStatus(str, Enum):
    ACTIVE = "active"
    CANCELLED = "cancelled"
    EXPIRED = "expired"
    PAST_DUE = "past_due"


class BillingCycle(str, Enum):
    MONTHLY = "monthly"
    YEARLY = "yearly"


# Plan limit value meaning "no ceiling".
UNLIMITED = -1


def role_rank(role: Role) -> int:
    match role:
        case Role.OWNER:
            return 3
        case Role.ADMIN:
            return 2
        case Role.MEMBER:
            return 1


def allowed_transitions(status: ProjectStatus) -> frozenset[ProjectStatus]:
    # Deleted is terminal; every path to deleted passes through deleting except the
    # provisioning rollback, which never committed any resources.
    match status:
        case ProjectStatus.PROVISIONING:
            return frozenset({ProjectStatus.ACTIVE, ProjectStatus.DELETING, ProjectStatus.DELETED})
        case ProjectStatus.ACTIVE:
            return frozenset({ProjectStatus.PAUSED, ProjectStatus.DELETING})
        case ProjectStatus.PAUSED:
            return frozenset({ProjectStatus.ACTIVE, ProjectStatus.DELETING})
        case ProjectStatus.DELETING:
            return frozenset({ProjectStatus.DELETED, ProjectStatus.ACTIVE})
        case ProjectStatus.DELETED:
            return frozenset()


def can_transition(current: ProjectStatus, target: ProjectStatus) -> bool:
    return target in allowed_transitions(current)
