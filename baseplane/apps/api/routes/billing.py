from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

from baseplane.apps.api.deps import Principal, get_control_plane, get_principal
from baseplane.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from baseplane.apps.api.response import SuccessEnvelope, success_response
from baseplane.domain.types import BillingCycle, PlanType, SubscriptionStatus
from baseplane.domain.views import PlanLimitView, SubscriptionView
from baseplane.services.control_plane import ControlPlane


router = APIRouter(tags=["billing"], responses=DEFAULT_ERROR_RESPONSES)


class PlanResponse(BaseModel):
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


class SubscriptionResponse(BaseModel):
    organization_id: int
    plan_type: PlanType
    status: SubscriptionStatus
    billing_cycle: BillingCycle
    current_period_start: str
    current_period_end: str


class PlanChangeRequest(BaseModel):
    plan_type: PlanType


def _plan_payload(view: PlanLimitView) -> PlanResponse:
    return PlanResponse(
        plan_type=view.plan_type,
        max_projects=view.max_projects,
        max_database_size_mb=view.max_database_size_mb,
        max_storage_gb=view.max_storage_gb,
        max_bandwidth_gb=view.max_bandwidth_gb,
        max_api_calls_per_month=view.max_api_calls_per_month,
        max_edge_functions=view.max_edge_functions,
        max_realtime_connections=view.max_realtime_connections,
        custom_domain=view.custom_domain,
        priority_support=view.priority_support,
    )


def _subscription_payload(view: SubscriptionView) -> SubscriptionResponse:
    return SubscriptionResponse(
        organization_id=view.organization_id,
        plan_type=view.plan_type,
        status=view.status,
        billing_cycle=view.billing_cycle,
        current_period_start=view.current_period_start.isoformat(),
        current_period_end=view.current_period_end.isoformat(),
    )


@router.get("/plans", response_model=SuccessEnvelope[list[PlanResponse]])
async def list_plans(
    request: Request,
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    # The plan catalog is public.
    views = await control_plane.list_plans()
    return success_response(request=request, data=[_plan_payload(view) for view in views])


@router.get(
    "/organizations/{organization_id}/subscription",
    response_model=SuccessEnvelope[SubscriptionResponse],
)
async def get_subscription(
    organization_id: int,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    view = await control_plane.get_subscription(principal.principal_id, organization_id)
    return success_response(request=request, data=_subscription_payload(view))


@router.put(
    "/organizations/{organization_id}/subscription",
    response_model=SuccessEnvelope[SubscriptionResponse],
)
async def change_plan(
    organization_id: int,
    payload: PlanChangeRequest,
    request: Request,
    principal: Principal = Depends(get_principal),
    control_plane: ControlPlane = Depends(get_control_plane),
) -> dict:
    # Owners only; no payment is collected.
    view = await control_plane.change_plan(principal.principal_id, organization_id, payload.plan_type)
    return success_response(request=request, data=_subscription_payload(view))
