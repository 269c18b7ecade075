"""
Subscriptions router.

Plan catalogue, the acting user's plan and plan changes.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends

from ..config import settings
from ..dependencies import get_current_user_id, get_subscription_service, get_uow
from ..domain.entities import PlanFeatures, SubscriptionPlan
from ..domain.listing_policy import remaining_listings
from ..repositories.interfaces import IUnitOfWork
from ..services.subscription_service import SubscriptionService
from .api_models import (
    ErrorResponse,
    PlanChangeRequest,
    PlanResponse,
    SubscriptionResponse,
    SubscriptionStatusResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/subscriptions", tags=["subscriptions"])


def _plan_response(plan: SubscriptionPlan, bundle: PlanFeatures) -> PlanResponse:
    max_listings = settings.FREE_TIER_LISTING_LIMIT if plan == SubscriptionPlan.FREE else bundle.max_listings
    return PlanResponse(
        plan=plan,
        display_name=bundle.display_name,
        price=bundle.price,
        duration_months=bundle.duration_months,
        max_listings=max_listings,
        analytics_access=bundle.analytics_access,
        priority_support=bundle.priority_support,
        unlimited_listings=bundle.unlimited_listings,
        featured_listings=bundle.featured_listings,
        commission_rate=bundle.commission_rate,
        features=list(bundle.features),
    )


@router.get("/plans", response_model=List[PlanResponse], summary="Available plans")
def list_plans(service: SubscriptionService = Depends(get_subscription_service)):
    return [_plan_response(plan, bundle) for plan, bundle in service.list_plans().items()]


@router.get("/me", response_model=SubscriptionStatusResponse, summary="The acting user's plan")
def get_my_subscription(
    user_id: str = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
    uow: IUnitOfWork = Depends(get_uow),
):
    subscription = service.get_active_subscription(user_id)
    listings = uow.products.count_by_farmer(user_id)
    return SubscriptionStatusResponse(
        subscription=SubscriptionResponse.model_validate(subscription) if subscription else None,
        remaining_listings=remaining_listings(subscription, listings, settings.FREE_TIER_LISTING_LIMIT),
        plans={plan.value: _plan_response(plan, bundle) for plan, bundle in service.list_plans().items()},
    )


@router.get("/me/history", response_model=List[SubscriptionResponse], summary="Plan history")
def get_history(
    user_id: str = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    return [SubscriptionResponse.model_validate(s) for s in service.history(user_id)]


@router.post(
    "/me/change",
    response_model=SubscriptionResponse,
    responses={
        400: {"description": "Unknown or current plan", "model": ErrorResponse},
        402: {"description": "Payment failed or cancelled", "model": ErrorResponse},
    },
    summary="Change plan",
)
async def change_plan(
    payload: PlanChangeRequest,
    user_id: str = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    """Paid plans are charged through the payment gateway before switching."""
    subscription = await service.change_plan(user_id, payload.plan, payload.payment_method)
    return SubscriptionResponse.model_validate(subscription)
