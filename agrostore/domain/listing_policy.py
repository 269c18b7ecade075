"""Listing limits by subscription plan."""

from typing import Optional

from .entities import Subscription, SubscriptionPlan


def listing_limit(plan: SubscriptionPlan, free_limit: Optional[int] = None) -> Optional[int]:
    """
    Maximum number of listings a plan allows.

    Args:
        plan: Subscription plan
        free_limit: Override for the free-plan cap (from settings)

    Returns:
        The cap, or None when the plan is unlimited
    """
    if plan == SubscriptionPlan.FREE and free_limit is not None:
        return free_limit
    return plan.max_listings


def can_add_product(
    subscription: Optional[Subscription],
    product_count: int,
    free_limit: Optional[int] = None,
) -> bool:
    """
    Decide whether a farmer may publish one more listing.

    A farmer without an active subscription may not list at all.
    """
    if subscription is None or not subscription.is_active:
        return False

    limit = listing_limit(subscription.plan, free_limit)
    if limit is None:
        return True
    return product_count < limit


def remaining_listings(
    subscription: Optional[Subscription],
    product_count: int,
    free_limit: Optional[int] = None,
) -> Optional[int]:
    """Listings left before the cap, None when unlimited."""
    if subscription is None or not subscription.is_active:
        return 0
    limit = listing_limit(subscription.plan, free_limit)
    if limit is None:
        return None
    return max(limit - product_count, 0)
