"""
Tests for the plan listing limit.
"""

from dataclasses import replace

import pytest

from agrostore.domain.entities import Subscription, SubscriptionPlan
from agrostore.domain.listing_policy import can_add_product, listing_limit, remaining_listings


def _subscription(plan):
    return Subscription.for_plan("farmer-1", plan)


class TestCanAddProduct:
    """Test listing limit decisions."""

    @pytest.mark.parametrize("count,expected", [(0, True), (4, True), (5, False), (12, False)])
    def test_free_plan_caps_at_five(self, count, expected):
        assert can_add_product(_subscription(SubscriptionPlan.FREE), count) is expected

    @pytest.mark.parametrize("plan", [SubscriptionPlan.BASIC, SubscriptionPlan.PREMIUM])
    @pytest.mark.parametrize("count", [0, 5, 500])
    def test_paid_plans_are_unlimited(self, plan, count):
        assert can_add_product(_subscription(plan), count)

    def test_no_subscription_cannot_list(self):
        assert not can_add_product(None, 0)

    def test_inactive_subscription_cannot_list(self):
        inactive = replace(_subscription(SubscriptionPlan.PREMIUM), is_active=False)
        assert not can_add_product(inactive, 0)

    def test_free_limit_override(self):
        subscription = _subscription(SubscriptionPlan.FREE)
        assert can_add_product(subscription, 5, free_limit=10)
        assert not can_add_product(subscription, 2, free_limit=2)


class TestLimits:
    def test_listing_limit(self):
        assert listing_limit(SubscriptionPlan.FREE) == 5
        assert listing_limit(SubscriptionPlan.BASIC) is None

    def test_remaining_listings(self):
        assert remaining_listings(_subscription(SubscriptionPlan.FREE), 3) == 2
        assert remaining_listings(_subscription(SubscriptionPlan.FREE), 9) == 0
        assert remaining_listings(_subscription(SubscriptionPlan.BASIC), 9) is None
        assert remaining_listings(None, 0) == 0
