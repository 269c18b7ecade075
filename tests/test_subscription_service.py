"""
Tests for plan changes and subscription history.
"""

from decimal import Decimal

import pytest

from agrostore.domain.entities import SubscriptionPlan
from agrostore.domain.exceptions import (
    EntityNotFoundException,
    PaymentFailedException,
    ValidationException,
)
from agrostore.infrastructure.payment_gateway import PaymentOutcome
from agrostore.services.subscription_service import SubscriptionService


@pytest.fixture
def subscriptions(uow, gateway):
    return SubscriptionService(uow, gateway)


def _active_records(uow, user_id):
    return [s for s in uow.subscriptions.list_for_user(user_id) if s.is_active]


class TestChangePlan:
    """Test upgrades and downgrades."""

    @pytest.mark.asyncio
    async def test_upgrade_to_premium(self, subscriptions, uow, gateway, farmer):
        subscription = await subscriptions.change_plan(farmer.id, "premium", "apple_pay")

        assert subscription.plan == SubscriptionPlan.PREMIUM
        assert subscription.commission_rate == Decimal("2.0")
        assert subscription.featured_listings == 5
        assert subscription.payment_method == "apple_pay"

        active = _active_records(uow, farmer.id)
        assert [s.id for s in active] == [subscription.id]
        assert len(uow.subscriptions.list_for_user(farmer.id)) == 2

        user = uow.users.get(farmer.id)
        assert user.is_pro_subscriber is True
        assert user.subscription_expiry_date == subscription.end_date

    @pytest.mark.asyncio
    async def test_payment_request_for_plan(self, subscriptions, gateway, farmer):
        await subscriptions.change_plan(farmer.id, SubscriptionPlan.BASIC)

        request = gateway.authorize.await_args.args[0]
        assert [item.label for item in request.items] == ["Agro Store Basic Pro", "Total"]
        assert request.total == Decimal("9.99")

    @pytest.mark.asyncio
    async def test_same_plan_rejected(self, subscriptions, gateway, farmer):
        with pytest.raises(ValidationException):
            await subscriptions.change_plan(farmer.id, "free")
        gateway.authorize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_plan(self, subscriptions, farmer):
        with pytest.raises(ValidationException):
            await subscriptions.change_plan(farmer.id, "gold")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", [PaymentOutcome.FAILED, PaymentOutcome.CANCELLED])
    async def test_failed_payment_keeps_current_plan(self, subscriptions, uow, gateway, farmer, outcome):
        gateway.authorize.return_value = outcome

        with pytest.raises(PaymentFailedException):
            await subscriptions.change_plan(farmer.id, "premium")

        assert uow.subscriptions.get_active(farmer.id).plan == SubscriptionPlan.FREE
        assert len(uow.subscriptions.list_for_user(farmer.id)) == 1
        assert uow.users.get(farmer.id).is_pro_subscriber is False

    @pytest.mark.asyncio
    async def test_downgrade_to_free_needs_no_payment(self, subscriptions, uow, gateway, farmer):
        await subscriptions.change_plan(farmer.id, "premium")
        gateway.authorize.reset_mock()

        subscription = await subscriptions.change_plan(farmer.id, "free")

        gateway.authorize.assert_not_awaited()
        assert subscription.plan == SubscriptionPlan.FREE
        assert len(_active_records(uow, farmer.id)) == 1
        user = uow.users.get(farmer.id)
        assert user.is_pro_subscriber is False
        assert user.subscription_expiry_date is None

    @pytest.mark.asyncio
    async def test_unknown_user(self, subscriptions):
        with pytest.raises(EntityNotFoundException):
            await subscriptions.change_plan("missing", "basic")


class TestPlanCatalogue:
    def test_list_plans(self, subscriptions):
        plans = subscriptions.list_plans()
        assert list(plans) == [SubscriptionPlan.FREE, SubscriptionPlan.BASIC, SubscriptionPlan.PREMIUM]
        assert plans[SubscriptionPlan.FREE].max_listings == 5
        assert plans[SubscriptionPlan.PREMIUM].price == Decimal("19.99")

    @pytest.mark.asyncio
    async def test_history_newest_first(self, subscriptions, farmer):
        await subscriptions.change_plan(farmer.id, "basic")
        history = subscriptions.history(farmer.id)
        assert [s.plan for s in history] == [SubscriptionPlan.BASIC, SubscriptionPlan.FREE]
        assert subscriptions.get_active_subscription(farmer.id).plan == SubscriptionPlan.BASIC
