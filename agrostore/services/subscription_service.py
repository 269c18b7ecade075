"""
Subscription service.

Plan changes go through the payment gateway for paid plans. On success
the previous record is kept for history with ``is_active`` False and the
new record carries the target plan's feature bundle.
"""

from dataclasses import replace
from typing import Dict, List, Optional, Union

import structlog

from ..core.metrics import payment_outcomes_total, subscription_changes_total
from ..domain.entities import PlanFeatures, Subscription, SubscriptionPlan, User
from ..domain.exceptions import (
    EntityNotFoundException,
    PaymentFailedException,
    ValidationException,
)
from ..infrastructure.payment_gateway import (
    IPaymentGateway,
    PaymentOutcome,
    single_item_payment_request,
)
from ..repositories.interfaces import IUnitOfWork

logger = structlog.get_logger(__name__)


class SubscriptionService:
    """Plan catalogue, history and plan changes."""

    def __init__(self, uow: IUnitOfWork, gateway: IPaymentGateway):
        self.uow = uow
        self.gateway = gateway

    def _get_user(self, user_id: str) -> User:
        user = self.uow.users.get(user_id)
        if not user:
            raise EntityNotFoundException("User", user_id)
        return user

    def get_active_subscription(self, user_id: str) -> Optional[Subscription]:
        self._get_user(user_id)
        return self.uow.subscriptions.get_active(user_id)

    def list_plans(self) -> Dict[SubscriptionPlan, PlanFeatures]:
        return {plan: plan.bundle for plan in SubscriptionPlan}

    def history(self, user_id: str) -> List[Subscription]:
        """Every subscription record for the user, newest first."""
        self._get_user(user_id)
        return self.uow.subscriptions.list_for_user(user_id)

    async def change_plan(
        self,
        user_id: str,
        plan: Union[SubscriptionPlan, str],
        payment_method: Optional[str] = None,
    ) -> Subscription:
        """
        Switch the user to another plan.

        Args:
            user_id: Subscriber
            plan: Target plan
            payment_method: Label stored on the new record

        Returns:
            The new active subscription

        Raises:
            ValidationException: If the plan is unknown or already active
            PaymentFailedException: If payment for a paid plan does not succeed
        """
        try:
            plan = SubscriptionPlan(plan)
        except ValueError:
            raise ValidationException("plan", plan, "Unknown subscription plan")

        user = self._get_user(user_id)
        current = self.uow.subscriptions.get_active(user_id)
        if current is not None and current.plan == plan:
            raise ValidationException("plan", plan.value, "This plan is already active")

        if plan.price > 0:
            request = single_item_payment_request(f"Agro Store {plan.display_name}", plan.price)
            outcome = await self.gateway.authorize(request)
            payment_outcomes_total.labels(outcome=outcome.value).inc()
            if outcome != PaymentOutcome.AUTHORIZED:
                logger.warning(
                    "Subscription payment not authorized",
                    user_id=user_id,
                    plan=plan.value,
                    outcome=outcome.value,
                )
                raise PaymentFailedException(outcome.value, str(plan.price))

        with self.uow:
            if current is not None:
                self.uow.subscriptions.update(replace(current, is_active=False))

            subscription = Subscription.for_plan(user_id, plan, payment_method=payment_method)
            self.uow.subscriptions.add(subscription)

            is_pro = plan != SubscriptionPlan.FREE
            self.uow.users.update(
                replace(
                    user,
                    is_pro_subscriber=is_pro,
                    subscription_expiry_date=subscription.end_date if is_pro else None,
                )
            )
            self.uow.commit()

        subscription_changes_total.labels(plan=plan.value).inc()
        logger.info(
            "Subscription changed",
            user_id=user_id,
            previous=current.plan.value if current else None,
            plan=plan.value,
        )
        return subscription
