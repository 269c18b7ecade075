"""
Order fulfilment service.

Farmers drive orders through the fulfilment workflow; both parties may
rate each other once the order has been delivered.
"""

from dataclasses import replace
from typing import Any, List, Optional, Union

import structlog

from ..core.metrics import order_transitions_total
from ..domain.entities import Order, OrderStatus, User, utcnow
from ..domain.exceptions import (
    EntityNotFoundException,
    InvalidStatusTransitionException,
    ValidationException,
)
from ..domain.order_workflow import (
    CUSTOMER,
    RATEABLE_STATUSES,
    OrderTab,
    check_transition,
    party_for,
)
from ..domain.validators import parse_rating
from ..repositories.interfaces import IUnitOfWork

logger = structlog.get_logger(__name__)


class OrderService:
    """Order lists, status changes and ratings."""

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def _get_user(self, user_id: str) -> User:
        user = self.uow.users.get(user_id)
        if not user:
            raise EntityNotFoundException("User", user_id)
        return user

    def _get_order(self, order_id: str) -> Order:
        order = self.uow.orders.get(order_id)
        if not order:
            raise EntityNotFoundException("Order", order_id)
        return order

    def list_orders(self, user_id: str, tab: Union[OrderTab, str] = OrderTab.ACTIVE) -> List[Order]:
        """
        Orders for one tab of the user's order list, newest first.

        Farmers see the orders placed with them; everyone else sees
        their own purchases.
        """
        try:
            tab = OrderTab(tab)
        except ValueError:
            raise ValidationException("tab", tab, "Unknown order tab")

        user = self._get_user(user_id)
        if user.is_farmer:
            orders = self.uow.orders.list_for_farmer(user_id)
        else:
            orders = self.uow.orders.list_for_customer(user_id)

        statuses = tab.statuses
        result = [order for order in orders if order.status in statuses]
        result.sort(key=lambda order: order.created_at, reverse=True)
        return result

    def get_order(self, user_id: str, order_id: str) -> Order:
        user = self._get_user(user_id)
        order = self._get_order(order_id)
        party_for(order, user)
        return order

    def advance_status(self, user_id: str, order_id: str, requested: Union[OrderStatus, str]) -> Order:
        """
        Move an order to the requested status.

        Raises:
            InvalidStatusTransitionException: If the move skips a step or
                the order is closed
            PermissionDeniedException: If the user may not make the move
        """
        try:
            requested = OrderStatus(requested)
        except ValueError:
            raise ValidationException("status", requested, "Unknown order status")

        with self.uow:
            user = self._get_user(user_id)
            order = self._get_order(order_id)
            check_transition(order, requested, user)

            updated = replace(order, status=requested, updated_at=utcnow())
            self.uow.orders.update(updated)
            self.uow.commit()

        order_transitions_total.labels(status=requested.value).inc()
        logger.info(
            "Order status changed",
            order_id=order_id,
            user_id=user_id,
            previous=order.status.value,
            status=requested.value,
        )
        return updated

    def accept_order(self, farmer_id: str, order_id: str) -> Order:
        return self.advance_status(farmer_id, order_id, OrderStatus.CONFIRMED)

    def decline_order(self, farmer_id: str, order_id: str) -> Order:
        return self.advance_status(farmer_id, order_id, OrderStatus.CANCELLED)

    def rate_order(self, user_id: str, order_id: str, rating: Any, review: Optional[str] = None) -> Order:
        """
        Rate the other party of a delivered order.

        The customer rates the farmer and the farmer rates the customer,
        once each. The rated user's average rating and review count are
        updated together with the order.

        Raises:
            InvalidStatusTransitionException: If the order is not delivered yet
            ValidationException: If the score is out of range or already given
        """
        score = parse_rating(rating)
        review = (review or "").strip() or None

        with self.uow:
            user = self._get_user(user_id)
            order = self._get_order(order_id)
            party = party_for(order, user)

            if order.status not in RATEABLE_STATUSES:
                raise InvalidStatusTransitionException(
                    "order", order.status.value, "rated", "order has not been delivered"
                )

            if party == CUSTOMER:
                if order.customer_rating is not None:
                    raise ValidationException("rating", rating, "You have already rated this order")
                rated_id = order.farmer_id
                updated = replace(order, customer_rating=score, customer_review=review, updated_at=utcnow())
            else:
                if order.farmer_rating is not None:
                    raise ValidationException("rating", rating, "You have already rated this order")
                rated_id = order.customer_id
                updated = replace(order, farmer_rating=score, farmer_review=review, updated_at=utcnow())

            rated = self._get_user(rated_id)
            self.uow.users.update(
                replace(
                    rated,
                    rating=rated.rating_after(score),
                    total_reviews=rated.total_reviews + 1,
                )
            )
            self.uow.orders.update(updated)
            self.uow.commit()

        logger.info("Order rated", order_id=order_id, user_id=user_id, rated_user_id=rated_id, score=str(score))
        return updated
