"""
Order status state machine.

Orders move one step at a time along

    pending -> confirmed -> preparing -> ready -> delivered -> completed

and may be cancelled before they are delivered. Only the order's farmer
drives the workflow; customers cannot change status.
"""

from enum import Enum
from typing import Dict, Tuple

from .entities import Order, OrderStatus, User
from .exceptions import InvalidStatusTransitionException, PermissionDeniedException

FULFILLMENT_SEQUENCE = (
    OrderStatus.PENDING,
    OrderStatus.CONFIRMED,
    OrderStatus.PREPARING,
    OrderStatus.READY,
    OrderStatus.DELIVERED,
    OrderStatus.COMPLETED,
)

CANCELLABLE = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
    }
)

ACTIVE_STATUSES = frozenset(
    {
        OrderStatus.PENDING,
        OrderStatus.CONFIRMED,
        OrderStatus.PREPARING,
        OrderStatus.READY,
    }
)
COMPLETED_STATUSES = frozenset({OrderStatus.DELIVERED, OrderStatus.COMPLETED})
RATEABLE_STATUSES = COMPLETED_STATUSES

FARMER = "farmer"
CUSTOMER = "customer"


def _build_transitions() -> Dict[Tuple[OrderStatus, OrderStatus], frozenset]:
    table = {}
    for current, following in zip(FULFILLMENT_SEQUENCE, FULFILLMENT_SEQUENCE[1:]):
        table[(current, following)] = frozenset({FARMER})
    for current in CANCELLABLE:
        table[(current, OrderStatus.CANCELLED)] = frozenset({FARMER})
    return table


# (current, requested) -> parties allowed to make the move
TRANSITIONS = _build_transitions()


def party_for(order: Order, actor: User) -> str:
    """
    Resolve the actor's relationship to the order.

    Raises:
        PermissionDeniedException: If the actor is not a participant
    """
    if actor.id == order.farmer_id:
        return FARMER
    if actor.id == order.customer_id:
        return CUSTOMER
    raise PermissionDeniedException("update order", "not a participant in this order")


def next_status(status: OrderStatus):
    """Following fulfilment step, or None at the end of the sequence."""
    if status not in FULFILLMENT_SEQUENCE:
        return None
    index = FULFILLMENT_SEQUENCE.index(status)
    if index + 1 < len(FULFILLMENT_SEQUENCE):
        return FULFILLMENT_SEQUENCE[index + 1]
    return None


def check_transition(order: Order, requested: OrderStatus, actor: User) -> None:
    """
    Validate a status change keyed by (current, requested, party).

    Raises:
        InvalidStatusTransitionException: If the move is not in the workflow
        PermissionDeniedException: If the actor's party may not make it
    """
    current = order.status
    if current.is_terminal:
        raise InvalidStatusTransitionException(
            "order", current.value, requested.value, "order is closed"
        )

    allowed = TRANSITIONS.get((current, requested))
    if allowed is None:
        raise InvalidStatusTransitionException("order", current.value, requested.value)

    party = party_for(order, actor)
    if party not in allowed:
        raise PermissionDeniedException(
            f"move order to {requested.value}", f"{party} cannot make this change"
        )


def can_transition(order: Order, requested: OrderStatus, actor: User) -> bool:
    try:
        check_transition(order, requested, actor)
    except (InvalidStatusTransitionException, PermissionDeniedException):
        return False
    return True


class OrderTab(str, Enum):
    """Order list tabs."""

    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

    @property
    def statuses(self) -> frozenset:
        return {
            OrderTab.ACTIVE: ACTIVE_STATUSES,
            OrderTab.COMPLETED: COMPLETED_STATUSES,
            OrderTab.CANCELLED: frozenset({OrderStatus.CANCELLED}),
        }[self]
