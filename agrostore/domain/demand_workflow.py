"""
Demand request lifecycle.

    open -> inProgress -> fulfilled

Open and in-progress demands may also be cancelled by the requester or
expired once their required-by date has passed. Fulfilled, expired and
cancelled demands are closed.
"""

from datetime import datetime
from typing import Dict, FrozenSet

from .entities import DemandRequest, RequestStatus
from .exceptions import InvalidStatusTransitionException

OPEN_STATUSES = frozenset({RequestStatus.OPEN, RequestStatus.IN_PROGRESS})

DEMAND_TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.OPEN: frozenset(
        {RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED, RequestStatus.EXPIRED}
    ),
    RequestStatus.IN_PROGRESS: frozenset(
        {RequestStatus.FULFILLED, RequestStatus.CANCELLED, RequestStatus.EXPIRED}
    ),
    RequestStatus.FULFILLED: frozenset(),
    RequestStatus.EXPIRED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
}


def check_demand_transition(demand: DemandRequest, requested: RequestStatus) -> None:
    """
    Raises:
        InvalidStatusTransitionException: If the demand cannot move to ``requested``
    """
    current = demand.status
    if requested not in DEMAND_TRANSITIONS[current]:
        reason = "demand is closed" if current.is_terminal else None
        raise InvalidStatusTransitionException(
            "demand request", current.value, requested.value, reason
        )


def should_expire(demand: DemandRequest, now: datetime) -> bool:
    """Open or in-progress demand whose required-by date has passed."""
    return demand.status in OPEN_STATUSES and demand.is_overdue(now)
