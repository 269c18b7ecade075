"""
Demand board service.

Retailers and restaurants post demand requests; farmers answer them with
offers, and the requester picks one.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, List, Optional, Union

import structlog

from ..domain.demand_workflow import check_demand_transition, should_expire
from ..domain.entities import (
    DeliveryOption,
    DemandRequest,
    RequestResponse,
    RequestStatus,
    User,
    UserRole,
    utcnow,
)
from ..domain.exceptions import (
    EntityNotFoundException,
    PermissionDeniedException,
    ValidationException,
)
from ..domain.filters import DemandFilter, filter_demands
from ..domain.validators import parse_money, parse_quantity, require_text
from ..repositories.interfaces import IUnitOfWork
from .catalog_service import parse_category

logger = structlog.get_logger(__name__)

REQUESTER_ROLES = frozenset({UserRole.RETAILER, UserRole.RESTAURANT})


@dataclass
class DemandDraft:
    """Raw demand form input."""

    title: str
    description: str
    category: Any
    quantity: Any
    unit: str
    max_price: Any
    required_by: datetime
    location: Optional[str] = None
    is_urgent: bool = False
    is_organic: bool = False
    quality_requirements: Optional[str] = None
    delivery_preference: Any = DeliveryOption.PICKUP
    tags: List[str] = field(default_factory=list)


class DemandService:
    """Demand requests and farmer responses."""

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def _get_user(self, user_id: str) -> User:
        user = self.uow.users.get(user_id)
        if not user:
            raise EntityNotFoundException("User", user_id)
        return user

    def get_demand(self, demand_id: str) -> DemandRequest:
        demand = self.uow.demands.get(demand_id)
        if not demand:
            raise EntityNotFoundException("DemandRequest", demand_id)
        return demand

    def _get_own_demand(self, requester_id: str, demand_id: str, action: str) -> DemandRequest:
        demand = self.get_demand(demand_id)
        if demand.requester_id != requester_id:
            raise PermissionDeniedException(action, "only the requester can do this")
        return demand

    def create_demand(self, requester_id: str, draft: DemandDraft) -> DemandRequest:
        """
        Post a demand request.

        Raises:
            PermissionDeniedException: If the user is not a retailer or restaurant
            ValidationException: If a field is malformed or required_by is not
                in the future
        """
        title = require_text("title", draft.title, max_length=255)
        description = require_text("description", draft.description)
        unit = require_text("unit", draft.unit, max_length=30)
        category = parse_category(draft.category)
        quantity = parse_quantity("quantity", draft.quantity)
        max_price = parse_money("max_price", draft.max_price)
        try:
            delivery_preference = DeliveryOption(draft.delivery_preference)
        except ValueError:
            raise ValidationException("delivery_preference", draft.delivery_preference, "Unknown delivery option")

        now = utcnow()
        if draft.required_by <= now:
            raise ValidationException("required_by", draft.required_by, "Date must be in the future")

        with self.uow:
            requester = self._get_user(requester_id)
            if requester.role not in REQUESTER_ROLES:
                raise PermissionDeniedException(
                    "post demand request", "only retailers and restaurants can post demands"
                )

            demand = DemandRequest(
                requester_id=requester_id,
                title=title,
                description=description,
                category=category,
                quantity=quantity,
                unit=unit,
                max_price=max_price,
                location=(draft.location or "").strip() or requester.location,
                latitude=requester.latitude,
                longitude=requester.longitude,
                required_by=draft.required_by,
                is_urgent=draft.is_urgent,
                is_organic=draft.is_organic,
                quality_requirements=(draft.quality_requirements or "").strip() or None,
                delivery_preference=delivery_preference,
                tags=list(draft.tags),
                created_at=now,
                updated_at=now,
            )
            self.uow.demands.add(demand)
            self.uow.commit()

        logger.info("Demand posted", demand_id=demand.id, requester_id=requester_id)
        return demand

    def respond_to_demand(
        self,
        farmer_id: str,
        demand_id: str,
        offered_price: Any,
        available_quantity: Any,
        message: Optional[str] = None,
        product_samples: Optional[List[str]] = None,
    ) -> RequestResponse:
        """
        Submit a farmer's offer on an open demand.

        Raises:
            PermissionDeniedException: If the user is not a farmer
            ValidationException: If the demand is not open or the farmer
                already responded
        """
        offered_price = parse_money("offered_price", offered_price)
        available_quantity = parse_quantity("available_quantity", available_quantity)

        with self.uow:
            farmer = self._get_user(farmer_id)
            if not farmer.is_farmer:
                raise PermissionDeniedException("respond to demand", "only farmers can respond")

            demand = self.get_demand(demand_id)
            if demand.status != RequestStatus.OPEN:
                raise ValidationException("demand", demand.status.value, "Demand is not open for responses")
            if any(r.farmer_id == farmer_id for r in demand.responses):
                raise ValidationException("demand", demand_id, "You have already responded to this demand")

            response = RequestResponse(
                request_id=demand_id,
                farmer_id=farmer_id,
                farmer_name=farmer.farm_name or farmer.name,
                offered_price=offered_price,
                available_quantity=available_quantity,
                message=(message or "").strip() or None,
                product_samples=list(product_samples or []),
            )
            self.uow.demands.add_response(response)
            self.uow.commit()

        logger.info("Demand response submitted", demand_id=demand_id, farmer_id=farmer_id)
        return response

    def accept_response(self, requester_id: str, demand_id: str, response_id: str) -> DemandRequest:
        """
        Accept one offer; every other offer is marked as not accepted and
        the demand moves to in progress.
        """
        with self.uow:
            demand = self._get_own_demand(requester_id, demand_id, "accept response")
            if not any(r.id == response_id for r in demand.responses):
                raise EntityNotFoundException("RequestResponse", response_id)
            check_demand_transition(demand, RequestStatus.IN_PROGRESS)

            responses = [replace(r, is_accepted=(r.id == response_id)) for r in demand.responses]
            for response in responses:
                self.uow.demands.update_response(response)

            updated = replace(
                demand,
                status=RequestStatus.IN_PROGRESS,
                responses=responses,
                updated_at=utcnow(),
            )
            self.uow.demands.update(updated)
            self.uow.commit()

        logger.info("Demand response accepted", demand_id=demand_id, response_id=response_id)
        return updated

    def update_status(
        self, requester_id: str, demand_id: str, status: Union[RequestStatus, str]
    ) -> DemandRequest:
        try:
            status = RequestStatus(status)
        except ValueError:
            raise ValidationException("status", status, "Unknown demand status")

        with self.uow:
            demand = self._get_own_demand(requester_id, demand_id, "change demand status")
            check_demand_transition(demand, status)
            updated = replace(demand, status=status, updated_at=utcnow())
            self.uow.demands.update(updated)
            self.uow.commit()

        logger.info("Demand status changed", demand_id=demand_id, status=status.value)
        return updated

    def expire_overdue(self, now: Optional[datetime] = None) -> List[DemandRequest]:
        """
        Mark open and in-progress demands past their required-by date as expired.

        Returns:
            The demands that were expired by this sweep
        """
        now = now or utcnow()
        with self.uow:
            expired = [
                replace(demand, status=RequestStatus.EXPIRED, updated_at=now)
                for demand in self.uow.demands.list_all()
                if should_expire(demand, now)
            ]
            for demand in expired:
                self.uow.demands.update(demand)
            self.uow.commit()

        if expired:
            logger.info("Expired overdue demands", count=len(expired))
        return expired

    def list_demands(
        self,
        user_id: str,
        search: str = "",
        demand_filter: Union[DemandFilter, str] = DemandFilter.ALL,
    ) -> List[DemandRequest]:
        try:
            demand_filter = DemandFilter(demand_filter)
        except ValueError:
            raise ValidationException("filter", demand_filter, "Unknown demand filter")

        user = self._get_user(user_id)
        return filter_demands(self.uow.demands.list_all(), user, search, demand_filter)
