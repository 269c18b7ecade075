"""
Account management.

Registers marketplace participants, maintains their profiles and
aggregates the farmer dashboard and farm map data.
"""

from dataclasses import replace
from decimal import Decimal
from typing import Any, List, Optional, Union

import structlog
from email_validator import EmailNotValidError, validate_email

from ..domain.entities import (
    FarmerStats,
    FarmLocation,
    OrderStatus,
    Subscription,
    SubscriptionPlan,
    User,
    UserRole,
)
from ..domain.exceptions import (
    EntityNotFoundException,
    PermissionDeniedException,
    ValidationException,
)
from ..domain.order_workflow import ACTIVE_STATUSES
from ..domain.validators import require_text
from ..repositories.interfaces import IUnitOfWork

logger = structlog.get_logger(__name__)

PROFILE_FIELDS = frozenset(
    {
        "name",
        "phone",
        "location",
        "latitude",
        "longitude",
        "profile_image_url",
        "farm_name",
        "farm_description",
        "certifications",
        "established_year",
    }
)
FARM_FIELDS = frozenset({"farm_name", "farm_description", "certifications", "established_year"})


def parse_role(value: Union[UserRole, str]) -> UserRole:
    try:
        return UserRole(value)
    except ValueError:
        raise ValidationException("role", value, "Unknown user type")


def normalize_email(value: str) -> str:
    """Syntax check without DNS lookups; addresses are stored lowercased."""
    try:
        return validate_email(value, check_deliverability=False).normalized.lower()
    except EmailNotValidError as e:
        raise ValidationException("email", value, str(e))


class AccountService:
    """Participant registration, profiles and farmer dashboards."""

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def register_user(
        self,
        name: str,
        email: str,
        phone: str,
        role: Union[UserRole, str],
        location: str,
        farm_name: Optional[str] = None,
        farm_description: Optional[str] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
    ) -> User:
        """
        Register a participant and start them on the free plan.

        Args:
            name: Display name
            email: Contact email, unique ignoring case
            phone: Contact phone
            role: Participant type
            location: Free-text location
            farm_name: Required for farmers, rejected for other roles
            farm_description: Farmers only

        Returns:
            Created user

        Raises:
            ValidationException: If a field is missing or the email is taken
        """
        role = parse_role(role)
        name = require_text("name", name, max_length=255)
        email = normalize_email(require_text("email", email, max_length=255))
        phone = require_text("phone", phone, max_length=50)
        location = require_text("location", location, max_length=255)

        if role == UserRole.FARMER:
            farm_name = require_text("farm_name", farm_name, max_length=255)
        elif farm_name or farm_description:
            raise ValidationException("farm_name", farm_name, "Farm details are only allowed for farmers")

        with self.uow:
            if self.uow.users.get_by_email(email):
                raise ValidationException("email", email, "An account with this email already exists")

            user = User(
                name=name,
                email=email,
                phone=phone,
                role=role,
                location=location,
                latitude=latitude,
                longitude=longitude,
                farm_name=farm_name,
                farm_description=farm_description or None,
            )
            self.uow.users.add(user)
            self.uow.subscriptions.add(
                Subscription.for_plan(user.id, SubscriptionPlan.FREE, start=user.created_at)
            )
            self.uow.commit()

        logger.info("User registered", user_id=user.id, role=role.value)
        return user

    def get_user(self, user_id: str) -> User:
        user = self.uow.users.get(user_id)
        if not user:
            raise EntityNotFoundException("User", user_id)
        return user

    def update_profile(self, user_id: str, **changes: Any) -> User:
        """
        Apply profile changes.

        Raises:
            ValidationException: On unknown fields, blank required text,
                or farm details for a non-farmer
        """
        unknown = set(changes) - PROFILE_FIELDS
        if unknown:
            field_name = sorted(unknown)[0]
            raise ValidationException(field_name, changes[field_name], "Field cannot be changed")

        with self.uow:
            user = self.get_user(user_id)

            if not user.is_farmer:
                farm_changes = [key for key in FARM_FIELDS if changes.get(key)]
                if farm_changes:
                    raise ValidationException(
                        farm_changes[0],
                        changes[farm_changes[0]],
                        "Farm details are only allowed for farmers",
                    )

            for key in ("name", "phone", "location"):
                if key in changes:
                    changes[key] = require_text(key, changes[key], max_length=255)
            if user.is_farmer and "farm_name" in changes:
                changes["farm_name"] = require_text("farm_name", changes["farm_name"], max_length=255)

            try:
                updated = replace(user, **changes)
            except ValueError as e:
                raise ValidationException("profile", changes, str(e))

            self.uow.users.update(updated)
            if updated.is_farmer:
                self._sync_listings(updated)
            self.uow.commit()

        logger.info("Profile updated", user_id=user_id, fields=sorted(changes))
        return updated

    def _sync_listings(self, farmer: User) -> None:
        """Listings carry a copy of the farm name and position."""
        listing_fields = {
            "farmer_name": farmer.farm_name or farmer.name,
            "location": farmer.location,
            "latitude": farmer.latitude,
            "longitude": farmer.longitude,
        }
        for product in self.uow.products.list_by_farmer(farmer.id):
            if any(getattr(product, key) != value for key, value in listing_fields.items()):
                self.uow.products.update(replace(product, **listing_fields))

    def get_farmer_stats(self, farmer_id: str) -> FarmerStats:
        """
        Dashboard figures for a farmer.

        Active orders are those not yet delivered, completed or cancelled;
        total sales exclude cancelled orders.
        """
        farmer = self.get_user(farmer_id)
        if not farmer.is_farmer:
            raise PermissionDeniedException("view farmer statistics", "user is not a farmer")

        orders = self.uow.orders.list_for_farmer(farmer_id)
        return FarmerStats(
            listings_count=self.uow.products.count_by_farmer(farmer_id),
            active_orders_count=sum(1 for order in orders if order.status in ACTIVE_STATUSES),
            total_sales=sum(
                (o.total_amount for o in orders if o.status != OrderStatus.CANCELLED),
                Decimal("0"),
            ),
            rating=farmer.rating,
        )

    def list_farm_locations(self) -> List[FarmLocation]:
        """Map pins for farmers with coordinates."""
        locations = []
        for farmer in self.uow.users.list_farmers():
            if not farmer.has_coordinates:
                continue
            products = self.uow.products.list_by_farmer(farmer.id)
            locations.append(
                FarmLocation(
                    farmer_id=farmer.id,
                    farm_name=farmer.farm_name or farmer.name,
                    location=farmer.location,
                    latitude=farmer.latitude,
                    longitude=farmer.longitude,
                    available_products=sum(1 for p in products if p.is_available),
                )
            )
        return locations
