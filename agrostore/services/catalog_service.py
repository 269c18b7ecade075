"""
Product catalog service.

Publishes farmer listings behind the plan listing limit and serves
marketplace search.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, List, Optional

import structlog

from ..config import settings
from ..core.metrics import listing_limit_rejections_total
from ..domain.entities import (
    DeliveryOption,
    FarmingMethod,
    Product,
    ProductCategory,
    User,
    utcnow,
)
from ..domain.exceptions import (
    EntityNotFoundException,
    ListingLimitExceededException,
    PermissionDeniedException,
    ValidationException,
)
from ..domain.filters import ProductQuery, search_products
from ..domain.listing_policy import can_add_product, listing_limit
from ..domain.validators import parse_money, parse_quantity, require_text
from ..repositories.interfaces import IUnitOfWork

logger = structlog.get_logger(__name__)


@dataclass
class ProductDraft:
    """Raw listing form input; numeric fields are parsed on submit."""

    name: str
    description: str
    category: Any
    price: Any
    unit: str
    minimum_order: Any = "1"
    available_quantity: Any = "0"
    is_organic: bool = False
    farming_method: Optional[Any] = None
    delivery_options: List[Any] = field(default_factory=list)
    harvest_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    image_urls: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)


EDITABLE_FIELDS = frozenset(
    {
        "name",
        "description",
        "category",
        "price",
        "unit",
        "minimum_order",
        "available_quantity",
        "is_organic",
        "farming_method",
        "delivery_options",
        "harvest_date",
        "expiry_date",
        "image_urls",
        "tags",
    }
)


def parse_category(value: Any) -> ProductCategory:
    try:
        return ProductCategory(value)
    except ValueError:
        raise ValidationException("category", value, "Unknown category")


def parse_farming_method(value: Any) -> Optional[FarmingMethod]:
    if value in (None, ""):
        return None
    try:
        return FarmingMethod(value)
    except ValueError:
        raise ValidationException("farming_method", value, "Unknown farming method")


def parse_delivery_options(values: List[Any]) -> List[DeliveryOption]:
    """Deduplicated options in the given order; pickup when none are chosen."""
    options: List[DeliveryOption] = []
    for value in values or []:
        try:
            option = DeliveryOption(value)
        except ValueError:
            raise ValidationException("delivery_options", value, "Unknown delivery option")
        if option not in options:
            options.append(option)
    return options or [DeliveryOption.PICKUP]


def _normalize_fields(values: Dict[str, Any]) -> Dict[str, Any]:
    """Parse raw listing fields into entity values."""
    parsed = dict(values)
    if "name" in parsed:
        parsed["name"] = require_text("name", parsed["name"], max_length=255)
    if "description" in parsed:
        parsed["description"] = require_text("description", parsed["description"])
    if "unit" in parsed:
        parsed["unit"] = require_text("unit", parsed["unit"], max_length=30)
    if "category" in parsed:
        parsed["category"] = parse_category(parsed["category"])
    if "price" in parsed:
        parsed["price"] = parse_money("price", parsed["price"], allow_zero=False)
    if "minimum_order" in parsed:
        parsed["minimum_order"] = parse_quantity("minimum_order", parsed["minimum_order"])
    if "available_quantity" in parsed:
        parsed["available_quantity"] = parse_quantity(
            "available_quantity", parsed["available_quantity"], allow_zero=True
        )
    if "farming_method" in parsed:
        parsed["farming_method"] = parse_farming_method(parsed["farming_method"])
    if "delivery_options" in parsed:
        parsed["delivery_options"] = parse_delivery_options(parsed["delivery_options"])
    return parsed


class CatalogService:
    """Listings and marketplace search."""

    def __init__(self, uow: IUnitOfWork, free_listing_limit: int = settings.FREE_TIER_LISTING_LIMIT):
        self.uow = uow
        self.free_listing_limit = free_listing_limit

    def _require_farmer(self, farmer_id: str, action: str) -> User:
        farmer = self.uow.users.get(farmer_id)
        if not farmer:
            raise EntityNotFoundException("User", farmer_id)
        if not farmer.is_farmer:
            raise PermissionDeniedException(action, "only farmers can manage listings")
        return farmer

    def _require_owned(self, farmer_id: str, product_id: str) -> Product:
        product = self.get_product(product_id)
        if product.farmer_id != farmer_id:
            raise PermissionDeniedException("edit product", "listing belongs to another farmer")
        return product

    def get_product(self, product_id: str) -> Product:
        product = self.uow.products.get(product_id)
        if not product:
            raise EntityNotFoundException("Product", product_id)
        return product

    def create_product(self, farmer_id: str, draft: ProductDraft) -> Product:
        """
        Publish a new listing.

        The listing inherits the farmer's location and farm name.

        Raises:
            PermissionDeniedException: If the user is not a farmer or has no
                active subscription
            ListingLimitExceededException: If the plan's cap is reached
            ValidationException: If a field is malformed
        """
        values = _normalize_fields(
            {
                "name": draft.name,
                "description": draft.description,
                "category": draft.category,
                "price": draft.price,
                "unit": draft.unit,
                "minimum_order": draft.minimum_order,
                "available_quantity": draft.available_quantity,
                "farming_method": draft.farming_method,
                "delivery_options": draft.delivery_options,
            }
        )

        with self.uow:
            farmer = self._require_farmer(farmer_id, "create listing")

            subscription = self.uow.subscriptions.get_active(farmer_id)
            if subscription is None:
                raise PermissionDeniedException("create listing", "no active subscription")

            current = self.uow.products.count_by_farmer(farmer_id)
            if not can_add_product(subscription, current, self.free_listing_limit):
                limit = listing_limit(subscription.plan, self.free_listing_limit)
                listing_limit_rejections_total.labels(plan=subscription.plan.value).inc()
                logger.info(
                    "Listing limit reached",
                    farmer_id=farmer_id,
                    plan=subscription.plan.value,
                    listings=current,
                )
                raise ListingLimitExceededException(subscription.plan.value, limit, current)

            now = utcnow()
            product = Product(
                farmer_id=farmer.id,
                farmer_name=farmer.farm_name or farmer.name,
                location=farmer.location,
                latitude=farmer.latitude,
                longitude=farmer.longitude,
                is_organic=draft.is_organic,
                harvest_date=draft.harvest_date,
                expiry_date=draft.expiry_date,
                image_urls=list(draft.image_urls),
                tags=list(draft.tags),
                created_at=now,
                updated_at=now,
                **values,
            )
            self.uow.products.add(product)
            self.uow.commit()

        logger.info("Product listed", product_id=product.id, farmer_id=farmer_id)
        return product

    def update_product(self, farmer_id: str, product_id: str, changes: Dict[str, Any]) -> Product:
        """Edit an owned listing."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            field_name = sorted(unknown)[0]
            raise ValidationException(field_name, changes[field_name], "Field cannot be changed")

        values = _normalize_fields(changes)
        with self.uow:
            product = self._require_owned(farmer_id, product_id)
            updated = replace(product, updated_at=utcnow(), **values)
            self.uow.products.update(updated)
            self.uow.commit()

        logger.info("Product updated", product_id=product_id, fields=sorted(changes))
        return updated

    def set_availability(self, farmer_id: str, product_id: str, is_available: bool) -> Product:
        with self.uow:
            product = self._require_owned(farmer_id, product_id)
            updated = replace(product, is_available=is_available, updated_at=utcnow())
            self.uow.products.update(updated)
            self.uow.commit()
        return updated

    def view_product(self, product_id: str) -> Product:
        """Return a listing and count the view."""
        with self.uow:
            product = self.get_product(product_id)
            updated = replace(product, views=product.views + 1)
            self.uow.products.update(updated)
            self.uow.commit()
        return updated

    def like_product(self, product_id: str) -> Product:
        with self.uow:
            product = self.get_product(product_id)
            updated = replace(product, likes=product.likes + 1)
            self.uow.products.update(updated)
            self.uow.commit()
        return updated

    def search_products(self, query: Optional[ProductQuery] = None) -> List[Product]:
        return search_products(self.uow.products.list_all(), query or ProductQuery())

    def list_farmer_products(self, farmer_id: str) -> List[Product]:
        if not self.uow.users.get(farmer_id):
            raise EntityNotFoundException("User", farmer_id)
        return self.uow.products.list_by_farmer(farmer_id)
