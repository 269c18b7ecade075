"""
Shopping cart service.

Lines capture the product's unit price when added; later price changes
do not affect the cart.
"""

from dataclasses import replace
from typing import Any, Optional

import structlog

from ..domain.cart import CartSummary, summarize, validate_quantity
from ..domain.entities import CartItem, DeliveryOption, Product
from ..domain.exceptions import (
    EntityNotFoundException,
    PermissionDeniedException,
    ValidationException,
)
from ..domain.validators import parse_quantity
from ..repositories.interfaces import IUnitOfWork

logger = structlog.get_logger(__name__)


def resolve_delivery_option(product: Product, requested: Optional[Any]) -> DeliveryOption:
    """
    Pick the delivery option for a purchase of ``product``.

    Defaults to the first option the listing offers.

    Raises:
        ValidationException: If the option is unknown or not offered
    """
    offered = product.delivery_options or [DeliveryOption.PICKUP]
    if requested in (None, ""):
        return offered[0]
    try:
        option = DeliveryOption(requested)
    except ValueError:
        raise ValidationException("delivery_option", requested, "Unknown delivery option")
    if option not in offered:
        raise ValidationException(
            "delivery_option", requested, f"{option.display_name} is not offered for this product"
        )
    return option


def require_purchasable(product: Product, buyer_id: str) -> None:
    if not product.is_available:
        raise ValidationException("product", product.id, "Product is not available")
    if product.farmer_id == buyer_id:
        raise PermissionDeniedException("buy product", "cannot buy your own listing")


class CartService:
    """Per-user cart operations."""

    def __init__(self, uow: IUnitOfWork):
        self.uow = uow

    def _get_product(self, product_id: str) -> Product:
        product = self.uow.products.get(product_id)
        if not product:
            raise EntityNotFoundException("Product", product_id)
        return product

    def _get_owned_item(self, user_id: str, item_id: str) -> CartItem:
        item = self.uow.cart.get(item_id)
        if not item:
            raise EntityNotFoundException("CartItem", item_id)
        if item.user_id != user_id:
            raise PermissionDeniedException("change cart item", "item belongs to another cart")
        return item

    def add_to_cart(
        self,
        user_id: str,
        product_id: str,
        quantity: Any,
        delivery_option: Optional[Any] = None,
    ) -> CartItem:
        """
        Add a product to the user's cart.

        Adding a product already in the cart merges the quantities; the
        merged quantity is checked against the listing bounds again.

        Raises:
            ValidationException: If the quantity is malformed or out of bounds
            EntityNotFoundException: If the user or product does not exist
        """
        quantity = parse_quantity("quantity", quantity)

        with self.uow:
            if not self.uow.users.get(user_id):
                raise EntityNotFoundException("User", user_id)
            product = self._get_product(product_id)
            require_purchasable(product, user_id)
            option = resolve_delivery_option(product, delivery_option)

            existing = next(
                (line for line in self.uow.cart.list_for_user(user_id) if line.product_id == product_id),
                None,
            )
            if existing:
                merged = existing.quantity + quantity
                validate_quantity(product, merged)
                item = replace(existing, quantity=merged, delivery_option=option)
                self.uow.cart.update(item)
            else:
                validate_quantity(product, quantity)
                item = CartItem(
                    user_id=user_id,
                    product_id=product.id,
                    product_name=product.name,
                    unit_price=product.price,
                    quantity=quantity,
                    unit=product.unit,
                    delivery_option=option,
                )
                self.uow.cart.add(item)
            self.uow.commit()

        logger.info(
            "Added to cart",
            user_id=user_id,
            product_id=product_id,
            quantity=str(item.quantity),
            merged=existing is not None,
        )
        return item

    def update_quantity(self, user_id: str, item_id: str, quantity: Any) -> CartItem:
        quantity = parse_quantity("quantity", quantity)
        with self.uow:
            item = self._get_owned_item(user_id, item_id)
            validate_quantity(self._get_product(item.product_id), quantity)
            updated = replace(item, quantity=quantity)
            self.uow.cart.update(updated)
            self.uow.commit()
        return updated

    def remove_item(self, user_id: str, item_id: str) -> None:
        with self.uow:
            self._get_owned_item(user_id, item_id)
            self.uow.cart.delete(item_id)
            self.uow.commit()

    def clear_cart(self, user_id: str) -> int:
        """Remove every line; returns how many were removed."""
        with self.uow:
            removed = self.uow.cart.delete_for_user(user_id)
            self.uow.commit()
        logger.info("Cart cleared", user_id=user_id, removed=removed)
        return removed

    def get_cart(self, user_id: str) -> CartSummary:
        """Cart lines with the grand total and per-farmer grouping."""
        items = self.uow.cart.list_for_user(user_id)
        products = self.uow.products.get_many([item.product_id for item in items])
        return summarize(items, {product.id: product.farmer_id for product in products})
