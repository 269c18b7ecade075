"""
Cart aggregation.

Totals are computed from the unit price captured when each line was
added, never from the live product price.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional

from .entities import CartItem, Order, OrderItem, Product
from .exceptions import EntityNotFoundException, ValidationException


@dataclass(frozen=True)
class CartLine:
    item: CartItem
    line_total: Decimal


@dataclass
class CartSummary:
    """Cart lines with totals, grouped by the owning farmer when known."""

    lines: List[CartLine] = field(default_factory=list)
    grand_total: Decimal = Decimal("0")
    by_farmer: Dict[str, List[CartItem]] = field(default_factory=dict)

    @property
    def item_count(self) -> int:
        return len(self.lines)

    @property
    def is_empty(self) -> bool:
        return not self.lines


def line_total(item: CartItem) -> Decimal:
    """Quantity times the snapshotted unit price, in whole cents."""
    return item.total_price


def grand_total(items: Iterable[CartItem]) -> Decimal:
    """Sum of line totals; independent of item order."""
    return sum((line_total(item) for item in items), Decimal("0"))


def group_by_farmer(items: Iterable[CartItem], farmer_by_product: Mapping[str, str]) -> Dict[str, List[CartItem]]:
    """
    Group cart lines by the farmer who owns each product.

    Args:
        items: Cart lines
        farmer_by_product: product_id -> farmer_id

    Raises:
        EntityNotFoundException: If a line's product cannot be resolved
    """
    groups: Dict[str, List[CartItem]] = {}
    for item in items:
        farmer_id = farmer_by_product.get(item.product_id)
        if farmer_id is None:
            raise EntityNotFoundException("Product", item.product_id)
        groups.setdefault(farmer_id, []).append(item)
    return groups


def summarize(items: Iterable[CartItem], farmer_by_product: Optional[Mapping[str, str]] = None) -> CartSummary:
    items = list(items)
    summary = CartSummary(
        lines=[CartLine(item=item, line_total=line_total(item)) for item in items],
        grand_total=grand_total(items),
    )
    if farmer_by_product is not None:
        summary.by_farmer = group_by_farmer(items, farmer_by_product)
    return summary


def validate_quantity(product: Product, quantity: Decimal) -> None:
    """
    Check a requested quantity against the listing's bounds.

    Raises:
        ValidationException: If below the minimum order or above stock
    """
    if quantity <= 0:
        raise ValidationException("quantity", quantity, "Quantity must be greater than zero")
    if quantity < product.minimum_order:
        raise ValidationException(
            "quantity",
            quantity,
            f"Minimum order is {product.minimum_order} {product.unit}",
        )
    if quantity > product.available_quantity:
        raise ValidationException(
            "quantity",
            quantity,
            f"Only {product.available_quantity} {product.unit} available",
        )


def build_orders(
    customer_id: str,
    groups: Mapping[str, List[CartItem]],
    **order_fields,
) -> List[Order]:
    """One order per farmer group, totals snapshotted from the cart lines."""
    orders = []
    for farmer_id, items in groups.items():
        order_items = [
            OrderItem(
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
            )
            for item in items
        ]
        orders.append(
            Order.from_items(
                customer_id=customer_id,
                farmer_id=farmer_id,
                items=order_items,
                **order_fields,
            )
        )
    return orders
