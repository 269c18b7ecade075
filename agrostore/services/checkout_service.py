"""
Checkout service.

Orders are created only after the payment gateway reports a successful
authorization. A failed or cancelled payment leaves the cart and the
order book untouched.
"""

from datetime import timedelta
from decimal import Decimal
from typing import Any, List, Optional

import structlog

from ..config import settings
from ..core.metrics import orders_created_total, payment_outcomes_total
from ..domain.cart import build_orders, group_by_farmer, validate_quantity
from ..domain.entities import (
    DeliveryOption,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    utcnow,
)
from ..domain.exceptions import (
    EntityNotFoundException,
    PaymentFailedException,
    ValidationException,
)
from ..domain.validators import parse_quantity
from ..infrastructure.payment_gateway import (
    IPaymentGateway,
    PaymentOutcome,
    PaymentRequest,
    cart_payment_request,
    single_item_payment_request,
)
from ..repositories.interfaces import IUnitOfWork
from .cart_service import require_purchasable, resolve_delivery_option

logger = structlog.get_logger(__name__)


def parse_delivery_option(value: Any) -> DeliveryOption:
    try:
        return DeliveryOption(value)
    except ValueError:
        raise ValidationException("delivery_option", value, "Unknown delivery option")


def require_address(option: DeliveryOption, address: Optional[str]) -> Optional[str]:
    """Local delivery needs an address; other options ignore blanks."""
    address = (address or "").strip() or None
    if option == DeliveryOption.DELIVERY and not address:
        raise ValidationException("delivery_address", address, "Delivery address is required")
    return address


class CheckoutService:
    """Cart checkout and single-product purchases."""

    def __init__(
        self,
        uow: IUnitOfWork,
        gateway: IPaymentGateway,
        delivery_days: int = settings.DEFAULT_DELIVERY_DAYS,
    ):
        self.uow = uow
        self.gateway = gateway
        self.delivery_days = delivery_days

    async def _authorize(self, user_id: str, request: PaymentRequest) -> None:
        outcome = await self.gateway.authorize(request)
        payment_outcomes_total.labels(outcome=outcome.value).inc()

        if outcome != PaymentOutcome.AUTHORIZED:
            logger.warning(
                "Payment not authorized",
                user_id=user_id,
                outcome=outcome.value,
                total=str(request.total),
            )
            raise PaymentFailedException(outcome.value, str(request.total))

    def _order_fields(self, delivery_option: DeliveryOption, address: Optional[str], notes: Optional[str]) -> dict:
        return {
            "delivery_option": delivery_option,
            "delivery_address": address,
            "delivery_date": utcnow() + timedelta(days=self.delivery_days),
            "notes": (notes or "").strip() or None,
            "status": OrderStatus.PENDING,
            "payment_status": PaymentStatus.PAID,
        }

    async def checkout_cart(
        self,
        user_id: str,
        delivery_option: Any,
        delivery_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> List[Order]:
        """
        Pay for the whole cart.

        Lines are grouped by the farmer who owns each product and one
        order is created per farmer.

        Returns:
            Created orders

        Raises:
            ValidationException: If the cart is empty, the address is missing,
                or a line's product is hidden or no longer has enough stock
            EntityNotFoundException: If a cart line's product no longer exists
            PaymentFailedException: If payment is declined or cancelled
        """
        option = parse_delivery_option(delivery_option)
        address = require_address(option, delivery_address)

        if not self.uow.users.get(user_id):
            raise EntityNotFoundException("User", user_id)

        items = self.uow.cart.list_for_user(user_id)
        if not items:
            raise ValidationException("cart", 0, "Cart is empty")

        products = {
            product.id: product
            for product in self.uow.products.get_many([item.product_id for item in items])
        }
        groups = group_by_farmer(items, {product.id: product.farmer_id for product in products.values()})

        # listings may have changed since the lines were added
        for item in items:
            product = products[item.product_id]
            require_purchasable(product, user_id)
            validate_quantity(product, item.quantity)

        await self._authorize(user_id, cart_payment_request(items))

        with self.uow:
            orders = build_orders(user_id, groups, **self._order_fields(option, address, notes))
            for order in orders:
                self.uow.orders.add(order)
            self.uow.cart.delete_for_user(user_id)
            self.uow.commit()

        orders_created_total.labels(delivery_option=option.value).inc(len(orders))
        logger.info(
            "Cart checked out",
            user_id=user_id,
            orders=[order.id for order in orders],
            total=str(sum((order.total_amount for order in orders), Decimal("0"))),
        )
        return orders

    async def buy_now(
        self,
        user_id: str,
        product_id: str,
        quantity: Any,
        delivery_option: Optional[Any] = None,
        delivery_address: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Order:
        """
        Purchase a single product without going through the cart.

        Raises:
            ValidationException: If the quantity, option or address is invalid
            EntityNotFoundException: If the user or product does not exist
            PaymentFailedException: If payment is declined or cancelled
        """
        quantity = parse_quantity("quantity", quantity)

        if not self.uow.users.get(user_id):
            raise EntityNotFoundException("User", user_id)
        product = self.uow.products.get(product_id)
        if not product:
            raise EntityNotFoundException("Product", product_id)

        require_purchasable(product, user_id)
        validate_quantity(product, quantity)
        option = resolve_delivery_option(product, delivery_option)
        address = require_address(option, delivery_address)

        item = OrderItem(
            product_id=product.id,
            product_name=product.name,
            quantity=quantity,
            unit_price=product.price,
        )
        await self._authorize(user_id, single_item_payment_request(product.name, item.total_price))

        with self.uow:
            order = Order.from_items(
                customer_id=user_id,
                farmer_id=product.farmer_id,
                items=[item],
                **self._order_fields(option, address, notes),
            )
            self.uow.orders.add(order)
            self.uow.commit()

        orders_created_total.labels(delivery_option=option.value).inc()
        logger.info("Order placed", user_id=user_id, order_id=order.id, total=str(order.total_amount))
        return order
