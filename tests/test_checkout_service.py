"""
Tests for checkout.

Covers:
- Orders created only after authorization
- One order per farmer
- No mutation on failed or cancelled payment
- Payment request contents
"""

from datetime import timedelta
from decimal import Decimal

import pytest

from agrostore.domain.entities import (
    DeliveryOption,
    OrderStatus,
    PaymentStatus,
    utcnow,
)
from agrostore.domain.exceptions import (
    EntityNotFoundException,
    PaymentFailedException,
    ValidationException,
)
from agrostore.infrastructure.payment_gateway import PaymentOutcome
from agrostore.services.cart_service import CartService
from agrostore.services.catalog_service import CatalogService
from agrostore.services.checkout_service import CheckoutService


@pytest.fixture
def checkout(uow, gateway):
    return CheckoutService(uow, gateway, delivery_days=3)


@pytest.fixture
def filled_cart(uow, farmer, second_farmer, consumer, make_product):
    """Cart with two lines from one farmer and one from another."""
    cart = CartService(uow)
    tomatoes = make_product(farmer, name="Tomatoes", price=Decimal("25.00"))
    honey = make_product(second_farmer, name="Honey", price=Decimal("18.00"), unit="jar")
    peppers = make_product(farmer, name="Peppers", price=Decimal("35.00"))
    cart.add_to_cart(consumer.id, tomatoes.id, "2")
    cart.add_to_cart(consumer.id, honey.id, "1")
    cart.add_to_cart(consumer.id, peppers.id, "1")
    return cart


class TestCheckoutCart:
    """Test cart checkout."""

    @pytest.mark.asyncio
    async def test_splits_orders_by_farmer(self, checkout, uow, filled_cart, consumer, farmer, second_farmer):
        orders = await checkout.checkout_cart(consumer.id, "pickup")

        by_farmer = {order.farmer_id: order for order in orders}
        assert set(by_farmer) == {farmer.id, second_farmer.id}
        assert by_farmer[farmer.id].total_amount == Decimal("85.00")
        assert by_farmer[second_farmer.id].total_amount == Decimal("18.00")
        for order in orders:
            assert order.status == OrderStatus.PENDING
            assert order.payment_status == PaymentStatus.PAID
            assert uow.orders.get(order.id) is not None

    @pytest.mark.asyncio
    async def test_clears_cart_and_sets_delivery_date(self, checkout, filled_cart, consumer):
        before = utcnow()
        orders = await checkout.checkout_cart(consumer.id, "delivery", "Str. Stefan cel Mare 1")

        assert filled_cart.get_cart(consumer.id).is_empty
        for order in orders:
            assert order.delivery_address == "Str. Stefan cel Mare 1"
            assert order.delivery_date >= before + timedelta(days=3)

    @pytest.mark.asyncio
    async def test_payment_request_lists_lines_and_total(self, checkout, gateway, filled_cart, consumer):
        await checkout.checkout_cart(consumer.id, "pickup")

        request = gateway.authorize.await_args.args[0]
        labels = [item.label for item in request.items]
        assert labels == ["Tomatoes (2 kg)", "Honey (1 jar)", "Peppers (1 kg)", "Total"]
        assert request.total == Decimal("103.00")
        assert request.merchant_identifier == "merchant.com.yourdomain.agrostore"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("outcome", [PaymentOutcome.FAILED, PaymentOutcome.CANCELLED])
    async def test_failed_payment_changes_nothing(self, checkout, gateway, uow, filled_cart, consumer, outcome):
        gateway.authorize.return_value = outcome

        with pytest.raises(PaymentFailedException) as exc_info:
            await checkout.checkout_cart(consumer.id, "pickup")

        assert exc_info.value.details["outcome"] == outcome.value
        assert uow.orders.list_for_customer(consumer.id) == []
        assert filled_cart.get_cart(consumer.id).item_count == 3

    @pytest.mark.asyncio
    async def test_empty_cart(self, checkout, gateway, consumer):
        with pytest.raises(ValidationException):
            await checkout.checkout_cart(consumer.id, "pickup")
        gateway.authorize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delivery_requires_address(self, checkout, gateway, filled_cart, consumer):
        with pytest.raises(ValidationException):
            await checkout.checkout_cart(consumer.id, DeliveryOption.DELIVERY, "  ")
        gateway.authorize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_user(self, checkout):
        with pytest.raises(EntityNotFoundException):
            await checkout.checkout_cart("missing", "pickup")


class TestBuyNow:
    """Test single-product purchases."""

    @pytest.mark.asyncio
    async def test_creates_single_order(self, checkout, gateway, uow, farmer, consumer, make_product):
        product = make_product(farmer, name="Walnuts", price=Decimal("12.00"))

        order = await checkout.buy_now(consumer.id, product.id, "3")

        assert order.farmer_id == farmer.id
        assert order.total_amount == Decimal("36.00")
        assert [i.product_name for i in order.items] == ["Walnuts"]
        request = gateway.authorize.await_args.args[0]
        assert [item.label for item in request.items] == ["Walnuts", "Total"]
        assert uow.orders.get(order.id).payment_status == PaymentStatus.PAID

    @pytest.mark.asyncio
    async def test_declined(self, checkout, gateway, uow, farmer, consumer, make_product):
        gateway.authorize.return_value = PaymentOutcome.FAILED
        product = make_product(farmer)

        with pytest.raises(PaymentFailedException):
            await checkout.buy_now(consumer.id, product.id, "1")
        assert uow.orders.list_for_farmer(farmer.id) == []

    @pytest.mark.asyncio
    async def test_quantity_above_stock(self, checkout, gateway, farmer, consumer, make_product):
        product = make_product(farmer, available_quantity=Decimal("2"))
        with pytest.raises(ValidationException):
            await checkout.buy_now(consumer.id, product.id, "5")
        gateway.authorize.assert_not_awaited()


class TestCheckoutRevalidation:
    """Cart lines are checked against the current listing before payment."""

    @pytest.mark.asyncio
    async def test_hidden_listing_blocks_checkout(self, checkout, gateway, uow, farmer, consumer, make_product):
        product = make_product(farmer)
        CartService(uow).add_to_cart(consumer.id, product.id, "5")
        CatalogService(uow).set_availability(farmer.id, product.id, False)

        with pytest.raises(ValidationException):
            await checkout.checkout_cart(consumer.id, "pickup")

        gateway.authorize.assert_not_awaited()
        assert uow.orders.list_for_customer(consumer.id) == []
        assert CartService(uow).get_cart(consumer.id).item_count == 1

    @pytest.mark.asyncio
    async def test_reduced_stock_blocks_checkout(self, checkout, gateway, uow, farmer, consumer, make_product):
        product = make_product(farmer, available_quantity=Decimal("10"))
        CartService(uow).add_to_cart(consumer.id, product.id, "8")
        CatalogService(uow).update_product(farmer.id, product.id, {"available_quantity": "3"})

        with pytest.raises(ValidationException):
            await checkout.checkout_cart(consumer.id, "pickup")
        gateway.authorize.assert_not_awaited()


class TestStoredTotals:
    """What the service returns and charges matches what is saved."""

    @pytest.mark.asyncio
    async def test_fractional_quantity_total_survives_reload(
        self, checkout, gateway, uow, db_session, farmer, consumer, make_product
    ):
        product = make_product(farmer, name="Cherries", price=Decimal("1.99"))
        CartService(uow).add_to_cart(consumer.id, product.id, "1.333")

        (order,) = await checkout.checkout_cart(consumer.id, "pickup")
        charged = gateway.authorize.await_args.args[0].total

        db_session.expire_all()
        stored = uow.orders.get(order.id)
        assert order.total_amount == Decimal("2.65")
        assert charged == order.total_amount
        assert stored.total_amount == order.total_amount
        assert [(i.quantity, i.unit_price, i.total_price) for i in stored.items] == [
            (Decimal("1.333"), Decimal("1.99"), Decimal("2.65"))
        ]

    @pytest.mark.asyncio
    async def test_buy_now_total_survives_reload(self, checkout, uow, db_session, farmer, consumer, make_product):
        product = make_product(farmer, price=Decimal("3.35"))

        order = await checkout.buy_now(consumer.id, product.id, "2.125")

        db_session.expire_all()
        assert uow.orders.get(order.id).total_amount == order.total_amount == Decimal("7.12")

    @pytest.mark.asyncio
    async def test_quantity_finer_than_stored_rejected(self, checkout, gateway, farmer, consumer, make_product):
        product = make_product(farmer)
        with pytest.raises(ValidationException):
            await checkout.buy_now(consumer.id, product.id, "1.0005")
        gateway.authorize.assert_not_awaited()
