"""
Tests for payment requests and the simulated gateway.
"""

from decimal import Decimal

import pytest

from agrostore.domain.entities import CartItem, DeliveryOption
from agrostore.infrastructure.payment_gateway import (
    SUPPORTED_NETWORKS,
    PaymentOutcome,
    SimulatedPaymentGateway,
    cart_payment_request,
    format_quantity,
    single_item_payment_request,
)


def _line(name, quantity, price, unit="kg"):
    return CartItem(
        user_id="u1",
        product_id=f"p-{name}",
        product_name=name,
        unit_price=Decimal(price),
        quantity=Decimal(quantity),
        unit=unit,
        delivery_option=DeliveryOption.PICKUP,
    )


class TestPaymentRequest:
    """Test payment sheet contents."""

    @pytest.mark.parametrize(
        "quantity,expected",
        [("3.000", "3"), ("2.500", "2.5"), ("10", "10"), ("0.250", "0.25")],
    )
    def test_format_quantity(self, quantity, expected):
        assert format_quantity(Decimal(quantity)) == expected

    def test_cart_request(self):
        request = cart_payment_request([_line("Carrots", "2.000", "4.50"), _line("Eggs", "30", "0.20", "pcs")])

        assert [(i.label, i.amount) for i in request.items] == [
            ("Carrots (2 kg)", Decimal("9.00")),
            ("Eggs (30 pcs)", Decimal("6.00")),
            ("Total", Decimal("15.00")),
        ]
        assert request.total == Decimal("15.00")
        assert request.currency_code == "USD"
        assert request.country_code == "US"
        assert request.supported_networks == SUPPORTED_NETWORKS

    def test_single_item_request(self):
        request = single_item_payment_request("Agro Store Premium Pro", Decimal("19.99"))
        assert [i.label for i in request.items] == ["Agro Store Premium Pro", "Total"]
        assert request.total == Decimal("19.99")


class TestSimulatedPaymentGateway:
    """Test the simulated gateway."""

    @pytest.mark.asyncio
    async def test_authorizes_by_default(self):
        gateway = SimulatedPaymentGateway(delay_seconds=0)
        outcome = await gateway.authorize(single_item_payment_request("Honey", Decimal("5")))
        assert outcome == PaymentOutcome.AUTHORIZED

    @pytest.mark.asyncio
    async def test_configured_outcome(self):
        gateway = SimulatedPaymentGateway(delay_seconds=0, outcome=PaymentOutcome.CANCELLED)
        outcome = await gateway.authorize(single_item_payment_request("Honey", Decimal("5")))
        assert outcome == PaymentOutcome.CANCELLED

    @pytest.mark.asyncio
    async def test_waits_for_delay(self):
        gateway = SimulatedPaymentGateway(delay_seconds=0.01)
        assert await gateway.authorize(single_item_payment_request("Honey", Decimal("5"))) == PaymentOutcome.AUTHORIZED
