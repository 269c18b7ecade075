"""
Payment gateway interface.

Defines the contract for payment authorization providers. Authorization
suspends until the provider reports an outcome; callers create orders or
subscriptions only after ``PaymentOutcome.AUTHORIZED``.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Iterable, List, Tuple

import structlog

from ..config import settings
from ..domain.entities import CartItem

logger = structlog.get_logger(__name__)

SUPPORTED_NETWORKS = ("visa", "masterCard", "amex", "discover")


class PaymentOutcome(str, Enum):
    AUTHORIZED = "authorized"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class PaymentSummaryItem:
    label: str
    amount: Decimal


@dataclass
class PaymentRequest:
    """
    Payment sheet contents.

    The last summary item is the grand total shown to the payer.
    """

    merchant_identifier: str
    currency_code: str
    country_code: str
    items: List[PaymentSummaryItem]
    supported_networks: Tuple[str, ...] = field(default=SUPPORTED_NETWORKS)

    @property
    def total(self) -> Decimal:
        return self.items[-1].amount if self.items else Decimal("0")


def format_quantity(quantity: Decimal) -> str:
    """Render a quantity without trailing zeros (``Decimal("3.000")`` -> ``"3"``)."""
    return f"{quantity.normalize():f}"


def new_payment_request(items: List[PaymentSummaryItem]) -> PaymentRequest:
    """Payment request carrying the configured merchant details."""
    return PaymentRequest(
        merchant_identifier=settings.MERCHANT_IDENTIFIER,
        currency_code=settings.PAYMENT_CURRENCY,
        country_code=settings.PAYMENT_COUNTRY_CODE,
        items=items,
    )


def cart_payment_request(cart_items: Iterable[CartItem]) -> PaymentRequest:
    """One summary line per cart item followed by the total."""
    items = [
        PaymentSummaryItem(
            label=f"{item.product_name} ({format_quantity(item.quantity)} {item.unit})",
            amount=item.total_price,
        )
        for item in cart_items
    ]
    total = sum((line.amount for line in items), Decimal("0"))
    items.append(PaymentSummaryItem(label="Total", amount=total))
    return new_payment_request(items)


def single_item_payment_request(label: str, amount: Decimal) -> PaymentRequest:
    """A single purchase: the item line and the total line."""
    return new_payment_request(
        [
            PaymentSummaryItem(label=label, amount=amount),
            PaymentSummaryItem(label="Total", amount=amount),
        ]
    )


class IPaymentGateway(ABC):
    """
    Abstract interface for payment authorization providers.

    Implementations wrap a wallet SDK or payment processor.
    """

    @abstractmethod
    async def authorize(self, request: PaymentRequest) -> PaymentOutcome:
        """
        Authorize a payment.

        Args:
            request: Payment sheet contents

        Returns:
            Outcome reported by the provider
        """
        pass


class SimulatedPaymentGateway(IPaymentGateway):
    """Waits for a fixed delay, then reports a configured outcome."""

    def __init__(
        self,
        delay_seconds: float = 2.0,
        outcome: PaymentOutcome = PaymentOutcome.AUTHORIZED,
    ):
        self.delay_seconds = delay_seconds
        self.outcome = outcome

    async def authorize(self, request: PaymentRequest) -> PaymentOutcome:
        logger.info(
            "Authorizing payment",
            merchant=request.merchant_identifier,
            currency=request.currency_code,
            total=str(request.total),
            lines=len(request.items),
        )
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        logger.info("Payment processed", outcome=self.outcome.value)
        return self.outcome
