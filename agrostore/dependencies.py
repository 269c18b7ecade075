"""
Shared dependencies for the application.

Provides dependency injection functions used across routers. The acting
user is identified by the ``X-User-ID`` header.
"""

from typing import Optional

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .config import settings
from .database import get_db
from .infrastructure.payment_gateway import (
    IPaymentGateway,
    PaymentOutcome,
    SimulatedPaymentGateway,
)
from .repositories.interfaces import IUnitOfWork
from .repositories.sqlalchemy_repository import SqlAlchemyUnitOfWork
from .services.account_service import AccountService
from .services.cart_service import CartService
from .services.catalog_service import CatalogService
from .services.checkout_service import CheckoutService
from .services.demand_service import DemandService
from .services.order_service import OrderService
from .services.subscription_service import SubscriptionService

# Global gateway instance (set by main app)
_payment_gateway: Optional[IPaymentGateway] = None


def set_payment_gateway(gateway: IPaymentGateway) -> None:
    """
    Set the global payment gateway instance.

    Called by main app during startup.
    """
    global _payment_gateway
    _payment_gateway = gateway


def build_payment_gateway() -> IPaymentGateway:
    """Simulated gateway configured from settings."""
    return SimulatedPaymentGateway(
        delay_seconds=settings.PAYMENT_SIMULATION_DELAY_SECONDS,
        outcome=PaymentOutcome(settings.PAYMENT_SIMULATED_OUTCOME),
    )


def get_payment_gateway() -> IPaymentGateway:
    if _payment_gateway is None:
        raise RuntimeError("Payment gateway not initialized")
    return _payment_gateway


def get_uow(db: Session = Depends(get_db)) -> IUnitOfWork:
    return SqlAlchemyUnitOfWork(db)


def get_current_user_id(x_user_id: Optional[str] = Header(None, alias="X-User-ID")) -> str:
    """Acting user from the ``X-User-ID`` header."""
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "success": False,
                "error": "unauthorized",
                "message": "X-User-ID header is required",
                "details": {},
            },
        )
    return x_user_id.strip()


def get_account_service(uow: IUnitOfWork = Depends(get_uow)) -> AccountService:
    return AccountService(uow)


def get_catalog_service(uow: IUnitOfWork = Depends(get_uow)) -> CatalogService:
    return CatalogService(uow)


def get_cart_service(uow: IUnitOfWork = Depends(get_uow)) -> CartService:
    return CartService(uow)


def get_checkout_service(
    uow: IUnitOfWork = Depends(get_uow),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
) -> CheckoutService:
    return CheckoutService(uow, gateway)


def get_order_service(uow: IUnitOfWork = Depends(get_uow)) -> OrderService:
    return OrderService(uow)


def get_demand_service(uow: IUnitOfWork = Depends(get_uow)) -> DemandService:
    return DemandService(uow)


def get_subscription_service(
    uow: IUnitOfWork = Depends(get_uow),
    gateway: IPaymentGateway = Depends(get_payment_gateway),
) -> SubscriptionService:
    return SubscriptionService(uow, gateway)
