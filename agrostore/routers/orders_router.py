"""
Orders router.

Order lists, direct purchases, the fulfilment workflow and ratings.
"""

import structlog
from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_checkout_service, get_current_user_id, get_order_service
from ..domain.order_workflow import OrderTab
from ..services.checkout_service import CheckoutService
from ..services.order_service import OrderService
from .api_models import (
    BuyNowRequest,
    ErrorResponse,
    OrderListResponse,
    OrderResponse,
    RatingRequest,
    StatusUpdate,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/orders", tags=["orders"])

TRANSITION_ERRORS = {
    403: {"description": "Not allowed for this user", "model": ErrorResponse},
    404: {"description": "Order not found", "model": ErrorResponse},
    409: {"description": "Transition not allowed", "model": ErrorResponse},
}


@router.get("", response_model=OrderListResponse, summary="List orders")
def list_orders(
    tab: str = Query(OrderTab.ACTIVE.value, description="active, completed or cancelled"),
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    """Farmers get the orders placed with them, other users their purchases."""
    orders = service.list_orders(user_id, tab)
    return OrderListResponse(
        orders=[OrderResponse.model_validate(order) for order in orders],
        total=len(orders),
    )


@router.post(
    "/buy-now",
    response_model=OrderResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid purchase", "model": ErrorResponse},
        402: {"description": "Payment failed or cancelled", "model": ErrorResponse},
    },
    summary="Buy a single product",
)
async def buy_now(
    payload: BuyNowRequest,
    user_id: str = Depends(get_current_user_id),
    service: CheckoutService = Depends(get_checkout_service),
):
    order = await service.buy_now(
        user_id,
        payload.product_id,
        payload.quantity,
        payload.delivery_option,
        payload.delivery_address,
        payload.notes,
    )
    return OrderResponse.model_validate(order)


@router.get("/{order_id}", response_model=OrderResponse, responses=TRANSITION_ERRORS, summary="Get an order")
def get_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    return OrderResponse.model_validate(service.get_order(user_id, order_id))


@router.put("/{order_id}/status", response_model=OrderResponse, responses=TRANSITION_ERRORS, summary="Change order status")
def update_status(
    order_id: str,
    payload: StatusUpdate,
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    return OrderResponse.model_validate(service.advance_status(user_id, order_id, payload.status))


@router.post("/{order_id}/accept", response_model=OrderResponse, responses=TRANSITION_ERRORS, summary="Accept a pending order")
def accept_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    return OrderResponse.model_validate(service.accept_order(user_id, order_id))


@router.post("/{order_id}/decline", response_model=OrderResponse, responses=TRANSITION_ERRORS, summary="Decline an order")
def decline_order(
    order_id: str,
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    return OrderResponse.model_validate(service.decline_order(user_id, order_id))


@router.post("/{order_id}/rating", response_model=OrderResponse, responses=TRANSITION_ERRORS, summary="Rate the other party")
def rate_order(
    order_id: str,
    payload: RatingRequest,
    user_id: str = Depends(get_current_user_id),
    service: OrderService = Depends(get_order_service),
):
    order = service.rate_order(user_id, order_id, payload.rating, payload.review)
    return OrderResponse.model_validate(order)
