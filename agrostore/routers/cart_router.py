"""
Shopping cart router.

Cart lines, totals and checkout through the payment gateway.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, status

from ..dependencies import get_cart_service, get_checkout_service, get_current_user_id
from ..services.cart_service import CartService
from ..services.checkout_service import CheckoutService
from .api_models import (
    CartItemCreate,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
    CheckoutRequest,
    ErrorResponse,
    MessageResponse,
    OrderResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/cart", tags=["cart"])


@router.get("", response_model=CartResponse, summary="Get the acting user's cart")
def get_cart(
    user_id: str = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    summary = service.get_cart(user_id)
    return CartResponse(
        items=[CartItemResponse.model_validate(line.item) for line in summary.lines],
        item_count=summary.item_count,
        grand_total=summary.grand_total,
        farmer_ids=list(summary.by_farmer),
    )


@router.post(
    "/items",
    response_model=CartItemResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid quantity or option", "model": ErrorResponse}},
    summary="Add a product to the cart",
)
def add_to_cart(
    payload: CartItemCreate,
    user_id: str = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    item = service.add_to_cart(user_id, payload.product_id, payload.quantity, payload.delivery_option)
    return CartItemResponse.model_validate(item)


@router.patch("/items/{item_id}", response_model=CartItemResponse, summary="Change a line quantity")
def update_quantity(
    item_id: str,
    payload: CartItemUpdate,
    user_id: str = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    return CartItemResponse.model_validate(service.update_quantity(user_id, item_id, payload.quantity))


@router.delete("/items/{item_id}", response_model=MessageResponse, summary="Remove a line")
def remove_item(
    item_id: str,
    user_id: str = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    service.remove_item(user_id, item_id)
    return MessageResponse(message="Item removed from cart")


@router.delete("", response_model=MessageResponse, summary="Empty the cart")
def clear_cart(
    user_id: str = Depends(get_current_user_id),
    service: CartService = Depends(get_cart_service),
):
    removed = service.clear_cart(user_id)
    return MessageResponse(message=f"Removed {removed} item(s) from cart")


@router.post(
    "/checkout",
    response_model=List[OrderResponse],
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Empty cart or missing address", "model": ErrorResponse},
        402: {"description": "Payment failed or cancelled", "model": ErrorResponse},
    },
    summary="Pay for the cart",
)
async def checkout_cart(
    payload: CheckoutRequest,
    user_id: str = Depends(get_current_user_id),
    service: CheckoutService = Depends(get_checkout_service),
):
    """
    Authorize payment for the whole cart.

    One order is created per farmer once payment succeeds; the cart is
    then emptied.
    """
    orders = await service.checkout_cart(
        user_id, payload.delivery_option, payload.delivery_address, payload.notes
    )
    return [OrderResponse.model_validate(order) for order in orders]
