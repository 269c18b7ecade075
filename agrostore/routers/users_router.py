"""
User accounts router.

Registration, profiles, the farmer dashboard and farm map pins.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, status

from ..dependencies import get_account_service, get_current_user_id
from ..services.account_service import AccountService
from .api_models import (
    ErrorResponse,
    FarmerStatsResponse,
    FarmLocationResponse,
    ProfileUpdate,
    UserCreate,
    UserResponse,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


@router.post(
    "",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"description": "Invalid registration", "model": ErrorResponse}},
    summary="Register a user",
)
def register_user(payload: UserCreate, service: AccountService = Depends(get_account_service)):
    """
    Register a marketplace participant.

    Every new account starts on the free plan. Farmers must provide a farm name.
    """
    user = service.register_user(**payload.model_dump())
    return UserResponse.model_validate(user)


@router.get("/me", response_model=UserResponse, summary="Get the acting user")
def get_me(
    user_id: str = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
):
    return UserResponse.model_validate(service.get_user(user_id))


@router.patch(
    "/me",
    response_model=UserResponse,
    responses={400: {"description": "Invalid profile change", "model": ErrorResponse}},
    summary="Update the acting user's profile",
)
def update_me(
    payload: ProfileUpdate,
    user_id: str = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
):
    user = service.update_profile(user_id, **payload.model_dump(exclude_unset=True))
    return UserResponse.model_validate(user)


@router.get(
    "/me/stats",
    response_model=FarmerStatsResponse,
    responses={403: {"description": "Not a farmer", "model": ErrorResponse}},
    summary="Farmer dashboard figures",
)
def get_my_stats(
    user_id: str = Depends(get_current_user_id),
    service: AccountService = Depends(get_account_service),
):
    return FarmerStatsResponse.model_validate(service.get_farmer_stats(user_id))


@router.get("/farms/locations", response_model=List[FarmLocationResponse], summary="Farm map pins")
def list_farm_locations(service: AccountService = Depends(get_account_service)):
    return [FarmLocationResponse.model_validate(pin) for pin in service.list_farm_locations()]


@router.get(
    "/{user_id}",
    response_model=UserResponse,
    responses={404: {"description": "User not found", "model": ErrorResponse}},
    summary="Get a user",
)
def get_user(user_id: str, service: AccountService = Depends(get_account_service)):
    return UserResponse.model_validate(service.get_user(user_id))
