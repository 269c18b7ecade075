"""
Demand board router.

Buyers post what they need; farmers respond with offers.
"""

from typing import List

import structlog
from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_current_user_id, get_demand_service
from ..domain.filters import DemandFilter
from ..services.demand_service import DemandDraft, DemandService
from .api_models import (
    AcceptResponseRequest,
    DemandCreate,
    DemandResponse,
    DemandResponseCreate,
    ErrorResponse,
    ExpireResponse,
    RequestResponseModel,
    StatusUpdate,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/demands", tags=["demands"])


@router.get("", response_model=List[DemandResponse], summary="Browse the demand board")
def list_demands(
    search: str = Query("", description="Matches title, description or location"),
    demand_filter: str = Query(DemandFilter.ALL.value, alias="filter", description="all, open, mine or canFulfill"),
    user_id: str = Depends(get_current_user_id),
    service: DemandService = Depends(get_demand_service),
):
    demands = service.list_demands(user_id, search, demand_filter)
    return [DemandResponse.model_validate(demand) for demand in demands]


@router.post(
    "",
    response_model=DemandResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid demand", "model": ErrorResponse},
        403: {"description": "Only retailers and restaurants", "model": ErrorResponse},
    },
    summary="Post a demand request",
)
def create_demand(
    payload: DemandCreate,
    user_id: str = Depends(get_current_user_id),
    service: DemandService = Depends(get_demand_service),
):
    demand = service.create_demand(user_id, DemandDraft(**payload.model_dump()))
    return DemandResponse.model_validate(demand)


@router.post("/expire", response_model=ExpireResponse, summary="Expire overdue demands")
def expire_overdue(service: DemandService = Depends(get_demand_service)):
    """Marks open and in-progress demands past their required-by date as expired."""
    expired = service.expire_overdue()
    return ExpireResponse(expired=[demand.id for demand in expired], count=len(expired))


@router.get(
    "/{demand_id}",
    response_model=DemandResponse,
    responses={404: {"description": "Demand not found", "model": ErrorResponse}},
    summary="Get a demand request",
)
def get_demand(demand_id: str, service: DemandService = Depends(get_demand_service)):
    return DemandResponse.model_validate(service.get_demand(demand_id))


@router.post(
    "/{demand_id}/responses",
    response_model=RequestResponseModel,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Demand closed or already answered", "model": ErrorResponse},
        403: {"description": "Only farmers", "model": ErrorResponse},
    },
    summary="Respond to a demand",
)
def respond_to_demand(
    demand_id: str,
    payload: DemandResponseCreate,
    user_id: str = Depends(get_current_user_id),
    service: DemandService = Depends(get_demand_service),
):
    response = service.respond_to_demand(
        user_id,
        demand_id,
        payload.offered_price,
        payload.available_quantity,
        payload.message,
        payload.product_samples,
    )
    return RequestResponseModel.model_validate(response)


@router.post("/{demand_id}/accept", response_model=DemandResponse, summary="Accept a farmer's offer")
def accept_response(
    demand_id: str,
    payload: AcceptResponseRequest,
    user_id: str = Depends(get_current_user_id),
    service: DemandService = Depends(get_demand_service),
):
    demand = service.accept_response(user_id, demand_id, payload.response_id)
    return DemandResponse.model_validate(demand)


@router.put("/{demand_id}/status", response_model=DemandResponse, summary="Change demand status")
def update_status(
    demand_id: str,
    payload: StatusUpdate,
    user_id: str = Depends(get_current_user_id),
    service: DemandService = Depends(get_demand_service),
):
    return DemandResponse.model_validate(service.update_status(user_id, demand_id, payload.status))
