"""
Product catalog router.

Marketplace search plus listing management for farmers.
"""

from typing import List, Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from ..dependencies import get_catalog_service, get_current_user_id
from ..domain.exceptions import ValidationException
from ..domain.filters import ProductQuery, ProductSortOption
from ..domain.validators import parse_amount
from ..services.catalog_service import CatalogService, ProductDraft, parse_category
from .api_models import (
    AvailabilityUpdate,
    ErrorResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/products", tags=["products"])


def _build_query(
    search: str,
    category: Optional[str],
    sort: str,
    min_price: Optional[str],
    max_price: Optional[str],
    organic_only: bool,
) -> ProductQuery:
    try:
        sort_option = ProductSortOption(sort)
    except ValueError:
        raise ValidationException("sort", sort, "Unknown sort option")

    return ProductQuery(
        search=search,
        category=parse_category(category) if category else None,
        sort=sort_option,
        min_price=parse_amount("min_price", min_price) if min_price else None,
        max_price=parse_amount("max_price", max_price) if max_price else None,
        organic_only=organic_only,
    )


@router.get("", response_model=List[ProductResponse], summary="Search the marketplace")
def search_products(
    search: str = Query("", description="Matches name, description, location or farm"),
    category: Optional[str] = Query(None),
    sort: str = Query(ProductSortOption.NEWEST.value),
    min_price: Optional[str] = Query(None),
    max_price: Optional[str] = Query(None),
    organic_only: bool = Query(False),
    service: CatalogService = Depends(get_catalog_service),
):
    """Available listings matching the query, in the requested order."""
    query = _build_query(search, category, sort, min_price, max_price, organic_only)
    return [ProductResponse.model_validate(p) for p in service.search_products(query)]


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Invalid listing", "model": ErrorResponse},
        402: {"description": "Listing limit reached", "model": ErrorResponse},
        403: {"description": "Not a farmer", "model": ErrorResponse},
    },
    summary="Publish a listing",
)
def create_product(
    payload: ProductCreate,
    user_id: str = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
):
    product = service.create_product(user_id, ProductDraft(**payload.model_dump()))
    return ProductResponse.model_validate(product)


@router.get("/farmer/{farmer_id}", response_model=List[ProductResponse], summary="A farmer's listings")
def list_farmer_products(farmer_id: str, service: CatalogService = Depends(get_catalog_service)):
    return [ProductResponse.model_validate(p) for p in service.list_farmer_products(farmer_id)]


@router.get(
    "/{product_id}",
    response_model=ProductResponse,
    responses={404: {"description": "Product not found", "model": ErrorResponse}},
    summary="View a listing",
)
def view_product(product_id: str, service: CatalogService = Depends(get_catalog_service)):
    """Returns the listing and counts the view."""
    return ProductResponse.model_validate(service.view_product(product_id))


@router.patch("/{product_id}", response_model=ProductResponse, summary="Edit a listing")
def update_product(
    product_id: str,
    payload: ProductUpdate,
    user_id: str = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
):
    product = service.update_product(user_id, product_id, payload.model_dump(exclude_unset=True))
    return ProductResponse.model_validate(product)


@router.put("/{product_id}/availability", response_model=ProductResponse, summary="Show or hide a listing")
def set_availability(
    product_id: str,
    payload: AvailabilityUpdate,
    user_id: str = Depends(get_current_user_id),
    service: CatalogService = Depends(get_catalog_service),
):
    product = service.set_availability(user_id, product_id, payload.is_available)
    return ProductResponse.model_validate(product)


@router.post("/{product_id}/like", response_model=ProductResponse, summary="Like a listing")
def like_product(product_id: str, service: CatalogService = Depends(get_catalog_service)):
    return ProductResponse.model_validate(service.like_product(product_id))
