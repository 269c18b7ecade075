"""
Request and response models for the marketplace API.

Numeric form fields accept strings or numbers and are parsed by the
domain validators, so malformed input is reported as a validation error
rather than a schema error.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from ..domain.entities import (
    DeliveryOption,
    FarmingMethod,
    OrderStatus,
    PaymentStatus,
    ProductCategory,
    RequestStatus,
    SubscriptionPlan,
    UserRole,
)

Amount = Union[str, float]


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ErrorResponse(BaseModel):
    """Error response model."""

    success: bool = False
    error: str
    message: str
    details: dict = Field(default_factory=dict)


class MessageResponse(BaseModel):
    success: bool = True
    message: str


# Users


class UserCreate(BaseModel):
    name: str
    email: EmailStr
    phone: str
    role: str = Field(..., description="farmer, consumer, retailer or restaurant")
    location: str
    farm_name: Optional[str] = None
    farm_description: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)


class ProfileUpdate(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    location: Optional[str] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    profile_image_url: Optional[str] = None
    farm_name: Optional[str] = None
    farm_description: Optional[str] = None
    certifications: Optional[List[str]] = None
    established_year: Optional[int] = Field(None, ge=1800, le=2100)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    phone: str
    role: UserRole
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    profile_image_url: Optional[str] = None
    is_pro_subscriber: bool
    subscription_expiry_date: Optional[datetime] = None
    is_verified: bool
    rating: float
    total_reviews: int
    farm_name: Optional[str] = None
    farm_description: Optional[str] = None
    certifications: List[str] = Field(default_factory=list)
    established_year: Optional[int] = None
    created_at: datetime


class FarmerStatsResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    listings_count: int
    active_orders_count: int
    total_sales: float
    rating: float


class FarmLocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    farmer_id: str
    farm_name: str
    location: str
    latitude: float
    longitude: float
    available_products: int


# Products


class ProductCreate(BaseModel):
    name: str
    description: str
    category: str
    price: Amount
    unit: str
    minimum_order: Amount = "1"
    available_quantity: Amount = "0"
    is_organic: bool = False
    farming_method: Optional[str] = None
    delivery_options: List[str] = Field(default_factory=list)
    harvest_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    image_urls: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)

    _naive_dates = field_validator("harvest_date", "expiry_date")(_to_naive_utc)


class ProductUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    price: Optional[Amount] = None
    unit: Optional[str] = None
    minimum_order: Optional[Amount] = None
    available_quantity: Optional[Amount] = None
    is_organic: Optional[bool] = None
    farming_method: Optional[str] = None
    delivery_options: Optional[List[str]] = None
    harvest_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    image_urls: Optional[List[str]] = None
    tags: Optional[List[str]] = None

    _naive_dates = field_validator("harvest_date", "expiry_date")(_to_naive_utc)


class AvailabilityUpdate(BaseModel):
    is_available: bool


class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    category: ProductCategory
    price: float
    unit: str
    minimum_order: float
    available_quantity: float
    image_urls: List[str]
    farmer_id: str
    farmer_name: Optional[str] = None
    is_organic: bool
    harvest_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_available: bool
    farming_method: Optional[FarmingMethod] = None
    delivery_options: List[DeliveryOption]
    views: int
    likes: int
    tags: List[str]
    created_at: datetime
    updated_at: datetime


# Cart and checkout


class CartItemCreate(BaseModel):
    product_id: str
    quantity: Amount
    delivery_option: Optional[str] = None


class CartItemUpdate(BaseModel):
    quantity: Amount


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    product_name: str
    unit_price: float
    quantity: float
    unit: str
    delivery_option: DeliveryOption
    total_price: float
    created_at: datetime


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    item_count: int
    grand_total: float
    farmer_ids: List[str] = Field(default_factory=list, description="Farmers the cart will be split across")


class CheckoutRequest(BaseModel):
    delivery_option: str
    delivery_address: Optional[str] = None
    notes: Optional[str] = None


class BuyNowRequest(BaseModel):
    product_id: str
    quantity: Amount
    delivery_option: Optional[str] = None
    delivery_address: Optional[str] = None
    notes: Optional[str] = None


# Orders


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    product_id: str
    product_name: str
    quantity: float
    unit_price: float
    total_price: float


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    customer_id: str
    farmer_id: str
    items: List[OrderItemResponse]
    total_amount: float
    status: OrderStatus
    payment_status: PaymentStatus
    delivery_option: DeliveryOption
    delivery_address: Optional[str] = None
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    customer_rating: Optional[float] = None
    customer_review: Optional[str] = None
    farmer_rating: Optional[float] = None
    farmer_review: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    orders: List[OrderResponse]
    total: int


class StatusUpdate(BaseModel):
    status: str


class RatingRequest(BaseModel):
    rating: Amount
    review: Optional[str] = None


# Demands


class DemandCreate(BaseModel):
    title: str
    description: str
    category: str
    quantity: Amount
    unit: str
    max_price: Amount
    required_by: datetime
    location: Optional[str] = None
    is_urgent: bool = False
    is_organic: bool = False
    quality_requirements: Optional[str] = None
    delivery_preference: str = DeliveryOption.PICKUP.value
    tags: List[str] = Field(default_factory=list)

    _naive_dates = field_validator("required_by")(_to_naive_utc)


class DemandResponseCreate(BaseModel):
    offered_price: Amount
    available_quantity: Amount
    message: Optional[str] = None
    product_samples: List[str] = Field(default_factory=list)


class RequestResponseModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    request_id: str
    farmer_id: str
    farmer_name: str
    offered_price: float
    available_quantity: float
    message: Optional[str] = None
    is_accepted: Optional[bool] = None
    product_samples: List[str]
    created_at: datetime


class DemandResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    requester_id: str
    title: str
    description: str
    category: ProductCategory
    quantity: float
    unit: str
    max_price: float
    location: str
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    required_by: datetime
    is_urgent: bool
    is_organic: bool
    quality_requirements: Optional[str] = None
    delivery_preference: DeliveryOption
    status: RequestStatus
    responses: List[RequestResponseModel]
    tags: List[str]
    created_at: datetime
    updated_at: datetime


class AcceptResponseRequest(BaseModel):
    response_id: str


class ExpireResponse(BaseModel):
    expired: List[str]
    count: int


# Subscriptions


class PlanChangeRequest(BaseModel):
    plan: str
    payment_method: Optional[str] = None


class PlanResponse(BaseModel):
    plan: SubscriptionPlan
    display_name: str
    price: float
    duration_months: int
    max_listings: Optional[int] = None
    analytics_access: bool
    priority_support: bool
    unlimited_listings: bool
    featured_listings: int
    commission_rate: float
    features: List[str]


class SubscriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    plan: SubscriptionPlan
    start_date: datetime
    end_date: datetime
    is_active: bool
    auto_renew: bool
    payment_method: Optional[str] = None
    analytics_access: bool
    priority_support: bool
    unlimited_listings: bool
    featured_listings: int
    commission_rate: float
    created_at: datetime


class SubscriptionStatusResponse(BaseModel):
    subscription: Optional[SubscriptionResponse] = None
    remaining_listings: Optional[int] = Field(
        None, description="Listings left before the plan cap; null when unlimited"
    )
    plans: Dict[str, PlanResponse] = Field(default_factory=dict)
