"""
Domain entities for the marketplace.

Core business objects representing users, listings, carts, orders,
demand requests and subscriptions. These entities are framework-agnostic
and carry only derived fields and value validation.
"""

import calendar
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import List, Optional

MAX_RATING = Decimal("5")
CENT = Decimal("0.01")


def utcnow() -> datetime:
    """Current UTC time as a naive datetime (the storage convention)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


def round_money(amount: Decimal) -> Decimal:
    """Round to whole cents, halves away from zero."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def add_months(moment: datetime, months: int) -> datetime:
    """Add calendar months, clamping the day to the target month's length."""
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


class UserRole(str, Enum):
    """Marketplace participant types."""

    FARMER = "farmer"
    CONSUMER = "consumer"
    RETAILER = "retailer"
    RESTAURANT = "restaurant"

    @property
    def display_name(self) -> str:
        return {
            UserRole.FARMER: "Farmer/Producer",
            UserRole.CONSUMER: "Consumer",
            UserRole.RETAILER: "Retailer",
            UserRole.RESTAURANT: "Restaurant",
        }[self]


class ProductCategory(str, Enum):
    """Closed set of listing categories."""

    VEGETABLES = "vegetables"
    FRUITS = "fruits"
    GRAINS = "grains"
    DAIRY = "dairy"
    MEAT = "meat"
    HERBS = "herbs"
    WINE = "wine"
    HONEY = "honey"
    EGGS = "eggs"
    NUTS = "nuts"
    OTHER = "other"


class FarmingMethod(str, Enum):
    ORGANIC = "organic"
    CONVENTIONAL = "conventional"
    BIODYNAMIC = "biodynamic"
    PERMACULTURE = "permaculture"
    HYDROPONIC = "hydroponic"
    GREENHOUSE = "greenhouse"


class DeliveryOption(str, Enum):
    """How goods change hands."""

    PICKUP = "pickup"
    DELIVERY = "delivery"
    SHIPPING = "shipping"

    @property
    def display_name(self) -> str:
        return {
            DeliveryOption.PICKUP: "Farm Pickup",
            DeliveryOption.DELIVERY: "Local Delivery",
            DeliveryOption.SHIPPING: "Shipping",
        }[self]


class OrderStatus(str, Enum):
    """Order fulfilment states."""

    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    COMPLETED = "completed"

    @property
    def is_terminal(self) -> bool:
        return self in (OrderStatus.COMPLETED, OrderStatus.CANCELLED)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


class RequestStatus(str, Enum):
    """Demand request states."""

    OPEN = "open"
    IN_PROGRESS = "inProgress"
    FULFILLED = "fulfilled"
    EXPIRED = "expired"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in (
            RequestStatus.FULFILLED,
            RequestStatus.EXPIRED,
            RequestStatus.CANCELLED,
        )


@dataclass(frozen=True)
class PlanFeatures:
    """
    Fixed feature bundle attached to a subscription plan.

    Commission rate is a percentage of each sale.
    """

    display_name: str
    price: Decimal
    duration_months: int
    max_listings: Optional[int]
    analytics_access: bool
    priority_support: bool
    unlimited_listings: bool
    featured_listings: int
    commission_rate: Decimal
    features: tuple


class SubscriptionPlan(str, Enum):
    """Plan tiers gating listing limits, commission and feature access."""

    FREE = "free"
    BASIC = "basic"
    PREMIUM = "premium"

    @property
    def bundle(self) -> PlanFeatures:
        return PLAN_BUNDLES[self]

    @property
    def display_name(self) -> str:
        return self.bundle.display_name

    @property
    def price(self) -> Decimal:
        return self.bundle.price

    @property
    def max_listings(self) -> Optional[int]:
        return self.bundle.max_listings


PLAN_BUNDLES = {
    SubscriptionPlan.FREE: PlanFeatures(
        display_name="Free",
        price=Decimal("0.00"),
        duration_months=1200,  # effectively permanent
        max_listings=5,
        analytics_access=False,
        priority_support=False,
        unlimited_listings=False,
        featured_listings=0,
        commission_rate=Decimal("5.0"),
        features=(
            "Up to 5 product listings",
            "Basic marketplace access",
            "Standard support",
            "5% commission on sales",
        ),
    ),
    SubscriptionPlan.BASIC: PlanFeatures(
        display_name="Basic Pro",
        price=Decimal("9.99"),
        duration_months=1,
        max_listings=None,
        analytics_access=True,
        priority_support=False,
        unlimited_listings=True,
        featured_listings=1,
        commission_rate=Decimal("3.0"),
        features=(
            "Unlimited product listings",
            "Basic analytics dashboard",
            "Priority in search results",
            "1 featured listing per month",
            "3% commission on sales",
        ),
    ),
    SubscriptionPlan.PREMIUM: PlanFeatures(
        display_name="Premium Pro",
        price=Decimal("19.99"),
        duration_months=1,
        max_listings=None,
        analytics_access=True,
        priority_support=True,
        unlimited_listings=True,
        featured_listings=5,
        commission_rate=Decimal("2.0"),
        features=(
            "Everything in Basic",
            "Advanced analytics & insights",
            "Priority customer support",
            "5 featured listings per month",
            "Early access to new features",
            "2% commission on sales",
        ),
    ),
}


@dataclass
class User:
    """
    Marketplace participant.

    Farm fields are only meaningful for farmers and must stay empty
    for every other role.
    """

    name: str
    email: str
    phone: str
    role: UserRole
    location: str
    id: str = field(default_factory=new_id)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    profile_image_url: Optional[str] = None
    is_pro_subscriber: bool = False
    subscription_expiry_date: Optional[datetime] = None
    is_verified: bool = False
    rating: Decimal = Decimal("0")
    total_reviews: int = 0
    farm_name: Optional[str] = None
    farm_description: Optional[str] = None
    certifications: List[str] = field(default_factory=list)
    established_year: Optional[int] = None
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        """Validate rating bounds and farm-only fields."""
        if not (Decimal("0") <= self.rating <= MAX_RATING):
            raise ValueError("Rating must be between 0 and 5")
        if self.total_reviews < 0:
            raise ValueError("Review count cannot be negative")
        if self.role != UserRole.FARMER and (
            self.farm_name or self.farm_description or self.established_year
        ):
            raise ValueError("Farm details are only allowed for farmers")

    @property
    def is_farmer(self) -> bool:
        return self.role == UserRole.FARMER

    @property
    def has_coordinates(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    def rating_after(self, score: Decimal) -> Decimal:
        """Running average after adding one more review score."""
        total = self.rating * self.total_reviews + score
        return (total / (self.total_reviews + 1)).quantize(Decimal("0.01"))


@dataclass
class Product:
    """A farmer's listing in the marketplace."""

    name: str
    description: str
    category: ProductCategory
    price: Decimal
    unit: str
    farmer_id: str
    location: str
    id: str = field(default_factory=new_id)
    farmer_name: Optional[str] = None
    minimum_order: Decimal = Decimal("1")
    available_quantity: Decimal = Decimal("0")
    image_urls: List[str] = field(default_factory=list)
    is_organic: bool = False
    harvest_date: Optional[datetime] = None
    expiry_date: Optional[datetime] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_available: bool = True
    farming_method: Optional[FarmingMethod] = None
    delivery_options: List[DeliveryOption] = field(default_factory=list)
    views: int = 0
    likes: int = 0
    tags: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        """Validate price and quantities."""
        if self.price < 0:
            raise ValueError("Price cannot be negative")
        if self.minimum_order < 0:
            raise ValueError("Minimum order cannot be negative")
        if self.available_quantity < 0:
            raise ValueError("Available quantity cannot be negative")
        if self.views < 0 or self.likes < 0:
            raise ValueError("Counters cannot be negative")


@dataclass
class CartItem:
    """A product line waiting in a user's cart, priced at add time."""

    user_id: str
    product_id: str
    product_name: str
    unit_price: Decimal
    quantity: Decimal
    unit: str
    delivery_option: DeliveryOption
    id: str = field(default_factory=new_id)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError("Quantity must be positive")
        if self.unit_price < 0:
            raise ValueError("Unit price cannot be negative")

    @property
    def total_price(self) -> Decimal:
        return round_money(self.quantity * self.unit_price)


@dataclass
class OrderItem:
    product_id: str
    product_name: str
    quantity: Decimal
    unit_price: Decimal
    id: str = field(default_factory=new_id)
    total_price: Optional[Decimal] = None

    def __post_init__(self):
        if self.total_price is None:
            self.total_price = round_money(self.quantity * self.unit_price)


@dataclass
class Order:
    """
    A purchase from a single farmer.

    ``total_amount`` is snapshotted at creation and never recomputed.
    """

    customer_id: str
    farmer_id: str
    items: List[OrderItem]
    total_amount: Decimal
    delivery_option: DeliveryOption
    id: str = field(default_factory=new_id)
    status: OrderStatus = OrderStatus.PENDING
    payment_status: PaymentStatus = PaymentStatus.PENDING
    delivery_address: Optional[str] = None
    delivery_date: Optional[datetime] = None
    notes: Optional[str] = None
    customer_rating: Optional[Decimal] = None
    customer_review: Optional[str] = None
    farmer_rating: Optional[Decimal] = None
    farmer_review: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_items(cls, customer_id: str, farmer_id: str, items: List[OrderItem], delivery_option: DeliveryOption, **kwargs) -> "Order":
        """Build an order whose total is the sum of its item totals."""
        total = sum((item.total_price for item in items), Decimal("0"))
        return cls(
            customer_id=customer_id,
            farmer_id=farmer_id,
            items=items,
            total_amount=total,
            delivery_option=delivery_option,
            **kwargs,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def involves(self, user_id: str) -> bool:
        return user_id in (self.customer_id, self.farmer_id)


@dataclass
class RequestResponse:
    """A farmer's offer against a demand request."""

    request_id: str
    farmer_id: str
    farmer_name: str
    offered_price: Decimal
    available_quantity: Decimal
    id: str = field(default_factory=new_id)
    message: Optional[str] = None
    is_accepted: Optional[bool] = None
    product_samples: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class DemandRequest:
    """A buyer-initiated posting describing a product need."""

    requester_id: str
    title: str
    description: str
    category: ProductCategory
    quantity: Decimal
    unit: str
    max_price: Decimal
    location: str
    required_by: datetime
    id: str = field(default_factory=new_id)
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    is_urgent: bool = False
    is_organic: bool = False
    quality_requirements: Optional[str] = None
    delivery_preference: DeliveryOption = DeliveryOption.PICKUP
    status: RequestStatus = RequestStatus.OPEN
    responses: List[RequestResponse] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError("Quantity must be positive")
        if self.max_price < 0:
            raise ValueError("Maximum price cannot be negative")

    def is_overdue(self, now: datetime) -> bool:
        return self.required_by < now


@dataclass
class Subscription:
    """A user's plan record; superseded records stay with is_active False."""

    user_id: str
    plan: SubscriptionPlan
    start_date: datetime
    end_date: datetime
    analytics_access: bool
    priority_support: bool
    unlimited_listings: bool
    featured_listings: int
    commission_rate: Decimal
    id: str = field(default_factory=new_id)
    is_active: bool = True
    auto_renew: bool = False
    payment_method: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    @classmethod
    def for_plan(cls, user_id: str, plan: SubscriptionPlan, start: Optional[datetime] = None, payment_method: Optional[str] = None) -> "Subscription":
        """Create an active subscription carrying the plan's feature bundle."""
        start = start or utcnow()
        bundle = plan.bundle
        return cls(
            user_id=user_id,
            plan=plan,
            start_date=start,
            end_date=add_months(start, bundle.duration_months),
            analytics_access=bundle.analytics_access,
            priority_support=bundle.priority_support,
            unlimited_listings=bundle.unlimited_listings,
            featured_listings=bundle.featured_listings,
            commission_rate=bundle.commission_rate,
            payment_method=payment_method,
            created_at=start,
        )


@dataclass(frozen=True)
class FarmerStats:
    listings_count: int
    active_orders_count: int
    total_sales: Decimal
    rating: Decimal


@dataclass(frozen=True)
class FarmLocation:
    """Map pin for a farm."""

    farmer_id: str
    farm_name: str
    location: str
    latitude: float
    longitude: float
    available_products: int

