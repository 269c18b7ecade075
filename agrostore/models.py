"""
Database models for the marketplace service.

This module defines SQLAlchemy ORM models for users, subscriptions,
product listings, carts, orders and demand requests. Rows are mapped to
domain entities by the repository layer and never leave it.
"""

from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base, relationship

Base: Any = declarative_base()

MONEY = Numeric(12, 2)
QUANTITY = Numeric(12, 3)
RATING = Numeric(3, 2)


class UserRecord(Base):
    """
    Marketplace participant.

    Farm columns are populated for farmers only.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone = Column(String(50), nullable=False)
    role = Column(String(20), nullable=False, index=True)
    location = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    profile_image_url = Column(String(500), nullable=True)
    is_pro_subscriber = Column(Boolean, default=False, nullable=False)
    subscription_expiry_date = Column(DateTime, nullable=True)
    is_verified = Column(Boolean, default=False, nullable=False)
    rating = Column(RATING, default=0, nullable=False)
    total_reviews = Column(Integer, default=0, nullable=False)

    # Farm-specific details
    farm_name = Column(String(255), nullable=True)
    farm_description = Column(Text, nullable=True)
    certifications = Column(JSON, default=list, nullable=False)
    established_year = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False)


class SubscriptionRecord(Base):
    """Plan history; at most one row per user is expected to be active."""

    __tablename__ = "subscriptions"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    plan = Column(String(20), nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    auto_renew = Column(Boolean, default=False, nullable=False)
    payment_method = Column(String(100), nullable=True)
    created_at = Column(DateTime, nullable=False)

    # Feature bundle snapshot
    analytics_access = Column(Boolean, nullable=False)
    priority_support = Column(Boolean, nullable=False)
    unlimited_listings = Column(Boolean, nullable=False)
    featured_listings = Column(Integer, nullable=False)
    commission_rate = Column(Numeric(5, 2), nullable=False)

    __table_args__ = (Index("idx_subscription_user_active", "user_id", "is_active"),)


class ProductRecord(Base):
    """A farmer's marketplace listing."""

    __tablename__ = "products"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text, nullable=False)
    category = Column(String(20), nullable=False, index=True)
    price = Column(MONEY, nullable=False)
    unit = Column(String(30), nullable=False)
    minimum_order = Column(QUANTITY, nullable=False)
    available_quantity = Column(QUANTITY, nullable=False)
    image_urls = Column(JSON, default=list, nullable=False)
    farmer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    farmer_name = Column(String(255), nullable=True)
    is_organic = Column(Boolean, default=False, nullable=False)
    harvest_date = Column(DateTime, nullable=True)
    expiry_date = Column(DateTime, nullable=True)
    location = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    farming_method = Column(String(20), nullable=True)
    delivery_options = Column(JSON, default=list, nullable=False)
    views = Column(Integer, default=0, nullable=False)
    likes = Column(Integer, default=0, nullable=False)
    tags = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (Index("idx_product_available_created", "is_available", "created_at"),)


class CartItemRecord(Base):
    """Cart line with the unit price captured at add time."""

    __tablename__ = "cart_items"

    id = Column(String(36), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    product_id = Column(String(36), ForeignKey("products.id"), nullable=False)
    product_name = Column(String(255), nullable=False)
    unit_price = Column(MONEY, nullable=False)
    quantity = Column(QUANTITY, nullable=False)
    unit = Column(String(30), nullable=False)
    delivery_option = Column(String(20), nullable=False)
    created_at = Column(DateTime, nullable=False)


class OrderRecord(Base):
    """Order header; totals are stored, never recomputed."""

    __tablename__ = "orders"

    id = Column(String(36), primary_key=True)
    customer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    farmer_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    total_amount = Column(MONEY, nullable=False)
    status = Column(String(20), nullable=False, index=True)
    payment_status = Column(String(20), nullable=False)
    delivery_option = Column(String(20), nullable=False)
    delivery_address = Column(String(500), nullable=True)
    delivery_date = Column(DateTime, nullable=True)
    notes = Column(Text, nullable=True)
    customer_rating = Column(RATING, nullable=True)
    customer_review = Column(Text, nullable=True)
    farmer_rating = Column(RATING, nullable=True)
    farmer_review = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    items = relationship(
        "OrderItemRecord",
        cascade="all, delete-orphan",
        order_by="OrderItemRecord.position",
        lazy="selectin",
    )


class OrderItemRecord(Base):
    __tablename__ = "order_items"

    id = Column(String(36), primary_key=True)
    order_id = Column(String(36), ForeignKey("orders.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)
    product_id = Column(String(36), nullable=False)
    product_name = Column(String(255), nullable=False)
    quantity = Column(QUANTITY, nullable=False)
    unit_price = Column(MONEY, nullable=False)
    total_price = Column(MONEY, nullable=False)


class DemandRequestRecord(Base):
    """Buyer-posted demand with farmer responses."""

    __tablename__ = "demand_requests"

    id = Column(String(36), primary_key=True)
    requester_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(20), nullable=False)
    quantity = Column(QUANTITY, nullable=False)
    unit = Column(String(30), nullable=False)
    max_price = Column(MONEY, nullable=False)
    location = Column(String(255), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    required_by = Column(DateTime, nullable=False)
    is_urgent = Column(Boolean, default=False, nullable=False)
    is_organic = Column(Boolean, default=False, nullable=False)
    quality_requirements = Column(Text, nullable=True)
    delivery_preference = Column(String(20), nullable=False)
    status = Column(String(20), nullable=False, index=True)
    tags = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    responses = relationship(
        "RequestResponseRecord",
        cascade="all, delete-orphan",
        order_by="RequestResponseRecord.created_at",
        lazy="selectin",
    )


class RequestResponseRecord(Base):
    __tablename__ = "request_responses"

    id = Column(String(36), primary_key=True)
    request_id = Column(String(36), ForeignKey("demand_requests.id"), nullable=False, index=True)
    farmer_id = Column(String(36), ForeignKey("users.id"), nullable=False)
    farmer_name = Column(String(255), nullable=False)
    offered_price = Column(MONEY, nullable=False)
    available_quantity = Column(QUANTITY, nullable=False)
    message = Column(Text, nullable=True)
    is_accepted = Column(Boolean, nullable=True)
    product_samples = Column(JSON, default=list, nullable=False)
    created_at = Column(DateTime, nullable=False)
