"""
SQLAlchemy implementation of the marketplace repositories.

Each repository maps ORM rows to domain entities and back. Writes are
flushed into the shared session; ``SqlAlchemyUnitOfWork`` owns commit
and rollback.
"""

from typing import List, Optional

import structlog
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..domain.entities import (
    CartItem,
    DeliveryOption,
    DemandRequest,
    FarmingMethod,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    Product,
    ProductCategory,
    RequestResponse,
    RequestStatus,
    Subscription,
    SubscriptionPlan,
    User,
    UserRole,
)
from ..domain.exceptions import EntityNotFoundException, PersistenceException
from ..models import (
    CartItemRecord,
    DemandRequestRecord,
    OrderItemRecord,
    OrderRecord,
    ProductRecord,
    RequestResponseRecord,
    SubscriptionRecord,
    UserRecord,
)
from .interfaces import (
    ICartRepository,
    IDemandRepository,
    IOrderRepository,
    IProductRepository,
    ISubscriptionRepository,
    IUnitOfWork,
    IUserRepository,
)

logger = structlog.get_logger(__name__)


class _SqlAlchemyRepository:
    """Shared session handling."""

    model = None
    entity_name = "Entity"

    def __init__(self, db: Session):
        self.db = db

    def _flush(self, operation: str) -> None:
        try:
            self.db.flush()
        except SQLAlchemyError as e:
            logger.error("Flush failed", entity=self.entity_name, operation=operation, error=str(e))
            raise PersistenceException(f"{self.entity_name.lower()} {operation}", str(e))

    def _get_row(self, entity_id: str):
        return self.db.get(self.model, entity_id)

    def _require_row(self, entity_id: str):
        row = self._get_row(entity_id)
        if row is None:
            raise EntityNotFoundException(self.entity_name, entity_id)
        return row


class SqlAlchemyUserRepository(_SqlAlchemyRepository, IUserRepository):
    """Users table access."""

    model = UserRecord
    entity_name = "User"

    def add(self, user: User) -> User:
        row = UserRecord(id=user.id)
        self._copy_to_row(user, row)
        self.db.add(row)
        self._flush("add")
        return user

    def update(self, user: User) -> User:
        row = self._require_row(user.id)
        self._copy_to_row(user, row)
        self._flush("update")
        return user

    def get(self, user_id: str) -> Optional[User]:
        row = self._get_row(user_id)
        return self._map_to_entity(row) if row else None

    def get_by_email(self, email: str) -> Optional[User]:
        row = (
            self.db.query(UserRecord)
            .filter(func.lower(UserRecord.email) == email.strip().lower())
            .first()
        )
        return self._map_to_entity(row) if row else None

    def list_farmers(self) -> List[User]:
        rows = (
            self.db.query(UserRecord)
            .filter(UserRecord.role == UserRole.FARMER.value)
            .order_by(UserRecord.created_at, UserRecord.id)
            .all()
        )
        return [self._map_to_entity(row) for row in rows]

    @staticmethod
    def _copy_to_row(user: User, row: UserRecord) -> None:
        row.name = user.name
        row.email = user.email
        row.phone = user.phone
        row.role = user.role.value
        row.location = user.location
        row.latitude = user.latitude
        row.longitude = user.longitude
        row.profile_image_url = user.profile_image_url
        row.is_pro_subscriber = user.is_pro_subscriber
        row.subscription_expiry_date = user.subscription_expiry_date
        row.is_verified = user.is_verified
        row.rating = user.rating
        row.total_reviews = user.total_reviews
        row.farm_name = user.farm_name
        row.farm_description = user.farm_description
        row.certifications = list(user.certifications)
        row.established_year = user.established_year
        row.created_at = user.created_at

    @staticmethod
    def _map_to_entity(row: UserRecord) -> User:
        return User(
            id=row.id,
            name=row.name,
            email=row.email,
            phone=row.phone,
            role=UserRole(row.role),
            location=row.location,
            latitude=row.latitude,
            longitude=row.longitude,
            profile_image_url=row.profile_image_url,
            is_pro_subscriber=row.is_pro_subscriber,
            subscription_expiry_date=row.subscription_expiry_date,
            is_verified=row.is_verified,
            rating=row.rating,
            total_reviews=row.total_reviews,
            farm_name=row.farm_name,
            farm_description=row.farm_description,
            certifications=list(row.certifications or []),
            established_year=row.established_year,
            created_at=row.created_at,
        )


class SqlAlchemySubscriptionRepository(_SqlAlchemyRepository, ISubscriptionRepository):
    """Subscription history access."""

    model = SubscriptionRecord
    entity_name = "Subscription"

    def add(self, subscription: Subscription) -> Subscription:
        row = SubscriptionRecord(id=subscription.id)
        self._copy_to_row(subscription, row)
        self.db.add(row)
        self._flush("add")
        return subscription

    def update(self, subscription: Subscription) -> Subscription:
        row = self._require_row(subscription.id)
        self._copy_to_row(subscription, row)
        self._flush("update")
        return subscription

    def get_active(self, user_id: str) -> Optional[Subscription]:
        row = (
            self.db.query(SubscriptionRecord)
            .filter(
                SubscriptionRecord.user_id == user_id,
                SubscriptionRecord.is_active.is_(True),
            )
            .order_by(SubscriptionRecord.start_date.desc())
            .first()
        )
        return self._map_to_entity(row) if row else None

    def list_for_user(self, user_id: str) -> List[Subscription]:
        rows = (
            self.db.query(SubscriptionRecord)
            .filter(SubscriptionRecord.user_id == user_id)
            .order_by(SubscriptionRecord.start_date.desc(), SubscriptionRecord.created_at.desc())
            .all()
        )
        return [self._map_to_entity(row) for row in rows]

    @staticmethod
    def _copy_to_row(subscription: Subscription, row: SubscriptionRecord) -> None:
        row.user_id = subscription.user_id
        row.plan = subscription.plan.value
        row.start_date = subscription.start_date
        row.end_date = subscription.end_date
        row.is_active = subscription.is_active
        row.auto_renew = subscription.auto_renew
        row.payment_method = subscription.payment_method
        row.created_at = subscription.created_at
        row.analytics_access = subscription.analytics_access
        row.priority_support = subscription.priority_support
        row.unlimited_listings = subscription.unlimited_listings
        row.featured_listings = subscription.featured_listings
        row.commission_rate = subscription.commission_rate

    @staticmethod
    def _map_to_entity(row: SubscriptionRecord) -> Subscription:
        return Subscription(
            id=row.id,
            user_id=row.user_id,
            plan=SubscriptionPlan(row.plan),
            start_date=row.start_date,
            end_date=row.end_date,
            is_active=row.is_active,
            auto_renew=row.auto_renew,
            payment_method=row.payment_method,
            created_at=row.created_at,
            analytics_access=row.analytics_access,
            priority_support=row.priority_support,
            unlimited_listings=row.unlimited_listings,
            featured_listings=row.featured_listings,
            commission_rate=row.commission_rate,
        )


class SqlAlchemyProductRepository(_SqlAlchemyRepository, IProductRepository):
    """Product listings access."""

    model = ProductRecord
    entity_name = "Product"

    def add(self, product: Product) -> Product:
        row = ProductRecord(id=product.id)
        self._copy_to_row(product, row)
        self.db.add(row)
        self._flush("add")
        return product

    def update(self, product: Product) -> Product:
        row = self._require_row(product.id)
        self._copy_to_row(product, row)
        self._flush("update")
        return product

    def get(self, product_id: str) -> Optional[Product]:
        row = self._get_row(product_id)
        return self._map_to_entity(row) if row else None

    def get_many(self, product_ids: List[str]) -> List[Product]:
        if not product_ids:
            return []
        rows = self.db.query(ProductRecord).filter(ProductRecord.id.in_(product_ids)).all()
        return [self._map_to_entity(row) for row in rows]

    def list_all(self) -> List[Product]:
        rows = self.db.query(ProductRecord).order_by(ProductRecord.created_at, ProductRecord.id).all()
        return [self._map_to_entity(row) for row in rows]

    def list_by_farmer(self, farmer_id: str) -> List[Product]:
        rows = (
            self.db.query(ProductRecord)
            .filter(ProductRecord.farmer_id == farmer_id)
            .order_by(ProductRecord.created_at.desc())
            .all()
        )
        return [self._map_to_entity(row) for row in rows]

    def count_by_farmer(self, farmer_id: str) -> int:
        return (
            self.db.query(func.count(ProductRecord.id))
            .filter(ProductRecord.farmer_id == farmer_id)
            .scalar()
        )

    @staticmethod
    def _copy_to_row(product: Product, row: ProductRecord) -> None:
        row.name = product.name
        row.description = product.description
        row.category = product.category.value
        row.price = product.price
        row.unit = product.unit
        row.minimum_order = product.minimum_order
        row.available_quantity = product.available_quantity
        row.image_urls = list(product.image_urls)
        row.farmer_id = product.farmer_id
        row.farmer_name = product.farmer_name
        row.is_organic = product.is_organic
        row.harvest_date = product.harvest_date
        row.expiry_date = product.expiry_date
        row.location = product.location
        row.latitude = product.latitude
        row.longitude = product.longitude
        row.is_available = product.is_available
        row.farming_method = product.farming_method.value if product.farming_method else None
        row.delivery_options = [option.value for option in product.delivery_options]
        row.views = product.views
        row.likes = product.likes
        row.tags = list(product.tags)
        row.created_at = product.created_at
        row.updated_at = product.updated_at

    @staticmethod
    def _map_to_entity(row: ProductRecord) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            description=row.description,
            category=ProductCategory(row.category),
            price=row.price,
            unit=row.unit,
            minimum_order=row.minimum_order,
            available_quantity=row.available_quantity,
            image_urls=list(row.image_urls or []),
            farmer_id=row.farmer_id,
            farmer_name=row.farmer_name,
            is_organic=row.is_organic,
            harvest_date=row.harvest_date,
            expiry_date=row.expiry_date,
            location=row.location,
            latitude=row.latitude,
            longitude=row.longitude,
            is_available=row.is_available,
            farming_method=FarmingMethod(row.farming_method) if row.farming_method else None,
            delivery_options=[DeliveryOption(value) for value in row.delivery_options or []],
            views=row.views,
            likes=row.likes,
            tags=list(row.tags or []),
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class SqlAlchemyCartRepository(_SqlAlchemyRepository, ICartRepository):
    """Cart lines access."""

    model = CartItemRecord
    entity_name = "CartItem"

    def add(self, item: CartItem) -> CartItem:
        row = CartItemRecord(id=item.id)
        self._copy_to_row(item, row)
        self.db.add(row)
        self._flush("add")
        return item

    def update(self, item: CartItem) -> CartItem:
        row = self._require_row(item.id)
        self._copy_to_row(item, row)
        self._flush("update")
        return item

    def get(self, item_id: str) -> Optional[CartItem]:
        row = self._get_row(item_id)
        return self._map_to_entity(row) if row else None

    def list_for_user(self, user_id: str) -> List[CartItem]:
        rows = (
            self.db.query(CartItemRecord)
            .filter(CartItemRecord.user_id == user_id)
            .order_by(CartItemRecord.created_at, CartItemRecord.id)
            .all()
        )
        return [self._map_to_entity(row) for row in rows]

    def delete(self, item_id: str) -> bool:
        row = self._get_row(item_id)
        if row is None:
            return False
        self.db.delete(row)
        self._flush("delete")
        return True

    def delete_for_user(self, user_id: str) -> int:
        count = (
            self.db.query(CartItemRecord)
            .filter(CartItemRecord.user_id == user_id)
            .delete(synchronize_session="fetch")
        )
        self._flush("clear")
        return count

    @staticmethod
    def _copy_to_row(item: CartItem, row: CartItemRecord) -> None:
        row.user_id = item.user_id
        row.product_id = item.product_id
        row.product_name = item.product_name
        row.unit_price = item.unit_price
        row.quantity = item.quantity
        row.unit = item.unit
        row.delivery_option = item.delivery_option.value
        row.created_at = item.created_at

    @staticmethod
    def _map_to_entity(row: CartItemRecord) -> CartItem:
        return CartItem(
            id=row.id,
            user_id=row.user_id,
            product_id=row.product_id,
            product_name=row.product_name,
            unit_price=row.unit_price,
            quantity=row.quantity,
            unit=row.unit,
            delivery_option=DeliveryOption(row.delivery_option),
            created_at=row.created_at,
        )


class SqlAlchemyOrderRepository(_SqlAlchemyRepository, IOrderRepository):
    """Orders and order items access."""

    model = OrderRecord
    entity_name = "Order"

    def add(self, order: Order) -> Order:
        row = OrderRecord(id=order.id)
        self._copy_to_row(order, row)
        row.items = [
            OrderItemRecord(
                id=item.id,
                position=position,
                product_id=item.product_id,
                product_name=item.product_name,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total_price=item.total_price,
            )
            for position, item in enumerate(order.items)
        ]
        self.db.add(row)
        self._flush("add")
        return order

    def update(self, order: Order) -> Order:
        row = self._require_row(order.id)
        self._copy_to_row(order, row)
        self._flush("update")
        return order

    def get(self, order_id: str) -> Optional[Order]:
        row = self._get_row(order_id)
        return self._map_to_entity(row) if row else None

    def list_for_customer(self, customer_id: str) -> List[Order]:
        rows = (
            self.db.query(OrderRecord)
            .filter(OrderRecord.customer_id == customer_id)
            .order_by(OrderRecord.created_at.desc())
            .all()
        )
        return [self._map_to_entity(row) for row in rows]

    def list_for_farmer(self, farmer_id: str) -> List[Order]:
        rows = (
            self.db.query(OrderRecord)
            .filter(OrderRecord.farmer_id == farmer_id)
            .order_by(OrderRecord.created_at.desc())
            .all()
        )
        return [self._map_to_entity(row) for row in rows]

    @staticmethod
    def _copy_to_row(order: Order, row: OrderRecord) -> None:
        row.customer_id = order.customer_id
        row.farmer_id = order.farmer_id
        row.total_amount = order.total_amount
        row.status = order.status.value
        row.payment_status = order.payment_status.value
        row.delivery_option = order.delivery_option.value
        row.delivery_address = order.delivery_address
        row.delivery_date = order.delivery_date
        row.notes = order.notes
        row.customer_rating = order.customer_rating
        row.customer_review = order.customer_review
        row.farmer_rating = order.farmer_rating
        row.farmer_review = order.farmer_review
        row.created_at = order.created_at
        row.updated_at = order.updated_at

    @staticmethod
    def _map_to_entity(row: OrderRecord) -> Order:
        return Order(
            id=row.id,
            customer_id=row.customer_id,
            farmer_id=row.farmer_id,
            items=[
                OrderItem(
                    id=item.id,
                    product_id=item.product_id,
                    product_name=item.product_name,
                    quantity=item.quantity,
                    unit_price=item.unit_price,
                    total_price=item.total_price,
                )
                for item in row.items
            ],
            total_amount=row.total_amount,
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            delivery_option=DeliveryOption(row.delivery_option),
            delivery_address=row.delivery_address,
            delivery_date=row.delivery_date,
            notes=row.notes,
            customer_rating=row.customer_rating,
            customer_review=row.customer_review,
            farmer_rating=row.farmer_rating,
            farmer_review=row.farmer_review,
            created_at=row.created_at,
            updated_at=row.updated_at,
        )


class SqlAlchemyDemandRepository(_SqlAlchemyRepository, IDemandRepository):
    """Demand requests and responses access."""

    model = DemandRequestRecord
    entity_name = "DemandRequest"

    def add(self, demand: DemandRequest) -> DemandRequest:
        row = DemandRequestRecord(id=demand.id)
        self._copy_to_row(demand, row)
        row.responses = [self._response_row(response) for response in demand.responses]
        self.db.add(row)
        self._flush("add")
        return demand

    def update(self, demand: DemandRequest) -> DemandRequest:
        row = self._require_row(demand.id)
        self._copy_to_row(demand, row)
        self._flush("update")
        return demand

    def get(self, demand_id: str) -> Optional[DemandRequest]:
        row = self._get_row(demand_id)
        return self._map_to_entity(row) if row else None

    def list_all(self) -> List[DemandRequest]:
        rows = (
            self.db.query(DemandRequestRecord)
            .order_by(DemandRequestRecord.created_at.desc(), DemandRequestRecord.id)
            .all()
        )
        return [self._map_to_entity(row) for row in rows]

    def add_response(self, response: RequestResponse) -> RequestResponse:
        parent = self._require_row(response.request_id)
        parent.responses.append(self._response_row(response))
        self._flush("respond")
        return response

    def update_response(self, response: RequestResponse) -> RequestResponse:
        row = self.db.get(RequestResponseRecord, response.id)
        if row is None:
            raise EntityNotFoundException("RequestResponse", response.id)
        row.offered_price = response.offered_price
        row.available_quantity = response.available_quantity
        row.message = response.message
        row.is_accepted = response.is_accepted
        row.product_samples = list(response.product_samples)
        self._flush("update response")
        return response

    @staticmethod
    def _response_row(response: RequestResponse) -> RequestResponseRecord:
        return RequestResponseRecord(
            id=response.id,
            request_id=response.request_id,
            farmer_id=response.farmer_id,
            farmer_name=response.farmer_name,
            offered_price=response.offered_price,
            available_quantity=response.available_quantity,
            message=response.message,
            is_accepted=response.is_accepted,
            product_samples=list(response.product_samples),
            created_at=response.created_at,
        )

    @staticmethod
    def _copy_to_row(demand: DemandRequest, row: DemandRequestRecord) -> None:
        row.requester_id = demand.requester_id
        row.title = demand.title
        row.description = demand.description
        row.category = demand.category.value
        row.quantity = demand.quantity
        row.unit = demand.unit
        row.max_price = demand.max_price
        row.location = demand.location
        row.latitude = demand.latitude
        row.longitude = demand.longitude
        row.required_by = demand.required_by
        row.is_urgent = demand.is_urgent
        row.is_organic = demand.is_organic
        row.quality_requirements = demand.quality_requirements
        row.delivery_preference = demand.delivery_preference.value
        row.status = demand.status.value
        row.tags = list(demand.tags)
        row.created_at = demand.created_at
        row.updated_at = demand.updated_at

    @staticmethod
    def _map_to_entity(row: DemandRequestRecord) -> DemandRequest:
        return DemandRequest(
            id=row.id,
            requester_id=row.requester_id,
            title=row.title,
            description=row.description,
            category=ProductCategory(row.category),
            quantity=row.quantity,
            unit=row.unit,
            max_price=row.max_price,
            location=row.location,
            latitude=row.latitude,
            longitude=row.longitude,
            required_by=row.required_by,
            is_urgent=row.is_urgent,
            is_organic=row.is_organic,
            quality_requirements=row.quality_requirements,
            delivery_preference=DeliveryOption(row.delivery_preference),
            status=RequestStatus(row.status),
            tags=list(row.tags or []),
            created_at=row.created_at,
            updated_at=row.updated_at,
            responses=[
                RequestResponse(
                    id=response.id,
                    request_id=response.request_id,
                    farmer_id=response.farmer_id,
                    farmer_name=response.farmer_name,
                    offered_price=response.offered_price,
                    available_quantity=response.available_quantity,
                    message=response.message,
                    is_accepted=response.is_accepted,
                    product_samples=list(response.product_samples or []),
                    created_at=response.created_at,
                )
                for response in row.responses
            ],
        )


class SqlAlchemyUnitOfWork(IUnitOfWork):
    """All repositories sharing one SQLAlchemy session."""

    def __init__(self, db: Session):
        self.db = db
        self.users = SqlAlchemyUserRepository(db)
        self.subscriptions = SqlAlchemySubscriptionRepository(db)
        self.products = SqlAlchemyProductRepository(db)
        self.cart = SqlAlchemyCartRepository(db)
        self.orders = SqlAlchemyOrderRepository(db)
        self.demands = SqlAlchemyDemandRepository(db)

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error("Commit failed", error=str(e))
            raise PersistenceException("commit", str(e))

    def rollback(self) -> None:
        self.db.rollback()
