"""
Repository interfaces (Abstract Base Classes).

Defines the contracts for marketplace persistence independent of the
underlying storage mechanism. Writes are staged on the unit of work and
become durable only when it commits.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from ..domain.entities import (
    CartItem,
    DemandRequest,
    Order,
    Product,
    RequestResponse,
    Subscription,
    User,
)


class IUserRepository(ABC):
    """Access to marketplace participants."""

    @abstractmethod
    def add(self, user: User) -> User:
        pass

    @abstractmethod
    def update(self, user: User) -> User:
        pass

    @abstractmethod
    def get(self, user_id: str) -> Optional[User]:
        pass

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[User]:
        """
        Find a user by email, ignoring case.

        Args:
            email: Email address

        Returns:
            User if registered, None otherwise
        """
        pass

    @abstractmethod
    def list_farmers(self) -> List[User]:
        pass


class ISubscriptionRepository(ABC):
    """Subscription history per user."""

    @abstractmethod
    def add(self, subscription: Subscription) -> Subscription:
        pass

    @abstractmethod
    def update(self, subscription: Subscription) -> Subscription:
        pass

    @abstractmethod
    def get_active(self, user_id: str) -> Optional[Subscription]:
        """
        Get the user's active subscription.

        Returns:
            The most recently started active record, or None
        """
        pass

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[Subscription]:
        """All records for a user, newest first."""
        pass


class IProductRepository(ABC):
    """Marketplace listings."""

    @abstractmethod
    def add(self, product: Product) -> Product:
        pass

    @abstractmethod
    def update(self, product: Product) -> Product:
        pass

    @abstractmethod
    def get(self, product_id: str) -> Optional[Product]:
        pass

    @abstractmethod
    def get_many(self, product_ids: List[str]) -> List[Product]:
        pass

    @abstractmethod
    def list_all(self) -> List[Product]:
        """All listings in insertion order."""
        pass

    @abstractmethod
    def list_by_farmer(self, farmer_id: str) -> List[Product]:
        pass

    @abstractmethod
    def count_by_farmer(self, farmer_id: str) -> int:
        pass


class ICartRepository(ABC):
    """Cart lines per user."""

    @abstractmethod
    def add(self, item: CartItem) -> CartItem:
        pass

    @abstractmethod
    def update(self, item: CartItem) -> CartItem:
        pass

    @abstractmethod
    def get(self, item_id: str) -> Optional[CartItem]:
        pass

    @abstractmethod
    def list_for_user(self, user_id: str) -> List[CartItem]:
        """Cart lines in the order they were added."""
        pass

    @abstractmethod
    def delete(self, item_id: str) -> bool:
        pass

    @abstractmethod
    def delete_for_user(self, user_id: str) -> int:
        """
        Remove every line in a user's cart.

        Returns:
            Number of removed lines
        """
        pass


class IOrderRepository(ABC):
    """Orders with their items."""

    @abstractmethod
    def add(self, order: Order) -> Order:
        pass

    @abstractmethod
    def update(self, order: Order) -> Order:
        """Persist header changes; items are immutable after creation."""
        pass

    @abstractmethod
    def get(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    def list_for_customer(self, customer_id: str) -> List[Order]:
        pass

    @abstractmethod
    def list_for_farmer(self, farmer_id: str) -> List[Order]:
        pass


class IDemandRepository(ABC):
    """Demand requests and their responses."""

    @abstractmethod
    def add(self, demand: DemandRequest) -> DemandRequest:
        pass

    @abstractmethod
    def update(self, demand: DemandRequest) -> DemandRequest:
        """Persist header fields of a demand."""
        pass

    @abstractmethod
    def get(self, demand_id: str) -> Optional[DemandRequest]:
        pass

    @abstractmethod
    def list_all(self) -> List[DemandRequest]:
        pass

    @abstractmethod
    def add_response(self, response: RequestResponse) -> RequestResponse:
        pass

    @abstractmethod
    def update_response(self, response: RequestResponse) -> RequestResponse:
        pass


class IUnitOfWork(ABC):
    """
    Groups repositories over one transaction.

    Use as a context manager; leaving the block with an exception rolls
    back every staged change.
    """

    users: IUserRepository
    subscriptions: ISubscriptionRepository
    products: IProductRepository
    cart: ICartRepository
    orders: IOrderRepository
    demands: IDemandRepository

    def __enter__(self) -> "IUnitOfWork":
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        if exc_type is not None:
            self.rollback()

    @abstractmethod
    def commit(self) -> None:
        """
        Make staged changes durable.

        Raises:
            PersistenceException: If the store rejects the commit
        """
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass
