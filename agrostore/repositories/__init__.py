"""
Repository layer - Data access abstractions and their SQLAlchemy implementation.
"""

from .interfaces import (
    ICartRepository,
    IDemandRepository,
    IOrderRepository,
    IProductRepository,
    ISubscriptionRepository,
    IUnitOfWork,
    IUserRepository,
)
from .sqlalchemy_repository import SqlAlchemyUnitOfWork

__all__ = [
    "ICartRepository",
    "IDemandRepository",
    "IOrderRepository",
    "IProductRepository",
    "ISubscriptionRepository",
    "IUnitOfWork",
    "IUserRepository",
    "SqlAlchemyUnitOfWork",
]
