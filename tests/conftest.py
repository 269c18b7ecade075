"""
Test configuration and fixtures
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from agrostore.app import app
from agrostore.database import get_db
from agrostore.dependencies import get_payment_gateway
from agrostore.domain.entities import (
    DeliveryOption,
    Product,
    ProductCategory,
    utcnow,
)
from agrostore.infrastructure.payment_gateway import PaymentOutcome
from agrostore.models import Base
from agrostore.repositories.sqlalchemy_repository import SqlAlchemyUnitOfWork
from agrostore.services.account_service import AccountService

# Create in-memory SQLite database for testing
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Create a fresh database session for each test"""
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def uow(db_session):
    """Unit of work over the test session."""
    return SqlAlchemyUnitOfWork(db_session)


@pytest.fixture
def gateway():
    """Payment gateway stub that authorizes every payment."""
    mock = AsyncMock()
    mock.authorize.return_value = PaymentOutcome.AUTHORIZED
    return mock


@pytest.fixture(scope="function")
def client(db_session, gateway):
    """Create a test client with database and gateway overrides"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    # Mock init_db to prevent creating the local database file
    with patch("agrostore.app.init_db"):
        app.dependency_overrides[get_db] = override_get_db
        app.dependency_overrides[get_payment_gateway] = lambda: gateway
        with TestClient(app) as test_client:
            yield test_client
        app.dependency_overrides.clear()


@pytest.fixture
def accounts(uow):
    return AccountService(uow)


@pytest.fixture
def farmer(accounts):
    """Registered farmer on the free plan."""
    return accounts.register_user(
        name="Ion Popescu",
        email="ion@greenvalley.md",
        phone="+37360000001",
        role="farmer",
        location="Chisinau",
        farm_name="Green Valley Farm",
        latitude=47.0105,
        longitude=28.8638,
    )


@pytest.fixture
def second_farmer(accounts):
    return accounts.register_user(
        name="Maria Rusu",
        email="maria@sunnyorchard.md",
        phone="+37360000002",
        role="farmer",
        location="Orhei",
        farm_name="Sunny Orchard",
    )


@pytest.fixture
def consumer(accounts):
    return accounts.register_user(
        name="Ana Ciobanu",
        email="ana@example.com",
        phone="+37360000003",
        role="consumer",
        location="Chisinau",
    )


@pytest.fixture
def restaurant(accounts):
    return accounts.register_user(
        name="La Placinte",
        email="orders@laplacinte.md",
        phone="+37360000004",
        role="restaurant",
        location="Chisinau",
    )


@pytest.fixture
def make_product(uow):
    """Insert a listing directly, bypassing the listing limit."""
    counter = {"n": 0}

    def _make(farmer, **overrides):
        counter["n"] += 1
        values = {
            "name": f"Product {counter['n']}",
            "description": "Fresh from the field",
            "category": ProductCategory.VEGETABLES,
            "price": Decimal("25.00"),
            "unit": "kg",
            "farmer_id": farmer.id,
            "farmer_name": farmer.farm_name,
            "location": farmer.location,
            "minimum_order": Decimal("1"),
            "available_quantity": Decimal("100"),
            "delivery_options": [DeliveryOption.PICKUP, DeliveryOption.DELIVERY],
            "created_at": utcnow() + timedelta(seconds=counter["n"]),
        }
        values.update(overrides)
        product = Product(**values)
        uow.products.add(product)
        uow.commit()
        return product

    return _make
