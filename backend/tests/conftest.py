"""
Pytest configuration and shared test fixtures.

This module provides an in-memory SQLite database built from the same
SQLAlchemy models used in production, a session per test, a small outlet
catalog and helpers for creating orders through the order service.
"""

import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Generator

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from pos_core.core.config import Settings
from pos_core.database.base import Base
from pos_core.database.models import (
    Order,
    Product,
    ProductModifier,
    ProductVariant,
)
from pos_core.services.orders.enums import Station
from pos_core.services.orders.service import OrderService
from pos_core.services.payments.service import PaymentService

BUSINESS_DATE = date(2026, 10, 18)


# ============================================================================
# Database Fixtures
# ============================================================================


@pytest.fixture(scope="function")
def test_settings() -> Settings:
    """
    Settings for the test suite.

    Returns:
        Settings pointing at an in-memory SQLite database
    """
    return Settings(
        database_url="sqlite://",
        environment="test",
        order_number_prefix="KWR",
        order_number_max_retries=3,
    )


@pytest.fixture(scope="function")
def engine() -> Generator[Engine, None, None]:
    """
    Create an in-memory SQLite engine with every table.

    A single shared connection keeps the in-memory database alive for the
    whole test.

    Yields:
        Engine: SQLAlchemy engine bound to the test database
    """
    test_engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(test_engine)
    yield test_engine
    Base.metadata.drop_all(test_engine)
    test_engine.dispose()


@pytest.fixture(scope="function")
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """
    Create a database session configured like the production factory.

    Yields:
        Session: Unit-of-work session for one test
    """
    factory = sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    session = factory()
    try:
        yield session
    finally:
        session.close()


# ============================================================================
# Identity Fixtures
# ============================================================================


@pytest.fixture
def outlet_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def other_outlet_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def cashier_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def customer_id() -> uuid.UUID:
    return uuid.uuid4()


# ============================================================================
# Catalog Fixtures
# ============================================================================


@pytest.fixture
def catalog(
    db_session: Session,
    outlet_id: uuid.UUID,
    other_outlet_id: uuid.UUID,
) -> dict[str, Any]:
    """
    Seed a small outlet catalog.

    Returns:
        dict: Products, variants and modifiers keyed by a short name
    """
    nasi_goreng = Product(
        id=uuid.uuid4(),
        outlet_id=outlet_id,
        name="Nasi Goreng",
        base_price=Decimal("25000.00"),
        station=Station.RICE,
    )
    es_teh = Product(
        id=uuid.uuid4(),
        outlet_id=outlet_id,
        name="Es Teh",
        base_price=Decimal("10000.00"),
        station=Station.BEVERAGE,
    )
    paket = Product(
        id=uuid.uuid4(),
        outlet_id=outlet_id,
        name="Paket Nasi Box",
        base_price=Decimal("100000.00"),
        station=Station.RICE,
    )
    retired = Product(
        id=uuid.uuid4(),
        outlet_id=outlet_id,
        name="Retired Dish",
        base_price=Decimal("15000.00"),
        is_active=False,
    )
    elsewhere = Product(
        id=uuid.uuid4(),
        outlet_id=other_outlet_id,
        name="Other Outlet Dish",
        base_price=Decimal("20000.00"),
    )

    jumbo = ProductVariant(
        id=uuid.uuid4(),
        product=nasi_goreng,
        name="Jumbo",
        price_adjustment=Decimal("5000.00"),
    )
    less_sugar = ProductVariant(
        id=uuid.uuid4(),
        product=es_teh,
        name="Less Sugar",
        price_adjustment=Decimal("0.00"),
    )
    telur = ProductModifier(
        id=uuid.uuid4(),
        product=nasi_goreng,
        name="Extra Telur",
        price=Decimal("5000.00"),
    )
    kerupuk = ProductModifier(
        id=uuid.uuid4(),
        product=nasi_goreng,
        name="Kerupuk",
        price=Decimal("2000.00"),
    )
    boba = ProductModifier(
        id=uuid.uuid4(),
        product=es_teh,
        name="Boba",
        price=Decimal("4000.00"),
    )

    db_session.add_all([nasi_goreng, es_teh, paket, retired, elsewhere])
    db_session.commit()

    return {
        "nasi_goreng": nasi_goreng,
        "es_teh": es_teh,
        "paket": paket,
        "retired": retired,
        "elsewhere": elsewhere,
        "jumbo": jumbo,
        "less_sugar": less_sugar,
        "telur": telur,
        "kerupuk": kerupuk,
        "boba": boba,
    }


# ============================================================================
# Service Fixtures
# ============================================================================


@pytest.fixture
def order_service(db_session: Session, test_settings: Settings) -> OrderService:
    return OrderService(db_session, settings=test_settings)


@pytest.fixture
def payment_service(db_session: Session) -> PaymentService:
    return PaymentService(db_session)


@pytest.fixture
def make_order(
    order_service: OrderService,
    catalog: dict[str, Any],
    outlet_id: uuid.UUID,
    cashier_id: uuid.UUID,
) -> Callable[..., Order]:
    """
    Factory creating orders through the order service.

    By default the order has one line of the 100000.00 product.

    Returns:
        Callable accepting overrides for the create request
    """

    def _make_order(**overrides: Any) -> Order:
        request = {
            "outlet_id": outlet_id,
            "created_by": cashier_id,
            "order_type": "DINE_IN",
            "table_number": "A1",
            "items": [{"product_id": catalog["paket"].id, "quantity": 1}],
        }
        request.update(overrides)
        return order_service.create_order(request, business_date=BUSINESS_DATE)

    return _make_order
