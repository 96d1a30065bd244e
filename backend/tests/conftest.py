"""
Test Configuration — Fixtures for async DB, test client, and mock data.

Each test gets its own in-memory SQLite database; the session is joined to
an outer transaction through a SAVEPOINT, so application commits never
escape the test and everything is rolled back afterwards.
"""

import uuid
from datetime import date, timedelta
from decimal import Decimal

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from api.deps import get_current_user, get_db
from api.main import app
from db.session import Base

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")
MANAGER_ID = uuid.UUID("00000000-0000-0000-0000-000000000002")
SALESPERSON_ID = uuid.UUID("00000000-0000-0000-0000-000000000003")


def _enable_sqlite_savepoints(engine) -> None:
    """pysqlite defers BEGIN on its own; take over so SAVEPOINT/ROLLBACK TO behave."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


@pytest.fixture
async def test_engine():
    """Fresh in-memory database with all tables."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    _enable_sqlite_savepoints(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
async def test_db(test_engine):
    """Session bound to a connection-level transaction that rolls back after each test."""
    async with test_engine.connect() as conn:
        trans = await conn.begin()
        session = AsyncSession(
            bind=conn,
            expire_on_commit=False,
            join_transaction_mode="create_savepoint",
        )

        yield session

        await session.close()
        await trans.rollback()


@pytest.fixture
def mock_user():
    """Mock authenticated user."""
    return {
        "sub": "test-user",
        "email": "admin@fieldsales.test",
        "user_id": str(ADMIN_ID),
    }


@pytest.fixture
async def client(test_db, mock_user):
    """Create an async test client with dependency overrides."""

    async def override_get_db():
        yield test_db

    def override_get_current_user():
        return mock_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def seeded_db(test_db):
    """
    Seed users, a customer, four products (untracked, batch, serial, gift)
    with stock, and two promotions.

      WIDGET   untracked  100.00  stock 50
      VACCINE  batch       20.00  lot A (3, expires first), lot B (1)
      PHONE    serial     500.00  SN-001..SN-003 available
      KEYCHAIN untracked    5.00  stock 10 (free gift)

      TENOFF   10% off WIDGET value ≥ 500
      GIFTS    50.00 off WIDGET value ≥ 200, 3 free KEYCHAIN capped at 2
    """
    from db.models import (
        BatchLot,
        Currency,
        Customer,
        CustomerCategory,
        Depot,
        InventoryStock,
        Location,
        Product,
        ProductBatch,
        ProductCategory,
        Promotion,
        PromotionBenefit,
        PromotionCondition,
        PromotionConditionProduct,
        PromotionLevel,
        Route,
        SerialNumber,
        User,
    )

    test_db.add_all(
        [
            User(user_id=ADMIN_ID, name="Admin", email="admin@fieldsales.test", role="Admin"),
            User(user_id=MANAGER_ID, name="Maria Manager", email="manager@fieldsales.test", role="Sales Manager"),
        ]
    )
    await test_db.flush()
    test_db.add(
        User(
            user_id=SALESPERSON_ID,
            name="Sam Sales",
            email="sam@fieldsales.test",
            role="Salesperson",
            parent_id=MANAGER_ID,
        )
    )

    depot = Depot(code="DEP-1", name="Central Depot", is_active=True)
    category = CustomerCategory(category_code="RETAIL", name="Retail", is_active=True)
    currency = Currency(code="USD", name="US Dollar")
    test_db.add_all([depot, category, currency])
    await test_db.flush()

    route = Route(code="R-1", name="Downtown", depot_id=depot.depot_id, is_active=True)
    warehouse = Location(name="Main Warehouse", location_type="warehouse", depot_id=depot.depot_id)
    test_db.add_all([route, warehouse])
    await test_db.flush()

    customer = Customer(
        code="CUST-1",
        name="Corner Shop",
        type="RETAIL",
        customer_category_id=category.customer_category_id,
        channel="GT",
        route_id=route.route_id,
        depot_id=depot.depot_id,
        is_active=True,
    )
    other_customer = Customer(code="CUST-2", name="Big Mart", type="WHOLESALE", is_active=True)
    product_category = ProductCategory(name="Hardware")
    test_db.add_all([customer, other_customer, product_category])
    await test_db.flush()

    widget = Product(
        code="WIDGET",
        name="Widget",
        category_id=product_category.category_id,
        tracking_type="none",
        unit="pcs",
        unit_price=Decimal("100.00"),
        is_active=True,
    )
    vaccine = Product(code="VACCINE", name="Vaccine", tracking_type="batch", unit="vial", unit_price=Decimal("20.00"), is_active=True)
    phone = Product(code="PHONE", name="Phone", tracking_type="serial", unit="pcs", unit_price=Decimal("500.00"), is_active=True)
    keychain = Product(code="KEYCHAIN", name="Keychain", tracking_type="none", unit="pcs", unit_price=Decimal("5.00"), is_active=True)
    test_db.add_all([widget, vaccine, phone, keychain])
    await test_db.flush()

    lot_a = BatchLot(
        product_id=vaccine.product_id,
        batch_number="LOT-A",
        expiry_date=date.today() + timedelta(days=30),
        quantity=3,
        remaining_quantity=3,
    )
    lot_b = BatchLot(
        product_id=vaccine.product_id,
        batch_number="LOT-B",
        expiry_date=date.today() + timedelta(days=90),
        quantity=1,
        remaining_quantity=1,
    )
    serials = [
        SerialNumber(product_id=phone.product_id, serial_number=f"SN-00{i}", status="available")
        for i in (1, 2, 3)
    ]
    test_db.add_all([lot_a, lot_b, *serials])
    await test_db.flush()

    test_db.add_all(
        [
            InventoryStock(product_id=widget.product_id, location_id=warehouse.location_id, current_stock=50, available_stock=50),
            InventoryStock(product_id=keychain.product_id, location_id=warehouse.location_id, current_stock=10, available_stock=10),
            InventoryStock(product_id=vaccine.product_id, batch_lot_id=lot_a.batch_lot_id, current_stock=3, available_stock=3),
            InventoryStock(product_id=vaccine.product_id, batch_lot_id=lot_b.batch_lot_id, current_stock=1, available_stock=1),
            ProductBatch(product_id=vaccine.product_id, batch_lot_id=lot_a.batch_lot_id, quantity=3, is_active=True),
            ProductBatch(product_id=vaccine.product_id, batch_lot_id=lot_b.batch_lot_id, quantity=1, is_active=True),
            *[
                InventoryStock(product_id=phone.product_id, serial_number_id=s.serial_id, current_stock=1, available_stock=1)
                for s in serials
            ],
        ]
    )

    ten_off = Promotion(
        code="TENOFF",
        name="Ten Percent Off",
        start_date=date.today() - timedelta(days=10),
        end_date=date.today() + timedelta(days=10),
        is_active=True,
        conditions=[
            PromotionCondition(
                sequence=1,
                min_quantity=0,
                min_value=Decimal("500.00"),
                is_active=True,
                products=[PromotionConditionProduct(product_id=widget.product_id, is_active=True)],
            )
        ],
        levels=[
            PromotionLevel(
                level_number=1,
                threshold_value=Decimal("500.00"),
                discount_type="PERCENTAGE",
                discount_value=Decimal("10"),
                is_active=True,
            )
        ],
    )
    gifts = Promotion(
        code="GIFTS",
        name="Keychain Giveaway",
        start_date=date.today() - timedelta(days=10),
        end_date=date.today() + timedelta(days=10),
        is_active=True,
        conditions=[
            PromotionCondition(
                sequence=1,
                min_quantity=0,
                min_value=Decimal("200.00"),
                is_active=True,
                products=[PromotionConditionProduct(category_id=product_category.category_id, is_active=True)],
            )
        ],
        levels=[
            PromotionLevel(
                level_number=1,
                threshold_value=Decimal("200.00"),
                discount_type="FIXED_AMOUNT",
                discount_value=Decimal("50.00"),
                is_active=True,
                benefits=[
                    PromotionBenefit(
                        benefit_type="FREE_PRODUCT",
                        product_id=keychain.product_id,
                        benefit_value=3,
                        gift_limit=2,
                        is_active=True,
                    )
                ],
            )
        ],
    )
    test_db.add_all([ten_off, gifts])
    await test_db.flush()
    await test_db.commit()

    return {
        "admin_id": ADMIN_ID,
        "manager_id": MANAGER_ID,
        "salesperson_id": SALESPERSON_ID,
        "customer": customer,
        "other_customer": other_customer,
        "depot": depot,
        "route": route,
        "currency": currency,
        "warehouse": warehouse,
        "widget": widget,
        "vaccine": vaccine,
        "phone": phone,
        "keychain": keychain,
        "lot_a": lot_a,
        "lot_b": lot_b,
        "serials": serials,
        "ten_off": ten_off,
        "gifts": gifts,
    }
