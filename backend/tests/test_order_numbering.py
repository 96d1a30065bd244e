"""
Unit Tests — Order number generation.
"""

import asyncio
import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy import event, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from db.models import Customer, InventoryStock, Order, Product
from db.session import Base
from orders import numbering
from orders.numbering import format_order_number, generate_order_number
from orders.service import OrderInput, OrderLineInput, save_order

ACTOR_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _order(seeded_db, order_number=None):
    return OrderInput(
        customer_id=seeded_db["customer"].customer_id,
        order_number=order_number,
        items=[OrderLineInput(product_id=seeded_db["widget"].product_id, quantity=1)],
    )


class TestFormat:
    def test_zero_padded(self):
        assert format_order_number("ORD", 7, 5) == "ORD-00007"

    def test_wider_than_padding(self):
        assert format_order_number("ORD", 123456, 5) == "ORD-123456"


@pytest.mark.asyncio
class TestGenerate:
    async def test_first_number_seeds_from_existing_orders(self, test_db, seeded_db):
        await save_order(test_db, _order(seeded_db, "ORD-00041"), actor_id=seeded_db["admin_id"])
        assert await generate_order_number(test_db) == "ORD-00042"

    async def test_caller_supplied_number_is_skipped(self, test_db, seeded_db):
        first = await save_order(test_db, _order(seeded_db), actor_id=seeded_db["admin_id"])
        await save_order(test_db, _order(seeded_db, "ORD-00002"), actor_id=seeded_db["admin_id"])
        third = await save_order(test_db, _order(seeded_db), actor_id=seeded_db["admin_id"])

        assert first.order.order_number == "ORD-00001"
        assert third.order.order_number == "ORD-00003"

    async def test_numbers_are_distinct(self, test_db, seeded_db):
        numbers = [await generate_order_number(test_db) for _ in range(5)]
        assert len(set(numbers)) == 5
        assert numbers[0] == "ORD-00001"
        assert numbers[-1] == "ORD-00005"

    async def test_custom_prefix(self, test_db, seeded_db):
        assert await generate_order_number(test_db, prefix="VAN") == "VAN-00001"

    async def test_fallback_after_repeated_collisions(self, test_db, seeded_db, monkeypatch):
        monkeypatch.setattr(
            numbering,
            "get_settings",
            lambda: SimpleNamespace(order_number_prefix="ORD", order_number_digits=5, order_number_max_retries=1),
        )
        await generate_order_number(test_db)
        await save_order(test_db, _order(seeded_db, "ORD-00002"), actor_id=seeded_db["admin_id"])

        fallback = await generate_order_number(test_db)
        assert fallback.startswith("ORD-")
        assert fallback != "ORD-00002"
        assert len(fallback) > len("ORD-00002")


def _serialized_writers(engine) -> None:
    """SQLite has no row locks: BEGIN IMMEDIATE makes each transaction wait for the writer ahead of it."""

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


@pytest.mark.asyncio
class TestConcurrentCreates:
    async def test_two_sessions_get_distinct_numbers(self, tmp_path):
        engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}", echo=False)
        _serialized_writers(engine)
        session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        async with session_factory() as db:
            customer = Customer(code="CUST-1", name="Corner Shop", is_active=True)
            widget = Product(code="WIDGET", name="Widget", tracking_type="none", unit_price=Decimal("100.00"))
            db.add_all([customer, widget])
            await db.flush()
            db.add(InventoryStock(product_id=widget.product_id, current_stock=50, available_stock=50))
            await db.commit()
            customer_id, widget_id = customer.customer_id, widget.product_id

        async def create() -> str:
            async with session_factory() as db:
                data = OrderInput(
                    customer_id=customer_id,
                    items=[OrderLineInput(product_id=widget_id, quantity=1)],
                )
                result = await save_order(db, data, actor_id=ACTOR_ID)
                await db.commit()
                return result.order.order_number

        try:
            numbers = await asyncio.gather(create(), create())
            assert sorted(numbers) == ["ORD-00001", "ORD-00002"]

            async with session_factory() as db:
                persisted = (await db.execute(select(Order.order_number))).scalars().all()
                stock = await db.scalar(select(func.sum(InventoryStock.available_stock)))
            assert sorted(persisted) == ["ORD-00001", "ORD-00002"]
            assert stock == 48
        finally:
            await engine.dispose()
