import asyncio
import uuid
from datetime import date

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from core import config as config_module
from db.enums import OutboxEventType
from db.session import Base
from workers.outbox import process_outbox

ADMIN_ID = uuid.UUID("00000000-0000-0000-0000-000000000001")


def _use_database(monkeypatch, db_url: str) -> None:
    settings = config_module.get_settings().model_copy(update={"database_url": db_url})
    monkeypatch.setattr("core.config.get_settings", lambda: settings)


def test_process_outbox_delivers_pending_events(tmp_path, monkeypatch):
    from db.models import Customer, Notification, Order, OutboxEvent, User
    from notifications.outbox import enqueue_event

    db_url = f"sqlite+aiosqlite:///{tmp_path / 'outbox.db'}"
    engine = create_async_engine(db_url, echo=False)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    order_id = uuid.uuid4()

    async def _seed() -> None:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

        async with session_factory() as db:
            customer = Customer(code="CUST-1", name="Corner Shop")
            db.add_all([User(user_id=ADMIN_ID, name="Admin", email="admin@fieldsales.test"), customer])
            await db.flush()
            db.add(
                Order(
                    order_id=order_id,
                    order_number="ORD-00001",
                    customer_id=customer.customer_id,
                    salesperson_id=ADMIN_ID,
                    order_date=date.today(),
                    created_by=ADMIN_ID,
                )
            )
            for _ in range(2):
                enqueue_event(
                    db,
                    OutboxEventType.ORDER_NOTIFICATION,
                    order_id,
                    {
                        "user_id": ADMIN_ID,
                        "order_id": order_id,
                        "order_number": "ORD-00001",
                        "event_kind": "created",
                        "acting_user_id": ADMIN_ID,
                    },
                )
            await db.commit()

    asyncio.run(_seed())
    _use_database(monkeypatch, db_url)

    result = process_outbox.run(batch_size=10)

    assert result["status"] == "success"
    assert result["processed"] == 2
    assert result["failed"] == 0

    async def _verify() -> tuple[int, int]:
        async with session_factory() as db:
            notifications = await db.scalar(select(func.count()).select_from(Notification))
            pending = await db.scalar(
                select(func.count()).select_from(OutboxEvent).where(OutboxEvent.status == "pending")
            )
            return notifications, pending

    assert asyncio.run(_verify()) == (2, 0)
    asyncio.run(engine.dispose())


def test_process_outbox_reraises_when_called_directly(tmp_path, monkeypatch):
    _use_database(monkeypatch, f"sqlite+aiosqlite:///{tmp_path / 'broken.db'}")

    async def _boom(db, **kwargs):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr("notifications.outbox.process_pending_events", _boom)

    with pytest.raises(RuntimeError, match="database unavailable"):
        process_outbox.run()
