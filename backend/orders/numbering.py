"""
Order number generation: PREFIX-NNNNN.

A single order_number_sequences row per prefix is incremented under a row
lock, so two writers can never be handed the same value. The first use of a
prefix seeds the counter from the highest existing order number. Because a
caller may also supply its own order number, each candidate is still
re-checked against the orders table; after ``order_number_max_retries``
collisions a timestamp-based number is returned instead.
"""

import re
import time

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from db.models import Order, OrderNumberSequence

logger = structlog.get_logger()


def format_order_number(prefix: str, value: int, digits: int) -> str:
    return f"{prefix}-{value:0{digits}d}"


async def _highest_existing(db: AsyncSession, prefix: str) -> int:
    """Largest numeric suffix among existing PREFIX-<digits> order numbers."""
    pattern = re.compile(rf"^{re.escape(prefix)}-(\d+)$")
    result = await db.execute(select(Order.order_number).where(Order.order_number.like(f"{prefix}-%")))
    highest = 0
    for (number,) in result.all():
        match = pattern.match(number)
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


async def _lock_sequence(db: AsyncSession, prefix: str) -> OrderNumberSequence:
    result = await db.execute(
        select(OrderNumberSequence).where(OrderNumberSequence.prefix == prefix).with_for_update()
    )
    sequence = result.scalar_one_or_none()
    if sequence is not None:
        return sequence

    seed = await _highest_existing(db, prefix)
    try:
        async with db.begin_nested():
            sequence = OrderNumberSequence(prefix=prefix, last_value=seed)
            db.add(sequence)
    except IntegrityError:
        # Another writer created the row first; take its lock instead.
        result = await db.execute(
            select(OrderNumberSequence).where(OrderNumberSequence.prefix == prefix).with_for_update()
        )
        sequence = result.scalar_one()
    return sequence


async def order_number_exists(db: AsyncSession, order_number: str) -> bool:
    result = await db.execute(select(Order.order_id).where(Order.order_number == order_number).limit(1))
    return result.scalar_one_or_none() is not None


async def generate_order_number(db: AsyncSession, prefix: str | None = None) -> str:
    """Next free order number for ``prefix``; must run inside the order transaction."""
    settings = get_settings()
    prefix = prefix or settings.order_number_prefix
    sequence = await _lock_sequence(db, prefix)

    for attempt in range(1, settings.order_number_max_retries + 1):
        sequence.last_value += 1
        candidate = format_order_number(prefix, sequence.last_value, settings.order_number_digits)
        if not await order_number_exists(db, candidate):
            await db.flush()
            return candidate
        logger.warning("orders.number_collision", order_number=candidate, attempt=attempt)

    fallback = f"{prefix}-{int(time.time() * 1000)}"
    await db.flush()
    logger.warning("orders.number_fallback", order_number=fallback, prefix=prefix)
    return fallback
