"""
Transactional outbox for order side effects.

Order writes call ``enqueue_event`` inside their own transaction, so an
event exists if and only if the order change committed. The Celery beat
task ``workers.outbox.process_outbox`` later drains pending rows through
``process_pending_events``; each event runs in its own SAVEPOINT, so one
failing handler neither blocks nor rolls back the others.
"""

import uuid
from datetime import datetime
from typing import Any, Awaitable, Callable

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import get_settings
from db.enums import OutboxEventType, OutboxStatus
from db.models import OutboxEvent
from notifications import handlers

logger = structlog.get_logger()

Handler = Callable[[AsyncSession, dict[str, Any]], Awaitable[Any]]


def _uuid(value) -> uuid.UUID | None:
    if value is None:
        return None
    return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))


async def _handle_notification(db: AsyncSession, payload: dict) -> None:
    await handlers.notify_order_event(
        db,
        user_id=_uuid(payload["user_id"]),
        order_id=_uuid(payload["order_id"]),
        order_number=payload["order_number"],
        event_kind=payload["event_kind"],
        acting_user_id=_uuid(payload["acting_user_id"]),
    )


async def _handle_approval_requested(db: AsyncSession, payload: dict) -> None:
    await handlers.open_approval_request(
        db,
        requester_id=_uuid(payload["requester_id"]),
        request_type=payload["request_type"],
        reference_id=_uuid(payload["reference_id"]),
        created_by=_uuid(payload["created_by"]),
        log_inst=int(payload.get("log_inst", 1)),
    )


async def _handle_promotion_applied(db: AsyncSession, payload: dict) -> None:
    await handlers.record_promotion_usage(
        db,
        promotion_id=_uuid(payload["promotion_id"]),
        order_id=_uuid(payload["order_id"]),
        user_id=_uuid(payload["user_id"]),
    )


HANDLERS: dict[str, Handler] = {
    OutboxEventType.ORDER_NOTIFICATION.value: _handle_notification,
    OutboxEventType.APPROVAL_REQUESTED.value: _handle_approval_requested,
    OutboxEventType.PROMOTION_APPLIED.value: _handle_promotion_applied,
}


def _jsonable(payload: dict) -> dict:
    return {k: (str(v) if isinstance(v, uuid.UUID) else v) for k, v in payload.items()}


def enqueue_event(
    db: AsyncSession,
    event_type: OutboxEventType,
    aggregate_id: uuid.UUID,
    payload: dict,
) -> OutboxEvent:
    event = OutboxEvent(
        event_type=event_type.value,
        aggregate_type="order",
        aggregate_id=aggregate_id,
        payload=_jsonable(payload),
        status=OutboxStatus.PENDING.value,
        attempts=0,
        created_at=datetime.utcnow(),
    )
    db.add(event)
    return event


async def process_pending_events(
    db: AsyncSession,
    batch_size: int | None = None,
    max_attempts: int | None = None,
) -> dict:
    """
    Deliver up to ``batch_size`` pending events, oldest first.

    Failures are recorded on the row (attempts, last_error); an event that
    has failed ``max_attempts`` times is parked as ``failed``. The caller
    commits.
    """
    settings = get_settings()
    batch_size = batch_size or settings.outbox_batch_size
    max_attempts = max_attempts or settings.outbox_max_attempts

    result = await db.execute(
        select(OutboxEvent)
        .where(OutboxEvent.status == OutboxStatus.PENDING.value)
        .order_by(OutboxEvent.created_at)
        .limit(batch_size)
        .with_for_update(skip_locked=True)
    )
    events = result.scalars().all()

    processed = 0
    failed = 0
    retrying = 0
    for event in events:
        attempts = (event.attempts or 0) + 1
        event_id, event_type = str(event.event_id), event.event_type
        event.attempts = attempts
        handler = HANDLERS.get(event_type)
        if handler is None:
            event.status = OutboxStatus.FAILED.value
            event.last_error = f"No handler for event type {event_type}"
            failed += 1
            logger.error("outbox.unknown_event_type", event_id=event_id, event_type=event_type)
            continue

        try:
            async with db.begin_nested():
                await handler(db, event.payload or {})
        except Exception as exc:
            event.last_error = str(exc)[:2000]
            if attempts >= max_attempts:
                event.status = OutboxStatus.FAILED.value
                failed += 1
            else:
                retrying += 1
            logger.warning(
                "outbox.event_failed",
                event_id=event_id,
                event_type=event_type,
                attempts=attempts,
                exc_info=True,
            )
            continue

        event.status = OutboxStatus.PROCESSED.value
        event.processed_at = datetime.utcnow()
        event.last_error = None
        processed += 1

    await db.flush()
    summary = {"processed": processed, "failed": failed, "retrying": retrying, "fetched": len(events)}
    if events:
        logger.info("outbox.batch_processed", **summary)
    return summary
