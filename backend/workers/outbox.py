"""
Outbox Worker — Deliver order side effects after commit.

Schedule: crontab(minute="*")
Queue: outbox
"""

import asyncio
from datetime import datetime, timezone

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from workers.celery_app import celery_app

logger = structlog.get_logger()


@celery_app.task(
    name="workers.outbox.process_outbox",
    bind=True,
    max_retries=3,
    default_retry_delay=30,
    acks_late=True,
)
def process_outbox(self, batch_size: int | None = None):
    """Drain one batch of pending outbox events (notifications, approvals, promotion usage)."""
    run_id = self.request.id or "manual"
    logger.info("outbox.started", run_id=run_id)

    async def _process():
        from core.config import get_settings
        from notifications.outbox import process_pending_events

        settings = get_settings()
        engine = create_async_engine(settings.database_url)
        async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

        try:
            async with async_session() as db:
                result = await process_pending_events(
                    db,
                    batch_size=batch_size or settings.outbox_batch_size,
                    max_attempts=settings.outbox_max_attempts,
                )
                await db.commit()
        finally:
            await engine.dispose()

        summary = {
            "status": "success",
            "run_id": run_id,
            **result,
            "completed_at": datetime.now(timezone.utc).isoformat(),
        }
        logger.info("outbox.completed", **summary)
        return summary

    try:
        return asyncio.run(_process())
    except Exception as exc:
        logger.error("outbox.failed", error=str(exc), exc_info=True)
        raise self.retry(exc=exc)
