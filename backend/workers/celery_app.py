"""
Celery Application Configuration
"""

from celery import Celery
from celery.schedules import crontab

from core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "fieldsales",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["workers.outbox"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    worker_prefetch_multiplier=1,
    task_routes={
        "workers.outbox.*": {"queue": "outbox"},
    },
    # ── Celery Beat Schedule ─────────────────────────────────────────
    beat_schedule={
        # Order side effects: notifications, approval workflows, promo usage
        "process-outbox-1m": {
            "task": "workers.outbox.process_outbox",
            "schedule": crontab(minute="*"),
            "options": {"queue": "outbox"},
        },
    },
)

# Auto-discover tasks
celery_app.autodiscover_tasks(["workers"])
