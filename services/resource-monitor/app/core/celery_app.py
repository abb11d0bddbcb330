"""
Resource Monitor — Celery application

Uses Redis as both broker and result backend.
Celery beat drives the two scheduled jobs; workers run them in separate
containers (resource-worker / resource-beat). Stopping beat halts future
firings without interrupting one already running.
"""
from celery import Celery
from celery.schedules import crontab
from app.core.config import get_settings

settings = get_settings()

celery_app = Celery(
    "resource_monitor",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["app.tasks.monitor_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    worker_prefetch_multiplier=1,
    task_track_started=True,
    beat_schedule={
        "snapshot-resources": {
            "task": "snapshot_resources",
            "schedule": float(settings.SNAPSHOT_INTERVAL_SECONDS),
            # A late firing is skipped rather than piling up behind the next one.
            "options": {"expires": settings.SNAPSHOT_INTERVAL_SECONDS},
        },
        "purge-history": {
            "task": "purge_history",
            "schedule": crontab(hour=settings.HISTORY_SWEEP_HOUR, minute=settings.HISTORY_SWEEP_MINUTE),
        },
    },
)
