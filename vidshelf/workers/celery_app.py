"""
Celery application for background ingestion.

Start a worker with:

    celery -A vidshelf.workers.celery_app worker -Q ingestion --loglevel=info
"""

from celery import Celery

from vidshelf.core.config import settings

celery_app = Celery(
    "vidshelf",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=["vidshelf.tasks.ingestion_tasks"],
)

celery_app.conf.update(
    task_serializer=settings.CELERY_TASK_SERIALIZER,
    result_serializer=settings.CELERY_RESULT_SERIALIZER,
    accept_content=settings.celery_accept_content_list,
    timezone=settings.CELERY_TIMEZONE,
    enable_utc=settings.CELERY_ENABLE_UTC,
    task_track_started=True,
    # Ingestion enforces its own job timeout; these limits are backstops above it.
    task_soft_time_limit=settings.INGEST_JOB_TIMEOUT_SECONDS + 60,
    task_time_limit=settings.INGEST_JOB_TIMEOUT_SECONDS + 120,
    result_expires=24 * 3600,
    task_routes={"ingestion.*": {"queue": "ingestion"}},
)
