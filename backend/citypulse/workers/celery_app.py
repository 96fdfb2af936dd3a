"""
Celery application instance + ingest schedule.

Imported by task modules and by the worker process:
    celery -A citypulse.workers.celery_app worker -B --queues ingestion -l info
"""

from celery import Celery

from citypulse.core.config import get_settings
from citypulse.ingest.registry import JOBS

settings = get_settings()

celery = Celery(
    "citypulse",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["citypulse.workers.tasks"],
)

celery.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_routes={
        "citypulse.workers.tasks.run_ingest_job": {"queue": "ingestion"},
    },
    # One beat entry per source; every job is a one-shot fetch → POST
    beat_schedule={
        f"ingest-{name}": {
            "task": "citypulse.workers.tasks.run_ingest_job",
            "schedule": settings.ingest_interval_minutes * 60.0,
            "args": (name,),
        }
        for name in JOBS
    },
    task_acks_late=True,
    task_reject_on_worker_lost=True,
)
