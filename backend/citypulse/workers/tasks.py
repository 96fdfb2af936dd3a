"""
Celery tasks.

Queue assignment:
  ingestion: one task per scheduled ingest source
"""

import asyncio
import dataclasses
import logging
from typing import Any

from citypulse.ingest.base import IngestConfigError
from citypulse.ingest.registry import get_job
from citypulse.workers.celery_app import celery

logger = logging.getLogger(__name__)


def _run(coro):
    """Run an async coroutine from a sync Celery task."""
    return asyncio.run(coro)


@celery.task(
    name="citypulse.workers.tasks.run_ingest_job",
    queue="ingestion",
)
def run_ingest_job(name: str) -> dict[str, Any]:
    """
    Run one ingest source once. Feed errors fail the task; the next beat
    tick simply tries again, so there is no retry policy here.
    """
    job = get_job(name)
    try:
        result = _run(job.run())
    except IngestConfigError as exc:
        logger.warning("run_ingest_job %s skipped: %s", name, exc)
        return {"status": "skipped", "job": name, "reason": str(exc)}

    logger.info("run_ingest_job %s: posted %d/%d", name, result.posted, result.fetched)
    return {"status": "ok", **dataclasses.asdict(result)}
