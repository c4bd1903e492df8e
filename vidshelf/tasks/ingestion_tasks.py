"""
Celery tasks for server-side remote ingestion.

The worker plays the part the browser plays in the client-driven flow:
submit the source URL to the video host, poll until the job settles, then
publish the catalog record with the resulting file id.
"""

import asyncio
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from vidshelf.core.config import settings
from vidshelf.core.exceptions import (
    CatalogError,
    CollaboratorError,
    RemoteJobCancelled,
    RemoteSubmissionError,
    ValidationError,
)
from vidshelf.core.logging import get_logger
from vidshelf.db.session import AsyncSessionLocal, engine
from vidshelf.services.finalizer import RecordFinalizer
from vidshelf.services.ingestion_client import VideoHostClient
from vidshelf.services.remote_ingestion import (
    RemoteIngestionBackend,
    RemoteIngestionPoller,
    RemoteJobStatus,
    RemoteUploadJob,
    submit_remote_job,
)
from vidshelf.workers.celery_app import celery_app

logger = get_logger(__name__)


# ========================================
# Helper Functions
# ========================================

def run_async(coro):
    """Run an async coroutine to completion inside a Celery worker process."""
    return asyncio.run(coro)


def _failure(stage: str, message: str, remote_id: Optional[str] = None) -> dict:
    return {
        "success": False,
        "stage": stage,
        "remote_id": remote_id,
        "error": message,
    }


def _progress_meta(job: RemoteUploadJob) -> dict:
    return {
        "remote_id": job.remote_id,
        "status": job.status.value,
        "bytes_loaded": job.bytes_loaded,
        "bytes_total": job.bytes_total,
        "last_tick_error": job.last_tick_error,
    }


async def ingest_remote(
    host: RemoteIngestionBackend,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    uploader_id: int,
    source_url: str,
    title: str,
    description: str,
    poll_interval: Optional[float] = None,
    job_timeout: Optional[float] = None,
    on_progress: Optional[Callable[[RemoteUploadJob], Any]] = None,
    on_tick_error: Optional[Callable[[RemoteUploadJob, CollaboratorError], Any]] = None,
    max_tick_failures: Optional[int] = None,
) -> dict:
    """
    Submit, poll and publish one remote video.

    Returns a result dictionary rather than raising for expected outcomes
    (rejected URL, failed submission, remote error, timeout, too many failed
    status checks in a row, duplicate); unexpected faults propagate to Celery.

    Failed status checks go to ``on_tick_error``; after ``max_tick_failures``
    consecutive failures the job is abandoned.
    """
    try:
        job = await submit_remote_job(host, source_url)
    except (ValidationError, RemoteSubmissionError) as e:
        return _failure("submit", e.message)

    max_failures = settings.INGEST_MAX_TICK_FAILURES if max_tick_failures is None else max_tick_failures
    consecutive_failures = 0

    def _updated(job: RemoteUploadJob) -> Any:
        nonlocal consecutive_failures
        consecutive_failures = 0
        if on_progress is not None:
            return on_progress(job)
        return None

    def _tick_failed(job: RemoteUploadJob, error: CollaboratorError) -> Any:
        nonlocal consecutive_failures
        consecutive_failures += 1
        result = on_tick_error(job, error) if on_tick_error is not None else None
        if consecutive_failures >= max_failures:
            poller.cancel()
        return result

    poller = RemoteIngestionPoller(
        host,
        job,
        interval=settings.poll_interval_seconds if poll_interval is None else poll_interval,
        on_update=_updated,
        on_tick_error=_tick_failed,
    )
    timeout = settings.INGEST_JOB_TIMEOUT_SECONDS if job_timeout is None else job_timeout

    try:
        job = await asyncio.wait_for(poller.run(), timeout=timeout)
    except RemoteJobCancelled:
        logger.warning(
            "remote_ingest_abandoned",
            remote_id=job.remote_id,
            consecutive_failures=consecutive_failures,
            error=job.last_tick_error,
        )
        return _failure(
            "poll",
            f"Video host status checks failed {consecutive_failures} times in a row: {job.last_tick_error}",
            job.remote_id,
        )
    except asyncio.TimeoutError:
        poller.cancel()
        logger.warning("remote_ingest_timed_out", remote_id=job.remote_id, timeout=timeout)
        return _failure("poll", f"Remote upload did not finish within {timeout} seconds", job.remote_id)

    if job.status is not RemoteJobStatus.FINISHED:
        return _failure("poll", job.error_message or "Remote upload failed", job.remote_id)

    async with session_factory() as db:
        try:
            video = await RecordFinalizer(db).finalize(
                uploader_id=uploader_id,
                title=title,
                description=description,
                file_id=job.result_file_id,
            )
        except CatalogError as e:
            logger.warning("remote_ingest_publish_rejected", remote_id=job.remote_id, error=e.message)
            return _failure("publish", e.message, job.remote_id)

    return {
        "success": True,
        "remote_id": job.remote_id,
        "file_id": video.file_id,
        "video_id": video.id,
    }


# ========================================
# Tasks
# ========================================

@celery_app.task(
    name="ingestion.ingest_remote_video",
    bind=True,
)
def ingest_remote_video(
    self,
    uploader_id: int,
    source_url: str,
    title: str,
    description: str,
) -> dict:
    """
    Ingest a remote video and publish it for ``uploader_id``.

    Submission is never retried: a failed submission is reported in the
    result and the task ends. Progress is published as task state
    ``PROGRESS`` with the job's status, byte counts and the latest failed
    status check.

    Returns:
        {'success': True, 'remote_id', 'file_id', 'video_id'} or
        {'success': False, 'stage', 'remote_id', 'error'}
    """
    def _report_progress(job: RemoteUploadJob) -> None:
        if not self.request.id:
            return
        self.update_state(state="PROGRESS", meta=_progress_meta(job))

    def _report_tick_error(job: RemoteUploadJob, error: CollaboratorError) -> None:
        _report_progress(job)

    async def _ingest() -> dict:
        try:
            async with VideoHostClient() as host:
                return await ingest_remote(
                    host,
                    AsyncSessionLocal,
                    uploader_id=uploader_id,
                    source_url=source_url,
                    title=title,
                    description=description,
                    on_progress=_report_progress,
                    on_tick_error=_report_tick_error,
                )
        finally:
            # Pooled connections are bound to this event loop.
            await engine.dispose()

    logger.info("remote_ingest_started", uploader_id=uploader_id, source_url=source_url)
    result = run_async(_ingest())
    logger.info(
        "remote_ingest_completed",
        uploader_id=uploader_id,
        success=result["success"],
        remote_id=result.get("remote_id"),
    )
    return result
