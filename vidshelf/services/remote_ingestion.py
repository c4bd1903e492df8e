"""
Remote Ingestion

Drives a remote-URL upload on the video host from submission to a
terminal state:

    submit_remote_job(url)   ->  RemoteUploadJob(status=queued)
    RemoteIngestionPoller    ->  one status round trip per tick
                                 queued -> processing -> finished | error

The job is a plain value object. It is created on submission, only
changes when a status response is applied to it, and is discarded once its
``result_file_id`` has been handed to the record finalizer (or the caller
gives up on it).

Usage:
------
job = await submit_remote_job(client, "https://example.com/clip.mp4")
poller = RemoteIngestionPoller(client, job, interval=5.0)
job = await poller.run()           # returns once finished or error
if job.status is RemoteJobStatus.FINISHED:
    await finalizer.finalize(..., file_id=job.result_file_id)
"""

import asyncio
import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional, Protocol
from urllib.parse import urlparse

from vidshelf.core.exceptions import (
    CollaboratorError,
    RemoteJobCancelled,
    RemoteSubmissionError,
    ValidationError,
)
from vidshelf.core.logging import get_logger

logger = get_logger(__name__)


# ========================================
# Status vocabulary
# ========================================

class RemoteJobStatus(str, enum.Enum):
    """Lifecycle of a remote ingestion job. FINISHED and ERROR are terminal."""

    QUEUED = "queued"
    PROCESSING = "processing"
    FINISHED = "finished"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (RemoteJobStatus.FINISHED, RemoteJobStatus.ERROR)

    @classmethod
    def from_remote(cls, raw: Any) -> "RemoteJobStatus":
        """
        Map a status string reported by the video host.

        Unknown values mean the host is still working on it; they are
        never read as completion.
        """
        value = str(raw or "").strip().lower()
        return _REMOTE_STATUS_MAP.get(value, cls.PROCESSING)


_REMOTE_STATUS_MAP = {
    "new": RemoteJobStatus.QUEUED,
    "queued": RemoteJobStatus.QUEUED,
    "downloading": RemoteJobStatus.PROCESSING,
    "processing": RemoteJobStatus.PROCESSING,
    "finished": RemoteJobStatus.FINISHED,
    "error": RemoteJobStatus.ERROR,
    "failed": RemoteJobStatus.ERROR,
}


@dataclass(frozen=True)
class RemoteStatusUpdate:
    """One status response from the video host, already normalised."""

    status: RemoteJobStatus
    bytes_loaded: Optional[int] = None
    bytes_total: Optional[int] = None
    file_id: Optional[str] = None
    error_message: Optional[str] = None

    def __post_init__(self):
        # A finished job that names no file cannot be published.
        if self.status is RemoteJobStatus.FINISHED and not self.file_id:
            object.__setattr__(self, "status", RemoteJobStatus.ERROR)
            object.__setattr__(
                self,
                "error_message",
                self.error_message or "Remote upload finished without a file id",
            )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ========================================
# Job
# ========================================

@dataclass
class RemoteUploadJob:
    """
    A remote ingestion job as last reported by the video host.

    ``result_file_id`` is set only when FINISHED and ``error_message`` only
    when ERROR. ``last_tick_error`` holds the most recent transport failure
    and is cleared by the next successful poll.
    """

    remote_id: str
    source_url: Optional[str] = None
    status: RemoteJobStatus = RemoteJobStatus.QUEUED
    bytes_loaded: Optional[int] = None
    bytes_total: Optional[int] = None
    result_file_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: datetime = field(default_factory=_utcnow)
    last_polled_at: Optional[datetime] = None
    last_tick_error: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def progress(self) -> Optional[float]:
        """Fraction downloaded by the host (advisory only)."""
        if not self.bytes_total or self.bytes_loaded is None:
            return None
        return max(0.0, min(1.0, self.bytes_loaded / self.bytes_total))

    def apply(self, update: RemoteStatusUpdate, polled_at: Optional[datetime] = None) -> bool:
        """
        Apply a status response. Returns False when the job was already
        terminal and the update was ignored.
        """
        self.last_polled_at = polled_at or _utcnow()
        self.last_tick_error = None
        if self.is_terminal:
            return False

        self.status = update.status
        if update.bytes_loaded is not None:
            self.bytes_loaded = update.bytes_loaded
        if update.bytes_total is not None:
            self.bytes_total = update.bytes_total

        if update.status is RemoteJobStatus.FINISHED:
            self.result_file_id = update.file_id
        elif update.status is RemoteJobStatus.ERROR:
            self.error_message = update.error_message or "Remote upload failed"
        return True


class RemoteIngestionBackend(Protocol):
    """What the ingestion flow needs from the video host client."""

    async def submit_remote(self, source_url: str) -> str: ...

    async def fetch_remote_status(self, remote_id: str) -> RemoteStatusUpdate: ...


# ========================================
# Submission
# ========================================

def validate_source_url(source_url: Optional[str]) -> str:
    """
    Check that a remote source is an absolute http(s) URL.

    Raises:
        ValidationError: If the URL is empty, relative or uses another scheme
    """
    url = (source_url or "").strip()
    if not url:
        raise ValidationError("Video URL is required")

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValidationError("Video URL must be an absolute http or https URL")
    return url


async def submit_remote_job(client: RemoteIngestionBackend, source_url: str) -> RemoteUploadJob:
    """
    Ask the video host to fetch ``source_url``.

    Submission is not retried. Any failure to obtain a remote id is final
    and no job exists afterwards.

    Raises:
        ValidationError: If ``source_url`` is not an http(s) URL
        RemoteSubmissionError: If the host did not return a remote id
    """
    url = validate_source_url(source_url)

    try:
        remote_id = await client.submit_remote(url)
    except RemoteSubmissionError:
        raise
    except CollaboratorError as e:
        logger.error("remote_submission_failed", source_url=url, error=e.message)
        raise RemoteSubmissionError(f"Failed to start remote upload: {e.message}") from e

    if not remote_id:
        logger.error("remote_submission_missing_id", source_url=url)
        raise RemoteSubmissionError("Video host did not return a remote upload id")

    logger.info("remote_job_submitted", remote_id=remote_id, source_url=url)
    return RemoteUploadJob(remote_id=str(remote_id), source_url=url)


# ========================================
# Poller
# ========================================

TickErrorCallback = Callable[[RemoteUploadJob, CollaboratorError], Optional[Awaitable[None]]]
UpdateCallback = Callable[[RemoteUploadJob], Optional[Awaitable[None]]]


async def _maybe_await(result: Optional[Awaitable[None]]) -> None:
    if asyncio.iscoroutine(result) or isinstance(result, asyncio.Future):
        await result


class RemoteIngestionPoller:
    """
    Polls the video host for one job until it reaches a terminal state.

    At most one status request is in flight: ``tick()`` refuses to start
    while another tick is pending, and ``run()`` waits the full interval
    after a tick completes before starting the next one.

    Transport failures during a tick are recorded on the job, passed to
    ``on_tick_error`` and logged; polling continues. ``cancel()`` stops the
    loop at the next tick boundary, discards the job and makes ``run()``
    raise ``RemoteJobCancelled``.
    """

    def __init__(
        self,
        client: RemoteIngestionBackend,
        job: RemoteUploadJob,
        *,
        interval: float = 5.0,
        on_tick_error: Optional[TickErrorCallback] = None,
        on_update: Optional[UpdateCallback] = None,
    ):
        """
        Args:
            client: Video host client
            job: Job returned by ``submit_remote_job``
            interval: Seconds between the end of one tick and the next
            on_tick_error: Called with (job, error) after a failed round trip
            on_update: Called with the job after every applied status
        """
        self.client = client
        self.interval = interval
        self.on_tick_error = on_tick_error
        self.on_update = on_update

        self._job: Optional[RemoteUploadJob] = job
        self._remote_id = job.remote_id
        self._cancelled = asyncio.Event()
        self._tick_pending = False
        self.ticks = 0

    @property
    def job(self) -> RemoteUploadJob:
        if self._job is None:
            raise RemoteJobCancelled(f"Remote upload {self._remote_id} was cancelled")
        return self._job

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def tick_pending(self) -> bool:
        return self._tick_pending

    def cancel(self) -> None:
        """Stop polling and drop the job. Safe to call more than once."""
        if not self._cancelled.is_set():
            logger.info("remote_job_cancelled", remote_id=self._remote_id)
        self._cancelled.set()
        self._job = None

    async def tick(self) -> RemoteUploadJob:
        """
        Perform exactly one status round trip and apply the result.

        Returns the job unchanged (no request made) when it is already
        terminal.

        Raises:
            RemoteJobCancelled: If the poller was cancelled before or during the tick
            RuntimeError: If another tick is still pending
        """
        job = self.job
        if self._tick_pending:
            raise RuntimeError(f"A status check for {self._remote_id} is already in flight")
        if job.is_terminal:
            return job

        update: Optional[RemoteStatusUpdate] = None
        error: Optional[CollaboratorError] = None
        self._tick_pending = True
        try:
            update = await self.client.fetch_remote_status(job.remote_id)
        except CollaboratorError as e:
            error = e
        finally:
            self._tick_pending = False
        self.ticks += 1

        job = self.job

        if error is not None:
            job.last_polled_at = _utcnow()
            job.last_tick_error = error.message
            logger.warning(
                "remote_status_check_failed",
                remote_id=job.remote_id,
                tick=self.ticks,
                error=error.message,
            )
            if self.on_tick_error is not None:
                await _maybe_await(self.on_tick_error(job, error))
            return job

        job.apply(update)
        logger.info(
            "remote_status_checked",
            remote_id=job.remote_id,
            tick=self.ticks,
            status=job.status.value,
            bytes_loaded=job.bytes_loaded,
            bytes_total=job.bytes_total,
        )
        if self.on_update is not None:
            await _maybe_await(self.on_update(job))
        return job

    async def run(self) -> RemoteUploadJob:
        """
        Poll until the job is finished or errored and return it.

        Raises:
            RemoteJobCancelled: If ``cancel()`` is called before a terminal state
        """
        while True:
            job = self.job
            if job.is_terminal:
                break

            try:
                await asyncio.wait_for(self._cancelled.wait(), timeout=self.interval)
            except asyncio.TimeoutError:
                pass

            job = await self.tick()
            if job.is_terminal:
                break

        if job.status is RemoteJobStatus.FINISHED:
            logger.info("remote_job_finished", remote_id=job.remote_id, file_id=job.result_file_id)
        else:
            logger.warning("remote_job_failed", remote_id=job.remote_id, error=job.error_message)
        return job
