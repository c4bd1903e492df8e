"""
Pydantic schemas for the upload endpoints (direct target, remote ingestion).
"""

from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from vidshelf.schemas.video import CamelModel
from vidshelf.services.remote_ingestion import RemoteJobStatus, RemoteUploadJob


class UploadTargetResponse(CamelModel):
    """One-time upload target handed out by the video host."""

    url: str
    valid_until: Optional[str] = None


class RemoteUploadStartRequest(CamelModel):
    """Request schema for submitting a remote URL to the video host."""

    video_url: str = Field(
        ...,
        description="Publicly reachable URL of the source video",
        min_length=1,
        max_length=2000,
        examples=["https://example.com/videos/clip.mp4"],
    )

    @field_validator("video_url")
    @classmethod
    def strip_url(cls, v: str) -> str:
        return v.strip()


class RemoteIngestRequest(RemoteUploadStartRequest):
    """Server-side remote ingestion: submit, poll and publish in the background."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)


class RemoteJobResponse(CamelModel):
    """Snapshot of a remote ingestion job."""

    remote_id: str
    source_url: Optional[str] = None
    status: RemoteJobStatus
    bytes_loaded: Optional[int] = None
    bytes_total: Optional[int] = None
    progress: Optional[float] = None
    result_file_id: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[datetime] = None
    last_polled_at: Optional[datetime] = None

    @classmethod
    def from_job(cls, job: RemoteUploadJob) -> "RemoteJobResponse":
        return cls(
            remote_id=job.remote_id,
            source_url=job.source_url,
            status=job.status,
            bytes_loaded=job.bytes_loaded,
            bytes_total=job.bytes_total,
            progress=job.progress,
            result_file_id=job.result_file_id,
            error_message=job.error_message,
            created_at=job.created_at,
            last_polled_at=job.last_polled_at,
        )


class RemoteIngestAccepted(CamelModel):
    """Background ingestion accepted; poll the task id for the outcome."""

    task_id: str
    status: str = "queued"
