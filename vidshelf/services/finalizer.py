"""
Record Finalizer

Publishes a video once its bytes live on the video host: validates the
metadata, makes sure the file id has not been published already, uploads
an optional custom thumbnail, then inserts the catalog row.

Order of operations matters:
1. Validation              nothing external is touched for a bad request
2. Duplicate pre-check     the image host is not called for a known file id
3. Thumbnail upload        best-effort, failure only loses the thumbnail
4. Insert + commit         the unique constraint on file_id is the final word
"""

from dataclasses import dataclass
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.core.exceptions import CollaboratorError, DuplicateVideoError, ValidationError
from vidshelf.core.logging import get_logger
from vidshelf.models.video import Video
from vidshelf.services.image_host import ImageHostClient

logger = get_logger(__name__)


@dataclass(frozen=True)
class ThumbnailUpload:
    """A custom thumbnail as received from the client."""

    content: bytes
    filename: Optional[str] = None
    content_type: Optional[str] = None


def _required(value: Optional[str], field_name: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValidationError(f"{field_name} is required")
    return cleaned


class RecordFinalizer:
    """Creates the catalog record for an uploaded video."""

    def __init__(self, db: AsyncSession, image_host: Optional[ImageHostClient] = None):
        self.db = db
        self.image_host = image_host

    async def _upload_thumbnail(self, thumbnail: ThumbnailUpload, file_id: str) -> Optional[str]:
        if self.image_host is None:
            logger.warning("thumbnail_skipped_no_image_host", file_id=file_id)
            return None

        try:
            return await self.image_host.upload(thumbnail.content, filename=thumbnail.filename)
        except CollaboratorError as e:
            logger.warning("thumbnail_upload_failed", file_id=file_id, error=e.message)
            return None

    async def finalize(
        self,
        *,
        uploader_id: int,
        title: Optional[str],
        description: Optional[str],
        file_id: Optional[str],
        thumbnail: Optional[ThumbnailUpload] = None,
    ) -> Video:
        """
        Persist a new video owned by ``uploader_id``.

        Returns:
            The created Video

        Raises:
            ValidationError: If title, description or file id is missing
            DuplicateVideoError: If ``file_id`` is already published
        """
        title = _required(title, "Title")
        description = _required(description, "Description")
        file_id = _required(file_id, "Video id")

        existing = await self.db.scalar(select(Video.id).where(Video.file_id == file_id))
        if existing is not None:
            logger.info("video_publish_duplicate", file_id=file_id, video_id=existing)
            raise DuplicateVideoError(f"Video {file_id} has already been published")

        thumbnail_url = None
        if thumbnail is not None and thumbnail.content:
            thumbnail_url = await self._upload_thumbnail(thumbnail, file_id)

        video = Video(
            title=title,
            description=description,
            file_id=file_id,
            thumbnail_url=thumbnail_url,
            uploader_id=uploader_id,
            view_count=0,
        )
        self.db.add(video)
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.info("video_publish_duplicate", file_id=file_id, source="constraint")
            raise DuplicateVideoError(f"Video {file_id} has already been published") from e

        await self.db.refresh(video)
        logger.info(
            "video_published",
            video_id=video.id,
            file_id=file_id,
            uploader_id=uploader_id,
            has_thumbnail=thumbnail_url is not None,
        )
        return video
