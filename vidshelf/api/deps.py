"""
Service and collaborator dependencies for the API routes.

Each request gets its own httpx-backed collaborator client, closed when the
request ends. Tests replace these with clients built on
``httpx.MockTransport`` through ``app.dependency_overrides``.
"""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends

from vidshelf.db.deps import DBSession
from vidshelf.services.feed_service import FeedService
from vidshelf.services.finalizer import RecordFinalizer
from vidshelf.services.image_host import ImageHostClient
from vidshelf.services.ingestion_client import VideoHostClient
from vidshelf.services.video_service import VideoService


async def get_video_host() -> AsyncGenerator[VideoHostClient, None]:
    async with VideoHostClient() as client:
        yield client


async def get_image_host() -> AsyncGenerator[ImageHostClient, None]:
    async with ImageHostClient() as client:
        yield client


VideoHost = Annotated[VideoHostClient, Depends(get_video_host)]
ImageHost = Annotated[ImageHostClient, Depends(get_image_host)]


def get_feed_service(db: DBSession) -> FeedService:
    return FeedService(db)


def get_video_service(db: DBSession) -> VideoService:
    return VideoService(db)


def get_record_finalizer(db: DBSession, image_host: ImageHost) -> RecordFinalizer:
    return RecordFinalizer(db, image_host=image_host)


Feed = Annotated[FeedService, Depends(get_feed_service)]
Videos = Annotated[VideoService, Depends(get_video_service)]
Finalizer = Annotated[RecordFinalizer, Depends(get_record_finalizer)]
