"""
Video catalog API endpoints.

Feeds, search, single-video reads, engagement (views, likes, comments),
owner edits, and the upload flows that end in a published record:

Direct upload:
    GET  /videos/get-upload-url          -> browser uploads to the video host
    POST /videos/create-record           -> publish with the returned file id

Remote upload (client-driven polling):
    POST /videos/remote-upload/start     -> remote job id
    GET  /videos/remote-upload/status/id -> one status check per call
    POST /videos/create-record           -> publish once finished

Remote upload (server-driven):
    POST /videos/remote-upload           -> Celery task submits, polls, publishes

Static paths are declared before ``/{video_id}`` so they are never read as ids.
"""

from typing import List, Optional

from fastapi import APIRouter, File, Form, Query, UploadFile, status

from vidshelf.api.deps import Feed, Finalizer, VideoHost, Videos
from vidshelf.core.auth import CurrentUser, OptionalUser
from vidshelf.core.logging import get_logger
from vidshelf.schemas.ingestion import (
    RemoteIngestAccepted,
    RemoteIngestRequest,
    RemoteJobResponse,
    RemoteUploadStartRequest,
    UploadTargetResponse,
)
from vidshelf.schemas.video import (
    CommentCreate,
    CommentResponse,
    FeedItem,
    FeedPage,
    LikeToggleResponse,
    MessageResponse,
    VideoDetail,
    VideoPublishResponse,
    VideoRecord,
    VideoUpdate,
    ViewCountResponse,
)
from vidshelf.services.finalizer import ThumbnailUpload
from vidshelf.services.remote_ingestion import (
    RemoteUploadJob,
    submit_remote_job,
    validate_source_url,
)

logger = get_logger(__name__)

router = APIRouter(prefix="/videos", tags=["Videos"])


# ========================================
# Feeds
# ========================================

@router.get(
    "",
    response_model=FeedPage,
    summary="List videos",
    description=(
        "Windowed feed of all videos. Sort modes: date_desc (default), "
        "views_desc, likes_desc, comments_desc. Unknown modes fall back to date_desc."
    ),
)
async def list_videos(
    feed: Feed,
    sort: Optional[str] = Query(None, description="Sort mode"),
    page: Optional[int] = Query(None, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size override"),
):
    return await feed.list_videos(sort=sort, page=page, limit=limit)


@router.get(
    "/search",
    response_model=FeedPage,
    summary="Search videos",
    description=(
        "Videos whose title or description contains every search term. "
        "Sort defaults to relevance. An empty query returns an empty page."
    ),
)
async def search_videos(
    feed: Feed,
    q: Optional[str] = Query(None, description="Free-text query"),
    sort: Optional[str] = Query(None, description="Sort mode"),
    page: Optional[int] = Query(None, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size override"),
):
    return await feed.search_videos(q, sort=sort, page=page, limit=limit)


# ========================================
# Uploads
# ========================================

@router.get(
    "/get-upload-url",
    response_model=UploadTargetResponse,
    summary="Get a direct upload target",
)
async def get_upload_url(current_user: CurrentUser, host: VideoHost):
    target = await host.get_upload_target()
    logger.info("upload_target_issued", user_id=current_user.id)
    return UploadTargetResponse(**target)


@router.post(
    "/remote-upload/start",
    response_model=RemoteJobResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a remote-URL upload",
    responses={
        422: {"description": "Video URL missing or not http(s)"},
        502: {"description": "Video host did not accept the job"},
    },
)
async def start_remote_upload(
    request: RemoteUploadStartRequest,
    current_user: CurrentUser,
    host: VideoHost,
):
    job = await submit_remote_job(host, request.video_url)
    logger.info("remote_upload_started", remote_id=job.remote_id, user_id=current_user.id)
    return RemoteJobResponse.from_job(job)


@router.get(
    "/remote-upload/status/{remote_id}",
    response_model=RemoteJobResponse,
    summary="Check a remote-URL upload",
    description="Performs one status round trip against the video host.",
)
async def check_remote_upload(remote_id: str, current_user: CurrentUser, host: VideoHost):
    job = RemoteUploadJob(remote_id=remote_id)
    job.apply(await host.fetch_remote_status(remote_id))
    return RemoteJobResponse.from_job(job)


@router.post(
    "/remote-upload",
    response_model=RemoteIngestAccepted,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Ingest a remote URL in the background",
    description=(
        "Queues a worker task that submits the URL, polls the video host "
        "until the job settles, and publishes the video."
    ),
)
async def ingest_remote_upload(request: RemoteIngestRequest, current_user: CurrentUser):
    from vidshelf.tasks.ingestion_tasks import ingest_remote_video

    source_url = validate_source_url(request.video_url)
    task = ingest_remote_video.delay(
        current_user.id,
        source_url,
        request.title,
        request.description,
    )
    logger.info("remote_ingest_queued", task_id=task.id, user_id=current_user.id)
    return RemoteIngestAccepted(task_id=task.id)


@router.post(
    "/create-record",
    response_model=VideoPublishResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Publish an uploaded video",
    responses={
        409: {"description": "This file id is already published"},
        422: {"description": "Title, description or videoId missing"},
    },
)
async def create_video_record(
    current_user: CurrentUser,
    finalizer: Finalizer,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    video_id: Optional[str] = Form(None, alias="videoId"),
    thumbnail_file: Optional[UploadFile] = File(None, alias="thumbnailFile"),
):
    thumbnail = None
    if thumbnail_file is not None:
        thumbnail = ThumbnailUpload(
            content=await thumbnail_file.read(),
            filename=thumbnail_file.filename,
            content_type=thumbnail_file.content_type,
        )

    video = await finalizer.finalize(
        uploader_id=current_user.id,
        title=title,
        description=description,
        file_id=video_id,
        thumbnail=thumbnail,
    )
    return VideoPublishResponse(video=VideoRecord.model_validate(video))


# ========================================
# Single video
# ========================================

@router.get("/{video_id}", response_model=VideoDetail, summary="Get a video")
async def get_video(video_id: int, videos: Videos, current_user: OptionalUser):
    viewer_id = current_user.id if current_user is not None else None
    return await videos.get_detail(video_id, viewer_id=viewer_id)


@router.patch("/{video_id}", response_model=FeedItem, summary="Edit a video")
async def update_video(
    video_id: int,
    changes: VideoUpdate,
    current_user: CurrentUser,
    videos: Videos,
):
    return await videos.update_video(video_id, current_user.id, changes)


@router.delete("/{video_id}", response_model=MessageResponse, summary="Delete a video")
async def delete_video(video_id: int, current_user: CurrentUser, videos: Videos):
    await videos.delete_video(video_id, current_user.id)
    return MessageResponse(message="Video deleted")


# ========================================
# Engagement
# ========================================

@router.post(
    "/{video_id}/view",
    response_model=ViewCountResponse,
    summary="Record a view",
    description="Best-effort; always answers 200 and reports failures as success=false.",
)
async def increment_view_count(video_id: int, videos: Videos):
    return await videos.increment_view(video_id)


@router.post("/{video_id}/like", response_model=LikeToggleResponse, summary="Toggle like")
async def toggle_like(video_id: int, current_user: CurrentUser, videos: Videos):
    return await videos.toggle_like(video_id, current_user.id)


@router.get(
    "/{video_id}/comments",
    response_model=List[CommentResponse],
    summary="List comments, newest first",
)
async def list_comments(video_id: int, videos: Videos):
    return await videos.list_comments(video_id)


@router.post(
    "/{video_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a comment",
)
async def add_comment(
    video_id: int,
    comment: CommentCreate,
    current_user: CurrentUser,
    videos: Videos,
):
    return await videos.add_comment(video_id, current_user, comment.text)
