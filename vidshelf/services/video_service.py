"""
Video Service

Per-video operations outside the feed: detail reads, engagement (views,
likes, comments), owner edits and uploader profiles.

Concurrency:
------------
- Views are a single ``UPDATE ... SET view_count = view_count + 1``.
- The like toggle never loads the liker set. It first deletes the caller's
  like (remove-if-present); only if nothing was deleted does it insert one
  with ``ON CONFLICT DO NOTHING`` (add-if-absent). Two concurrent toggles by
  different users cannot overwrite each other.
"""

from typing import Optional

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.core.exceptions import AuthorizationError, NotFoundError
from vidshelf.core.logging import get_logger
from vidshelf.models import Comment, User, Video, VideoLike
from vidshelf.schemas.video import (
    CommentResponse,
    FeedItem,
    LikeToggleResponse,
    UploaderSummary,
    UserProfile,
    UserProfileResponse,
    VideoDetail,
    VideoUpdate,
    ViewCountResponse,
)
from vidshelf.services.feed_service import FeedService

logger = get_logger(__name__)


class VideoService:
    """Engagement and ownership operations on single videos."""

    def __init__(self, db: AsyncSession, feed: Optional[FeedService] = None):
        self.db = db
        self.feed = feed or FeedService(db)

    # ========================================
    # Helpers
    # ========================================

    async def _get_video(self, video_id: int) -> Video:
        video = await self.db.get(Video, video_id)
        if video is None:
            raise NotFoundError(f"Video {video_id} not found")
        return video

    async def _ensure_video_exists(self, video_id: int) -> None:
        exists = await self.db.scalar(select(Video.id).where(Video.id == video_id))
        if exists is None:
            raise NotFoundError(f"Video {video_id} not found")

    async def _likes_count(self, video_id: int) -> int:
        count = await self.db.scalar(
            select(func.count(VideoLike.id)).where(VideoLike.video_id == video_id)
        )
        return count or 0

    async def _is_liked(self, video_id: int, user_id: int) -> bool:
        like_id = await self.db.scalar(
            select(VideoLike.id).where(
                VideoLike.video_id == video_id,
                VideoLike.user_id == user_id,
            )
        )
        return like_id is not None

    def _insert_like_if_absent(self, video_id: int, user_id: int):
        dialect = self.db.get_bind().dialect.name
        insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
        return (
            insert(VideoLike)
            .values(video_id=video_id, user_id=user_id)
            .on_conflict_do_nothing(index_elements=["video_id", "user_id"])
        )

    # ========================================
    # Reads
    # ========================================

    async def get_detail(self, video_id: int, viewer_id: Optional[int] = None) -> VideoDetail:
        """
        A single video plus whether ``viewer_id`` has liked it.

        Anonymous callers always see ``is_liked = False``.
        """
        item = await self.feed.get_item(video_id)
        is_liked = False
        if viewer_id is not None:
            is_liked = await self._is_liked(video_id, viewer_id)
        return VideoDetail(**item.model_dump(), is_liked=is_liked)

    async def list_comments(self, video_id: int) -> list[CommentResponse]:
        """
        Comments on a video, newest first, with author summaries.

        Raises:
            NotFoundError: If the video does not exist
        """
        await self._ensure_video_exists(video_id)
        result = await self.db.execute(
            select(Comment, User.username)
            .outerjoin(User, User.id == Comment.author_id)
            .where(Comment.video_id == video_id)
            .order_by(Comment.created_at.desc(), Comment.id.desc())
        )
        return [
            self._comment_response(comment, username)
            for comment, username in result.all()
        ]

    @staticmethod
    def _comment_response(comment: Comment, username: Optional[str]) -> CommentResponse:
        return CommentResponse(
            id=comment.id,
            video_id=comment.video_id,
            text=comment.text,
            created_at=comment.created_at,
            author=UploaderSummary(
                id=comment.author_id if username is not None else None,
                username=username,
            ),
        )

    async def get_user_profile(
        self,
        username: str,
        page: Optional[int] = None,
        limit: Optional[int] = None,
    ) -> UserProfileResponse:
        """Public profile of an uploader and their videos, newest first."""
        user = await self.db.scalar(select(User).where(User.username == username))
        if user is None:
            raise NotFoundError(f"User {username} not found")

        videos = await self.feed.uploader_videos(user.id, page=page, limit=limit)
        return UserProfileResponse(
            user=UserProfile(id=user.id, username=user.username, joined=user.created_at),
            videos=videos,
        )

    # ========================================
    # Engagement
    # ========================================

    async def increment_view(self, video_id: int) -> ViewCountResponse:
        """
        Best-effort view counter.

        Never raises: a failure is logged and reported as
        ``success=False`` so playback is never interrupted.
        """
        try:
            result = await self.db.execute(
                update(Video)
                .where(Video.id == video_id)
                .values(view_count=Video.view_count + 1)
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.warning(
                "view_increment_failed",
                video_id=video_id,
                error=str(e),
                exc_info=True,
            )
            return ViewCountResponse(success=False, message="Could not increment view count.")

        if result.rowcount == 0:
            logger.debug("view_increment_unknown_video", video_id=video_id)
            return ViewCountResponse(success=False, message="Could not increment view count.")
        return ViewCountResponse(success=True, message="View count incremented.")

    async def toggle_like(self, video_id: int, user_id: int) -> LikeToggleResponse:
        """
        Flip the caller's membership in the liker set.

        Raises:
            NotFoundError: If the video does not exist
        """
        await self._ensure_video_exists(video_id)

        removed = await self.db.execute(
            delete(VideoLike).where(
                VideoLike.video_id == video_id,
                VideoLike.user_id == user_id,
            )
        )
        is_liked = removed.rowcount == 0
        if is_liked:
            await self.db.execute(self._insert_like_if_absent(video_id, user_id))
        await self.db.commit()

        likes = await self._likes_count(video_id)
        logger.info("video_like_toggled", video_id=video_id, user_id=user_id, is_liked=is_liked, likes=likes)
        return LikeToggleResponse(likes=likes, is_liked=is_liked)

    async def add_comment(self, video_id: int, author: User, text: str) -> CommentResponse:
        """
        Raises:
            NotFoundError: If the video does not exist
        """
        await self._ensure_video_exists(video_id)

        comment = Comment(video_id=video_id, author_id=author.id, text=text)
        self.db.add(comment)
        await self.db.commit()
        await self.db.refresh(comment)

        logger.info("comment_added", video_id=video_id, comment_id=comment.id, author_id=author.id)
        return self._comment_response(comment, author.username)

    # ========================================
    # Owner operations
    # ========================================

    async def update_video(self, video_id: int, user_id: int, changes: VideoUpdate) -> FeedItem:
        """
        Edit title and/or description.

        Raises:
            NotFoundError: If the video does not exist
            AuthorizationError: If ``user_id`` is not the uploader
        """
        video = await self._get_video(video_id)
        if video.uploader_id != user_id:
            raise AuthorizationError("Only the uploader can edit this video")

        if changes.title is not None:
            video.title = changes.title
        if changes.description is not None:
            video.description = changes.description
        await self.db.commit()

        logger.info("video_updated", video_id=video_id, fields=sorted(changes.model_dump(exclude_none=True)))
        return await self.feed.get_item(video_id)

    async def delete_video(self, video_id: int, user_id: int) -> None:
        """
        Remove a video and its liker set. Comments are left in place.

        Raises:
            NotFoundError: If the video does not exist
            AuthorizationError: If ``user_id`` is not the uploader
        """
        video = await self._get_video(video_id)
        if video.uploader_id != user_id:
            raise AuthorizationError("Only the uploader can delete this video")

        await self.db.execute(delete(VideoLike).where(VideoLike.video_id == video_id))
        await self.db.delete(video)
        await self.db.commit()
        logger.info("video_deleted", video_id=video_id, user_id=user_id)
