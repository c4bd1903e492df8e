"""
Video Models

Models Included:
----------------
1. Video - a published video (one row per external file id)
2. VideoLike - membership of one user in a video's liker set
3. Comment - a comment left on a video

Database Tables:
----------------
- videos: published videos
- video_likes: the liker set, one row per (video, user) pair
- comments: comments, back-referencing a video by id

Derived counts:
---------------
Likes and comments are never counted onto the video row. The feed query
recomputes ``likes_count`` and ``comment_count`` from ``video_likes`` and
``comments`` every time it runs (see vidshelf.services.feed_query).

References between tables:
--------------------------
- ``videos.uploader_id`` and ``comments.video_id`` are plain indexed
  columns, not cascading foreign keys: a vanished uploader must not remove
  videos from the feed, and comments are not owned by their video.
- ``video_likes.video_id`` does cascade: a like means nothing without its
  video.
"""

from sqlalchemy import ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from vidshelf.db.base import BaseModel, String255, String1000


class Video(BaseModel):
    """
    Video model - a published entry in the public catalog.

    Table: videos
    -------------
    - title / description: owner-editable text, both searched by free text
    - file_id: opaque handle issued by the video host, unique per video
    - thumbnail_url: optional custom thumbnail on the image host
    - uploader_id: owning user; set once at creation
    - view_count: monotonic, only ever incremented in place
    """

    __tablename__ = "videos"

    title: Mapped[str] = mapped_column(
        String255,
        nullable=False,
        comment="Video title (non-empty)"
    )

    description: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Free-text description"
    )

    file_id: Mapped[str] = mapped_column(
        String255,
        unique=True,
        nullable=False,
        comment="File handle issued by the video host"
    )

    thumbnail_url: Mapped[str | None] = mapped_column(
        String1000,
        nullable=True,
        comment="Custom thumbnail URL on the image host"
    )

    uploader_id: Mapped[int] = mapped_column(
        Integer,
        index=True,
        nullable=False,
        comment="Owning user id (immutable)"
    )

    view_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Number of recorded views"
    )

    def __repr__(self) -> str:
        return f"Video(id={self.id}, file_id='{self.file_id}')"


class VideoLike(BaseModel):
    """
    One user's membership in a video's liker set.

    The unique (video_id, user_id) pair is what makes the set a set: the
    like toggle relies on it for its add-if-absent insert.
    """

    __tablename__ = "video_likes"

    video_id: Mapped[int] = mapped_column(
        ForeignKey("videos.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
        comment="Liked video"
    )

    user_id: Mapped[int] = mapped_column(
        Integer,
        index=True,
        nullable=False,
        comment="User who liked the video"
    )

    __table_args__ = (
        UniqueConstraint("video_id", "user_id", name="uq_video_likes_video_user"),
    )


class Comment(BaseModel):
    """Comment on a video. Created once, never edited."""

    __tablename__ = "comments"

    video_id: Mapped[int] = mapped_column(
        Integer,
        index=True,
        nullable=False,
        comment="Commented video (back-reference)"
    )

    author_id: Mapped[int] = mapped_column(
        Integer,
        index=True,
        nullable=False,
        comment="Comment author"
    )

    text: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        comment="Comment body (non-empty)"
    )
