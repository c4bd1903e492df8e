"""
Pydantic schemas for request/response validation.
"""

from vidshelf.schemas.video import (
    CommentCreate,
    CommentResponse,
    FeedItem,
    FeedPage,
    LikeToggleResponse,
    MessageResponse,
    UploaderSummary,
    UserProfileResponse,
    VideoDetail,
    VideoPublishResponse,
    VideoRecord,
    VideoUpdate,
    ViewCountResponse,
)

__all__ = [
    "CommentCreate",
    "CommentResponse",
    "FeedItem",
    "FeedPage",
    "LikeToggleResponse",
    "MessageResponse",
    "UploaderSummary",
    "UserProfileResponse",
    "VideoDetail",
    "VideoPublishResponse",
    "VideoRecord",
    "VideoUpdate",
    "ViewCountResponse",
]
