"""
Pydantic schemas for the video catalog endpoints.

Wire format is camelCase (``likesCount``, ``isLiked``, ``totalPages``);
Python attributes stay snake_case. Both spellings are accepted on input.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base schema: camelCase aliases, population by field name allowed."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# ========================================
# Shared pieces
# ========================================

class UploaderSummary(CamelModel):
    """Public summary of a user. Both fields are null when the user is gone."""

    id: Optional[int] = None
    username: Optional[str] = None


# ========================================
# Feed
# ========================================

class FeedItem(CamelModel):
    """Read-only projection of a video plus its derived metrics."""

    id: int
    title: str
    description: str
    file_id: str
    thumbnail_url: Optional[str] = None
    view_count: int = 0
    likes_count: int = 0
    comment_count: int = 0
    created_at: datetime
    uploader: UploaderSummary = Field(default_factory=UploaderSummary)
    relevance_score: Optional[float] = Field(
        None,
        description="Text-match score; only present on search results"
    )


class VideoDetail(FeedItem):
    """A single video as seen by a particular caller."""

    is_liked: bool = False


class FeedPage(CamelModel):
    """One window of a feed."""

    items: List[FeedItem]
    current_page: int = Field(..., ge=1)
    total_pages: int = Field(..., ge=0)
    total_items: int = Field(0, ge=0)
    page_size: int = Field(..., ge=1)


# ========================================
# Engagement
# ========================================

class ViewCountResponse(CamelModel):
    """Outcome of a best-effort view increment. Always returned with 200."""

    success: bool
    message: str


class LikeToggleResponse(CamelModel):
    """New like state after a toggle."""

    likes: int = Field(..., ge=0)
    is_liked: bool


class CommentCreate(CamelModel):
    """Request schema for adding a comment."""

    text: str = Field(..., min_length=1, max_length=5000)

    @field_validator("text")
    @classmethod
    def validate_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Comment text cannot be empty")
        return v


class CommentResponse(CamelModel):
    """A comment with its author's public summary."""

    id: int
    video_id: int
    text: str
    created_at: datetime
    author: UploaderSummary


# ========================================
# Owner edits
# ========================================

class VideoUpdate(CamelModel):
    """Owner edit of title and/or description."""

    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @model_validator(mode="after")
    def require_a_change(self) -> "VideoUpdate":
        if self.title is None and self.description is None:
            raise ValueError("Provide a title or a description to update")
        return self


class VideoRecord(CamelModel):
    """The persisted video as created by the finalizer."""

    id: int
    title: str
    description: str
    file_id: str
    thumbnail_url: Optional[str] = None
    uploader_id: int
    view_count: int = 0
    created_at: datetime


class VideoPublishResponse(CamelModel):
    message: str = "Video published successfully!"
    video: VideoRecord


class MessageResponse(CamelModel):
    message: str


# ========================================
# Profiles
# ========================================

class UserProfile(CamelModel):
    id: int
    username: str
    joined: datetime


class UserProfileResponse(CamelModel):
    """An uploader's public profile with their videos, newest first."""

    user: UserProfile
    videos: FeedPage
