"""
Database models.

Importing this package registers every table on ``Base.metadata``.
"""

from vidshelf.models.user import User
from vidshelf.models.video import Comment, Video, VideoLike

__all__ = [
    "User",
    "Video",
    "VideoLike",
    "Comment",
]
