"""
Public uploader profiles.
"""

from typing import Optional

from fastapi import APIRouter, Query

from vidshelf.api.deps import Videos
from vidshelf.schemas.video import UserProfileResponse

router = APIRouter(prefix="/users", tags=["Users"])


@router.get(
    "/{username}",
    response_model=UserProfileResponse,
    summary="Get an uploader profile",
    description="The user's public summary and their videos, newest first.",
)
async def get_user_profile(
    username: str,
    videos: Videos,
    page: Optional[int] = Query(None, description="1-based page number"),
    limit: Optional[int] = Query(None, description="Page size override"),
):
    return await videos.get_user_profile(username, page=page, limit=limit)
