"""
API routes initialization.

This module aggregates all API routers and provides a single router
to include in the main application.
"""

from fastapi import APIRouter

from vidshelf.api.routes import users, videos

# Create main API router
api_router = APIRouter()

# Catalog, engagement and upload routes
api_router.include_router(videos.router)

# Uploader profiles
api_router.include_router(users.router)
