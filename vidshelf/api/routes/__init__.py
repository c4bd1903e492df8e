"""
API route modules.
"""

from vidshelf.api.routes import users, videos

__all__ = ["users", "videos"]
