"""
Session dependency for FastAPI routes.

Services receive the request's ``AsyncSession`` through ``DBSession``; the
session is rolled back if the request fails and closed when it ends. Tests
pin every request to one session with ``get_db_override``.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vidshelf.db.session import get_session


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Per-request session. Services commit explicitly once their checks pass."""
    async for session in get_session():
        yield session


DBSession = Annotated[AsyncSession, Depends(get_db)]


def get_db_override(session: AsyncSession) -> Callable[[], AsyncGenerator[AsyncSession, None]]:
    """
    Dependency that always yields ``session``.

        app.dependency_overrides[get_db] = get_db_override(db_session)
    """
    async def _override() -> AsyncGenerator[AsyncSession, None]:
        yield session

    return _override


__all__ = ["get_db", "DBSession", "get_db_override"]
