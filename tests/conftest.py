"""
Pytest configuration and fixtures.

This file is automatically discovered by pytest and provides
shared fixtures for all test modules.

Tests run against an in-memory SQLite database (aiosqlite) with tables
created fresh for every test, and against fake collaborator APIs served
through ``httpx.MockTransport``; nothing leaves the process.

References:
-----------
- Pytest Fixtures: https://docs.pytest.org/en/stable/fixture.html
- FastAPI Testing: https://fastapi.tiangolo.com/advanced/async-tests/
- HTTPX Mock Transport: https://www.python-httpx.org/advanced/transports/#mock-transports
"""

import os

# Settings are read at import time; configure the test environment first.
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-at-least-32-characters"
os.environ["LOG_FORMAT"] = "text"
os.environ["IMAGE_HOST_API_KEY"] = "test-image-key"

from typing import AsyncGenerator, Callable, Optional  # noqa: E402
from urllib.parse import parse_qs  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from vidshelf.api.deps import get_image_host, get_video_host  # noqa: E402
from vidshelf.core.config import settings  # noqa: E402
from vidshelf.db.base import Base  # noqa: E402
from vidshelf.db.deps import get_db, get_db_override  # noqa: E402
from vidshelf.main import app  # noqa: E402
from vidshelf.models import User  # noqa: E402
from vidshelf.services.image_host import ImageHostClient  # noqa: E402
from vidshelf.services.ingestion_client import VideoHostClient  # noqa: E402
from tests.factories import bearer, create_user  # noqa: E402

VIDEO_HOST_URL = "https://host.test"
IMAGE_HOST_URL = "https://images.test/1/upload"


# ================================
# Database Fixtures
# ================================

@pytest_asyncio.fixture
async def test_engine():
    """
    In-memory SQLite engine with all tables created.

    StaticPool keeps a single connection so every session in the test sees
    the same in-memory database.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


# ================================
# User Fixtures
# ================================

@pytest_asyncio.fixture
async def alice(db_session: AsyncSession) -> User:
    return await create_user(db_session, "alice")


@pytest_asyncio.fixture
async def bob(db_session: AsyncSession) -> User:
    return await create_user(db_session, "bob")


@pytest_asyncio.fixture
async def inactive_user(db_session: AsyncSession) -> User:
    return await create_user(db_session, "dormant", is_active=False)


# ================================
# Authentication Fixtures
# ================================

@pytest.fixture
def auth_headers(alice: User) -> dict[str, str]:
    return bearer(alice)


# ================================
# Fake Collaborator APIs
# ================================

class FakeVideoHostAPI:
    """
    Scripted stand-in for the video host, used as an httpx.MockTransport handler.

    - ``remote_ids``: ids handed out by /remote/add, in order (None = no id)
    - ``statuses``: per remote id, the entries /remote/status returns in
      order; the last entry repeats once the script runs out
    - ``down``: paths that answer 503
    """

    def __init__(self):
        self.upload_url = "https://upload.host.test/u/abc123"
        self.remote_ids: list[Optional[str]] = ["R1"]
        self.statuses: dict[str, list[dict]] = {}
        self.down: set[str] = set()
        self.requests: list[httpx.Request] = []

    def paths(self) -> list[str]:
        return [request.url.path for request in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path

        if path in self.down:
            return httpx.Response(503, json={"status": 503, "msg": "unavailable"})

        if path == "/upload/url":
            return httpx.Response(200, json={"status": 200, "result": {"url": self.upload_url}})

        if path == "/remote/add":
            remote_id = self.remote_ids.pop(0) if self.remote_ids else None
            return httpx.Response(200, json={"status": 200, "result": {"id": remote_id}})

        if path == "/remote/status":
            remote_id = request.url.params["id"]
            script = self.statuses.get(remote_id) or [{"status": "new"}]
            entry = script.pop(0) if len(script) > 1 else script[0]
            return httpx.Response(200, json={"status": 200, "result": {remote_id: entry}})

        return httpx.Response(404, json={"msg": "not found"})


class FakeImageHostAPI:
    """imgbb-style image host. Set ``fail`` to make every upload fail."""

    def __init__(self):
        self.fail = False
        self.uploads: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = {key: values[0] for key, values in parse_qs(request.content.decode()).items()}
        self.uploads.append({"key": request.url.params.get("key"), **form})

        if self.fail:
            return httpx.Response(500, json={"success": False, "status": 500})

        return httpx.Response(
            200,
            json={
                "success": True,
                "status": 200,
                "data": {"url": f"https://i.images.test/{len(self.uploads)}.png"},
            },
        )


@pytest.fixture
def video_host_api() -> FakeVideoHostAPI:
    return FakeVideoHostAPI()


@pytest.fixture
def image_host_api() -> FakeImageHostAPI:
    return FakeImageHostAPI()


@pytest_asyncio.fixture
async def video_host(video_host_api: FakeVideoHostAPI) -> AsyncGenerator[VideoHostClient, None]:
    async with VideoHostClient(
        base_url=VIDEO_HOST_URL,
        transport=httpx.MockTransport(video_host_api),
    ) as client:
        yield client


@pytest_asyncio.fixture
async def image_host(image_host_api: FakeImageHostAPI) -> AsyncGenerator[ImageHostClient, None]:
    async with ImageHostClient(
        api_url=IMAGE_HOST_URL,
        api_key="test-image-key",
        transport=httpx.MockTransport(image_host_api),
    ) as client:
        yield client


# ================================
# FastAPI Client Fixtures
# ================================

@pytest_asyncio.fixture
async def client(
    db_session: AsyncSession,
    video_host: VideoHostClient,
    image_host: ImageHostClient,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Async HTTP client bound to the app, with the database session and both
    collaborator clients overridden.

    Usage:
        async def test_something(client: AsyncClient):
            response = await client.get("/api/v1/videos")
            assert response.status_code == 200
    """
    app.dependency_overrides[get_db] = get_db_override(db_session)
    app.dependency_overrides[get_video_host] = lambda: video_host
    app.dependency_overrides[get_image_host] = lambda: image_host

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
def api() -> Callable[[str], str]:
    """Prefix a path with the API version prefix."""
    return lambda path: f"{settings.API_V1_PREFIX}{path}"
