"""
Video Host Client

Thin async client for the external video host ("AuraHub"). The host stores
the video bytes; the catalog only keeps the file id it hands back.

Endpoints used:
---------------
GET {base}/upload/url              one-time direct upload target
GET {base}/remote/add?url=...      start a remote-URL fetch, returns its id
GET {base}/remote/status?id=...    status of a remote fetch, keyed by id

Every transport failure or unreadable payload is raised as
``CollaboratorError``; callers decide whether that is fatal.
"""

from typing import Any, Optional

import httpx

from vidshelf.core.config import settings
from vidshelf.core.exceptions import CollaboratorError, RemoteSubmissionError
from vidshelf.core.logging import get_logger
from vidshelf.services.remote_ingestion import RemoteJobStatus, RemoteStatusUpdate

logger = get_logger(__name__)


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _unwrap(payload: Any) -> Any:
    """The host sometimes wraps its data as ``{"status": 200, "result": ...}``."""
    if isinstance(payload, dict) and "result" in payload:
        return payload["result"]
    return payload


class VideoHostClient:
    """
    Client for the video host API.

    Usage:
    ------
    async with VideoHostClient() as host:
        target = await host.get_upload_target()
        remote_id = await host.submit_remote("https://example.com/a.mp4")
        update = await host.fetch_remote_status(remote_id)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Args:
            base_url: Host API root (defaults to INGEST_API_BASE_URL)
            timeout: Per-request timeout in seconds (defaults to INGEST_REQUEST_TIMEOUT)
            transport: Custom httpx transport, e.g. ``httpx.MockTransport`` in tests
        """
        self.base_url = (base_url or settings.INGEST_API_BASE_URL).rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or settings.INGEST_REQUEST_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self) -> "VideoHostClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get(self, path: str, params: Optional[dict] = None) -> Any:
        try:
            response = await self._client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.warning(
                "video_host_http_error",
                path=path,
                status_code=e.response.status_code,
            )
            raise CollaboratorError(
                f"Video host returned HTTP {e.response.status_code} for {path}"
            ) from e
        except httpx.HTTPError as e:
            logger.warning("video_host_unreachable", path=path, error=str(e))
            raise CollaboratorError(f"Video host request failed: {e}") from e
        except ValueError as e:
            logger.warning("video_host_bad_payload", path=path)
            raise CollaboratorError("Video host returned a non-JSON response") from e

    # ========================================
    # Direct upload
    # ========================================

    async def get_upload_target(self) -> dict[str, Any]:
        """
        Fetch a one-time upload URL for a browser-side direct upload.

        Returns:
            {"url": str, "valid_until": str | None}
        """
        payload = await self._get("/upload/url")
        data = _unwrap(payload)

        if isinstance(data, str):
            return {"url": data, "valid_until": None}
        if isinstance(data, dict) and data.get("url"):
            return {"url": data["url"], "valid_until": data.get("valid_until") or data.get("validUntil")}
        if isinstance(payload, dict) and payload.get("url"):
            return {"url": payload["url"], "valid_until": payload.get("valid_until")}

        raise CollaboratorError("Video host did not return an upload URL")

    # ========================================
    # Remote upload
    # ========================================

    async def submit_remote(self, source_url: str) -> str:
        """
        Start a remote-URL fetch on the host.

        Raises:
            RemoteSubmissionError: If the host answered without an id
            CollaboratorError: On transport failure
        """
        payload = await self._get("/remote/add", params={"url": source_url})
        data = _unwrap(payload)

        remote_id = data.get("id") if isinstance(data, dict) else None
        if not remote_id:
            message = payload.get("msg") if isinstance(payload, dict) else None
            raise RemoteSubmissionError(message or "Video host did not return a remote upload id")
        return str(remote_id)

    async def fetch_remote_status(self, remote_id: str) -> RemoteStatusUpdate:
        """
        One status round trip for a remote fetch.

        The host answers with a mapping keyed by remote id::

            {"R1": {"status": "downloading", "bytes_loaded": 1000,
                    "bytes_total": 5000, "linkid": null}}

        Entries for other ids are never used.
        """
        payload = await self._get("/remote/status", params={"id": remote_id})
        data = _unwrap(payload)

        if not isinstance(data, dict) or not data:
            raise CollaboratorError(f"Video host returned no status for {remote_id}")

        if remote_id in data:
            entry = data[remote_id]
        elif isinstance(data.get("status"), str):
            # Un-keyed single status
            entry = data
        else:
            raise CollaboratorError(f"Video host returned no status for {remote_id}")
        if not isinstance(entry, dict):
            raise CollaboratorError(f"Video host returned an unreadable status for {remote_id}")

        status = RemoteJobStatus.from_remote(entry.get("status"))
        error_message = None
        if status is RemoteJobStatus.ERROR:
            error_message = entry.get("error") or entry.get("msg") or entry.get("message")

        return RemoteStatusUpdate(
            status=status,
            bytes_loaded=_as_int(entry.get("bytes_loaded")),
            bytes_total=_as_int(entry.get("bytes_total")),
            file_id=entry.get("linkid") or None,
            error_message=error_message,
        )
