"""
Image host client for custom video thumbnails (imgbb-compatible API).
"""

import base64
from typing import Optional

import httpx

from vidshelf.core.config import settings
from vidshelf.core.exceptions import CollaboratorError
from vidshelf.core.logging import get_logger

logger = get_logger(__name__)


class ImageHostClient:
    """Uploads an image and returns its public URL."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url or settings.IMAGE_HOST_API_URL
        self.api_key = api_key if api_key is not None else settings.IMAGE_HOST_API_KEY
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.IMAGE_HOST_TIMEOUT,
            transport=transport,
        )

    async def __aenter__(self) -> "ImageHostClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def upload(self, image: bytes, filename: Optional[str] = None) -> str:
        """
        Upload raw image bytes.

        Raises:
            CollaboratorError: No API key, transport failure, or an
                               unsuccessful / malformed response
        """
        if not self.api_key:
            raise CollaboratorError("Image host API key is not configured")
        if not image:
            raise CollaboratorError("Refusing to upload an empty image")

        form = {"image": base64.b64encode(image).decode("ascii")}
        if filename:
            form["name"] = filename

        try:
            response = await self._client.post(
                self.api_url,
                params={"key": self.api_key},
                data=form,
            )
            response.raise_for_status()
            payload = response.json()
        except httpx.HTTPError as e:
            raise CollaboratorError(f"Image host request failed: {e}") from e
        except ValueError as e:
            raise CollaboratorError("Image host returned a non-JSON response") from e

        if not isinstance(payload, dict) or not payload.get("success"):
            raise CollaboratorError("Image host rejected the upload")
        data = payload.get("data")
        if not isinstance(data, dict) or not data.get("url"):
            raise CollaboratorError("Image host rejected the upload")

        logger.debug("thumbnail_uploaded", url=data["url"], size=len(image))
        return data["url"]
