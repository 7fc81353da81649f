import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass

import httpx

from app.schemas.place import CachedPlace

logger = logging.getLogger(__name__)

_HTTP_URL = re.compile(r"^https?://", re.IGNORECASE)


def is_http_url(value: str) -> bool:
    return bool(_HTTP_URL.match(str(value or "")))


@dataclass
class PhotoPayload:
    content: bytes
    content_type: str = "image/jpeg"


class PlacesProvider(ABC):
    """A places backend normalizing its responses to ``CachedPlace``.

    Public methods never raise: failures are logged and reported as
    "not found" (empty string or None).
    """

    name: str = ""

    def __init__(self, api_key: str, *, language: str = "zh-CN", region: str = "mx"):
        self.api_key = api_key
        self.language = language
        self.region = region

    @abstractmethod
    async def find_place_id(self, query: str) -> str:
        """Resolve a free-text query to the first matching place id."""

    @abstractmethod
    async def fetch_details(self, place_id: str, query: str = "") -> CachedPlace | None:
        """Fetch and normalize the details of one place."""

    async def fetch_photo(self, photo_ref: str) -> PhotoPayload | None:
        """Download a photo from an absolute URL or a provider photo reference."""
        if not photo_ref:
            return None
        try:
            if is_http_url(photo_ref):
                content, content_type = await self._get_bytes(photo_ref)
            else:
                fetched = await self._fetch_photo_reference(photo_ref)
                if fetched is None:
                    return None
                content, content_type = fetched
        except Exception as exc:
            logger.warning("%s photo failed: %s", self.name, exc)
            return None
        return PhotoPayload(content=content, content_type=content_type or "image/jpeg")

    async def _fetch_photo_reference(self, photo_ref: str) -> tuple[bytes, str] | None:
        logger.debug("%s cannot resolve non-URL photo reference", self.name)
        return None

    async def _get_bytes(self, url: str, params: dict | None = None) -> tuple[bytes, str]:
        async with httpx.AsyncClient(timeout=30, follow_redirects=True) as client:
            response = await client.get(url, params=params)
            response.raise_for_status()
            return response.content, response.headers.get("content-type", "image/jpeg")
