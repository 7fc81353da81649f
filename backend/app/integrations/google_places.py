import logging

import httpx

from app.integrations.places_base import PlacesProvider
from app.schemas.place import CachedPlace

logger = logging.getLogger(__name__)

GOOGLE_PLACES_BASE_URL = "https://maps.googleapis.com/maps/api/place"

DETAIL_FIELDS = [
    "place_id",
    "name",
    "rating",
    "user_ratings_total",
    "price_level",
    "geometry",
    "formatted_address",
    "formatted_phone_number",
    "opening_hours",
    "photos",
    "url",
    "website",
]

PHOTO_MAX_WIDTH = 1600


class GooglePlacesProvider(PlacesProvider):
    """Client for the Google Places web service."""

    name = "google"

    def __init__(
        self,
        api_key: str,
        *,
        language: str = "zh-CN",
        region: str = "mx",
        base_url: str = GOOGLE_PLACES_BASE_URL,
    ):
        super().__init__(api_key, language=language, region=region)
        self.base_url = base_url

    async def _get(self, path: str, params: dict) -> dict:
        """GET a Places JSON endpoint with the API key attached."""
        async with httpx.AsyncClient(timeout=30) as client:
            response = await client.get(
                f"{self.base_url}/{path}", params={**params, "key": self.api_key}
            )
            response.raise_for_status()
            return response.json()

    async def find_place_id(self, query: str) -> str:
        if not query:
            return ""
        try:
            data = await self._get(
                "findplacefromtext/json",
                {
                    "input": query,
                    "inputtype": "textquery",
                    "fields": "place_id,name",
                    "language": self.language,
                },
            )
        except Exception as exc:
            logger.warning("Places find failed for %r: %s", query, exc)
            return ""

        if not isinstance(data, dict):
            logger.warning("Places find for %r returned %s", query, type(data).__name__)
            return ""
        candidates = data.get("candidates") or []
        if data.get("status") != "OK" or not candidates:
            logger.warning(
                "Places find failed for %r: %s %s",
                query,
                data.get("status"),
                data.get("error_message", ""),
            )
            return ""
        first = candidates[0] if isinstance(candidates, list) else None
        if not isinstance(first, dict):
            return ""
        return str(first.get("place_id") or "").strip()

    async def fetch_details(self, place_id: str, query: str = "") -> CachedPlace | None:
        if not place_id:
            return None
        try:
            data = await self._get(
                "details/json",
                {
                    "place_id": place_id,
                    "fields": ",".join(DETAIL_FIELDS),
                    "language": self.language,
                },
            )
            result = data.get("result")
            if data.get("status") != "OK" or not result:
                logger.warning(
                    "Places detail failed for %s: %s %s",
                    place_id,
                    data.get("status"),
                    data.get("error_message", ""),
                )
                return None
            return CachedPlace.model_validate(result)
        except Exception as exc:
            logger.warning("Places detail failed for %s: %s", place_id, exc)
            return None

    async def _fetch_photo_reference(self, photo_ref: str) -> tuple[bytes, str] | None:
        return await self._get_bytes(
            f"{self.base_url}/photo",
            params={
                "maxwidth": PHOTO_MAX_WIDTH,
                "photo_reference": photo_ref,
                "key": self.api_key,
            },
        )
