import logging
import math
import re
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from app.integrations.places_base import PlacesProvider
from app.schemas.place import CachedPlace

logger = logging.getLogger(__name__)

SERPAPI_BASE_URL = "https://serpapi.com/search.json"
SEARCHAPI_BASE_URL = "https://www.searchapi.io/api/v1/search"

_OPEN_WORDS = {"true", "yes", "open", "open now", "营业", "营业中"}
_CLOSED_WORDS = {"false", "no", "closed", "休息", "休息中"}
_CURRENCY_RUN = re.compile(r"[$¥€£]+")


def _finite(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def normalize_open_now(value) -> bool | None:
    if isinstance(value, bool):
        return value
    raw = str(value or "").strip().lower()
    if raw in _OPEN_WORDS:
        return True
    if raw in _CLOSED_WORDS:
        return False
    return None


def normalize_weekday_text(hours) -> list[str]:
    if not isinstance(hours, dict):
        return []
    weekday_text = hours.get("weekday_text")
    if isinstance(weekday_text, list) and len(weekday_text) >= 7:
        return [str(entry) for entry in weekday_text]
    days = hours.get("days")
    if isinstance(days, list):
        lines = []
        for entry in days:
            if not isinstance(entry, dict):
                continue
            day = str(entry.get("day") or "").strip()
            span = str(entry.get("hours") or "").strip()
            if day and span:
                lines.append(f"{day}: {span}")
        return lines
    return []


def normalize_price_level(value) -> int | None:
    """Numeric price level, or the length of a currency-symbol run like ``$$``."""
    numeric = _finite(value)
    if numeric is not None:
        return int(numeric)
    match = _CURRENCY_RUN.search(str(value or ""))
    return len(match.group(0)) if match else None


def normalize_photos(photos) -> list[dict]:
    if not isinstance(photos, list):
        return []
    output = []
    for item in photos:
        if not item:
            continue
        if isinstance(item, str):
            output.append({"photo_reference": item})
            continue
        if not isinstance(item, dict):
            continue
        url = item.get("image") or item.get("photo") or item.get("thumbnail") or item.get("url")
        if not url:
            continue
        photo = {"photo_reference": url}
        for key in ("width", "height"):
            size = _finite(item.get(key))
            if size:
                photo[key] = int(size)
        output.append(photo)
    return output


def maps_url_for_place_id(place_id: str) -> str:
    place_id = str(place_id or "").strip()
    if not place_id:
        return ""
    return f"https://www.google.com/maps/place/?q=place_id:{quote(place_id, safe='')}"


def pick_place_result(data: dict, place_id: str = "") -> dict | None:
    """Pick the result for ``place_id`` from a search response, else the first."""
    local_results = data.get("local_results") if isinstance(data, dict) else None
    local_results = local_results if isinstance(local_results, list) else []
    place_results = (data.get("place_results") or data.get("place_result")) if isinstance(data, dict) else None
    candidates = local_results or ([place_results] if place_results else [])
    if not candidates:
        return None
    if place_id:
        for item in candidates:
            if isinstance(item, dict) and str(item.get("place_id") or "").strip() == place_id:
                return item
    return candidates[0]


def map_serp_place(place: dict | None, fallback_place_id: str = "") -> CachedPlace | None:
    """Normalize a SERP-style google_maps result into a CachedPlace."""
    if not isinstance(place, dict) or not place:
        return None
    place_id = str(place.get("place_id") or fallback_place_id or "").strip()
    rating = _finite(place.get("rating"))
    reviews = _finite(
        place.get("reviews") or place.get("reviews_count") or place.get("user_ratings_total")
    )
    price_level = normalize_price_level(place.get("price_level") or place.get("price"))

    gps = place.get("gps_coordinates") or place.get("gps") or {}
    latitude = _finite(gps.get("latitude", gps.get("lat"))) if isinstance(gps, dict) else None
    longitude = _finite(gps.get("longitude", gps.get("lng"))) if isinstance(gps, dict) else None

    hours = place.get("hours") or place.get("opening_hours") or {}
    opening_hours: dict = {}
    raw_open_now = hours.get("open_now") if isinstance(hours, dict) else None
    if raw_open_now is None:
        raw_open_now = place.get("open_state")
    open_now = normalize_open_now(raw_open_now)
    if open_now is not None:
        opening_hours["open_now"] = open_now
    weekday_text = normalize_weekday_text(hours)
    if weekday_text:
        opening_hours["weekday_text"] = weekday_text

    links = place.get("links") if isinstance(place.get("links"), dict) else {}
    images = place.get("images") if isinstance(place.get("images"), list) else []
    photos = normalize_photos(place.get("photos"))
    maps_url = (
        links.get("google_maps")
        or place.get("google_maps_url")
        or place.get("url")
        or maps_url_for_place_id(place_id)
    )

    payload: dict = {
        "place_id": place_id,
        "name": place.get("title") or place.get("name") or "",
        "rating": rating,
        "user_ratings_total": int(reviews) if reviews is not None else None,
        "price_level": price_level,
        "formatted_address": place.get("address")
        or place.get("full_address")
        or place.get("formatted_address")
        or None,
        "formatted_phone_number": place.get("phone") or place.get("phone_number") or None,
        "opening_hours": opening_hours or None,
        "photos": photos or None,
        "images": images or None,
        "url": maps_url or None,
        "website": place.get("website") or links.get("website") or None,
    }
    if latitude is not None and longitude is not None:
        payload["geometry"] = {"location": {"lat": latitude, "lng": longitude}}
    if isinstance(place.get("thumbnail"), str) and place["thumbnail"]:
        payload["thumbnail"] = place["thumbnail"]
    try:
        return CachedPlace.model_validate(payload)
    except ValidationError as exc:
        logger.warning("Unusable SERP place %s: %s", place_id, exc)
        return None


class SerpPlacesProvider(PlacesProvider):
    """Google Maps results through SerpApi (``engine=google_maps``)."""

    name = "serpapi"
    base_url = SERPAPI_BASE_URL

    async def _get(self, params: dict) -> dict:
        query = {
            key: str(value)
            for key, value in params.items()
            if value is not None and str(value).strip() != ""
        }
        query["api_key"] = self.api_key
        async with httpx.AsyncClient(timeout=30) as client:
            response = await client.get(self.base_url, params=query)
            response.raise_for_status()
            return response.json()

    def _search_params(self, query: str) -> dict:
        return {
            "engine": "google_maps",
            "type": "search",
            "q": query,
            "hl": self.language,
            "gl": self.region,
        }

    async def find_place_id(self, query: str) -> str:
        if not query:
            return ""
        try:
            data = await self._get(self._search_params(query))
        except Exception as exc:
            logger.warning("%s find failed for %r: %s", self.name, query, exc)
            return ""
        if not isinstance(data, dict):
            logger.warning("%s find for %r returned %s", self.name, query, type(data).__name__)
            return ""
        local_results = data.get("local_results") if isinstance(data.get("local_results"), list) else []
        first = local_results[0] if local_results else data.get("place_results")
        if not isinstance(first, dict):
            return ""
        return str(first.get("place_id") or "").strip()

    async def fetch_raw_place(self, place_id: str, query: str = "") -> dict | None:
        """The provider's unnormalized result for one place."""
        data = await self._get(
            {
                "engine": "google_maps",
                "type": "place",
                "place_id": place_id,
                "hl": self.language,
                "gl": self.region,
            }
        )
        if not isinstance(data, dict):
            return None
        place = data.get("place_results") or data.get("place_result")
        if place:
            return place
        local_results = data.get("local_results")
        if isinstance(local_results, list) and local_results:
            return local_results[0]
        return None

    async def fetch_details(self, place_id: str, query: str = "") -> CachedPlace | None:
        if not place_id:
            return None
        try:
            place = await self.fetch_raw_place(place_id, query)
        except Exception as exc:
            logger.warning("%s detail failed for %s: %s", self.name, place_id, exc)
            return None
        return map_serp_place(place, place_id)


class SearchApiPlacesProvider(SerpPlacesProvider):
    """SearchApi.io has no place lookup by id; details re-run the text query."""

    name = "searchapi"
    base_url = SEARCHAPI_BASE_URL

    async def fetch_raw_place(self, place_id: str, query: str = "") -> dict | None:
        query = str(query or "").strip()
        if not query:
            return None
        data = await self._get(self._search_params(query))
        return pick_place_result(data, place_id)
