"""Place details and photos for company pages.

Lookups go through three layers before the live provider is asked:
local photo files under ``image/place-photos``, the durable JSON disk
cache, and bounded in-memory TTL caches. Live results are written through
to the memory and disk tiers. Every provider failure degrades to "no data"; none
of the public methods raise for an unavailable provider.
"""

import asyncio
import logging
import re
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from cachetools import TTLCache

from app.config import Settings
from app.integrations.google_places import GooglePlacesProvider
from app.integrations.places_base import PhotoPayload, PlacesProvider
from app.integrations.serp_places import SearchApiPlacesProvider, SerpPlacesProvider
from app.schemas.place import CachedPlace
from app.services.company_store import Company, CompanyStore
from app.utils.disk_cache import PlaceDetailsDiskCache

logger = logging.getLogger(__name__)

PHOTO_URL_PREFIX = "/image/place-photos"
MAX_LOCAL_PHOTO_SCAN = 12

# Place ids are used in file names; anything else is refused
_SAFE_PLACE_ID = re.compile(r"^[A-Za-z0-9_:\-]+$")


def is_safe_place_id(place_id: str) -> bool:
    return bool(_SAFE_PLACE_ID.match(place_id or ""))


def is_jpeg(content_type: str) -> bool:
    """Local photo files are always named .jpg, so only JPEG content is saved."""
    return (content_type or "").split(";")[0].strip().lower() in {"image/jpeg", "image/jpg"}


def build_places_provider(settings: Settings) -> PlacesProvider | None:
    """The configured provider, or None when its key is missing."""
    api_key = settings.places_provider_key
    if not api_key:
        return None
    options = {"language": settings.places_language, "region": settings.places_region}
    provider = settings.resolved_places_provider
    if provider == "serpapi":
        return SerpPlacesProvider(api_key, **options)
    if provider == "searchapi":
        return SearchApiPlacesProvider(api_key, **options)
    if provider == "google":
        return GooglePlacesProvider(api_key, **options)
    logger.warning("Unknown places provider %r; live place data disabled", provider)
    return None


@dataclass
class LocalPhoto:
    path: Path
    url: str


class PlacesCache:
    def __init__(
        self,
        settings: Settings,
        provider: PlacesProvider | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self.settings = settings
        self.provider = provider if provider is not None else build_places_provider(settings)
        ttl = settings.places_cache_ttl_s
        max_entries = settings.places_cache_max_entries
        self.details_cache = TTLCache(maxsize=max_entries, ttl=ttl, timer=clock)
        self.place_id_cache = TTLCache(maxsize=max_entries, ttl=ttl, timer=clock)
        self.photo_cache = TTLCache(
            maxsize=settings.place_photo_cache_max_entries, ttl=ttl, timer=clock
        )
        self.disk_cache = PlaceDetailsDiskCache(settings.place_details_cache_path)
        self.photo_dir = Path(settings.place_photo_dir)
        self._prefetch_running = False

    @property
    def live_enabled(self) -> bool:
        return self.settings.places_api_enabled and self.provider is not None

    # ── Local photo files ──────────────────────────────────────────────────

    @staticmethod
    def photo_file_name(place_id: str, index: int = 0) -> str:
        return f"{place_id}-{index}.jpg" if index > 0 else f"{place_id}.jpg"

    def local_photo(self, place_id: str, index: int = 0) -> LocalPhoto | None:
        place_id = (place_id or "").strip()
        if not place_id or not is_safe_place_id(place_id):
            return None
        file_name = self.photo_file_name(place_id, index)
        path = self.photo_dir / file_name
        if path.is_file():
            return LocalPhoto(path=path, url=f"{PHOTO_URL_PREFIX}/{file_name}")
        return None

    def count_local_photos(self, place_id: str) -> int:
        """Number of contiguous local photos starting at index 0."""
        count = 0
        for index in range(MAX_LOCAL_PHOTO_SCAN):
            if self.local_photo(place_id, index) is None:
                break
            count += 1
        return count

    def save_local_photo(self, place_id: str, index: int, photo: PhotoPayload) -> None:
        if not is_safe_place_id(place_id):
            return
        try:
            self.photo_dir.mkdir(parents=True, exist_ok=True)
            (self.photo_dir / self.photo_file_name(place_id, index)).write_bytes(photo.content)
        except OSError as exc:
            logger.warning("Failed to cache place photo %s/%d: %s", place_id, index, exc)

    def photo_url(self, place_id: str, index: int = 0) -> str:
        """Public URL of a place photo: the local file, else the photo proxy route."""
        local = self.local_photo(place_id, index)
        if local:
            return local.url
        place_id = (place_id or "").strip()
        if not self.live_enabled or not place_id or not is_safe_place_id(place_id):
            return ""
        suffix = f"/{index}" if index > 0 else ""
        return f"/api/place-photo/{place_id}{suffix}"

    def cover_url(self, company: Company, place_id: str = "") -> str:
        """Explicit cover, else the first local photo, else the photo proxy URL."""
        from app.views.html import sanitize_cover

        explicit = sanitize_cover(company.cover)
        if explicit:
            return explicit
        place_id = place_id or company.place_id
        local = self.local_photo(place_id, 0)
        if local:
            return sanitize_cover(local.url)
        return self.photo_url(place_id, 0)

    # ── Place ids and details ──────────────────────────────────────────────

    async def resolve_place_id(self, query: str) -> str:
        query = (query or "").strip()
        if not query or not self.live_enabled:
            return ""
        cached = self.place_id_cache.get(query)
        if cached:
            return cached
        try:
            place_id = await self.provider.find_place_id(query)
        except Exception as exc:
            logger.warning("Place lookup failed for %r: %s", query, exc)
            return ""
        if place_id:
            self.place_id_cache[query] = place_id
        return place_id

    async def fetch_place_details(
        self, place_id: str, query: str = "", *, refresh: bool = False
    ) -> CachedPlace | None:
        """Details for one place: memory, then disk, then the live provider.

        ``refresh`` skips both cache tiers and asks the provider directly;
        if that fails the disk entry is still returned.
        """
        place_id = (place_id or "").strip()
        if not place_id:
            return None
        if not refresh:
            cached = self.details_cache.get(place_id)
            if cached is not None:
                return cached
            on_disk = self.disk_cache.get(place_id)
            if on_disk is not None:
                self.details_cache[place_id] = on_disk
                return on_disk
        if not self.live_enabled:
            return self.disk_cache.get(place_id)

        live = await self.provider.fetch_details(place_id, query)
        if live is None:
            return self.disk_cache.get(place_id)
        self.details_cache[place_id] = live
        self.disk_cache.put(place_id, live)
        logger.info("Cached live details for place %s", place_id)
        return live

    async def get_company_place_data(self, company: Company) -> CachedPlace | None:
        explicit_id = company.place_id
        if not self.live_enabled:
            if explicit_id:
                on_disk = self.disk_cache.get(explicit_id)
                if on_disk is not None:
                    return on_disk
            return self.disk_cache.find_by_name(company.name)

        query = company.lookup_query
        place_id = explicit_id or await self.resolve_place_id(query)
        if not place_id:
            return None
        return await self.fetch_place_details(place_id, query)

    # ── Photos ─────────────────────────────────────────────────────────────

    async def fetch_place_photo(self, place_id: str, index: int = 0) -> PhotoPayload | None:
        place_id = (place_id or "").strip()
        if not place_id or not is_safe_place_id(place_id):
            return None
        index = index if index >= 0 else 0
        cache_key = f"{place_id}:{index}"
        cached = self.photo_cache.get(cache_key)
        if cached is not None:
            return cached

        local = self.local_photo(place_id, index)
        if local:
            try:
                payload = PhotoPayload(content=local.path.read_bytes(), content_type="image/jpeg")
            except OSError as exc:
                logger.warning("Failed to read cached photo %s: %s", local.path, exc)
            else:
                self.photo_cache[cache_key] = payload
                return payload

        if not self.live_enabled:
            return None
        details = await self.fetch_place_details(place_id)
        if details is None:
            return None
        if index > 0 and index >= details.photo_count():
            # Out of range: serve the cover without copying it to another index
            return await self.fetch_place_photo(place_id, 0)
        photo_ref = details.photo_reference(index)
        if not photo_ref:
            return None
        payload = await self.provider.fetch_photo(photo_ref)
        if payload is None:
            return None
        self.photo_cache[cache_key] = payload
        if is_jpeg(payload.content_type):
            self.save_local_photo(place_id, index, payload)
        return payload

    # ── Prefetch ───────────────────────────────────────────────────────────

    async def prefetch_all(self, store: CompanyStore) -> int:
        """Warm details and cover photo for every place id, one at a time.

        Returns the number of place ids visited; 0 when another prefetch is
        already running or live fetching is off.
        """
        if self._prefetch_running or not self.live_enabled:
            return 0
        self._prefetch_running = True
        visited = 0
        try:
            place_ids = store.place_ids()
            if place_ids:
                logger.info("Prefetching %d place entries...", len(place_ids))
            for place_id in place_ids:
                await self.fetch_place_details(place_id)
                await self.fetch_place_photo(place_id, 0)
                visited += 1
                if self.settings.places_prefetch_delay_s:
                    await asyncio.sleep(self.settings.places_prefetch_delay_s)
        except Exception as exc:
            logger.warning("Prefetch places failed: %s", exc)
        finally:
            self._prefetch_running = False
        return visited
