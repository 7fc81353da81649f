"""Offline cover-photo harvesting for the companies file.

Resolves missing place ids, downloads the largest usable photo for each
place into the place-photo directory and points ``cover`` at the photo
route. Run from ``directory-cli cache-photos``.
"""

import asyncio
import logging
import re
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import parse_qsl, urlencode, urlparse, urlunparse

import httpx

from app.integrations.places_base import is_http_url
from app.integrations.serp_places import SerpPlacesProvider
from app.services.company_store import CompanyStore, parse_company
from app.services.places_cache import is_safe_place_id

logger = logging.getLogger(__name__)

MAX_DOWNLOAD_ATTEMPTS = 6
MAX_429_RETRIES = 2
BACKOFF_STEP_S = 1.5
UPGRADE_WIDTH = 1600
UPGRADE_HEIGHT = 1200

_SIZE_WH = re.compile(r"=w(\d+)-h(\d+)")
_SIZE_S = re.compile(r"=s(\d+)")


@dataclass
class PhotoCandidate:
    url: str
    width: int = 0
    height: int = 0

    @property
    def area(self) -> int:
        return self.width * self.height


@dataclass
class HarvestReport:
    updated: int = 0
    resolved_place_ids: int = 0
    missing: list[str] = field(default_factory=list)


def parse_size_from_url(url: str) -> tuple[int, int]:
    match = _SIZE_WH.search(url or "")
    if match:
        return int(match.group(1)), int(match.group(2))
    match = _SIZE_S.search(url or "")
    if match:
        return int(match.group(1)), int(match.group(1))
    return 0, 0


def upgrade_photo_url(url: str, width: int = UPGRADE_WIDTH, height: int = UPGRADE_HEIGHT) -> str:
    """Ask Google image hosts for a large rendition of the same photo."""
    raw = url or ""
    if "streetviewpixels-pa.googleapis.com" in raw:
        parsed = urlparse(raw)
        params = [
            (key, str(width) if key == "w" else str(height) if key == "h" else value)
            for key, value in parse_qsl(parsed.query, keep_blank_values=True)
        ]
        return urlunparse(parsed._replace(query=urlencode(params)))
    if "googleusercontent.com" not in raw:
        return raw
    if "=s" in raw:
        return re.sub(r"=s\d+(-k-no)?", f"=s{width}-k-no", raw, count=1)
    if "=w" in raw and "-h" in raw:
        return re.sub(r"=w\d+-h\d+(-k-no)?", f"=w{width}-h{height}-k-no", raw, count=1)
    return raw


def _candidate(item) -> PhotoCandidate | None:
    if not item:
        return None
    if isinstance(item, str):
        return PhotoCandidate(url=item)
    if not isinstance(item, dict):
        return None
    url = item.get("image") or item.get("photo") or item.get("thumbnail") or item.get("url") or ""
    if not url:
        return None
    try:
        width = int(item.get("width") or 0)
        height = int(item.get("height") or 0)
    except (TypeError, ValueError):
        width = height = 0
    return PhotoCandidate(url=url, width=width, height=height)


def extract_candidates(place: dict | None) -> list[PhotoCandidate]:
    """Photo candidates of a raw SERP result, largest first."""
    if not isinstance(place, dict):
        return []
    items: list = []
    if place.get("thumbnail"):
        items.append(place["thumbnail"])
    for key in ("images", "photos"):
        if isinstance(place.get(key), list):
            items.extend(place[key])

    candidates = []
    for item in items:
        candidate = _candidate(item)
        if candidate is None or not is_http_url(candidate.url):
            continue
        parsed_width, parsed_height = parse_size_from_url(candidate.url)
        candidate.width = candidate.width or parsed_width
        candidate.height = candidate.height or parsed_height
        candidates.append(candidate)
    return sorted(candidates, key=lambda c: c.area, reverse=True)


class PhotoHarvester:
    def __init__(
        self,
        provider: SerpPlacesProvider,
        photo_dir: Path,
        *,
        min_bytes: int,
        interval_s: float,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.provider = provider
        self.photo_dir = Path(photo_dir)
        self.min_bytes = min_bytes
        self.interval_s = interval_s
        self._sleep = sleep
        self._clock = clock
        self._last_call: float | None = None
        self._memo: dict[str, bool] = {}

    async def _throttle(self) -> None:
        if self._last_call is not None:
            wait = self.interval_s - (self._clock() - self._last_call)
            if wait > 0:
                await self._sleep(wait)
        self._last_call = self._clock()

    async def _download(self, url: str) -> bytes:
        """GET ``url``, backing off linearly on HTTP 429."""
        attempt = 0
        while True:
            async with httpx.AsyncClient(timeout=30, follow_redirects=True) as client:
                response = await client.get(url)
            if response.status_code == 429 and attempt < MAX_429_RETRIES:
                attempt += 1
                await self._sleep(attempt * BACKOFF_STEP_S)
                continue
            response.raise_for_status()
            return response.content

    def photo_path(self, place_id: str) -> Path:
        return self.photo_dir / f"{place_id}.jpg"

    async def ensure_photo(self, place_id: str, query: str = "") -> bool:
        if not place_id or not is_safe_place_id(place_id):
            return False
        if place_id in self._memo:
            return self._memo[place_id]
        if self.photo_path(place_id).is_file():
            self._memo[place_id] = True
            return True

        try:
            await self._throttle()
            place = await self.provider.fetch_raw_place(place_id, query)
        except Exception as exc:
            logger.warning("Place details failed for %s: %s", place_id, exc)
            self._memo[place_id] = False
            return False

        for candidate in extract_candidates(place)[:MAX_DOWNLOAD_ATTEMPTS]:
            url = upgrade_photo_url(candidate.url)
            try:
                content = await self._download(url)
            except Exception as exc:
                logger.warning("Photo download failed (%s): %s", place_id, exc)
                continue
            if len(content) < self.min_bytes:
                logger.debug("Skipping small photo for %s (%d bytes)", place_id, len(content))
                continue
            self.photo_dir.mkdir(parents=True, exist_ok=True)
            self.photo_path(place_id).write_bytes(content)
            self._memo[place_id] = True
            return True
        self._memo[place_id] = False
        return False

    async def run(self, store: CompanyStore) -> HarvestReport:
        """Fill in place ids and covers for every company and save the file."""
        records = store.load_raw()
        report = HarvestReport()
        for record in records:
            company = parse_company(record)
            if company is None:
                continue
            query = company.lookup_query
            place_id = company.place_id
            if not place_id and query:
                await self._throttle()
                place_id = await self.provider.find_place_id(query)
                if place_id:
                    record["placeId"] = place_id
                    report.resolved_place_ids += 1

            fallback_id = company.building_place_id
            if await self.ensure_photo(place_id, query):
                cover_id = place_id
            elif await self.ensure_photo(fallback_id, query):
                cover_id = fallback_id
            else:
                cover_id = place_id or fallback_id

            if cover_id:
                record["cover"] = f"/api/place-photo/{cover_id}"
                report.updated += 1
            else:
                record["cover"] = ""
                report.missing.append(company.name or company.slug)

        store.save_raw(records)
        logger.info(
            "Updated covers: %d, resolved place ids: %d", report.updated, report.resolved_place_ids
        )
        return report
