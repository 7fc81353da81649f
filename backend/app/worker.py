"""In-process background jobs.

The only scheduled job warms the places cache: first after a short start
delay, then once per prefetch interval. Overlapping runs are prevented by
the places cache itself.
"""

import asyncio
import logging

from app.config import Settings
from app.services.company_store import CompanyStore
from app.services.places_cache import PlacesCache

logger = logging.getLogger(__name__)


async def run_prefetch(places: PlacesCache, store: CompanyStore) -> int:
    """Single prefetch pass; never raises."""
    try:
        visited = await places.prefetch_all(store)
    except Exception as exc:
        logger.error("Prefetch run failed: %s", exc)
        return 0
    if visited:
        logger.info("Prefetch warmed %d place(s)", visited)
    return visited


async def prefetch_loop(settings: Settings, places: PlacesCache, store: CompanyStore) -> None:
    """Run prefetch passes forever; cancel the task to stop it."""
    await asyncio.sleep(settings.places_prefetch_start_delay_s)
    interval_s = settings.places_prefetch_interval_days * 24 * 60 * 60
    while True:
        await run_prefetch(places, store)
        await asyncio.sleep(interval_s)


def start_prefetch(settings: Settings, places: PlacesCache, store: CompanyStore) -> asyncio.Task | None:
    """Schedule the prefetch loop when both prefetch and live fetching are on."""
    if not settings.places_prefetch_enabled:
        return None
    if not places.live_enabled:
        logger.info("Place prefetch enabled but live place data is off; not scheduling")
        return None
    logger.info(
        "Scheduling place prefetch every %s day(s), first run in %ss",
        settings.places_prefetch_interval_days,
        settings.places_prefetch_start_delay_s,
    )
    return asyncio.create_task(prefetch_loop(settings, places, store))
