"""
Operator commands for the directory site.

Usage:
  directory-cli sitemap                # write sitemap.xml
  directory-cli cache-photos           # resolve place ids, download cover photos
  directory-cli refresh-places         # force a live refresh of all place details
  directory-cli prefetch               # warm place details and cover photos once
"""

import argparse
import asyncio
import logging
import sys

from app.config import Settings, settings
from app.integrations.serp_places import SerpPlacesProvider
from app.services.company_store import CompanyStore
from app.services.photo_harvest import PhotoHarvester
from app.services.places_cache import PlacesCache, build_places_provider
from app.services.sitemap import write_sitemap
from app.worker import run_prefetch

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("directory-cli")


def cmd_sitemap(app_settings: Settings, args: argparse.Namespace) -> int:
    store = CompanyStore(app_settings.companies_path)
    output = args.output or app_settings.sitemap_path
    write_sitemap(store.load(), app_settings.site_origin_clean, output)
    return 0


async def cmd_cache_photos(app_settings: Settings, args: argparse.Namespace) -> int:
    provider = build_places_provider(app_settings)
    if not isinstance(provider, SerpPlacesProvider):
        logger.error(
            "cache-photos needs the serpapi or searchapi provider with its key (current: %s)",
            app_settings.resolved_places_provider,
        )
        return 1
    harvester = PhotoHarvester(
        provider,
        app_settings.place_photo_dir,
        min_bytes=args.min_bytes or app_settings.place_photo_min_bytes,
        interval_s=app_settings.places_api_interval_ms / 1000,
    )
    report = await harvester.run(CompanyStore(app_settings.companies_path))
    print(f"Updated covers: {report.updated}")
    print(f"Resolved place ids: {report.resolved_place_ids}")
    if report.missing:
        print("Missing cover ids:")
        for name in report.missing:
            print(f"- {name}")
    return 0


async def cmd_refresh_places(app_settings: Settings, args: argparse.Namespace) -> int:
    places = PlacesCache(app_settings)
    if not places.live_enabled:
        logger.error("Live place data is disabled; set PLACES_API_ENABLED and a provider key")
        return 1
    store = CompanyStore(app_settings.companies_path)
    refreshed = failed = 0
    for company in store.load():
        if not company.place_id:
            continue
        place = await places.fetch_place_details(
            company.place_id, company.lookup_query, refresh=True
        )
        if place is None:
            failed += 1
            logger.warning("No details for %s (%s)", company.slug, company.place_id)
        else:
            refreshed += 1
        await asyncio.sleep(app_settings.places_api_interval_ms / 1000)
    print(f"Refreshed: {refreshed}, failed: {failed}")
    return 0 if failed == 0 else 2


async def cmd_prefetch(app_settings: Settings, args: argparse.Namespace) -> int:
    places = PlacesCache(app_settings)
    if not places.live_enabled:
        logger.error("Live place data is disabled; nothing to prefetch")
        return 1
    visited = await run_prefetch(places, CompanyStore(app_settings.companies_path))
    print(f"Prefetched: {visited}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="directory-cli", description="Directory site operator commands"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    sitemap = sub.add_parser("sitemap", help="Write sitemap.xml")
    sitemap.add_argument("--output", help="Output path (default: SITEMAP_PATH)")

    photos = sub.add_parser("cache-photos", help="Download cover photos for all companies")
    photos.add_argument("--min-bytes", type=int, default=0, help="Smallest acceptable photo")

    sub.add_parser("refresh-places", help="Force a live refresh of every place")
    sub.add_parser("prefetch", help="Warm place details and cover photos once")
    return parser


def main(argv: list[str] | None = None, app_settings: Settings | None = None) -> int:
    args = build_parser().parse_args(argv)
    app_settings = app_settings or settings
    if args.command == "sitemap":
        return cmd_sitemap(app_settings, args)
    commands = {
        "cache-photos": cmd_cache_photos,
        "refresh-places": cmd_refresh_places,
        "prefetch": cmd_prefetch,
    }
    return asyncio.run(commands[args.command](app_settings, args))


if __name__ == "__main__":
    sys.exit(main())
