import logging
import re
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from xml.sax.saxutils import escape as xml_escape

from app.services.company_store import Company
from app.services.directory import RESTAURANT_CITY_ALIASES, is_restaurant, restaurant_city_slug
from app.views.html import encode_uri_component

logger = logging.getLogger(__name__)

_XML_ENTITIES = {'"': "&quot;", "'": "&apos;"}

# Broader than the directory's industry check: catches restaurants filed elsewhere
_RESTAURANT_WORDS = re.compile(r"中餐|火锅|面馆|烧烤|饮品|茶|咖啡|川菜|湘菜|粤菜|烤鸭|饺子|包子|牛肉面|拉面")


@dataclass
class SitemapUrl:
    loc: str
    priority: str
    changefreq: str


def _looks_like_restaurant(company: Company) -> bool:
    if is_restaurant(company):
        return True
    return bool(_RESTAURANT_WORDS.search(f"{company.name} {company.summary} {company.category}".lower()))


def sitemap_urls(companies: list[Company], origin: str) -> list[SitemapUrl]:
    urls = [
        SitemapUrl(f"{origin}/", "1.0", "weekly"),
        SitemapUrl(f"{origin}/companies", "0.8", "weekly"),
        SitemapUrl(f"{origin}/directory", "0.8", "weekly"),
        SitemapUrl(f"{origin}/enterprises", "0.8", "weekly"),
        SitemapUrl(f"{origin}/forum", "0.7", "daily"),
        SitemapUrl(f"{origin}/restaurants", "0.8", "weekly"),
    ]
    counts = dict.fromkeys(RESTAURANT_CITY_ALIASES, 0)
    for company in companies:
        slug = restaurant_city_slug(company.city)
        if slug and _looks_like_restaurant(company):
            counts[slug] += 1
    urls.extend(
        SitemapUrl(f"{origin}/restaurants/{slug}", "0.7", "weekly")
        for slug, count in counts.items()
        if count > 0
    )
    for slug in sorted(company.slug for company in companies):
        urls.append(SitemapUrl(f"{origin}/company/{encode_uri_component(slug)}", "0.6", "monthly"))
    return urls


def build_sitemap(companies: list[Company], origin: str, today: date | None = None) -> str:
    lastmod = (today or date.today()).isoformat()
    entries = "\n".join(
        "  <url>\n"
        f"    <loc>{xml_escape(url.loc, _XML_ENTITIES)}</loc>\n"
        f"    <lastmod>{lastmod}</lastmod>\n"
        f"    <changefreq>{url.changefreq}</changefreq>\n"
        f"    <priority>{url.priority}</priority>\n"
        "  </url>"
        for url in sitemap_urls(companies, origin)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">\n'
        f"{entries}\n"
        "</urlset>\n"
    )


def write_sitemap(companies: list[Company], origin: str, path: Path) -> int:
    """Write the sitemap file; returns the number of URLs."""
    path = Path(path)
    path.write_text(build_sitemap(companies, origin), encoding="utf-8")
    count = len(sitemap_urls(companies, origin))
    logger.info("Sitemap generated at %s with %d URLs.", path, count)
    return count
