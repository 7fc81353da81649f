"""Title, description and structured data for company pages."""

import json
import re
from dataclasses import dataclass

from app.schemas.place import CachedPlace
from app.services.company_store import Company
from app.views.html import build_absolute_url, encode_uri_component, escape, format_number

SITE_NAME = "墨西哥中文网"
FALLBACK_IMAGE = "/apple-touch-icon.png"

_GROCERY_RE = re.compile(r"超市|市场|商店")
_CAFE_RE = re.compile(r"饮品|茶|咖啡")
_RESTAURANT_RE = re.compile(r"餐|火锅|面馆|烧烤|中餐")


@dataclass
class CompanySeo:
    title: str
    description: str
    canonical_url: str
    image_url: str
    og_type: str
    structured_data: dict

    def head_html(self, name: str) -> str:
        meta = [
            f'<meta name="description" content="{escape(self.description)}">',
            f'<link rel="canonical" href="{self.canonical_url}">',
            f'<meta property="og:title" content="{escape(self.title)}">',
            f'<meta property="og:description" content="{escape(self.description)}">',
            f'<meta property="og:type" content="{self.og_type}">',
            f'<meta property="og:url" content="{self.canonical_url}">',
            f'<meta property="og:site_name" content="{SITE_NAME}">',
            f'<meta property="og:image" content="{escape(self.image_url)}">',
            f'<meta property="og:image:alt" content="{escape(name)}">',
            '<meta name="twitter:card" content="summary_large_image">',
            f'<meta name="twitter:title" content="{escape(self.title)}">',
            f'<meta name="twitter:description" content="{escape(self.description)}">',
            f'<meta name="twitter:image" content="{escape(self.image_url)}">',
        ]
        data = json.dumps(self.structured_data, ensure_ascii=False).replace("<", "\\u003c")
        meta.append(f'<script type="application/ld+json">{data}</script>')
        return "\n".join(meta)


def category_from_summary(summary: str) -> str:
    """Last ``·``-separated part of a summary like ``川菜 · 火锅``."""
    if "·" not in (summary or ""):
        return ""
    parts = [part.strip() for part in summary.split("·") if part.strip()]
    return parts[-1] if len(parts) > 1 else ""


def category_label(company: Company) -> str:
    raw = company.category or category_from_summary(company.summary)
    if raw == "中餐":
        return "中餐馆"
    return raw


def rating_summary(company: Company, place: CachedPlace | None, label: str) -> str:
    if place is not None and place.rating is not None:
        count = f"（{place.user_ratings_total}）" if place.user_ratings_total else ""
        suffix = f" · {label}" if label else ""
        return f"评分 {format_number(place.rating)}{count}{suffix}"
    return company.summary or label


def schema_type(company: Company, label: str) -> str:
    text = f"{label} {company.industry}"
    if _GROCERY_RE.search(text):
        return "GroceryStore"
    if _CAFE_RE.search(text):
        return "Cafe"
    if _RESTAURANT_RE.search(text):
        return "Restaurant"
    return "LocalBusiness"


def structured_data(
    company: Company, place: CachedPlace | None, url: str, image_url: str, label: str
) -> dict:
    kind = schema_type(company, label)
    payload: dict = {
        "@context": "https://schema.org",
        "@type": kind,
        "name": company.name,
        "url": url,
    }
    if image_url:
        payload["image"] = image_url
    address = (place.formatted_address if place else None) or ""
    if address or company.city:
        payload["address"] = {
            "@type": "PostalAddress",
            "streetAddress": address or company.city,
            "addressLocality": company.city,
            "addressCountry": "MX",
        }
    location = place.location if place else None
    if location is not None:
        payload["geo"] = {"@type": "GeoCoordinates", "latitude": location.lat, "longitude": location.lng}
    elif company.has_coordinates:
        payload["geo"] = {"@type": "GeoCoordinates", "latitude": company.lat, "longitude": company.lng}
    if place is not None and place.rating is not None and place.user_ratings_total:
        payload["aggregateRating"] = {
            "@type": "AggregateRating",
            "ratingValue": place.rating,
            "ratingCount": place.user_ratings_total,
        }
    if label and kind in ("Restaurant", "Cafe"):
        payload["servesCuisine"] = label
    return payload


def build_company_seo(
    company: Company, place: CachedPlace | None, cover_url: str, origin: str
) -> CompanySeo:
    label = category_label(company)
    title = f"{SITE_NAME} - {company.name}"
    if company.city:
        title += f"｜{company.city}"
    if label:
        title += f"｜{label}"

    description = f"{SITE_NAME}收录：{company.name}"
    if company.city:
        description += f"（{company.city}）"
    summary = rating_summary(company, place, label)
    if summary:
        description += f"，{summary}"
    address = (place.formatted_address if place else None) or ""
    description += f"。地址：{address}" if address else "。"

    canonical_url = f"{origin}/company/{encode_uri_component(company.slug)}"
    image_url = build_absolute_url(cover_url, origin) or build_absolute_url(FALLBACK_IMAGE, origin)
    data = structured_data(company, place, canonical_url, image_url, label)
    og_type = "restaurant" if data["@type"] == "Restaurant" else "business.business"
    return CompanySeo(
        title=title,
        description=description,
        canonical_url=canonical_url,
        image_url=image_url,
        og_type=og_type,
        structured_data=data,
    )
