"""Company detail page: view model assembly and rendering."""

import math
import re
from dataclasses import dataclass, field
from datetime import date
from urllib.parse import parse_qs, urlparse

from app.schemas.place import CachedPlace
from app.services.company_store import Company
from app.services.places_cache import PlacesCache
from app.views.html import encode_uri_component, escape, format_number, sanitize_url
from app.views.layout import SiteLayout
from app.views.seo import CompanySeo, build_company_seo

HERO_THUMB_SLOTS = 4
SUMMARY_TAG_MAX = 18
DETAIL_LOCKED_MESSAGE = "该企业未开通详情展示，如需展示请联系站长。"
MAP_LINK_LABEL = "在 Google 地图中查看"

_SUMMARY_SPLIT = re.compile(r"[，,]")
_HOURS_SPLIT = re.compile(r"[:：]")
_WHITESPACE = re.compile(r"\s+")


@dataclass
class SummaryLine:
    label: str
    text: str


@dataclass
class HeroView:
    cover_url: str = ""
    thumbnails: list[str] = field(default_factory=list)
    link: str = ""
    gallery: list[str] = field(default_factory=list)


@dataclass
class ActionButton:
    kind: str  # "website" | "map" | "phone" | "copy"
    label: str
    target: str
    primary: bool = False


@dataclass
class CompanyPageView:
    company: Company
    seo: CompanySeo
    hero: HeroView
    value_parts: list[str]
    today_hours: str
    summary_lines: list[SummaryLine]
    actions: list[ActionButton]
    phone: str
    map_link: str
    map_embed_url: str
    address: str
    rating_text: str
    detail_unlocked: bool


def format_price_level(value) -> str:
    if value is None or isinstance(value, bool):
        return ""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return ""
    if not math.isfinite(number):
        return ""
    clamped = max(0, min(4, round(number)))
    if clamped == 0:
        return "免费"
    return "¥" * clamped


def split_summary_lines(summary: str) -> list[SummaryLine]:
    raw = (summary or "").strip()
    if not raw:
        return []
    parts = [part.strip() for part in _SUMMARY_SPLIT.split(raw) if part.strip()]
    if len(parts) > 1:
        return [SummaryLine("主打", parts[0]), SummaryLine("适合", "，".join(parts[1:]))]
    return [SummaryLine("亮点", raw)]


def today_hours(weekday_text: list[str], today: date) -> str:
    """Hours text for ``today`` from a Monday-first seven-day list."""
    if len(weekday_text) < 7:
        return ""
    entry = str(weekday_text[today.weekday()] or "").strip()
    parts = _HOURS_SPLIT.split(entry)
    if not entry or len(parts) < 2:
        return ""
    return ":".join(parts[1:]).strip()


def value_line_parts(company: Company, place: CachedPlace | None) -> list[str]:
    parts = []
    if place is not None and place.rating:
        count = f"（{place.user_ratings_total} 条评价）" if place.user_ratings_total else ""
        parts.append(f"⭐ {format_number(place.rating)}{count}")
    price = format_price_level(place.price_level if place else None)
    if price:
        parts.append(f"人均 {price}")
    lines = split_summary_lines(company.summary)
    if lines:
        tag = lines[0].text
        parts.append(f"{tag[:SUMMARY_TAG_MAX]}…" if len(tag) > SUMMARY_TAG_MAX else tag)
    return parts


def build_map_embed_url(company: Company, place: CachedPlace | None) -> str:
    """Embed URL from, in order: explicit embed, map-link cid, coordinates, place id, query."""
    embed = sanitize_url(company.map_embed)
    if embed:
        return embed
    map_link = sanitize_url(company.map_link)
    if map_link:
        cid = parse_qs(urlparse(map_link).query).get("cid", [""])[0]
        if cid:
            return f"https://maps.google.com/maps?q={encode_uri_component(f'cid:{cid}')}&z=16&output=embed"
    location = place.location if place else None
    if location is not None:
        lat, lng = location.lat, location.lng
    else:
        lat, lng = company.lat, company.lng
    if lat is not None and lng is not None and math.isfinite(lat) and math.isfinite(lng):
        coords = f"{format_number(lat)},{format_number(lng)}"
        return f"https://maps.google.com/maps?q={encode_uri_component(coords)}&z=16&output=embed"
    place_id = (place.place_id if place else "") or company.place_id
    query = f"place_id:{place_id}" if place_id else ((place.name if place else "") or company.map_query)
    if not query:
        return ""
    return f"https://www.google.com/maps?q={encode_uri_component(query)}&output=embed"


def build_hero(places: PlacesCache, company: Company, place: CachedPlace | None, place_id: str, link: str) -> HeroView:
    cover = places.cover_url(company, place_id)
    gallery: list[str] = []
    if cover:
        gallery.append(cover)

    photo_count = places.count_local_photos(place_id) or len((place.photos if place else None) or [])
    thumbnails = []
    if place_id and photo_count > 1:
        # Fewer photos than slots: indices 1..count-1 repeat to fill the grid
        for slot in range(HERO_THUMB_SLOTS):
            url = places.photo_url(place_id, 1 + slot % (photo_count - 1))
            if not url:
                continue
            thumbnails.append(url)
            if url not in gallery:
                gallery.append(url)
    return HeroView(cover_url=cover, thumbnails=thumbnails, link=link, gallery=gallery)


def build_actions(*, website: str, map_link: str, phone: str, contact: str) -> list[ActionButton]:
    if map_link:
        primary = "map"
    elif website:
        primary = "website"
    elif phone:
        primary = "phone"
    else:
        primary = ""
    actions = []
    if website:
        actions.append(ActionButton("website", "打开官网", website, primary == "website"))
    if map_link:
        actions.append(ActionButton("map", "打开 Google 地图", map_link, primary == "map"))
    if phone:
        actions.append(ActionButton("phone", "拨打电话", f"tel:{_WHITESPACE.sub('', phone)}", primary == "phone"))
    if contact:
        actions.append(ActionButton("copy", "复制微信/WhatsApp", encode_uri_component(contact)))
    return actions


def build_company_page_view(
    company: Company,
    place: CachedPlace | None,
    places: PlacesCache,
    *,
    today: date,
    origin: str,
) -> CompanyPageView:
    place_id = (place.place_id if place else "") or company.place_id
    phone = ((place.formatted_phone_number if place else None) or company.phone or "").strip()
    website = sanitize_url((place.website if place else None) or company.website)
    place_url = sanitize_url(place.url if place else "")
    map_link = sanitize_url(company.map_link) or place_url

    hero = build_hero(places, company, place, place_id, map_link)
    seo = build_company_seo(company, place, hero.cover_url, origin)

    rating_text = ""
    if place is not None and place.rating:
        count = f" ({place.user_ratings_total})" if place.user_ratings_total else ""
        rating_text = f"{format_number(place.rating)} ★{count}"

    return CompanyPageView(
        company=company,
        seo=seo,
        hero=hero,
        value_parts=value_line_parts(company, place),
        today_hours=today_hours(place.weekday_text if place else [], today),
        summary_lines=split_summary_lines(company.summary),
        actions=build_actions(
            website=website,
            map_link=map_link,
            phone=phone,
            contact=company.contact if company.has_contact else "",
        ),
        phone=phone,
        map_link=map_link,
        map_embed_url=build_map_embed_url(company, place),
        address=(place.formatted_address if place else None) or "",
        rating_text=rating_text,
        detail_unlocked=bool(company.detail and company.detail_paid),
    )


# ── Rendering ───────────────────────────────────────────────────────────────


def _render_hero(hero: HeroView) -> str:
    style = (
        ' style="background-image: linear-gradient(140deg, rgba(15, 23, 42, 0.1), '
        f"rgba(15, 23, 42, 0.35)), url('{hero.cover_url}')\""
        if hero.cover_url
        else ""
    )
    link_attrs = f'href="{hero.link}" target="_blank" rel="noopener" aria-label="{MAP_LINK_LABEL}"'
    if hero.link:
        main_tile = f'<a class="company-hero company-hero-link"{style} {link_attrs}></a>'
    else:
        main_tile = f'<div class="company-hero"{style}></div>'

    tiles = []
    for url in hero.thumbnails:
        if hero.link:
            tiles.append(
                f'<a class="company-hero-thumb company-hero-link" {link_attrs} '
                f"style=\"background-image: url('{url}')\"></a>"
            )
        else:
            tiles.append(f"<div class=\"company-hero-thumb\" style=\"background-image: url('{url}')\"></div>")
    thumbs = f'<div class="company-hero-thumbs">{"".join(tiles)}</div>' if tiles else ""
    grid_class = "company-hero-grid" if tiles else "company-hero-grid company-hero-grid--single"
    gallery = f' data-gallery="{escape("|".join(hero.gallery))}"' if hero.gallery else ""
    return f'<div class="{grid_class}"{gallery}>{main_tile}{thumbs}</div>'


def _render_summary(lines: list[SummaryLine]) -> str:
    if not lines:
        return '<p class="muted">暂无简介。</p>'
    items = "".join(f"<li><strong>{escape(line.text)}</strong></li>" for line in lines)
    return f'<ul class="company-summary-list">{items}</ul>'


def _render_action_button(action: ActionButton) -> str:
    css = "action-btn primary" if action.primary else "action-btn"
    if action.kind == "copy":
        return f'<button class="{css}" type="button" data-copy="{action.target}">{action.label}</button>'
    if action.kind == "phone":
        return f'<a class="{css}" href="{escape(action.target)}">{action.label}</a>'
    return f'<a class="{css}" href="{action.target}" target="_blank" rel="noopener">{action.label}</a>'


def _render_action_card(view: CompanyPageView) -> str:
    buttons = "".join(_render_action_button(action) for action in view.actions)
    phone_card = ""
    if view.phone:
        phone_card = (
            '<div class="company-contact-links">'
            '<div class="company-contact-card company-contact-card--phone">'
            '<div class="company-contact-card__text">'
            '<span class="company-contact-card__label">电话</span>'
            f"<strong>{escape(view.phone)}</strong>"
            "</div>"
            f'<button class="company-contact-card__btn" type="button" data-copy="{encode_uri_component(view.phone)}">复制</button>'
            "</div>"
            "</div>"
        )
    contact = view.company.contact if view.company.has_contact else ""
    contact_meta = f"<div><span>微信/WhatsApp</span><strong>{escape(contact)}</strong></div>" if contact else ""
    return (
        '<div class="company-detail-contact">'
        "<h2>快速行动</h2>"
        f'<div class="action-buttons">{buttons}</div>'
        f"{phone_card}"
        f'<div class="action-meta">{contact_meta}</div>'
        "</div>"
    )


def _render_map(view: CompanyPageView) -> str:
    blocks = []
    if view.address:
        blocks.append(
            '<div class="map-meta-block map-meta-address"><span>地址</span>'
            f"<strong>{escape(view.address)}</strong></div>"
        )
    if view.rating_text:
        blocks.append(f'<div class="map-meta-block"><span>评分</span><strong>{escape(view.rating_text)}</strong></div>')
    if view.today_hours:
        blocks.append(f'<div class="map-meta-block"><span>营业</span><em>{escape(view.today_hours)}</em></div>')
    meta = f'<div class="map-meta-grid">{"".join(blocks)}</div>' if blocks else ""
    if not (view.map_link or view.map_embed_url or meta):
        return ""

    actions = ""
    if view.map_link:
        actions += f'<a class="map-link" href="{view.map_link}" target="_blank" rel="noopener">打开 Google 地图</a>'
    if view.map_embed_url:
        actions += '<button class="map-toggle" type="button" data-map-toggle data-map-label="展开地图">展开地图</button>'
    actions_html = f'<div class="map-actions">{actions}</div>' if actions else ""
    embed = ""
    if view.map_embed_url:
        embed = (
            '<div class="map-embed map-embed--open" data-map-embed>'
            '<button class="map-close" type="button" data-map-toggle data-map-label="收起地图">收起地图</button>'
            '<iframe title="Google Maps" loading="lazy" referrerpolicy="no-referrer-when-downgrade" '
            f'src="{escape(view.map_embed_url)}"></iframe>'
            "</div>"
        )
    return f'<div class="company-map"><div class="map-head"><h2>位置</h2>{actions_html}</div>{meta}{embed}</div>'


def _render_detail(view: CompanyPageView) -> str:
    if view.detail_unlocked:
        return f'<div class="company-detail-extra"><h2>详情</h2><p>{escape(view.company.detail)}</p></div>'
    return f'<div class="company-detail-extra locked"><h2>详情</h2><p>{DETAIL_LOCKED_MESSAGE}</p></div>'


def _render_action_bar(view: CompanyPageView) -> str:
    if view.phone:
        call = f'<a class="action-pill primary" href="tel:{escape(_WHITESPACE.sub("", view.phone))}">联系商家</a>'
    else:
        call = '<span class="action-pill disabled">联系商家</span>'
    if view.map_link:
        navigate = f'<a class="action-pill" href="{view.map_link}" target="_blank" rel="noopener">导航前往</a>'
    else:
        navigate = '<span class="action-pill disabled">导航前往</span>'
    return (
        '<div class="company-action-bar">'
        f"{call}{navigate}"
        '<button class="action-pill" type="button" data-share>分享</button>'
        '<button class="action-pill" type="button" data-favorite>收藏</button>'
        "</div>"
    )


def render_company_page(layout: SiteLayout, view: CompanyPageView) -> str:
    company = view.company
    value_line = ""
    if view.value_parts:
        spans = "".join(f"<span>{escape(part)}</span>" for part in view.value_parts)
        value_line = f'<div class="company-value-line">{spans}</div>'
    subline = ""
    if view.today_hours:
        subline = (
            '<div class="company-value-subline">'
            f'<span class="subtle">今日营业 {escape(view.today_hours)}</span></div>'
        )
    body = (
        f'<article class="company-detail" data-company-slug="{escape(company.slug)}">'
        f"{_render_hero(view.hero)}"
        '<header class="company-detail-head">'
        f"<h1>{escape(company.name)}</h1>"
        '<div class="company-tags">'
        f'<span class="tag">{escape(company.city)}</span>'
        f'<span class="tag">{escape(company.industry)}</span>'
        "</div>"
        f"{value_line}{subline}"
        "</header>"
        f'<section class="company-summary">{_render_summary(view.summary_lines)}</section>'
        f"{_render_action_card(view)}"
        f"{_render_map(view)}"
        f"{_render_detail(view)}"
        "</article>"
        f"{_render_action_bar(view)}"
    )
    return layout.render_document(
        title=view.seo.title or company.name,
        body=body,
        body_class="page-company",
        extra_head=view.seo.head_html(company.name),
    )
