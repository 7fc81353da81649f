"""Directory pages: city navigation, filter tools and company card grids."""

import json
from collections.abc import Callable
from dataclasses import dataclass

from app.services.company_store import Company
from app.services.directory import (
    DEFAULT_CITY,
    DEFAULT_INDUSTRY,
    FOOD_CATEGORIES,
    FOOD_INDUSTRY,
    CityGroup,
    DirectoryIndex,
    IndustryGroup,
    build_directory,
    classify_food_category,
    classify_food_category_extended,
)
from app.views.html import encode_uri_component, escape, format_number
from app.views.layout import SiteLayout

EMPTY_DIRECTORY_HTML = '<p class="muted">暂无企业数据。</p>'

CoverResolver = Callable[[Company], str]


@dataclass
class DirectoryPageView:
    title: str
    heading: str
    intro: str
    nav_html: str
    sections_html: str
    body_class: str = "page-directory"
    data_script: str = ""


def render_company_card(company: Company, cover_url: str) -> str:
    cover_style = (
        ' style="background-image: linear-gradient(140deg, rgba(15, 23, 42, 0.12), '
        f"rgba(15, 23, 42, 0.35)), url('{cover_url}')\""
        if cover_url
        else ""
    )
    cover_class = " company-cover" if cover_url else ""
    coords_attr = (
        f' data-lat="{format_number(company.lat)}" data-lng="{format_number(company.lng)}"'
        if company.has_coordinates
        else ""
    )
    industry_attr = f' data-industry="{escape(company.industry)}"' if company.industry else ""
    category = classify_food_category(company) if company.industry == FOOD_INDUSTRY else ""
    category_attr = f' data-category="{escape(category)}"' if category else ""
    contact_html = (
        f'<div class="company-contact"><span>微信/WhatsApp：{escape(company.contact)}</span></div>'
        if company.has_contact
        else ""
    )
    return (
        f'<a class="company-card company-link{cover_class}" '
        f'href="/company/{encode_uri_component(company.slug)}"'
        f"{cover_style}{coords_attr}{industry_attr}{category_attr}>"
        f"<h4>{escape(company.name)}</h4>"
        f'<p class="company-desc">{escape(company.summary)}</p>'
        '<div class="company-distance" data-distance hidden></div>'
        f"{contact_html}"
        "</a>"
    )


def render_city_nav(index: DirectoryIndex) -> str:
    pills = [
        f'<button class="pill is-active" type="button" data-city="all">全部 <em>{index.total}</em></button>'
    ]
    for city in index.cities:
        pills.append(
            f'<button class="pill" type="button" data-city="{escape(city.name)}" '
            f'data-city-target="{city.anchor_id}">{escape(city.name)} <em>{city.count}</em></button>'
        )
    return "".join(pills)


def _filter_pill(value: str, scope: str) -> str:
    return (
        f'<button class="filter-pill" type="button" data-filter="{escape(value)}" '
        f'data-filter-scope="{scope}">{escape(value)}</button>'
    )


def render_city_tools(city: CityGroup) -> str:
    food = city.industry(FOOD_INDUSTRY)
    present = {group.name for group in food.categories} if food else set()
    category_buttons = "".join(
        _filter_pill(category, "category") for category in FOOD_CATEGORIES if category in present
    )
    industry_buttons = "".join(
        _filter_pill(industry.name, "industry")
        for industry in city.industries
        if not industry.is_food
    )
    return (
        f'<div class="city-tools" data-city-tools data-food-industry="{escape(FOOD_INDUSTRY)}">'
        '<div class="industry-sort" role="group" aria-label="排序">'
        '<span class="tools-label">排序</span>'
        '<button class="sort-pill is-active" type="button" data-sort="default">默认</button>'
        '<button class="sort-pill" type="button" data-sort="distance">离我最近</button>'
        "</div>"
        '<div class="industry-filters" role="group" aria-label="门店筛选">'
        '<span class="tools-label">筛选</span>'
        '<button class="filter-pill is-active" type="button" data-filter="all">全部</button>'
        f"{category_buttons}{industry_buttons}"
        "</div>"
        "</div>"
    )


def render_city_service() -> str:
    card = '<div class="service-card"><strong>企业广告招租</strong><p>把你的企业放上来</p></div>'
    return (
        '<div class="city-service">'
        '<div class="city-service-head">'
        "<h3>企业服务</h3>"
        "<span>企业广告招租</span>"
        "</div>"
        f'<div class="city-service-grid">{card * 3}</div>'
        "</div>"
    )


def _render_cards(companies: list[Company], cover_for: CoverResolver) -> str:
    return "".join(render_company_card(company, cover_for(company)) for company in companies)


def _industry_head(industry: IndustryGroup) -> str:
    return (
        '<div class="industry-head">'
        f"<h3>{escape(industry.name)}</h3>"
        f'<span class="industry-count">{industry.count} 家</span>'
        "</div>"
    )


def render_industry_block(industry: IndustryGroup, cover_for: CoverResolver) -> str:
    if not industry.is_food:
        return (
            f'<div class="industry-block" data-industry="{escape(industry.name)}">'
            f"{_industry_head(industry)}"
            f'<div class="company-grid">{_render_cards(industry.companies, cover_for)}</div>'
            "</div>"
        )
    subgroups = "".join(
        f'<div class="industry-subgroup" data-category="{escape(category.name)}">'
        '<div class="industry-subhead">'
        f"<h4>{escape(category.name)}</h4>"
        f'<span class="industry-count">{category.count} 家</span>'
        "</div>"
        f'<div class="company-grid">{_render_cards(category.companies, cover_for)}</div>'
        "</div>"
        for category in industry.categories
    )
    return (
        f'<div class="industry-block" data-industry="{escape(industry.name)}">'
        f"{_industry_head(industry)}"
        f'<div class="industry-subgroups">{subgroups}</div>'
        "</div>"
    )


def render_city_section(city: CityGroup, cover_for: CoverResolver) -> str:
    industries = "".join(render_industry_block(industry, cover_for) for industry in city.industries)
    return (
        f'<section class="city-section" id="{city.anchor_id}" data-city="{escape(city.name)}">'
        f'<div class="city-head"><h2>{escape(city.name)}</h2></div>'
        f"{render_city_tools(city)}"
        f"{render_city_service()}"
        f'<div class="city-body">{industries}</div>'
        "</section>"
    )


def render_directory_fragments(
    companies: list[Company], cover_for: CoverResolver
) -> tuple[str, str]:
    """City nav and city sections for ``companies``; empty input yields a notice."""
    if not companies:
        return "", EMPTY_DIRECTORY_HTML
    index = build_directory(companies)
    sections = "".join(render_city_section(city, cover_for) for city in index.cities)
    return render_city_nav(index), sections


def build_directory_data_script(companies: list[Company], cover_for: CoverResolver) -> str:
    """Inline script exposing the directory to client-side search and maps."""
    items = []
    for company in companies:
        if not company.name:
            continue
        industry = company.industry or DEFAULT_INDUSTRY
        items.append(
            {
                "slug": company.slug,
                "name": company.name,
                "summary": company.summary,
                "cover": cover_for(company),
                "city": company.city or DEFAULT_CITY,
                "industry": industry,
                "category": classify_food_category_extended(company)
                if industry == FOOD_INDUSTRY
                else "",
            }
        )
    payload = json.dumps({"items": items}, ensure_ascii=False, separators=(",", ":"))
    payload = payload.replace("<", "\\u003c")
    return f"<script>window.__DIRECTORY_DATA__={payload};</script>"


def render_directory_page(layout: SiteLayout, view: DirectoryPageView) -> str:
    nav = (
        f'<nav class="company-nav" aria-label="城市">{view.nav_html}</nav>' if view.nav_html else ""
    )
    body = (
        '<section class="page-hero">'
        f"<h1>{escape(view.heading)}</h1>"
        + (f'<p class="muted">{escape(view.intro)}</p>' if view.intro else "")
        + "</section>"
        f"{nav}"
        f'<div class="company-sections" data-company-sections>{view.sections_html}</div>'
    )
    return layout.render_document(
        title=view.title,
        body=body,
        body_class=view.body_class,
        scripts=f"{view.data_script}\n" if view.data_script else "",
    )


def render_simple_page(
    layout: SiteLayout, *, title: str, heading: str, body_html: str, body_class: str = "", scripts: str = ""
) -> str:
    body = f'<section class="page-hero"><h1>{escape(heading)}</h1></section>{body_html}'
    return layout.render_document(title=title, body=body, body_class=body_class, scripts=scripts)
