import logging
from collections.abc import Callable

from fastapi import APIRouter
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from app.dependencies import AppSettings, Companies, Layout, Places, Today
from app.services.company_store import Company
from app.services.directory import RESTAURANT_CITY_ALIASES, is_enterprise, is_restaurant, restaurant_city_filter
from app.services.places_cache import PlacesCache
from app.services.sitemap import build_sitemap
from app.views.company_page import build_company_page_view, render_company_page
from app.views.directory import (
    DirectoryPageView,
    build_directory_data_script,
    render_directory_fragments,
    render_directory_page,
    render_simple_page,
)
from app.views.layout import SiteLayout

logger = logging.getLogger(__name__)

router = APIRouter(tags=["pages"])

SITE_TITLE = "墨西哥中文网"
CITY_PAGE_NAMES = {
    "mexico-city": "墨西哥城",
    "monterrey": "蒙特雷",
    "guadalajara": "瓜达拉哈拉",
    "puebla": "普埃布拉",
}


def _cover_resolver(places: PlacesCache) -> Callable[[Company], str]:
    return lambda company: places.cover_url(company, company.place_id)


def _render_listing(
    layout: SiteLayout,
    places: PlacesCache,
    companies: list[Company],
    *,
    title: str,
    heading: str,
    intro: str = "",
    body_class: str = "page-directory",
    with_data_script: bool = False,
) -> HTMLResponse:
    cover_for = _cover_resolver(places)
    nav_html, sections_html = render_directory_fragments(companies, cover_for)
    view = DirectoryPageView(
        title=title,
        heading=heading,
        intro=intro,
        nav_html=nav_html,
        sections_html=sections_html,
        body_class=body_class,
        data_script=build_directory_data_script(companies, cover_for) if with_data_script else "",
    )
    return HTMLResponse(render_directory_page(layout, view))


@router.get("/", response_class=HTMLResponse)
@router.get("/home", response_class=HTMLResponse, include_in_schema=False)
@router.get("/home.html", response_class=HTMLResponse, include_in_schema=False)
async def home(layout: Layout, places: Places, store: Companies) -> HTMLResponse:
    return _render_listing(
        layout,
        places,
        store.load(),
        title=f"{SITE_TITLE} - 墨西哥华人商家与企业目录",
        heading="墨西哥华人商家与企业",
        intro="餐厅、超市、企业服务，按城市浏览。",
        body_class="page-home",
        with_data_script=True,
    )


@router.get("/directory", response_class=HTMLResponse)
@router.get("/directory.html", response_class=HTMLResponse, include_in_schema=False)
async def directory(layout: Layout, places: Places, store: Companies) -> HTMLResponse:
    return _render_listing(
        layout,
        places,
        store.load(),
        title=f"{SITE_TITLE} - 商家目录",
        heading="商家目录",
        with_data_script=True,
    )


@router.get("/companies", response_class=HTMLResponse)
@router.get("/companies.html", response_class=HTMLResponse, include_in_schema=False)
async def companies(layout: Layout, places: Places, store: Companies) -> HTMLResponse:
    return _render_listing(
        layout, places, store.load(), title=f"{SITE_TITLE} - 企业名录", heading="企业名录"
    )


@router.get("/restaurants", response_class=HTMLResponse)
@router.get("/restaurants.html", response_class=HTMLResponse, include_in_schema=False)
async def restaurants(layout: Layout, places: Places, store: Companies) -> HTMLResponse:
    items = [company for company in store.load() if is_restaurant(company)]
    return _render_listing(
        layout, places, items, title=f"{SITE_TITLE} - 中餐馆", heading="中餐馆与餐饮服务"
    )


@router.get("/restaurants/{city_slug}", response_class=HTMLResponse)
async def restaurants_in_city(
    city_slug: str, layout: Layout, places: Places, store: Companies
) -> Response:
    if city_slug not in RESTAURANT_CITY_ALIASES:
        return PlainTextResponse("未找到该城市", status_code=404)
    matches = restaurant_city_filter(city_slug)
    items = [company for company in store.load() if matches(company)]
    city_name = CITY_PAGE_NAMES.get(city_slug, city_slug)
    return _render_listing(
        layout,
        places,
        items,
        title=f"{SITE_TITLE} - {city_name}中餐馆",
        heading=f"{city_name}中餐馆",
    )


@router.get("/enterprises", response_class=HTMLResponse)
@router.get("/enterprises.html", response_class=HTMLResponse, include_in_schema=False)
async def enterprises(layout: Layout, places: Places, store: Companies) -> HTMLResponse:
    items = [company for company in store.load() if is_enterprise(company)]
    return _render_listing(
        layout, places, items, title=f"{SITE_TITLE} - 中资企业", heading="中资企业"
    )


@router.get("/forum", response_class=HTMLResponse)
@router.get("/forum.html", response_class=HTMLResponse, include_in_schema=False)
async def forum(layout: Layout) -> HTMLResponse:
    body = (
        '<section class="forum" data-forum>'
        '<form class="forum-form" method="post" action="/api/forum-posts" data-forum-form>'
        '<input name="title" maxlength="80" placeholder="标题" required>'
        '<textarea name="content" maxlength="2000" placeholder="内容" required></textarea>'
        '<input name="city" placeholder="城市">'
        '<input name="contact" placeholder="联系方式">'
        '<input class="hp" name="website" tabindex="-1" autocomplete="off">'
        '<button type="submit">发布</button>'
        "</form>"
        '<div class="forum-list" data-forum-list></div>'
        "</section>"
    )
    return HTMLResponse(
        render_simple_page(
            layout, title=f"{SITE_TITLE} - 社区论坛", heading="社区论坛", body_html=body, body_class="page-forum"
        )
    )


@router.get("/company/{slug}", response_class=HTMLResponse)
async def company_detail(
    slug: str,
    layout: Layout,
    places: Places,
    store: Companies,
    app_settings: AppSettings,
    today: Today,
) -> Response:
    company = store.find(slug)
    if company is None:
        return PlainTextResponse("未找到该企业信息", status_code=404)
    place = await places.get_company_place_data(company)
    view = build_company_page_view(
        company, place, places, today=today, origin=app_settings.site_origin_clean
    )
    return HTMLResponse(render_company_page(layout, view))


@router.get("/sitemap.xml")
async def sitemap(store: Companies, app_settings: AppSettings, today: Today) -> Response:
    xml = build_sitemap(store.load(), app_settings.site_origin_clean, today)
    return Response(content=xml, media_type="application/xml")
