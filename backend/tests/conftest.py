import json
from collections.abc import AsyncGenerator
from datetime import date
from pathlib import Path

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.config import Settings
from app.database import Base, get_db
from app.dependencies import (
    get_feishu_client,
    get_forum_limiter,
    get_places_cache,
    get_settings,
    get_today,
)
from app.integrations.feishu import FeishuBitableClient
from app.main import app
from app.services.forum import ForumRateLimiter
from app.services.places_cache import PlacesCache

TEST_DATABASE_URL = "sqlite+aiosqlite:///./test.db"

engine = create_async_engine(TEST_DATABASE_URL)
TestSessionLocal = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

TODAY = date(2024, 5, 8)  # a Wednesday

SAMPLE_COMPANIES = [
    {
        "slug": "lanzhou-noodles-cdmx",
        "name": "兰州牛肉面",
        "summary": "手工拉面，适合午餐快餐",
        "city": "墨西哥城",
        "industry": "餐饮与服务",
        "placeId": "place-noodles",
        "contact": "未提供",
        "lat": 19.4326,
        "lng": -99.1332,
    },
    {
        "slug": "chongqing-hotpot-mty",
        "name": "重庆火锅",
        "summary": "麻辣火锅 · 火锅",
        "city": "蒙特雷",
        "industry": "餐饮与服务",
        "contact": "+52 81 0000 0000",
    },
    {
        "slug": "mx-logistics",
        "name": "中墨物流",
        "summary": "跨境物流与清关服务",
        "city": "墨西哥城",
        "industry": "中资企业",
        "detail": "提供海运、空运与仓储一体化服务。",
        "detailPaid": True,
    },
]

PARTIALS = {
    "head": '<meta charset="utf-8">',
    "header": '<header class="site-header">墨西哥中文网</header>',
    "footer": '<footer class="site-footer">footer</footer>',
}


def write_partials(site_dir: Path) -> None:
    partials = site_dir / "partials"
    partials.mkdir(parents=True, exist_ok=True)
    for name, content in PARTIALS.items():
        (partials / f"{name}.html").write_text(content, encoding="utf-8")


def write_companies(path: Path, records: list) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(records, ensure_ascii=False), encoding="utf-8")


def make_settings(tmp_path: Path, **overrides) -> Settings:
    values = {
        "database_url": TEST_DATABASE_URL,
        "site_origin": "https://example.test/",
        "site_dir": tmp_path / "site",
        "companies_path": tmp_path / "data" / "companies.json",
        "place_details_cache_path": tmp_path / "data" / "place-details.json",
        "place_photo_dir": tmp_path / "image" / "place-photos",
        "sitemap_path": tmp_path / "sitemap.xml",
        "places_provider": "google",
        "google_places_api_key": "",
        "serpapi_key": "",
        "searchapi_key": "",
        "places_api_enabled": False,
        "places_prefetch_delay_s": 0,
        "google_service_account_base64": "",
        "google_service_account_json": "",
        "google_sheet_id": "",
        "feishu_app_id": "",
        "feishu_app_secret": "",
        "feishu_app_token": "",
        "feishu_table_id": "",
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture(autouse=True)
async def setup_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionLocal() as session:
        yield session


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    app_settings = make_settings(tmp_path)
    write_partials(app_settings.site_dir)
    write_companies(app_settings.companies_path, SAMPLE_COMPANIES)
    return app_settings


@pytest.fixture
def places(test_settings: Settings) -> PlacesCache:
    return PlacesCache(test_settings)


@pytest.fixture
def forum_limiter() -> ForumRateLimiter:
    return ForumRateLimiter()


@pytest.fixture
async def client(
    db_session: AsyncSession,
    test_settings: Settings,
    places: PlacesCache,
    forum_limiter: ForumRateLimiter,
) -> AsyncGenerator[AsyncClient, None]:
    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_places_cache] = lambda: places
    app.dependency_overrides[get_forum_limiter] = lambda: forum_limiter
    app.dependency_overrides[get_feishu_client] = lambda: FeishuBitableClient(test_settings)
    app.dependency_overrides[get_today] = lambda: TODAY
    app.state.session_factory = TestSessionLocal
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
