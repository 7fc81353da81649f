from datetime import date
from functools import lru_cache
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import Settings, settings
from app.database import get_db
from app.integrations.feishu import FeishuBitableClient
from app.services.company_store import CompanyStore
from app.services.forum import ForumRateLimiter
from app.services.places_cache import PlacesCache
from app.views.layout import SiteLayout


def get_settings() -> Settings:
    return settings


@lru_cache
def get_places_cache() -> PlacesCache:
    """One places cache per process; its memory tiers live as long as the app."""
    return PlacesCache(settings)


@lru_cache
def get_forum_limiter() -> ForumRateLimiter:
    return ForumRateLimiter()


@lru_cache
def get_feishu_client() -> FeishuBitableClient:
    return FeishuBitableClient(settings)


def get_company_store(app_settings: Settings = Depends(get_settings)) -> CompanyStore:
    return CompanyStore(app_settings.companies_path)


def get_site_layout(app_settings: Settings = Depends(get_settings)) -> SiteLayout:
    return SiteLayout.load(app_settings.site_dir)


def get_today() -> date:
    return date.today()


DbSession = Annotated[AsyncSession, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_settings)]
Places = Annotated[PlacesCache, Depends(get_places_cache)]
Companies = Annotated[CompanyStore, Depends(get_company_store)]
Layout = Annotated[SiteLayout, Depends(get_site_layout)]
Today = Annotated[date, Depends(get_today)]
ForumLimiter = Annotated[ForumRateLimiter, Depends(get_forum_limiter)]
Feishu = Annotated[FeishuBitableClient, Depends(get_feishu_client)]
