from pathlib import Path

from pydantic_settings import BaseSettings

# backend/app/config.py -> project root
PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    database_url: str = f"sqlite+aiosqlite:///{PROJECT_ROOT / 'data.db'}"
    environment: str = "development"
    site_origin: str = "https://mxchino.com"
    site_dir: Path = PROJECT_ROOT / "site"
    companies_path: Path = PROJECT_ROOT / "data" / "companies.json"
    place_details_cache_path: Path = PROJECT_ROOT / "data" / "place-details.json"
    place_photo_dir: Path = PROJECT_ROOT / "image" / "place-photos"
    sitemap_path: Path = PROJECT_ROOT / "sitemap.xml"

    places_provider: str = ""
    google_places_api_key: str = ""
    serpapi_key: str = ""
    searchapi_key: str = ""
    places_api_enabled: bool = False
    places_prefetch_enabled: bool = False
    places_cache_ttl_days: int = 7
    places_cache_max_entries: int = 2048
    place_photo_cache_max_entries: int = 64
    places_prefetch_interval_days: int = 7
    places_prefetch_start_delay_s: float = 15.0
    places_prefetch_delay_s: float = 0.25
    places_language: str = "zh-CN"
    places_region: str = "mx"
    places_api_interval_ms: int = 900
    place_photo_min_bytes: int = 120_000

    analytics_enabled: bool = True
    analytics_token: str = ""

    google_service_account_base64: str = ""
    google_service_account_json: str = ""
    google_sheet_id: str = ""
    google_sheet_tab: str = "Submissions"

    feishu_app_id: str = ""
    feishu_app_secret: str = ""
    feishu_app_token: str = ""
    feishu_table_id: str = ""
    feishu_api_base_url: str = "https://open.feishu.cn/open-apis"

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def resolved_places_provider(self) -> str:
        """Explicit provider, else the first one with a key configured."""
        explicit = self.places_provider.strip().lower()
        if explicit:
            return explicit
        if self.serpapi_key.strip():
            return "serpapi"
        if self.searchapi_key.strip():
            return "searchapi"
        return "google"

    @property
    def places_provider_key(self) -> str:
        provider = self.resolved_places_provider
        if provider == "serpapi":
            return self.serpapi_key.strip()
        if provider == "searchapi":
            return self.searchapi_key.strip()
        return self.google_places_api_key.strip()

    @property
    def places_cache_ttl_s(self) -> float:
        return self.places_cache_ttl_days * 24 * 60 * 60

    @property
    def site_origin_clean(self) -> str:
        return self.site_origin.rstrip("/")


settings = Settings()
