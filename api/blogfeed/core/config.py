from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "blogfeed-api"
    environment: str = "dev"
    log_level: str = "INFO"
    database_url: str | None = None
    database_pool_min_size: int = 1
    database_pool_max_size: int = 10
    supabase_url: str | None = None
    supabase_anon_key: str | None = None
    auth_timeout_seconds: float = 5.0
    external_api_base_url: str = "https://blog-post-project-api.vercel.app"
    external_api_timeout_seconds: float = 10.0
    external_fetch_limit: int = 100
    external_max_pages: int = 10
    default_page_size: int = 6
    max_page_size: int = 100
    legacy_author_name: str = "Thompson P."
    canonical_author_name: str = "Pataveekorn C."
    category_map_json: str = '{"1": "Cat", "2": "General", "3": "Inspiration"}'
    demo_fallback_enabled: bool = False
    otel_enabled: bool = True
    otel_service_name: str = "blogfeed-api"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="BLOG_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
