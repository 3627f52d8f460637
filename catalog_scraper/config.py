"""Application configuration using Pydantic settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings."""

    # App Settings
    debug: bool = False
    log_level: str = "INFO"
    app_host: str = "0.0.0.0"
    app_port: int = 3000

    # ==========================================================================
    # Data Files
    # ==========================================================================
    data_dir: str = "data"
    catalog_filename: str = "catalog.json"
    static_categories_filename: str = "categories.json"
    farmid_categories_filename: str = "farmid_categories.json"
    logs_dir: str = "logs"

    # ==========================================================================
    # Shop site (tile grid, paginated category URLs)
    # ==========================================================================
    shop_base_url: str = "https://shop.aversi.ge/ka/"
    shop_page_url_template: str = (
        "{locator}page-{page}/?items_per_page={page_size}&sort_by=product&sort_order=asc"
    )
    shop_default_end_page: int = 50
    shop_default_page_size: int = 192
    shop_language_prefix: str = "/ka/"
    shop_include_keywords: list[str] = ["medication"]
    shop_exclude_keywords: list[str] = ["for-cardiovascular-diseases"]
    shop_discover_categories: bool = True
    shop_challenge_timeout_ms: int = 30000

    # ==========================================================================
    # Legacy site (FarmID keyed categories)
    # ==========================================================================
    farmid_url_template: str = "https://www.aversi.ge/ka/aversi/act/genDet/?FarmID={locator}"
    farmid_page_suffix: str = "&page={page}"
    farmid_max_pages: int = 100
    farmid_challenge_timeout_ms: int = 120000

    # ==========================================================================
    # Pacing & Timeouts
    # ==========================================================================
    page_cooldown_seconds: float = 3.0       # Wait between pages of one category
    category_cooldown_seconds: float = 3.0   # Wait between categories of one source
    challenge_poll_interval_ms: int = 500
    challenge_settle_seconds: float = 3.0    # Extra wait after a challenge clears
    post_load_delay_seconds: float = 2.0     # Let late scripts render listings
    navigation_timeout_ms: int = 60000

    # ==========================================================================
    # Fetcher
    # ==========================================================================
    fetcher_backend: str = "browser"  # "browser" (Playwright) or "http" (httpx)
    browser_headless: bool = True
    browser_max_pages: int = 2  # Concurrently open pages shared by both pipelines
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    accept_language: str = "ka,en-US;q=0.9,en;q=0.8"
    http_max_attempts: int = 3

    # Orchestrator
    source_concurrency: int = 2  # 1 = sources one after another

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


settings = Settings()
