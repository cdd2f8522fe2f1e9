"""Application settings and configuration."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:121.0) Gecko/20100101 Firefox/121.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.2 Safari/605.1.15",
]


class Settings(BaseSettings):
    """Application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = "leadsleuth"
    env: str = "development"

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Logging level",
    )
    log_format: Literal["console", "json"] = Field(
        default="console",
        description="Log output format",
    )

    # HTTP Client
    request_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP request timeout in seconds",
    )
    user_agents: list[str] = Field(
        default_factory=lambda: list(DEFAULT_USER_AGENTS),
        description="User-Agent pool rotated across outgoing requests",
    )
    global_max_concurrent_requests: int = 10
    per_domain_max_concurrent: int = 2
    request_delay_ms: int = Field(
        default=250,
        description="Minimum delay between requests to same domain (ms)",
    )

    # Owner extraction
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_url: str = "https://api.openai.com/v1/chat/completions"
    owner_extraction: Literal["auto", "ai", "regex"] = Field(
        default="auto",
        description="auto uses AI when an OpenAI key is configured",
    )

    # Email verification
    hunter_api_key: str | None = None
    hunter_base_url: str = "https://api.hunter.io/v2"
    emaillistverify_api_key: str | None = None
    emaillistverify_url: str = "https://apps.emaillistverify.com/api/verifyEmail"
    dns_timeout_seconds: float = 5.0
    mx_cache_size: int = 1024
    mx_cache_ttl_seconds: float = 3600.0

    # Search engines / LinkedIn
    google_search_url: str = "https://www.google.com/search"
    bing_search_url: str = "https://www.bing.com/search"
    linkedin_base_url: str = "https://www.linkedin.com"
    linkedin_max_results: int = 10

    # Enrichment
    website_pages: list[str] = Field(
        default_factory=lambda: ["", "/contact", "/about", "/team"],
        description="Paths fetched from each business website",
    )
    enrichment_timeout_seconds: float | None = Field(
        default=60.0,
        description="Overall deadline for one enrichment (None disables)",
    )
    batch_concurrency: int = 5


# Global settings instance
settings = Settings()
