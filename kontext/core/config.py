"""Application configuration (settings and environment).

Single source of truth for all configuration. Uses pydantic-settings
with .env support. Backend URL and cache backend are validated at load time.
"""

from functools import lru_cache

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment and .env.

    All settings have defaults; validate_backend_and_cache rejects values
    the proxy cannot work with (empty backend URL, unknown cache backend,
    paging limits outside the backend's range).
    """

    # App
    app_name: str = "kontext"
    app_version: str = "1.0.0"
    debug: bool = False

    # Record backend (PocketBase). BACKEND_URL wins over the legacy POCKETBASE_URL.
    backend_url: str = Field(
        default="https://admin.kontext.site",
        validation_alias=AliasChoices("backend_url", "pocketbase_url"),
    )
    backend_timeout_seconds: float = 30.0
    backend_max_per_page: int = 500
    default_per_page: int = 30
    auth_collection: str = "users"

    # Realtime
    realtime_unsubscribe_timeout_seconds: float = 5.0
    realtime_seed_lists: bool = True

    # CORS
    allowed_origins: str = "http://localhost:3000,http://localhost:8080"

    # Request / middleware
    request_timeout_seconds: int = 60
    request_id_header: str = "X-Request-ID"

    # Response cache: "redis" or "memory" (single process only)
    cache_backend: str = "redis"
    cache_key_prefix: str = "kontext:handlers"
    # Collection name -> extra cache namespaces dropped after a write to it.
    cache_namespace_aliases: dict[str, list[str]] = {
        "Portfolio_Projects": ["portfolio"],
        "Homepage": ["homepage"],
    }
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None

    # OpenTelemetry
    telemetry_enabled: bool = False
    telemetry_exporter: str = "console"
    telemetry_otlp_endpoint: str | None = None
    telemetry_sample_rate: float = 1.0
    telemetry_environment: str = "development"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def validate_backend_and_cache(self) -> "Settings":
        """Validate backend URL, paging limits and cache backend."""
        if not self.backend_url.strip():
            raise ValueError(
                "BACKEND_URL is required. Set it to the record backend origin, "
                "e.g. https://admin.kontext.site"
            )
        self.backend_url = self.backend_url.rstrip("/")
        if not 1 <= self.backend_max_per_page <= 1000:
            raise ValueError(
                f"backend_max_per_page must be between 1 and 1000, got {self.backend_max_per_page}"
            )
        if not 1 <= self.default_per_page <= self.backend_max_per_page:
            raise ValueError(
                "default_per_page must be between 1 and backend_max_per_page"
            )
        if self.cache_backend not in ("redis", "memory"):
            raise ValueError(
                f"cache_backend must be 'redis' or 'memory', got: {self.cache_backend!r}"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
