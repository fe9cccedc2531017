"""Runtime configuration for the Shopify app backend.

Settings are read once from the environment (``.env`` files are honoured via
``python-dotenv``) and cached; tests that change environment variables call
:func:`reset_settings_cache` afterwards.
"""

from __future__ import annotations

import dataclasses
import os
from functools import lru_cache

from dotenv import load_dotenv

DEFAULT_SCOPES = ("read_metaobjects", "read_products", "read_files", "write_app_proxy")
DEFAULT_CORS_ORIGINS = (
    "https://armadillo-labs.myshopify.com",
    "https://8thwonder.com",
    "https://siphowdy.com",
    "https://sipbeachbreak.com",
    "http://localhost:3000",
)
DEFAULT_HOST_NAME = "meta-object-paginator.vercel.app"
DEFAULT_API_VERSION = "2025-10"
DEFAULT_DATABASE_URL = "sqlite+pysqlite:///sessions.db"


def _split_csv(value: str | None, default: tuple[str, ...]) -> tuple[str, ...]:
    if not value:
        return default
    items = tuple(item.strip() for item in value.split(",") if item.strip())
    return items or default


@dataclasses.dataclass(frozen=True)
class Settings:
    """Values the OAuth flow, the Admin API client and the HTTP layer share."""

    api_key: str
    api_secret: str
    scopes: tuple[str, ...] = DEFAULT_SCOPES
    host_name: str = DEFAULT_HOST_NAME
    api_version: str = DEFAULT_API_VERSION
    default_shop: str | None = None
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS
    database_url: str = DEFAULT_DATABASE_URL
    max_pages: int = 200
    request_timeout: float = 30.0
    environment: str = "development"

    @property
    def app_url(self) -> str:
        return f"https://{self.host_name}"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings from the environment.

    ``HOST_NAME`` wins over ``VERCEL_URL`` (which Vercel sets without a
    scheme). Missing API credentials are tolerated here so that ``/health``
    can report them; the OAuth routes refuse to run without them.
    """

    load_dotenv()
    host_name = (
        os.getenv("HOST_NAME") or os.getenv("VERCEL_URL") or DEFAULT_HOST_NAME
    )
    host_name = host_name.replace("https://", "").replace("http://", "").rstrip("/")
    return Settings(
        api_key=os.getenv("SHOPIFY_API_KEY", ""),
        api_secret=os.getenv("SHOPIFY_API_SECRET", ""),
        scopes=_split_csv(os.getenv("SHOPIFY_SCOPES"), DEFAULT_SCOPES),
        host_name=host_name,
        api_version=os.getenv("SHOPIFY_API_VERSION", DEFAULT_API_VERSION),
        default_shop=os.getenv("SHOPIFY_SHOP") or None,
        cors_origins=_split_csv(os.getenv("CORS_ORIGINS"), DEFAULT_CORS_ORIGINS),
        database_url=os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL),
        max_pages=int(os.getenv("COA_MAX_PAGES", "200")),
        request_timeout=float(os.getenv("SHOPIFY_REQUEST_TIMEOUT", "30")),
        environment=os.getenv("APP_ENV", "development"),
    )


def reset_settings_cache() -> None:
    """Clear cached settings; useful in tests when env vars change."""

    get_settings.cache_clear()


__all__ = ["Settings", "get_settings", "reset_settings_cache"]
