"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .config import Settings, get_settings
from .models import ShopSession
from .models.session import get_sessionmaker
from .session_storage import SessionStorage, offline_session_id
from .shopify.coas import PaginatedRecordCollector
from .shopify.errors import OAuthError
from .shopify.oauth import (
    decode_session_token,
    proxy_timestamp_is_fresh,
    sanitize_shop,
    verify_proxy_signature,
)

logger = logging.getLogger(__name__)

_STORAGE: SessionStorage | None = None


def get_session_storage() -> SessionStorage:
    """Return the process-wide session storage; tables are created on first query."""

    global _STORAGE
    if _STORAGE is None:
        _STORAGE = SessionStorage(get_sessionmaker(), create_tables=True)
    return _STORAGE


def reset_session_storage() -> None:
    """Forget the cached storage; useful in tests when DATABASE_URL changes."""

    global _STORAGE
    _STORAGE = None


SettingsDep = Annotated[Settings, Depends(get_settings)]
StorageDep = Annotated[SessionStorage, Depends(get_session_storage)]


def get_collector(settings: SettingsDep) -> PaginatedRecordCollector:
    return PaginatedRecordCollector(
        api_version=settings.api_version,
        timeout=settings.request_timeout,
        max_pages=settings.max_pages,
    )


def _shop_from_request(request: Request, settings: Settings) -> str | None:
    params = request.query_params
    if "signature" in params:
        signed = {key: params.getlist(key) for key in params.keys()}
        if not verify_proxy_signature(signed, settings.api_secret):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid proxy signature",
            )
        if not proxy_timestamp_is_fresh(signed):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Expired proxy signature",
            )
        return params.get("shop")

    authorization = request.headers.get("Authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if credentials and scheme.lower() == "bearer":
        try:
            return decode_session_token(credentials, settings)
        except OAuthError as exc:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc)
            ) from exc

    return params.get("shop")


def require_shop_session(
    request: Request, settings: SettingsDep, storage: StorageDep
) -> ShopSession:
    """Resolve the stored offline session for the shop making the request."""

    raw_shop = _shop_from_request(request, settings)
    if not raw_shop:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing shop")
    shop = sanitize_shop(raw_shop)
    if shop is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid shop")

    shop_session = storage.load_session(offline_session_id(shop)) or storage.find_by_shop(
        shop
    )
    if shop_session is None or not shop_session.is_active():
        logger.warning("No usable session for shop %s", shop)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid session"
        )
    return shop_session


__all__ = [
    "SettingsDep",
    "StorageDep",
    "get_collector",
    "get_session_storage",
    "require_shop_session",
    "reset_session_storage",
]
