"""Helpers for Shopify's OAuth handshake and request signatures."""

from __future__ import annotations

import hashlib
import hmac
import logging
import re
import time
from collections.abc import Mapping, Sequence
from typing import Any
from urllib.parse import urlencode

import jwt
import requests
from jwt import InvalidTokenError

from ..config import Settings
from ..models import ShopSession
from ..session_storage import offline_session_id
from .errors import OAuthError

logger = logging.getLogger(__name__)

_SHOP_RE = re.compile(r"^[a-z0-9][a-z0-9\-]*\.myshopify\.com$")

# Seconds a signed app proxy URL stays valid in either direction of clock skew.
PROXY_SIGNATURE_MAX_AGE = 300

ParamValue = str | Sequence[str]


def sanitize_shop(shop: str | None) -> str | None:
    """Return the normalised ``*.myshopify.com`` domain or ``None``."""

    if not shop:
        return None
    candidate = shop.strip().lower()
    candidate = candidate.replace("https://", "").replace("http://", "").rstrip("/")
    if not _SHOP_RE.match(candidate):
        return None
    return candidate


def build_authorize_url(settings: Settings, shop: str, state: str) -> str:
    """Return the URL that asks the merchant to grant an offline token."""

    query = urlencode(
        {
            "client_id": settings.api_key,
            "scope": ",".join(settings.scopes),
            "redirect_uri": f"{settings.app_url}/auth/callback",
            "state": state,
        }
    )
    return f"https://{shop}/admin/oauth/authorize?{query}"


def _as_text(value: ParamValue) -> str:
    if isinstance(value, str):
        return value
    return ",".join(value)


def _single(value: ParamValue | None) -> str | None:
    if value is None or isinstance(value, str):
        return value
    return value[0] if value else None


def verify_hmac(params: Mapping[str, ParamValue], secret: str) -> bool:
    """Check the ``hmac`` parameter Shopify adds to OAuth redirects."""

    received = _single(params.get("hmac"))
    if not received or not secret:
        return False
    message = "&".join(
        f"{key}={_as_text(value)}"
        for key, value in sorted(params.items())
        if key not in {"hmac", "signature"}
    )
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest, received)


def verify_proxy_signature(params: Mapping[str, ParamValue], secret: str) -> bool:
    """Check the ``signature`` parameter on app proxy requests.

    Unlike OAuth redirects, proxy parameters are concatenated without a
    separator and repeated keys are joined with commas.
    """

    received = _single(params.get("signature"))
    if not received or not secret:
        return False
    message = "".join(
        f"{key}={_as_text(value)}"
        for key, value in sorted(params.items())
        if key != "signature"
    )
    digest = hmac.new(secret.encode(), message.encode(), hashlib.sha256).hexdigest()
    return hmac.compare_digest(digest, received)


def proxy_timestamp_is_fresh(
    params: Mapping[str, ParamValue],
    *,
    max_age: int = PROXY_SIGNATURE_MAX_AGE,
    now: float | None = None,
) -> bool:
    """Reject proxy requests whose ``timestamp`` is missing or too far off."""

    try:
        issued = int(_single(params.get("timestamp")) or "")
    except ValueError:
        return False
    current = time.time() if now is None else now
    return abs(current - issued) <= max_age


def exchange_code(
    settings: Settings,
    shop: str,
    code: str,
    *,
    state: str | None = None,
    session: requests.Session | None = None,
) -> ShopSession:
    """Trade an authorization ``code`` for an offline access token."""

    http = session or requests.Session()
    try:
        response = http.request(
            "POST",
            f"https://{shop}/admin/oauth/access_token",
            json={
                "client_id": settings.api_key,
                "client_secret": settings.api_secret,
                "code": code,
            },
            timeout=settings.request_timeout,
        )
    except requests.RequestException as exc:
        raise OAuthError(f"Token request to {shop} failed: {exc}") from exc

    if response.status_code >= 400:
        raise OAuthError(f"Token request rejected with HTTP {response.status_code}")
    try:
        payload: dict[str, Any] = response.json()
    except ValueError as exc:
        raise OAuthError("Token response is not valid JSON") from exc

    access_token = payload.get("access_token")
    if not access_token:
        raise OAuthError("Token response did not include an access token")

    logger.info("Obtained offline token for shop %s", shop)
    return ShopSession(
        id=offline_session_id(shop),
        shop=shop,
        state=state,
        is_online=False,
        scope=payload.get("scope"),
        access_token=access_token,
    )


def decode_session_token(token: str, settings: Settings) -> str:
    """Validate an App Bridge session token and return the shop it targets.

    Raises:
        OAuthError: If the signature, audience or ``dest`` claim is invalid.
    """

    try:
        payload = jwt.decode(
            token,
            settings.api_secret,
            algorithms=["HS256"],
            audience=settings.api_key,
            options={"require": ["exp", "dest"]},
            leeway=5,
        )
    except InvalidTokenError as exc:
        raise OAuthError("Session token is invalid.") from exc

    shop = sanitize_shop(str(payload.get("dest", "")))
    if shop is None:
        raise OAuthError("Session token does not name a shop.")
    return shop


__all__ = [
    "build_authorize_url",
    "decode_session_token",
    "PROXY_SIGNATURE_MAX_AGE",
    "exchange_code",
    "proxy_timestamp_is_fresh",
    "sanitize_shop",
    "verify_hmac",
    "verify_proxy_signature",
]
