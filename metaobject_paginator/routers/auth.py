"""OAuth install flow for the Shopify app."""

from __future__ import annotations

import hashlib
import hmac
import logging
import secrets
from urllib.parse import quote

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import PlainTextResponse, RedirectResponse

from ..dependencies import SettingsDep, StorageDep
from ..shopify.errors import OAuthError
from ..shopify.oauth import build_authorize_url, exchange_code, sanitize_shop, verify_hmac

router = APIRouter(tags=["auth"])

logger = logging.getLogger(__name__)

STATE_COOKIE = "shopify_app_state"
STATE_COOKIE_MAX_AGE = 600


def _sign_state(state: str, secret: str) -> str:
    signature = hmac.new(secret.encode(), state.encode(), hashlib.sha256).hexdigest()
    return f"{state}.{signature}"


def _unsign_state(cookie: str, secret: str) -> str | None:
    state, _, signature = cookie.rpartition(".")
    if not state or not signature:
        return None
    expected = _sign_state(state, secret).rpartition(".")[2]
    if not hmac.compare_digest(expected, signature):
        return None
    return state


def _auth_redirect(shop: str) -> RedirectResponse:
    return RedirectResponse(f"/auth?shop={quote(shop)}", status_code=302)


@router.get("/")
def root(request: Request, settings: SettingsDep):
    """Send merchants opening the app straight into the OAuth flow."""
    shop = request.query_params.get("shop") or settings.default_shop
    if not shop:
        raise HTTPException(status_code=400, detail="Missing shop parameter")
    return _auth_redirect(shop)


@router.get("/auth")
def begin_auth(request: Request, settings: SettingsDep):
    """Redirect to Shopify's consent screen for an offline token."""
    shop = sanitize_shop(request.query_params.get("shop"))
    if not shop:
        raise HTTPException(status_code=400, detail="Missing shop parameter")
    if not settings.api_key or not settings.api_secret:
        raise HTTPException(status_code=500, detail="Shopify API credentials not configured")

    state = secrets.token_urlsafe(24)
    response = RedirectResponse(build_authorize_url(settings, shop, state), status_code=302)
    response.set_cookie(
        STATE_COOKIE,
        _sign_state(state, settings.api_secret),
        max_age=STATE_COOKIE_MAX_AGE,
        httponly=True,
        secure=True,
        samesite="lax",
    )
    return response


@router.get("/auth/callback")
def auth_callback(request: Request, settings: SettingsDep, storage: StorageDep):
    """Finish the OAuth flow, persist the offline session and open the app."""
    params = request.query_params
    shop = sanitize_shop(params.get("shop"))
    try:
        if not shop:
            raise OAuthError("Invalid shop parameter")

        cookie = request.cookies.get(STATE_COOKIE)
        if not cookie:
            # Some browsers drop the cookie across the redirect; start over.
            logger.warning("OAuth cookie missing. Restarting OAuth flow for shop: %s", shop)
            return _auth_redirect(shop)

        if not verify_hmac(
            {key: params.getlist(key) for key in params.keys()}, settings.api_secret
        ):
            raise OAuthError("HMAC validation failed")
        state = _unsign_state(cookie, settings.api_secret)
        if state is None or not hmac.compare_digest(state, params.get("state", "")):
            raise OAuthError("OAuth state mismatch")
        code = params.get("code")
        if not code:
            raise OAuthError("Missing authorization code")

        shop_session = exchange_code(settings, shop, code, state=state)
        storage.store_session(shop_session)
    except OAuthError as exc:
        logger.error("OAuth error: %s", exc)
        return PlainTextResponse(f"OAuth failed: {exc}", status_code=500)

    response = RedirectResponse(f"/app?shop={quote(shop)}", status_code=302)
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get("/app", response_class=PlainTextResponse)
def app_landing(request: Request):
    """Landing page targeted by the post-install redirect."""
    shop = request.query_params.get("shop")
    return f"App installed. Shop: {shop or 'unknown'}"
