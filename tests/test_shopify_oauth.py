"""Tests for Shopify OAuth and request signature helpers."""

from __future__ import annotations

import hashlib
import hmac
from datetime import datetime, timedelta, timezone
from urllib.parse import parse_qs, urlparse

import jwt
import pytest
import requests

from metaobject_paginator.config import Settings
from metaobject_paginator.shopify.errors import OAuthError
from metaobject_paginator.shopify.oauth import (
    build_authorize_url,
    decode_session_token,
    exchange_code,
    proxy_timestamp_is_fresh,
    sanitize_shop,
    verify_hmac,
    verify_proxy_signature,
)

from shopify_fakes import API_KEY, API_SECRET, SHOP, _FakeResponse, _FakeSession, invalid_json_response


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        api_key=API_KEY,
        api_secret=API_SECRET,
        host_name="paginator.example.com",
        request_timeout=7,
    )


def _oauth_hmac(params: dict[str, str]) -> str:
    message = "&".join(f"{k}={v}" for k, v in sorted(params.items()))
    return hmac.new(API_SECRET.encode(), message.encode(), hashlib.sha256).hexdigest()


def _proxy_signature(params: dict[str, str]) -> str:
    message = "".join(f"{k}={v}" for k, v in sorted(params.items()))
    return hmac.new(API_SECRET.encode(), message.encode(), hashlib.sha256).hexdigest()


def _session_token(**overrides) -> str:
    payload = {
        "iss": f"https://{SHOP}/admin",
        "dest": f"https://{SHOP}",
        "aud": API_KEY,
        "sub": "42",
        "exp": datetime.now(timezone.utc) + timedelta(minutes=1),
        "nbf": datetime.now(timezone.utc) - timedelta(seconds=1),
    }
    payload.update(overrides)
    secret = payload.pop("_secret", API_SECRET)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.mark.parametrize(
    "raw, expected",
    [
        (SHOP, SHOP),
        ("Armadillo-Labs.MyShopify.com", SHOP),
        (f"https://{SHOP}/", SHOP),
        ("8thwonder.com", None),
        ("evil.com/.myshopify.com", None),
        ("", None),
        (None, None),
    ],
)
def test_sanitize_shop(raw, expected):
    assert sanitize_shop(raw) == expected


def test_build_authorize_url(settings: Settings):
    url = build_authorize_url(settings, SHOP, "nonce-1")

    parsed = urlparse(url)
    assert parsed.netloc == SHOP
    assert parsed.path == "/admin/oauth/authorize"
    query = parse_qs(parsed.query)
    assert query["client_id"] == [API_KEY]
    assert query["scope"] == ["read_metaobjects,read_products,read_files,write_app_proxy"]
    assert query["redirect_uri"] == ["https://paginator.example.com/auth/callback"]
    assert query["state"] == ["nonce-1"]


def test_verify_hmac_accepts_valid_signature():
    params = {"code": "abc", "shop": SHOP, "state": "nonce-1", "timestamp": "1700000000"}
    signed = {**params, "hmac": _oauth_hmac(params)}

    assert verify_hmac(signed, API_SECRET) is True
    assert verify_hmac({k: [v] for k, v in signed.items()}, API_SECRET) is True


def test_verify_hmac_rejects_tampering():
    params = {"code": "abc", "shop": SHOP, "timestamp": "1700000000"}
    signed = {**params, "hmac": _oauth_hmac(params), "shop": "other.myshopify.com"}

    assert verify_hmac(signed, API_SECRET) is False
    assert verify_hmac(params, API_SECRET) is False
    assert verify_hmac({**params, "hmac": _oauth_hmac(params)}, "") is False


def test_verify_proxy_signature():
    params = {
        "shop": SHOP,
        "logged_in_customer_id": "",
        "path_prefix": "/apps/coas",
        "timestamp": "1700000000",
    }
    signed = {**params, "signature": _proxy_signature(params)}

    assert verify_proxy_signature(signed, API_SECRET) is True
    assert verify_proxy_signature({**signed, "timestamp": "1"}, API_SECRET) is False


def test_verify_proxy_signature_joins_repeated_values():
    params = {"shop": SHOP, "extra": "1,2"}
    signature = _proxy_signature(params)

    assert verify_proxy_signature(
        {"shop": [SHOP], "extra": ["1", "2"], "signature": [signature]}, API_SECRET
    )


@pytest.mark.parametrize(
    "timestamp, fresh",
    [
        ("1700000000", True),
        ("1700000299", True),
        ("1699999700", True),
        ("1699999000", False),
        ("1700000400", False),
        ("not-a-number", False),
        (None, False),
    ],
)
def test_proxy_timestamp_is_fresh(timestamp, fresh):
    params = {"shop": SHOP}
    if timestamp is not None:
        params["timestamp"] = [timestamp]

    assert proxy_timestamp_is_fresh(params, now=1700000000) is fresh


def test_exchange_code_builds_offline_session(settings: Settings):
    session = _FakeSession(
        [_FakeResponse({"access_token": "shpat_new", "scope": "read_metaobjects"})]
    )

    shop_session = exchange_code(settings, SHOP, "auth-code", state="nonce", session=session)

    assert shop_session.id == f"offline_{SHOP}"
    assert shop_session.shop == SHOP
    assert shop_session.access_token == "shpat_new"
    assert shop_session.scope == "read_metaobjects"
    assert shop_session.state == "nonce"
    assert shop_session.is_online is False
    request = session.requests[0]
    assert request["url"] == f"https://{SHOP}/admin/oauth/access_token"
    assert request["json"] == {
        "client_id": API_KEY,
        "client_secret": API_SECRET,
        "code": "auth-code",
    }
    assert request["timeout"] == 7


@pytest.mark.parametrize(
    "response",
    [
        _FakeResponse({"error": "invalid_request"}, status_code=400),
        _FakeResponse({"scope": "read_metaobjects"}),
        invalid_json_response(),
        requests.Timeout("timed out"),
    ],
)
def test_exchange_code_failures(settings: Settings, response):
    with pytest.raises(OAuthError):
        exchange_code(settings, SHOP, "auth-code", session=_FakeSession([response]))


def test_decode_session_token_returns_shop(settings: Settings):
    assert decode_session_token(_session_token(), settings) == SHOP


@pytest.mark.parametrize(
    "overrides",
    [
        {"_secret": "wrong-secret"},
        {"aud": "someone-else"},
        {"exp": datetime.now(timezone.utc) - timedelta(minutes=5)},
        {"dest": "https://example.com"},
    ],
)
def test_decode_session_token_rejects_invalid(settings: Settings, overrides):
    with pytest.raises(OAuthError):
        decode_session_token(_session_token(**overrides), settings)
