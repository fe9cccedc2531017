"""Minimal Shopify Admin GraphQL client built on ``requests``."""

from __future__ import annotations

import json
import logging
from typing import Any

import requests

from ..config import DEFAULT_API_VERSION
from .errors import QueryError, TransportError

logger = logging.getLogger(__name__)


class AdminGraphQLClient:
    """Send GraphQL documents to one shop's Admin API.

    Every call is a single POST; retries are left to the caller. Failures are
    classified into :class:`TransportError` (could not get a usable JSON body)
    and :class:`QueryError` (the body carries GraphQL ``errors``).
    """

    def __init__(
        self,
        shop: str,
        access_token: str,
        *,
        api_version: str = DEFAULT_API_VERSION,
        session: requests.Session | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.shop = shop
        self.endpoint = f"https://{shop}/admin/api/{api_version}/graphql.json"
        self.session = session or requests.Session()
        self.timeout = timeout
        self._headers = {
            "Content-Type": "application/json",
            "X-Shopify-Access-Token": access_token,
        }

    def execute(
        self, query: str, variables: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Run ``query`` and return the ``data`` member of the response."""

        payload: dict[str, Any] = {"query": query}
        if variables:
            payload["variables"] = variables

        try:
            response = self.session.request(
                "POST",
                self.endpoint,
                headers=self._headers,
                json=payload,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            raise TransportError(
                f"Request to {self.shop} failed: {exc}"
            ) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise TransportError(
                f"Shopify returned a non-JSON response (HTTP {response.status_code})",
                status_code=response.status_code,
            ) from exc

        if not 200 <= response.status_code < 300:
            detail = _first_error_message(body) if isinstance(body, dict) else None
            message = f"Shopify responded with HTTP {response.status_code}"
            if detail:
                message = f"{message}: {detail}"
            raise TransportError(message, status_code=response.status_code)

        if not isinstance(body, dict):
            raise TransportError("Shopify returned an unexpected response body")

        errors = body.get("errors")
        if errors:
            logger.error("GraphQL errors: %s", json.dumps(errors, indent=2, default=str))
            raise QueryError(
                f"GraphQL query failed: {_first_error_message(body) or 'Unknown error'}",
                errors=errors if isinstance(errors, list) else [errors],
            )

        data = body.get("data")
        if not isinstance(data, dict):
            raise TransportError("Shopify response is missing the data member")
        return data


def _first_error_message(body: dict[str, Any]) -> str | None:
    errors = body.get("errors")
    if isinstance(errors, str):
        return errors
    if isinstance(errors, list) and errors:
        first = errors[0]
        if isinstance(first, dict):
            message = first.get("message")
            return str(message) if message else None
        return str(first)
    if isinstance(errors, dict):
        message = errors.get("message")
        return str(message) if message else None
    return None


__all__ = ["AdminGraphQLClient"]
