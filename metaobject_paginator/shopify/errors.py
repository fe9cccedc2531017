"""Exception types raised by the Shopify integration.

Routers translate these into HTTP responses; nothing below the router layer
returns a partial result in place of raising one of them.
"""

from __future__ import annotations

from typing import Any


class ShopifyError(RuntimeError):
    """Base class for failures talking to a shop."""


class AuthenticationError(ShopifyError):
    """Raised when no usable access token is available for a shop."""


class TransportError(ShopifyError):
    """Raised when the Admin API could not be reached or answered garbage."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class QueryError(ShopifyError):
    """Raised when the Admin API reports GraphQL errors for a query."""

    def __init__(self, message: str, *, errors: list[Any] | None = None) -> None:
        super().__init__(message)
        self.errors = list(errors or [])


class PaginationLimitExceeded(ShopifyError):
    """Raised when the upstream keeps reporting more pages past the ceiling."""

    def __init__(self, max_pages: int) -> None:
        super().__init__(f"Pagination stopped after {max_pages} pages")
        self.max_pages = max_pages


class OAuthError(ShopifyError):
    """Raised when the OAuth handshake with a shop fails."""


__all__ = [
    "AuthenticationError",
    "OAuthError",
    "PaginationLimitExceeded",
    "QueryError",
    "ShopifyError",
    "TransportError",
]
