"""Shopify Admin API access: OAuth helpers, GraphQL client and COA collection."""

from .client import AdminGraphQLClient
from .coas import CoaRecord, PaginatedRecordCollector
from .errors import (
    AuthenticationError,
    OAuthError,
    PaginationLimitExceeded,
    QueryError,
    ShopifyError,
    TransportError,
)

__all__ = [
    "AdminGraphQLClient",
    "AuthenticationError",
    "CoaRecord",
    "OAuthError",
    "PaginatedRecordCollector",
    "PaginationLimitExceeded",
    "QueryError",
    "ShopifyError",
    "TransportError",
]
