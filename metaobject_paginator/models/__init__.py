"""SQLAlchemy declarative base and persisted models.

The only persisted entity is the per-shop OAuth session; the COA records
served by the API are fetched from Shopify on every request.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


from .shop_session import ShopSession


__all__ = [
    "Base",
    "ShopSession",
]
