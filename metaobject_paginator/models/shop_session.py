"""Persisted Shopify OAuth sessions.

Column names follow the ``sessions`` table created by the migration in
``metaobject_paginator/migrations`` (camelCase, shared with the session
storage of the Shopify app libraries) while attributes stay snake_case.
"""

from __future__ import annotations

import datetime as dt

from sqlalchemy import BigInteger, Boolean, DateTime, Index, String, Text, text
from sqlalchemy.orm import Mapped, mapped_column

from . import Base


def _utcnow() -> dt.datetime:
    """Return the current UTC timestamp with timezone awareness."""

    return dt.datetime.now(dt.timezone.utc)


class ShopSession(Base):
    """OAuth session for a shop.

    Attributes:
        id: Session identifier; ``offline_<shop>`` for offline tokens.
        shop: ``*.myshopify.com`` domain the token belongs to (unique).
        state: OAuth ``state`` nonce used while the session was created.
        is_online: Whether the token is a user-bound online token.
        scope: Comma separated scopes granted by the merchant.
        expires: Expiry for online tokens; offline tokens never expire.
        access_token: Admin API access token.
    """

    __tablename__ = "sessions"
    __table_args__ = (Index("sessions_shop_key", "shop", unique=True),)

    id: Mapped[str] = mapped_column(Text(), primary_key=True)
    shop: Mapped[str] = mapped_column(Text(), nullable=False)
    state: Mapped[str | None] = mapped_column(Text(), nullable=True)
    is_online: Mapped[bool] = mapped_column(
        "isOnline",
        Boolean(),
        nullable=False,
        default=False,
        server_default=text("false"),
    )
    scope: Mapped[str | None] = mapped_column(Text(), nullable=True)
    expires: Mapped[dt.datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    access_token: Mapped[str] = mapped_column("accessToken", Text(), nullable=False)
    user_id: Mapped[int | None] = mapped_column("userId", BigInteger(), nullable=True)
    first_name: Mapped[str | None] = mapped_column("firstName", String(255))
    last_name: Mapped[str | None] = mapped_column("lastName", String(255))
    email: Mapped[str | None] = mapped_column(String(320))
    account_owner: Mapped[bool] = mapped_column(
        "accountOwner", Boolean(), nullable=False, default=False
    )
    locale: Mapped[str | None] = mapped_column(String(32))
    collaborator: Mapped[bool] = mapped_column(Boolean(), nullable=False, default=False)
    email_verified: Mapped[bool] = mapped_column(
        "emailVerified", Boolean(), nullable=False, default=False
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        "createdAt",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
    )
    updated_at: Mapped[dt.datetime] = mapped_column(
        "updatedAt",
        DateTime(timezone=True),
        nullable=False,
        default=_utcnow,
        onupdate=_utcnow,
    )

    def is_active(self, now: dt.datetime | None = None) -> bool:
        """Return ``True`` when the session holds a usable, unexpired token."""

        if not self.access_token:
            return False
        if self.expires is None:
            return True
        expires = self.expires
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=dt.timezone.utc)
        return expires > (now or _utcnow())


__all__ = ["ShopSession"]
