"""SQLAlchemy-backed storage for Shopify OAuth sessions."""

from __future__ import annotations

import logging

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, sessionmaker

from .models import ShopSession
from .models.session import create_schema, session_scope

logger = logging.getLogger(__name__)


def offline_session_id(shop: str) -> str:
    """Return the identifier used for a shop's offline session."""

    return f"offline_{shop}"


class SessionStorage:
    """Load and persist :class:`ShopSession` rows keyed by id and shop."""

    def __init__(
        self, session_factory: sessionmaker[Session], *, create_tables: bool = False
    ) -> None:
        self._session_factory = session_factory
        self._schema_ready = not create_tables

    def _scope(self):
        # Tables are created on first use so building the storage never connects.
        if not self._schema_ready:
            create_schema(self._session_factory.kw["bind"])
            self._schema_ready = True
        return session_scope(self._session_factory)

    def store_session(self, shop_session: ShopSession) -> ShopSession:
        """Insert or replace ``shop_session``.

        The table holds one session per shop, so rows for the same shop under
        another id are removed first.
        """

        with self._scope() as session:
            session.execute(
                delete(ShopSession)
                .where(ShopSession.shop == shop_session.shop)
                .where(ShopSession.id != shop_session.id)
            )
            stored = session.merge(shop_session)
            session.flush()
        logger.info("Session stored for shop: %s", shop_session.shop)
        return stored

    def load_session(self, session_id: str) -> ShopSession | None:
        """Return the session with ``session_id`` or ``None``."""

        with self._scope() as session:
            return session.get(ShopSession, session_id)

    def find_by_shop(self, shop: str) -> ShopSession | None:
        """Return the session stored for ``shop`` or ``None``."""

        with self._scope() as session:
            return session.execute(
                select(ShopSession).where(ShopSession.shop == shop)
            ).scalar_one_or_none()

    def delete_session(self, session_id: str) -> bool:
        """Delete the session with ``session_id``; return whether it existed."""

        with self._scope() as session:
            result = session.execute(
                delete(ShopSession).where(ShopSession.id == session_id)
            )
            return bool(result.rowcount)

    def delete_by_shop(self, shop: str) -> int:
        """Delete every session stored for ``shop`` and return the count."""

        with self._scope() as session:
            result = session.execute(delete(ShopSession).where(ShopSession.shop == shop))
            return int(result.rowcount or 0)


__all__ = ["SessionStorage", "offline_session_id"]
