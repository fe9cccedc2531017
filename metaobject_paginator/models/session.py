"""Helpers for configuring SQLAlchemy engine and session factories."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from ..config import get_settings
from . import Base


def get_engine(database_url: str | None = None, **kwargs: object) -> Engine:
    """Create a SQLAlchemy engine.

    Args:
        database_url: Optional database URL. When ``None`` the configured
            ``DATABASE_URL`` is used (SQLite file by default).
        **kwargs: Additional keyword arguments forwarded to
            :func:`sqlalchemy.create_engine`.
    """

    url = database_url or get_settings().database_url
    if url.startswith("sqlite"):
        connect_args = dict(kwargs.pop("connect_args", None) or {})  # type: ignore[arg-type]
        # FastAPI serves sync routes from a threadpool
        connect_args.setdefault("check_same_thread", False)
        kwargs["connect_args"] = connect_args
    return create_engine(url, **kwargs)


def get_sessionmaker(
    database_url: str | None = None, *, create_tables: bool = False, **kwargs: object
) -> sessionmaker[Session]:
    """Return a session factory bound to the configured engine."""

    engine = get_engine(database_url=database_url, **kwargs)
    if create_tables:
        create_schema(engine)
    return sessionmaker(bind=engine, expire_on_commit=False, future=True)


def create_schema(engine: Engine) -> None:
    """Create missing tables; Postgres deployments run the migration instead."""

    Base.metadata.create_all(engine)


@contextmanager
def session_scope(factory: sessionmaker[Session]) -> Iterator[Session]:
    """Provide a transactional scope around a series of operations."""

    session = factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


__all__ = ["Base", "create_schema", "get_engine", "get_sessionmaker", "session_scope"]
