import pathlib
import sys

import pytest
from fastapi import FastAPI, Request

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from metaobject_paginator.app_logging import init_logging
from metaobject_paginator.config import reset_settings_cache
from metaobject_paginator.dependencies import reset_session_storage
from metaobject_paginator.models import ShopSession
from metaobject_paginator.models.session import get_sessionmaker
from metaobject_paginator.session_storage import SessionStorage, offline_session_id
from shopify_fakes import API_KEY, API_SECRET, SHOP


@pytest.fixture
def app_factory(monkeypatch):
    def _create_app(log_dir: str):
        """Create a FastAPI app with logging initialised."""
        monkeypatch.setenv("LOG_DIR", str(log_dir))
        app = FastAPI()

        @app.get("/echo")
        async def echo(request: Request):
            return dict(request.query_params)

        @app.get("/health")
        async def health():
            return {"status": "OK"}

        init_logging(app)
        return app

    return _create_app


@pytest.fixture
def shopify_env(monkeypatch: pytest.MonkeyPatch, tmp_path):
    """Configure Shopify credentials and a throwaway SQLite database."""

    db_url = f"sqlite+pysqlite:///{tmp_path / 'sessions.db'}"
    monkeypatch.setenv("SHOPIFY_API_KEY", API_KEY)
    monkeypatch.setenv("SHOPIFY_API_SECRET", API_SECRET)
    monkeypatch.setenv("HOST_NAME", "paginator.example.com")
    monkeypatch.setenv("DATABASE_URL", db_url)
    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))
    monkeypatch.delenv("SHOPIFY_SHOP", raising=False)
    reset_settings_cache()
    reset_session_storage()
    yield db_url
    reset_settings_cache()
    reset_session_storage()


@pytest.fixture
def storage(shopify_env) -> SessionStorage:
    return SessionStorage(get_sessionmaker(shopify_env, create_tables=True))


@pytest.fixture
def stored_session(storage: SessionStorage) -> ShopSession:
    return storage.store_session(
        ShopSession(
            id=offline_session_id(SHOP),
            shop=SHOP,
            is_online=False,
            scope="read_metaobjects",
            access_token="shpat_stored",
        )
    )
