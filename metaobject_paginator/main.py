"""FastAPI application wiring for the metaobject paginator.

- Configures logging, CORS for the storefront origins and Prometheus metrics.
- Mounts the OAuth install routes and the COA endpoints used by the
  storefront (through the Shopify app proxy) and by the embedded admin.
- Exposes ``/health`` and ``/api/version`` for deployment checks.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from sqlalchemy.exc import SQLAlchemyError

from .__version__ import __build_date__, __commit_sha__, __version__
from .app_logging import init_logging
from .config import get_settings
from .dependencies import SettingsDep, StorageDep
from .routers import auth, coas
from .session_storage import offline_session_id
from .shopify.oauth import sanitize_shop

logger = logging.getLogger(__name__)

app = FastAPI(title="Metaobject Paginator", version=__version__)
init_logging(app)
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(get_settings().cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(auth.router)
app.include_router(coas.router)

# Expose Prometheus metrics
Instrumentator().instrument(app).expose(
    app, include_in_schema=False, endpoint="/api/metrics"
)


@app.get("/health")
def health(request: Request, settings: SettingsDep, storage: StorageDep):
    """Report configuration and whether an offline session exists for the shop."""
    shop = request.query_params.get("shop") or settings.default_shop
    try:
        session_exists = False
        normalized = sanitize_shop(shop)
        if normalized:
            session_exists = storage.load_session(offline_session_id(normalized)) is not None
        return {
            "status": "OK",
            "shop": shop or "MISSING",
            "apiKeySet": bool(settings.api_key),
            "sessionExists": session_exists,
            "environment": settings.environment,
        }
    except SQLAlchemyError as exc:
        logger.exception("Health check failed")
        return {"status": "ERROR", "message": str(exc)}


@app.get("/api/version")
def version():
    """Return version information for the application."""
    return {
        "version": __version__,
        "build_date": __build_date__,
        "commit_sha": __commit_sha__,
    }
