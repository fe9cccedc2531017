"""Application and access logging setup.

``app.log`` receives everything logged under the ``metaobject_paginator``
package; ``access.log`` receives one JSON line per HTTP request. Both files
rotate at midnight. Shopify credentials, OAuth parameters and proxy
signatures are masked before an access line is written.

Environment variables: LOG_DIR, LOG_LEVEL, LOG_JSON, LOG_RETENTION_DAYS,
LOG_ROTATE_UTC.
"""

from __future__ import annotations

import json
import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler
from uuid import uuid4

from fastapi import FastAPI, Request

APP_LOGGER_NAME = "metaobject_paginator"
ACCESS_LOGGER_NAME = "uvicorn.access"

# Probes and scrapes would drown the access log
UNLOGGED_PATHS = frozenset({"/health", "/api/metrics"})

SENSITIVE_FIELDS = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-shopify-access-token",
        "x-shopify-hmac-sha256",
        "code",
        "hmac",
        "signature",
        "state",
    }
)


class JsonFormatter(logging.Formatter):
    """Minimal JSON log formatter used when LOG_JSON=true."""

    def format(self, record: logging.LogRecord) -> str:  # pragma: no cover - simple
        log_record = {
            "level": record.levelname,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


def _mask(values: dict[str, str]) -> dict[str, str]:
    return {k: ("***" if k.lower() in SENSITIVE_FIELDS else v) for k, v in values.items()}


def _rotating_handler(
    path: str, formatter: logging.Formatter, backup_count: int, utc: bool
) -> TimedRotatingFileHandler:
    handler = TimedRotatingFileHandler(
        path, when="midnight", backupCount=backup_count, utc=utc
    )
    handler.setFormatter(formatter)
    return handler


def _install_access_logging(app: FastAPI) -> None:
    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        if request.url.path in UNLOGGED_PATHS:
            return await call_next(request)

        request_id = request.headers.get("X-Request-Id") or uuid4().hex
        start = time.perf_counter()
        response = await call_next(request)
        latency_ms = (time.perf_counter() - start) * 1000

        client_ip = request.headers.get("X-Forwarded-For")
        if not client_ip and request.client is not None:
            client_ip = request.client.host

        response.headers["X-Request-Id"] = request_id
        access_logger.info(
            json.dumps(
                {
                    "request_id": request_id,
                    "method": request.method,
                    "path": request.url.path,
                    "query": _mask(dict(request.query_params)),
                    "status": response.status_code,
                    "latency_ms": round(latency_ms, 2),
                    "client_ip": client_ip,
                    "headers": _mask(dict(request.headers)),
                }
            )
        )
        return response


def init_logging(app: FastAPI | None = None) -> None:
    """Attach rotating file handlers and, given an app, the access middleware.

    The application handler is only added once; the access handlers are
    replaced so uvicorn's console handler does not duplicate each line.
    """

    log_dir = os.getenv("LOG_DIR", "logs")
    log_level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)
    log_json = os.getenv("LOG_JSON", "false").lower() == "true"
    retention_days = int(os.getenv("LOG_RETENTION_DAYS", "7"))
    rotate_utc = os.getenv("LOG_ROTATE_UTC", "false").lower() == "true"

    os.makedirs(log_dir, exist_ok=True)
    formatter: logging.Formatter = (
        JsonFormatter()
        if log_json
        else logging.Formatter("[%(asctime)s] %(levelname)s in %(name)s: %(message)s")
    )

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    if not app_logger.handlers:
        app_logger.addHandler(
            _rotating_handler(
                os.path.join(log_dir, "app.log"), formatter, retention_days, rotate_utc
            )
        )
    app_logger.setLevel(log_level)

    access_logger = logging.getLogger(ACCESS_LOGGER_NAME)
    access_logger.handlers.clear()
    access_logger.addHandler(
        _rotating_handler(
            os.path.join(log_dir, "access.log"), formatter, retention_days, rotate_utc
        )
    )
    access_logger.setLevel(log_level)

    if app is not None:
        _install_access_logging(app)


__all__ = ["ACCESS_LOGGER_NAME", "APP_LOGGER_NAME", "JsonFormatter", "init_logging"]
