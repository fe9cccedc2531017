"""Certificate of analysis endpoints served to the storefront."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from ..dependencies import get_collector, require_shop_session
from ..models import ShopSession
from ..shopify.coas import CoaRecord, PaginatedRecordCollector
from ..shopify.errors import AuthenticationError, ShopifyError

router = APIRouter(tags=["coas"])

logger = logging.getLogger(__name__)

ShopSessionDep = Annotated[ShopSession, Depends(require_shop_session)]
CollectorDep = Annotated[PaginatedRecordCollector, Depends(get_collector)]

PROXY_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE"]


def _fetch_coas(
    shop_session: ShopSession, collector: PaginatedRecordCollector, source: str
) -> list[CoaRecord] | JSONResponse:
    try:
        return collector.collect(shop_session.shop, shop_session.access_token)
    except AuthenticationError as exc:
        logger.error("%s error: %s", source, exc)
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"Failed to fetch COAs: {exc}"},
        )
    except ShopifyError as exc:
        logger.error("%s error: %s", source, exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": f"Failed to fetch COAs: {exc}"},
        )


@router.api_route("/coas", methods=PROXY_METHODS, response_model=list[CoaRecord])
def proxy_coas(shop_session: ShopSessionDep, collector: CollectorDep):
    """App proxy target: every COA of the shop, newest first."""
    return _fetch_coas(shop_session, collector, "Proxy")


@router.get("/api/coas", response_model=list[CoaRecord])
def api_coas(shop_session: ShopSessionDep, collector: CollectorDep):
    """Same listing for direct calls from the embedded admin or tests."""
    return _fetch_coas(shop_session, collector, "API")
