"""Collect certificate of analysis metaobjects from a shop.

The Admin API exposes COAs as ``certificates_of_analysis`` metaobjects behind
a cursor-paginated connection. :class:`PaginatedRecordCollector` walks that
connection page by page, keeps the entries that carry both a date and a
product name, and returns them newest first.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

import requests
from pydantic import BaseModel, ConfigDict, Field

from ..config import DEFAULT_API_VERSION
from .client import AdminGraphQLClient
from .errors import AuthenticationError, PaginationLimitExceeded, TransportError
from .queries import COA_METAOBJECT_TYPE, COA_PAGE_SIZE, METAOBJECTS_QUERY

logger = logging.getLogger(__name__)

DEFAULT_MAX_PAGES = 200


class CoaRecord(BaseModel):
    """A certificate of analysis as served to the storefront."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    date: str
    product: str
    batch_number: str | None = Field(default=None, alias="batchNumber")
    pdf_link: str | None = Field(default=None, alias="pdfLink")
    best_by_date: str | None = Field(default=None, alias="bestByDate")


@dataclass(slots=True)
class Page:
    """One page of the metaobjects connection after filtering."""

    records: list[tuple[dt.datetime, CoaRecord]] = field(default_factory=list)
    has_next_page: bool = False
    end_cursor: str | None = None
    edge_count: int = 0


def parse_coa_date(value: str | None) -> dt.datetime | None:
    """Parse an ISO-8601 date or datetime into a naive UTC datetime.

    Returns ``None`` when ``value`` is empty or not ISO-8601. Bare dates
    become midnight so they compare with full timestamps.
    """

    if not value:
        return None
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = dt.datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(dt.timezone.utc).replace(tzinfo=None)
    return parsed


def _field_value(node: dict[str, Any], key: str) -> str | None:
    wrapper = node.get(key)
    if not isinstance(wrapper, dict):
        return None
    value = wrapper.get("value")
    if value is None or value == "":
        return None
    return str(value)


def project_node(node: dict[str, Any]) -> CoaRecord | None:
    """Flatten a metaobject node into a :class:`CoaRecord`.

    Nodes without a date or a product name yield ``None``.
    """

    date_value = _field_value(node, "date")
    product = _field_value(node, "product_name")
    if not date_value or not product:
        return None
    return CoaRecord(
        id=str(node.get("id") or ""),
        date=date_value,
        product=product,
        batch_number=_field_value(node, "batch_number"),
        pdf_link=_field_value(node, "pdf_link"),
        best_by_date=_field_value(node, "best_by_date"),
    )


class PaginatedRecordCollector:
    """Walk the COA metaobjects connection of a shop and sort the result.

    Pages are requested one after another since each request needs the
    previous ``endCursor``. The collector keeps no state between calls, so a
    single instance can serve concurrent requests.
    """

    def __init__(
        self,
        *,
        session: requests.Session | None = None,
        api_version: str = DEFAULT_API_VERSION,
        timeout: float = 30.0,
        max_pages: int = DEFAULT_MAX_PAGES,
        page_size: int = COA_PAGE_SIZE,
        logger: logging.Logger | None = None,
    ) -> None:
        if max_pages < 1:
            raise ValueError("max_pages must be at least 1")
        self.session = session
        self.api_version = api_version
        self.timeout = timeout
        self.max_pages = max_pages
        self.page_size = page_size
        self.logger = logger or logging.getLogger(__name__)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _variables(self, cursor: str | None) -> dict[str, Any]:
        variables: dict[str, Any] = {
            "type": COA_METAOBJECT_TYPE,
            "first": self.page_size,
            "sortKey": "updated_at",
            "reverse": True,
        }
        if cursor is not None:
            variables["after"] = cursor
        return variables

    def _parse_page(self, data: dict[str, Any]) -> Page:
        connection = data.get("metaobjects") or {}
        edges = connection.get("edges") or []
        page_info = connection.get("pageInfo") or {}

        page = Page(
            has_next_page=bool(page_info.get("hasNextPage")),
            end_cursor=page_info.get("endCursor"),
            edge_count=len(edges),
        )
        for edge in edges:
            node = (edge or {}).get("node") or {}
            record = project_node(node)
            if record is None:
                continue
            parsed = parse_coa_date(record.date)
            if parsed is None:
                self.logger.debug(
                    "Skipping COA %s with unparseable date %r", record.id, record.date
                )
                continue
            page.records.append((parsed, record))
        return page

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def iter_pages(self, client: AdminGraphQLClient) -> Iterator[Page]:
        """Yield filtered pages until the connection reports no next page."""

        cursor: str | None = None
        fetched = 0
        while True:
            data = client.execute(METAOBJECTS_QUERY, self._variables(cursor))
            fetched += 1
            page = self._parse_page(data)
            self.logger.debug(
                "Fetched COA page %d for %s: %d edges, %d kept",
                fetched,
                client.shop,
                page.edge_count,
                len(page.records),
            )
            yield page

            if not page.has_next_page:
                return
            if not page.end_cursor:
                raise TransportError(
                    "Shopify reported another page without an end cursor"
                )
            if fetched >= self.max_pages:
                raise PaginationLimitExceeded(self.max_pages)
            cursor = page.end_cursor

    def collect(self, store_domain: str, access_token: str) -> list[CoaRecord]:
        """Return every qualifying COA of ``store_domain``, newest first.

        Without an injected session a fresh :class:`requests.Session` is opened
        for the walk and closed when it ends, on success or failure.
        """

        if not access_token:
            raise AuthenticationError("No valid session token")

        if self.session is not None:
            return self._collect(store_domain, access_token, self.session)
        with requests.Session() as http:
            return self._collect(store_domain, access_token, http)

    def _collect(
        self, store_domain: str, access_token: str, http: requests.Session
    ) -> list[CoaRecord]:
        client = AdminGraphQLClient(
            store_domain,
            access_token,
            api_version=self.api_version,
            session=http,
            timeout=self.timeout,
        )
        collected: list[tuple[dt.datetime, CoaRecord]] = []
        for page in self.iter_pages(client):
            collected.extend(page.records)

        # sorted() stays stable with reverse=True, so equal dates keep page order
        ordered = sorted(collected, key=lambda item: item[0], reverse=True)
        self.logger.info(
            "Collected %d COAs for %s", len(ordered), store_domain
        )
        return [record for _, record in ordered]


__all__ = [
    "CoaRecord",
    "Page",
    "PaginatedRecordCollector",
    "parse_coa_date",
    "project_node",
]
