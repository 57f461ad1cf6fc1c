"""Notion database client (destination ledger)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from dropsync.adapters.notion.properties import (
    PROP_RAINDROP_ID,
    clear_delete_properties,
    collection_only_properties,
    content_properties,
    create_properties,
    delete_detected_properties,
    page_to_existing,
    page_to_row,
)
from dropsync.core.http_retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_RETRIES,
    retry_with_backoff,
)
from dropsync.core.time_utils import utc_now
from dropsync.sync.errors import NotionClientError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable, Iterable
    from datetime import datetime
    from typing import Self

    from dropsync.adapters.notion.models import ExistingPage, LedgerRow
    from dropsync.adapters.raindrop.models import RaindropItem

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.notion.com/v1"
DEFAULT_NOTION_VERSION = "2022-06-28"
DEFAULT_LOOKUP_CHUNK_SIZE = 25
QUERY_PAGE_SIZE = 100  # Notion's maximum page_size


def _chunked(values: list[int], size: int) -> Iterable[list[int]]:
    for start in range(0, len(values), size):
        yield values[start : start + size]


class NotionLedger:
    """Async client for one Notion database keyed by the ``Raindrop ID`` property."""

    def __init__(
        self,
        api_token: str,
        database_id: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        *,
        notion_version: str = DEFAULT_NOTION_VERSION,
        lookup_chunk_size: int = DEFAULT_LOOKUP_CHUNK_SIZE,
        archive_pending_status: str = "Archived",
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        clock: Callable[[], datetime] = utc_now,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Notion ledger client.

        Args:
            api_token: Notion integration secret
            database_id: Target database (32 hex chars, dashes optional)
            api_url: Base URL of the Notion API
            timeout: Request timeout in seconds
            notion_version: Value of the ``Notion-Version`` header
            lookup_chunk_size: Raindrop IDs per OR-filter query
            archive_pending_status: Status option applied on first delete detection
            max_retries: Maximum retry attempts for transient failures
            retry_base_delay: Base delay between retries in seconds
            retry_max_delay: Maximum delay between retries in seconds
            clock: Source of "now" for sync timestamps
            transport: Optional custom transport (tests use ``httpx.MockTransport``)
        """
        self.api_url = api_url.rstrip("/")
        self.api_token = api_token
        self.database_id = database_id
        self.timeout = timeout
        self.notion_version = notion_version
        self.lookup_chunk_size = max(1, lookup_chunk_size)
        self.archive_pending_status = archive_pending_status
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._clock = clock
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={
                "Authorization": f"Bearer {self.api_token}",
                "Notion-Version": self.notion_version,
                "Content-Type": "application/json",
            },
            timeout=self.timeout,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise NotionClientError("Client not initialized. Use async context manager.")
        return self._client

    async def _with_retry(self, func: Callable[[], Awaitable[Any]], operation_name: str) -> Any:
        try:
            return await retry_with_backoff(
                func,
                max_retries=self.max_retries,
                base_delay=self.retry_base_delay,
                max_delay=self.retry_max_delay,
                operation_name=operation_name,
            )
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:500]
            msg = f"Notion {operation_name} failed: {exc.response.status_code} {body}"
            raise NotionClientError(msg, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            msg = f"Notion {operation_name} failed: {exc}"
            raise NotionClientError(msg) from exc

    async def _request(
        self,
        method: str,
        path: str,
        operation_name: str,
        json: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        async def _send() -> dict[str, Any]:
            response = await self.client.request(method, path, json=json)
            response.raise_for_status()
            return response.json()

        return await self._with_retry(_send, operation_name)

    async def _query_all(self, body: dict[str, Any], operation_name: str) -> list[dict[str, Any]]:
        """Run a database query following ``next_cursor`` until exhausted."""
        results: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            payload = dict(body)
            if cursor:
                payload["start_cursor"] = cursor
            data = await self._request(
                "POST", f"/databases/{self.database_id}/query", operation_name, payload
            )
            results.extend(data.get("results") or [])
            if not data.get("has_more") or not data.get("next_cursor"):
                break
            cursor = data["next_cursor"]
        return results

    async def find_by_raindrop_ids(self, raindrop_ids: list[int]) -> dict[int, ExistingPage]:
        """Batched existence lookup keyed by Raindrop ID.

        IDs are queried in chunks because Notion limits the number of filter
        clauses in one compound filter.
        """
        unique_ids = list(dict.fromkeys(raindrop_ids))
        found: dict[int, ExistingPage] = {}
        for chunk in _chunked(unique_ids, self.lookup_chunk_size):
            body = {
                "filter": {
                    "or": [
                        {"property": PROP_RAINDROP_ID, "number": {"equals": raindrop_id}}
                        for raindrop_id in chunk
                    ]
                },
                "page_size": QUERY_PAGE_SIZE,
            }
            pages = await self._query_all(body, f"find_by_raindrop_ids({len(chunk)})")
            for page in pages:
                existing = page_to_existing(page)
                if existing is None:
                    continue
                if existing.raindrop_id in found:
                    logger.warning(
                        "notion_duplicate_raindrop_id",
                        extra={
                            "raindrop_id": existing.raindrop_id,
                            "page_id": existing.page_id,
                            "kept_page_id": found[existing.raindrop_id].page_id,
                        },
                    )
                    continue
                found[existing.raindrop_id] = existing
        return found

    async def create(self, item: RaindropItem, collection_title: str | None = None) -> str:
        body = {
            "parent": {"database_id": self.database_id},
            "properties": create_properties(
                item, collection_title=collection_title, synced_at=self._clock()
            ),
        }
        data = await self._request("POST", "/pages", f"create({item.id})", body)
        page_id = str(data.get("id", ""))
        logger.info("notion_page_created", extra={"raindrop_id": item.id, "page_id": page_id})
        return page_id

    async def _patch_properties(
        self, page_id: str, properties: dict[str, Any], operation_name: str
    ) -> None:
        body = {"properties": properties}
        await self._request("PATCH", f"/pages/{page_id}", operation_name, body)

    async def update(
        self, page_id: str, item: RaindropItem, collection_title: str | None = None
    ) -> None:
        properties = content_properties(
            item, collection_title=collection_title, synced_at=self._clock()
        )
        await self._patch_properties(page_id, properties, f"update({item.id})")
        logger.info("notion_page_updated", extra={"raindrop_id": item.id, "page_id": page_id})

    async def update_collection_only(self, page_id: str, collection_title: str | None) -> None:
        properties = collection_only_properties(collection_title, synced_at=self._clock())
        await self._patch_properties(page_id, properties, f"update_collection_only({page_id})")

    async def mark_delete_detected(
        self, page_id: str, detected_at: datetime, set_archive_pending: bool
    ) -> None:
        properties = delete_detected_properties(
            detected_at,
            archive_pending_status=self.archive_pending_status if set_archive_pending else None,
        )
        await self._patch_properties(page_id, properties, f"mark_delete_detected({page_id})")

    async def clear_delete_flags(self, page_id: str) -> None:
        properties = clear_delete_properties(synced_at=self._clock())
        await self._patch_properties(page_id, properties, f"clear_delete_flags({page_id})")

    async def archive(self, page_id: str) -> None:
        await self._request("PATCH", f"/pages/{page_id}", f"archive({page_id})", {"archived": True})
        logger.info("notion_page_archived", extra={"page_id": page_id})

    async def list_all(self) -> list[LedgerRow]:
        """Every non-archived row carrying a Raindrop ID."""
        body = {
            "filter": {"property": PROP_RAINDROP_ID, "number": {"is_not_empty": True}},
            "page_size": QUERY_PAGE_SIZE,
        }
        pages = await self._query_all(body, "list_all")
        rows = [row for row in (page_to_row(page) for page in pages) if row is not None]
        logger.info("notion_rows_listed", extra={"pages": len(pages), "rows": len(rows)})
        return rows

    async def describe_database(self) -> dict[str, Any]:
        """Credential probe: database id and title."""
        data = await self._request("GET", f"/databases/{self.database_id}", "describe_database")
        title_parts = data.get("title") or []
        title = title_parts[0].get("plain_text") if title_parts else None
        return {"database_id": data.get("id", self.database_id), "title": title}
