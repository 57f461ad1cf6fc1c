"""Raindrop.io API client (source ledger)."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import ValidationError

from dropsync.adapters.raindrop.models import (
    RaindropDetail,
    RaindropItem,
    RaindropPage,
    RaindropUser,
)
from dropsync.core.http_retry import (
    DEFAULT_BASE_DELAY,
    DEFAULT_MAX_DELAY,
    DEFAULT_MAX_RETRIES,
    retry_with_backoff,
)
from dropsync.sync.errors import RaindropClientError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from typing import Self

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.raindrop.io/rest/v1"


class RaindropClient:
    """Async HTTP client for the Raindrop.io REST API.

    Use as an async context manager; the underlying ``httpx.AsyncClient`` lives
    for exactly one invocation.
    """

    def __init__(
        self,
        access_token: str,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 30.0,
        *,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_base_delay: float = DEFAULT_BASE_DELAY,
        retry_max_delay: float = DEFAULT_MAX_DELAY,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize Raindrop client.

        Args:
            access_token: Raindrop test token or OAuth access token
            api_url: Base URL of the REST API
            timeout: Request timeout in seconds
            max_retries: Maximum retry attempts for transient failures
            retry_base_delay: Base delay between retries in seconds
            retry_max_delay: Maximum delay between retries in seconds
            transport: Optional custom transport (tests use ``httpx.MockTransport``)
        """
        self.api_url = api_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay
        self.retry_max_delay = retry_max_delay
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> Self:
        self._client = httpx.AsyncClient(
            base_url=self.api_url,
            headers={"Authorization": f"Bearer {self.access_token}"},
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
            raise RaindropClientError("Client not initialized. Use async context manager.")
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
            msg = f"Raindrop {operation_name} failed: {exc.response.status_code} {body}"
            raise RaindropClientError(msg, status_code=exc.response.status_code) from exc
        except httpx.HTTPError as exc:
            msg = f"Raindrop {operation_name} failed: {exc}"
            raise RaindropClientError(msg) from exc
        except ValueError as exc:
            # Undecodable JSON or a payload the models reject
            msg = f"Raindrop {operation_name} returned a malformed response: {exc}"
            raise RaindropClientError(msg) from exc

    async def _get_json(
        self, path: str, operation_name: str, params: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        async def _fetch() -> dict[str, Any]:
            response = await self.client.get(path, params=params)
            response.raise_for_status()
            return response.json()

        return await self._with_retry(_fetch, operation_name)

    @staticmethod
    def _page_items(data: dict[str, Any], operation_name: str) -> list[RaindropItem]:
        try:
            return RaindropPage.model_validate(data).items
        except ValidationError as exc:
            msg = f"Raindrop {operation_name} returned a malformed page: {exc}"
            raise RaindropClientError(msg) from exc

    async def list_recent(
        self,
        collection_id: str | int,
        *,
        per_page: int = 50,
        page: int = 0,
        sort: str = "-created",
    ) -> list[RaindropItem]:
        """Fetch one page of a collection ordered by creation time.

        Args:
            collection_id: Collection to list (``0`` lists all collections)
            per_page: Page size (Raindrop caps this at 50)
            page: Zero-based page index
            sort: ``-created`` for newest first, ``created`` for oldest first

        Returns:
            Items on the page; empty when past the end
        """
        params = {"perpage": per_page, "page": page, "sort": sort}
        operation = f"list_recent(page={page})"
        data = await self._get_json(f"/raindrops/{collection_id}", operation, params)
        return self._page_items(data, operation)

    async def search(
        self,
        collection_id: str | int,
        query: str,
        *,
        per_page: int = 50,
        page: int = 0,
        sort: str = "-created",
    ) -> list[RaindropItem]:
        """Fetch one page of a filtered listing, e.g. ``lastUpdate:>2024-05-01``."""
        params = {"perpage": per_page, "page": page, "sort": sort, "search": query}
        operation = f"search({query!r}, page={page})"
        data = await self._get_json(f"/raindrops/{collection_id}", operation, params)
        return self._page_items(data, operation)

    async def get_collection_title(self, collection_id: str | int) -> str | None:
        data = await self._get_json(
            f"/collection/{collection_id}", f"get_collection_title({collection_id})"
        )
        item = data.get("item") or {}
        title = item.get("title")
        return str(title) if title else None

    async def get_detail(self, raindrop_id: int) -> RaindropDetail:
        """Direct existence check used to tell moved items from removed ones.

        A 404 means the item no longer exists; other failures raise.
        """
        operation = f"get_detail({raindrop_id})"

        async def _fetch() -> RaindropDetail:
            response = await self.client.get(f"/raindrop/{raindrop_id}")
            if response.status_code == httpx.codes.NOT_FOUND:
                return RaindropDetail.missing()
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            item = data.get("item")
            if not data.get("result", True) or not isinstance(item, dict):
                return RaindropDetail.missing()
            return RaindropDetail.from_item_payload(item)

        detail: RaindropDetail = await self._with_retry(_fetch, operation)
        logger.debug(
            "raindrop_detail_checked",
            extra={
                "raindrop_id": raindrop_id,
                "exists": detail.exists,
                "removed": detail.removed,
                "collection_id": detail.collection_id,
            },
        )
        return detail

    async def get_user(self) -> RaindropUser:
        """Lightweight credential probe."""
        data = await self._get_json("/user", "get_user")
        return RaindropUser.model_validate(data.get("user") or {})
