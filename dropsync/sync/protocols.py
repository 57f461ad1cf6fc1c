"""Protocol definitions (ports) for the mirror sync.

The engines only see these Protocols, so they run unchanged against the HTTP
clients in production and in-memory fakes in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from contextlib import AbstractAsyncContextManager
    from datetime import datetime

    from dropsync.adapters.notion.models import ExistingPage, LedgerRow
    from dropsync.adapters.raindrop.models import RaindropDetail, RaindropItem
    from dropsync.config import AppConfig


class SourceReader(Protocol):
    async def list_recent(
        self,
        collection_id: str | int,
        *,
        per_page: int = 50,
        page: int = 0,
        sort: str = "-created",
    ) -> list[RaindropItem]: ...

    async def search(
        self,
        collection_id: str | int,
        query: str,
        *,
        per_page: int = 50,
        page: int = 0,
        sort: str = "-created",
    ) -> list[RaindropItem]: ...

    async def get_collection_title(self, collection_id: str | int) -> str | None: ...

    async def get_detail(self, raindrop_id: int) -> RaindropDetail: ...


class DestinationLedger(Protocol):
    async def find_by_raindrop_ids(self, raindrop_ids: list[int]) -> dict[int, ExistingPage]: ...

    async def create(self, item: RaindropItem, collection_title: str | None = None) -> str: ...

    async def update(
        self, page_id: str, item: RaindropItem, collection_title: str | None = None
    ) -> None: ...

    async def update_collection_only(self, page_id: str, collection_title: str | None) -> None: ...

    async def mark_delete_detected(
        self, page_id: str, detected_at: datetime, set_archive_pending: bool
    ) -> None: ...

    async def clear_delete_flags(self, page_id: str) -> None: ...

    async def archive(self, page_id: str) -> None: ...

    async def list_all(self) -> list[LedgerRow]: ...


class SourceFactory(Protocol):
    def __call__(self, cfg: AppConfig) -> AbstractAsyncContextManager[SourceReader]: ...


class DestinationFactory(Protocol):
    def __call__(self, cfg: AppConfig) -> AbstractAsyncContextManager[DestinationLedger]: ...
