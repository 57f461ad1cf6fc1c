"""Collection title lookups scoped to a single sync invocation."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from dropsync.sync.errors import UpstreamError

if TYPE_CHECKING:
    from dropsync.sync.protocols import SourceReader

logger = logging.getLogger(__name__)


class CollectionTitleCache:
    """Memoizes collection titles for one run.

    A new instance is created per invocation and discarded with it, so titles
    renamed in Raindrop are picked up by the next run. Lookup failures are
    cached as ``None`` and never propagate.
    """

    def __init__(self, source: SourceReader, *, correlation_id: str | None = None) -> None:
        self._source = source
        self._correlation_id = correlation_id
        self._titles: dict[str, str | None] = {}
        self.lookups = 0

    def __len__(self) -> int:
        return len(self._titles)

    async def get(self, collection_id: str | int | None) -> str | None:
        if collection_id is None or collection_id == "":
            return None
        key = str(collection_id)
        if key in self._titles:
            return self._titles[key]

        self.lookups += 1
        try:
            title = await self._source.get_collection_title(collection_id)
        except UpstreamError as exc:
            logger.warning(
                "collection_title_lookup_failed",
                extra={
                    "correlation_id": self._correlation_id,
                    "collection_id": key,
                    "error": str(exc),
                },
            )
            title = None
        self._titles[key] = title
        return title

    async def resolve(
        self,
        collection_id: str | int | None,
        *,
        default_title: str | None,
    ) -> str | None:
        """Title for ``collection_id``, falling back to the run's default title."""
        title = await self.get(collection_id)
        return title if title is not None else default_title
