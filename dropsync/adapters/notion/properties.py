"""Mapping between Raindrop items and Notion database properties."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from dropsync.adapters.notion.models import ExistingPage, LedgerRow

if TYPE_CHECKING:
    from dropsync.adapters.raindrop.models import RaindropItem

logger = logging.getLogger(__name__)

PROP_TITLE = "Title"
PROP_URL = "URL"
PROP_TAGS = "Tags"
PROP_EXCERPT = "Excerpt"
PROP_NOTE = "Note"
PROP_SITE = "Site"
PROP_COLLECTION = "Collection"
PROP_CREATED = "Created"
PROP_RAINDROP_ID = "Raindrop ID"
PROP_LAST_UPDATE = "Raindrop Last Update"
PROP_LAST_SYNCED = "Last Synced"
PROP_LOCK = "Lock"
PROP_DELETED = "Deleted in Raindrop"
PROP_DELETE_DETECTED_AT = "Delete Detected At"
PROP_STATUS = "Status"

MAX_TAGS = 50
MAX_TEXT_LENGTH = 2000  # Notion rich_text content limit per text object

_DATETIME = TypeAdapter(datetime)


def _text_object(text: str) -> dict[str, Any]:
    return {"type": "text", "text": {"content": text[:MAX_TEXT_LENGTH]}}


def _rich_text(text: str | None) -> dict[str, Any]:
    if not text:
        return {"rich_text": []}
    return {"rich_text": [_text_object(text)]}


def _date(value: datetime | None) -> dict[str, Any]:
    if value is None:
        return {"date": None}
    return {"date": {"start": value.isoformat()}}


def to_multi_select(tags: list[str] | None) -> dict[str, Any]:
    """Deduplicate tags (first spelling wins) and cap them at Notion's option budget.

    Notion rejects commas inside select option names.
    """
    seen: set[str] = set()
    options: list[dict[str, str]] = []
    for tag in tags or []:
        name = tag.replace(",", " ").strip()[:100]
        key = name.lower()
        if not name or key in seen:
            continue
        seen.add(key)
        options.append({"name": name})
        if len(options) >= MAX_TAGS:
            break
    return {"multi_select": options}


def content_properties(
    item: RaindropItem,
    *,
    collection_title: str | None,
    synced_at: datetime,
) -> dict[str, Any]:
    """The mapped property set written on create and rewritten on update.

    User-owned properties (Status, Lock) and the delete-tracking pair are not
    part of this set, so updates never touch them.
    """
    return {
        PROP_TITLE: {"title": [_text_object(item.title)]},
        PROP_URL: {"url": item.link or None},
        PROP_TAGS: to_multi_select(item.tags),
        PROP_EXCERPT: _rich_text(item.excerpt),
        PROP_NOTE: _rich_text(item.note),
        PROP_SITE: _rich_text(item.domain),
        PROP_COLLECTION: _rich_text(collection_title),
        PROP_CREATED: _date(item.created),
        PROP_LAST_UPDATE: _date(item.last_modified),
        PROP_LAST_SYNCED: _date(synced_at),
    }


def create_properties(
    item: RaindropItem,
    *,
    collection_title: str | None,
    synced_at: datetime,
) -> dict[str, Any]:
    properties = content_properties(item, collection_title=collection_title, synced_at=synced_at)
    properties[PROP_RAINDROP_ID] = {"number": item.id}
    properties[PROP_LOCK] = {"checkbox": False}
    properties[PROP_DELETED] = {"checkbox": False}
    return properties


def collection_only_properties(
    collection_title: str | None, *, synced_at: datetime
) -> dict[str, Any]:
    return {
        PROP_COLLECTION: _rich_text(collection_title),
        PROP_LAST_SYNCED: _date(synced_at),
    }


def delete_detected_properties(
    detected_at: datetime,
    *,
    archive_pending_status: str | None,
) -> dict[str, Any]:
    properties: dict[str, Any] = {
        PROP_DELETED: {"checkbox": True},
        PROP_DELETE_DETECTED_AT: _date(detected_at),
        PROP_LAST_SYNCED: _date(detected_at),
    }
    if archive_pending_status:
        properties[PROP_STATUS] = {"select": {"name": archive_pending_status}}
    return properties


def clear_delete_properties(*, synced_at: datetime) -> dict[str, Any]:
    return {
        PROP_DELETED: {"checkbox": False},
        PROP_DELETE_DETECTED_AT: {"date": None},
        PROP_LAST_SYNCED: _date(synced_at),
    }


def _prop(page: dict[str, Any], name: str) -> dict[str, Any]:
    return (page.get("properties") or {}).get(name) or {}


def read_number(page: dict[str, Any], name: str) -> int | None:
    value = _prop(page, name).get("number")
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def read_checkbox(page: dict[str, Any], name: str) -> bool:
    return bool(_prop(page, name).get("checkbox", False))


def read_date(page: dict[str, Any], name: str) -> datetime | None:
    """Return the date property as a datetime, or None when empty or unparseable.

    A bad value blanks only that field; the page itself is kept.
    """
    start = (_prop(page, name).get("date") or {}).get("start")
    if not start:
        return None
    try:
        return _DATETIME.validate_python(start)
    except ValidationError:
        logger.warning(
            "notion_date_unparseable",
            extra={"page_id": page.get("id"), "property": name, "value": start},
        )
        return None


def page_to_existing(page: dict[str, Any]) -> ExistingPage | None:
    raindrop_id = read_number(page, PROP_RAINDROP_ID)
    if raindrop_id is None:
        return None
    try:
        return ExistingPage(
            page_id=page["id"],
            raindrop_id=raindrop_id,
            raindrop_last_update=read_date(page, PROP_LAST_UPDATE),
            locked=read_checkbox(page, PROP_LOCK),
        )
    except (KeyError, ValidationError) as exc:
        logger.warning(
            "notion_page_unparseable",
            extra={"page_id": page.get("id"), "error": str(exc)},
        )
        return None


def page_to_row(page: dict[str, Any]) -> LedgerRow | None:
    raindrop_id = read_number(page, PROP_RAINDROP_ID)
    if raindrop_id is None:
        return None
    try:
        return LedgerRow(
            page_id=page["id"],
            raindrop_id=raindrop_id,
            locked=read_checkbox(page, PROP_LOCK),
            deleted_flag=read_checkbox(page, PROP_DELETED),
            delete_detected_at=read_date(page, PROP_DELETE_DETECTED_AT),
            last_synced_at=read_date(page, PROP_LAST_SYNCED),
            raindrop_last_update=read_date(page, PROP_LAST_UPDATE),
        )
    except (KeyError, ValidationError) as exc:
        logger.warning(
            "notion_page_unparseable",
            extra={"page_id": page.get("id"), "error": str(exc)},
        )
        return None
