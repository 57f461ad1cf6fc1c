"""Tests for Raindrop-to-Notion property mapping."""

import unittest
from datetime import UTC, datetime

from mirror_fakes import NOW, make_item

from dropsync.adapters.notion.properties import (
    MAX_TAGS,
    MAX_TEXT_LENGTH,
    content_properties,
    page_to_existing,
    page_to_row,
    to_multi_select,
)


class TestToMultiSelect(unittest.TestCase):
    def test_deduplicates_case_insensitively(self):
        result = to_multi_select(["Python", "python", "PYTHON", "rust"])
        assert result == {"multi_select": [{"name": "Python"}, {"name": "rust"}]}

    def test_commas_are_replaced(self):
        result = to_multi_select(["a,b"])
        assert result["multi_select"][0]["name"] == "a b"

    def test_blank_tags_are_dropped(self):
        assert to_multi_select(["", "   ", ","]) == {"multi_select": []}
        assert to_multi_select(None) == {"multi_select": []}

    def test_tag_count_is_capped(self):
        tags = [f"tag-{i}" for i in range(MAX_TAGS + 20)]
        assert len(to_multi_select(tags)["multi_select"]) == MAX_TAGS


class TestContentProperties(unittest.TestCase):
    def test_long_text_is_truncated(self):
        item = make_item(1, NOW, title="x" * (MAX_TEXT_LENGTH + 500))
        props = content_properties(item, collection_title=None, synced_at=NOW)
        assert len(props["Title"]["title"][0]["text"]["content"]) == MAX_TEXT_LENGTH
        assert props["Collection"] == {"rich_text": []}

    def test_last_update_falls_back_to_created(self):
        props = content_properties(make_item(1, NOW), collection_title="c", synced_at=NOW)
        assert props["Raindrop Last Update"] == {"date": {"start": NOW.isoformat()}}
        assert props["Site"]["rich_text"][0]["text"]["content"] == "example.com"


class TestPageParsing(unittest.TestCase):
    def test_page_without_raindrop_id_is_ignored(self):
        page = {"id": "p", "properties": {"Raindrop ID": {"number": None}}}
        assert page_to_existing(page) is None
        assert page_to_row(page) is None

    def test_missing_properties_default_to_unflagged(self):
        page = {"id": "p", "properties": {"Raindrop ID": {"number": 5}}}
        row = page_to_row(page)
        assert row.raindrop_id == 5
        assert not row.locked
        assert not row.deleted_flag
        assert row.delete_detected_at is None

    def test_float_ids_are_coerced(self):
        page = {"id": "p", "properties": {"Raindrop ID": {"number": 5.0}}}
        assert page_to_existing(page).raindrop_id == 5

    def test_unparseable_date_blanks_only_that_field(self):
        page = {
            "id": "p",
            "properties": {
                "Raindrop ID": {"number": 5},
                "Raindrop Last Update": {"date": {"start": "not a date"}},
                "Lock": {"checkbox": True},
            },
        }
        with self.assertLogs("dropsync.adapters.notion.properties", level="WARNING"):
            existing = page_to_existing(page)
        assert existing.raindrop_id == 5
        assert existing.raindrop_last_update is None
        assert existing.locked

    def test_unparseable_delete_timestamp_keeps_row(self):
        page = {
            "id": "p",
            "properties": {
                "Raindrop ID": {"number": 5},
                "Deleted in Raindrop": {"checkbox": True},
                "Delete Detected At": {"date": {"start": "yesterday"}},
                "Last Synced": {"date": {"start": "2025-06-14T08:00:00.000Z"}},
            },
        }
        with self.assertLogs("dropsync.adapters.notion.properties", level="WARNING"):
            row = page_to_row(page)
        assert row.deleted_flag
        assert row.delete_detected_at is None
        assert row.last_synced_at == datetime(2025, 6, 14, 8, tzinfo=UTC)


if __name__ == "__main__":
    unittest.main()
