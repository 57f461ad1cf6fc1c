"""Notion integration adapter (destination ledger)."""

from dropsync.adapters.notion.client import NotionLedger
from dropsync.adapters.notion.models import ExistingPage, LedgerRow

__all__ = ["ExistingPage", "LedgerRow", "NotionLedger"]
