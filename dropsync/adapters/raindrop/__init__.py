"""Raindrop.io integration adapter (source ledger)."""

from dropsync.adapters.raindrop.client import RaindropClient
from dropsync.adapters.raindrop.models import RaindropDetail, RaindropItem

__all__ = ["RaindropClient", "RaindropDetail", "RaindropItem"]
