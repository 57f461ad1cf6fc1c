"""Ledger adapters: Raindrop.io (source) and Notion (destination)."""
