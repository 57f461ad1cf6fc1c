"""
API route handlers.
"""

from . import health, sync

__all__ = ["health", "sync"]
