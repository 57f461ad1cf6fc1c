"""One-way Raindrop.io to Notion bookmark mirror."""

__version__ = "1.0.0"
