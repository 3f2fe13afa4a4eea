"""Full-text search over scanned inventories."""

from __future__ import annotations

from .content import search_content

__all__ = ["search_content"]
