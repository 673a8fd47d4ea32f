"""Caches shared by the analysis pipeline."""

from .content_cache import ContentCache, content_hash

__all__ = ["ContentCache", "content_hash"]
