"""In-memory cache keyed by document content hash."""

from __future__ import annotations

import hashlib
import threading
from typing import Any, Dict, Optional, Tuple


def content_hash(content: str) -> str:
    """Return the SHA-256 hex digest identifying ``content``.

    Lone surrogates (text decoded with ``surrogateescape``) hash like any other code point.
    """
    return hashlib.sha256(content.encode("utf-8", "surrogatepass")).hexdigest()


class ContentCache:
    """Stores immutable values keyed by namespace, signature and content hash.

    Only dictionary access happens under the lock. Concurrent writers of the
    same key keep the first stored value, so callers must only cache values
    that are equal for equal inputs.
    """

    def __init__(self, *, max_entries: int = 256) -> None:
        self._entries: Dict[Tuple[str, str, str], Any] = {}
        self._lock = threading.Lock()
        self._max_entries = max_entries
        self.hits = 0
        self.misses = 0

    def get(self, namespace: str, *, fingerprint: str, signature: str = "") -> Optional[Any]:
        key = (namespace, signature, fingerprint)
        with self._lock:
            value = self._entries.get(key)
            if value is None:
                self.misses += 1
            else:
                self.hits += 1
        return value

    def store(self, namespace: str, *, fingerprint: str, value: Any, signature: str = "") -> Any:
        """Store ``value`` unless another writer won; return the cached value."""
        key = (namespace, signature, fingerprint)
        with self._lock:
            if key not in self._entries and len(self._entries) >= self._max_entries:
                # Evict the oldest insertion.
                oldest = next(iter(self._entries))
                del self._entries[oldest]
            return self._entries.setdefault(key, value)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


__all__ = ["ContentCache", "content_hash"]
