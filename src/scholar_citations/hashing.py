"""Content fingerprints and the in-memory cache keyed by them."""
from __future__ import annotations

import hashlib
from typing import Dict, Generic, Optional, TypeVar

T = TypeVar("T")


def sha256_hex(text: str) -> str:
    """Return the lowercase hex SHA-256 digest of ``text`` encoded as UTF-8."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def content_key(content: str) -> str:
    # Surrounding whitespace does not change what the backend reviews.
    return sha256_hex(content.strip())


class ContentCache(Generic[T]):
    """Keep one value per distinct document content."""

    def __init__(self) -> None:
        self._entries: Dict[str, T] = {}

    def get(self, content: str) -> Optional[T]:
        return self._entries.get(content_key(content))

    def put(self, content: str, value: T) -> None:
        self._entries[content_key(content)] = value

    def discard(self, content: str) -> None:
        self._entries.pop(content_key(content), None)

    def clear(self) -> None:
        self._entries.clear()

    def __contains__(self, content: object) -> bool:
        return isinstance(content, str) and content_key(content) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
