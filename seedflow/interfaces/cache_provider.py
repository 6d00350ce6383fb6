"""Abstract base class for key-value caches.

Used to hold remotely fetched configuration between reads.  An in-memory
TTL cache is the only implementation today; a shared store can replace it
for multi-worker deployments without touching callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Async key-value cache with expiring entries."""

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value under *key*, or ``None`` when missing or expired."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store *value* under *key* using the cache's configured lifetime."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove *key*; a missing key is not an error."""

    @abstractmethod
    async def clear(self) -> None:
        """Drop every entry."""
