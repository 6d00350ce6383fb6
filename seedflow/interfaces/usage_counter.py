"""Abstract base class for the per-user upload usage counter.

Free-tier accounts are limited in how many seeds they can create; the
counter is incremented once per successful upload that the user sees
through to completion.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IUsageCounter(ABC):
    @abstractmethod
    async def increment(self, user_id: str) -> int:
        """Increment the user's upload count and return the new value."""

    @abstractmethod
    async def get_count(self, user_id: str) -> int:
        """Return the user's current upload count (0 if never incremented)."""
