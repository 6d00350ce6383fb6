"""Abstract base class for runtime configuration.

Content limits can change while the service is running, so they are read
through this provider on every validation instead of being captured at
startup.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from seedflow.models.extraction import AILimits


class IConfigProvider(ABC):
    @abstractmethod
    async def get_ai_limits(self) -> AILimits:
        """Return the current word and character ceilings.

        Implementations must never raise for an unreachable backend; they
        fall back to locally configured defaults instead.
        """

    @abstractmethod
    async def refresh(self) -> None:
        """Drop any cached configuration so the next read refetches it."""
