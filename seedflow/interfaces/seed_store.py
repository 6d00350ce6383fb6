"""Abstract base class for seed persistence.

The ingestion pipeline relies on two properties of every implementation:
a record deleted right after creation is gone for subsequent reads, and
``update_seed`` returns the stored version.  Deleting a seed also removes
its derived study materials.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from seedflow.models.seed import Seed


class ISeedStore(ABC):
    """Contract for storing and retrieving Seeds and their materials."""

    @abstractmethod
    async def create_seed(self, seed: Seed) -> Seed:
        """Insert *seed* and return the stored record.

        Raises
        ------
        seedflow.utils.errors.PersistenceError
            On any storage failure.
        """

    @abstractmethod
    async def update_seed(self, seed_id: str, **fields: Any) -> Seed:
        """Apply *fields* to the stored seed and return the new version.

        ``updated_at`` is refreshed automatically.

        Raises
        ------
        seedflow.utils.errors.PersistenceError
            If the seed does not exist or the write fails.
        """

    @abstractmethod
    async def delete_seed(self, seed_id: str, user_id: str | None = None) -> bool:
        """Delete a seed and its materials, optionally scoped to its owner.

        Returns ``False`` if no matching seed exists.
        """

    @abstractmethod
    async def get_seed(self, seed_id: str, user_id: str | None = None) -> Seed | None:
        """Fetch a seed by id, optionally scoped to its owner."""

    @abstractmethod
    async def list_seeds(self, user_id: str, limit: int = 50) -> list[Seed]:
        """Return the user's seeds, newest first."""

    @abstractmethod
    async def save_materials(self, seed_id: str, kind: str, content: Any) -> None:
        """Store one derived study material (e.g. ``"flashcards"``) for a seed."""

    @abstractmethod
    async def get_materials(self, seed_id: str) -> dict[str, Any]:
        """Return every stored material for a seed keyed by material kind."""
