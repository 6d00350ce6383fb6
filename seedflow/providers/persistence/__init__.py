"""SQLite persistence adapters."""

from seedflow.providers.persistence.sqlite_seed_store import SQLiteSeedStore
from seedflow.providers.persistence.sqlite_usage_counter import SQLiteUsageCounter

__all__ = ["SQLiteSeedStore", "SQLiteUsageCounter"]
