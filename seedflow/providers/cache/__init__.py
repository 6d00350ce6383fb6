"""Cache providers."""

from seedflow.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
