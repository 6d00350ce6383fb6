"""Abstract interfaces for every external collaborator.

Business logic depends only on these contracts; concrete adapters live in
``seedflow/providers/`` and are wired together in ``seedflow/main.py``.
"""

from seedflow.interfaces.cache_provider import ICacheProvider
from seedflow.interfaces.config_provider import IConfigProvider
from seedflow.interfaces.content_extractor import IContentExtractor
from seedflow.interfaces.llm_provider import ILLMProvider
from seedflow.interfaces.seed_store import ISeedStore
from seedflow.interfaces.usage_counter import IUsageCounter

__all__ = [
    "ICacheProvider",
    "IConfigProvider",
    "IContentExtractor",
    "ILLMProvider",
    "ISeedStore",
    "IUsageCounter",
]
