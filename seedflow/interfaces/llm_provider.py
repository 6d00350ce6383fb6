"""Abstract base class for LLM service providers.

Defines the contract for the generative model used to write explanations
and derived study materials.  The adapter pattern keeps every call-site
provider-agnostic; the only concrete adapter is
:class:`~seedflow.providers.llm.openai_provider.OpenAILLMProvider`.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator


class ILLMProvider(ABC):
    """Contract for LLM services used by the generators."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> str:
        """Generate a text completion from the model.

        Parameters
        ----------
        system_prompt:
            The system/instruction message that sets the model's behaviour.
        user_prompt:
            The prompt containing the actual request or data.
        temperature:
            Sampling temperature (0.0 = deterministic, 1.0 = creative).
        max_tokens:
            Upper bound on the number of tokens in the response.

        Returns
        -------
        str
            The model's text response.

        Raises
        ------
        seedflow.utils.errors.LLMError
            If the API call fails or returns an empty response.
        """

    @abstractmethod
    def stream_complete(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> AsyncIterator[str]:
        """Stream a completion as an async iterator of text deltas.

        Same parameters as :meth:`complete`.  Implementations are async
        generators; failures surface as :class:`LLMError` while iterating.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"openai"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured with credentials."""
