"""LLM provider adapters."""

from seedflow.providers.llm.openai_provider import OpenAILLMProvider

__all__ = ["OpenAILLMProvider"]
