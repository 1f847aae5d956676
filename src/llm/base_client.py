# src/llm/base_client.py — v2
"""Abstract LLM client interface used by the hosted classifier."""

from __future__ import annotations

from abc import ABC, abstractmethod

from dealcache.llm.models import LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for chat-completion providers."""

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 20,
        temperature: float = 0.3,
    ) -> LLMResponse:
        """Text completion."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openai, ...)."""

    async def close(self) -> None:
        """Release the underlying SDK client, if any."""
