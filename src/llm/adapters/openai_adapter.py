# src/llm/adapters/openai_adapter.py — v2
"""OpenAI chat-completion adapter implementing BaseLLMClient.

Uses the official openai SDK. SDK-level retries are disabled; retrying is
owned by dealcache.llm.retry.
"""

from __future__ import annotations

import time
from typing import Any

from dealcache.llm.base_client import BaseLLMClient
from dealcache.llm.models import LLMResponse, Message


class OpenAIAdapter(BaseLLMClient):
    """OpenAI GPT adapter."""

    def __init__(
        self,
        model: str = "gpt-3.5-turbo",
        api_key: str = "",
        organization: str = "",
        timeout: float = 30.0,
        **kwargs: Any,
    ):
        self._model = model
        self._api_key = api_key
        self._organization = organization or None
        self._timeout = timeout
        self._client: Any = None

    def _sdk(self) -> Any:
        if self._client is None:
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                organization=self._organization,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client

    async def complete(
        self,
        messages: list[Message],
        system: str | None = None,
        max_tokens: int = 20,
        temperature: float = 0.3,
    ) -> LLMResponse:
        oai_messages: list[dict[str, Any]] = []
        if system:
            oai_messages.append({"role": "system", "content": system})
        for m in messages:
            oai_messages.append({"role": m.role, "content": m.content})

        t0 = time.monotonic()
        resp = await self._sdk().chat.completions.create(
            model=self._model,
            messages=oai_messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        latency = int((time.monotonic() - t0) * 1000)

        choice = resp.choices[0]
        usage = resp.usage
        return LLMResponse(
            content=choice.message.content or "",
            input_tokens=usage.prompt_tokens if usage else 0,
            output_tokens=usage.completion_tokens if usage else 0,
            model=self._model,
            provider="openai",
            latency_ms=latency,
            raw_response=resp,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
