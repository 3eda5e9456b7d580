"""Groq LLM backend.

Provides high-speed inference using Groq's API. Client exceptions are
translated into the engine's ProviderError hierarchy.
"""

import asyncio
import logging
import os
import time
from dataclasses import dataclass
from typing import Any

import groq

from suggestion_engine.exceptions import (
    ProviderAuthError,
    ProviderError,
    ProviderNetworkError,
    ProviderRateLimitError,
    ProviderTimeoutError,
)

from .base import ChatMessage, ChatResponse, LLMProvider

logger = logging.getLogger(__name__)


@dataclass
class GroqConfig:
    """Configuration for the Groq backend."""

    api_key: str | None = None
    base_url: str | None = None
    model: str = "llama-3.1-8b-instant"

    # Timeouts
    timeout_seconds: float = 10.0

    # Retries happen here only for rate limits; the gateway owns timeouts
    max_retries: int = 2
    retry_delay_seconds: float = 0.25


def translate_error(error: Exception) -> ProviderError:
    """Map a groq client exception onto the engine's error taxonomy."""
    # APITimeoutError subclasses APIConnectionError, so check it first
    if isinstance(error, groq.APITimeoutError):
        return ProviderTimeoutError("Groq request timed out", cause=error)
    if isinstance(error, groq.APIConnectionError):
        return ProviderNetworkError("Could not reach Groq", cause=error)
    if isinstance(error, (groq.AuthenticationError, groq.PermissionDeniedError)):
        return ProviderAuthError("Groq rejected the API key", cause=error)
    if isinstance(error, groq.RateLimitError):
        retry_after = None
        response = getattr(error, "response", None)
        header = response.headers.get("retry-after") if response is not None else None
        if header:
            try:
                retry_after = float(header)
            except ValueError:
                retry_after = None
        return ProviderRateLimitError(
            "Groq rate limit exceeded", retry_after=retry_after, cause=error
        )
    return ProviderNetworkError(f"Groq request failed: {error}", cause=error)


class GroqLLM(LLMProvider):
    """Groq LLM backend.

    Usage:
        llm = GroqLLM(api_key="your-key")

        response = await llm.chat(
            messages=[{"role": "user", "content": "Hello"}],
            json_mode=True,
        )
        print(response.content)
    """

    def __init__(
        self,
        api_key: str | None = None,
        config: GroqConfig | None = None,
    ):
        """Initialize Groq backend.

        Args:
            api_key: Groq API key (or set GROQ_API_KEY env var)
            config: Optional configuration
        """
        self.config = config or GroqConfig()
        self.config.api_key = api_key or self.config.api_key or os.environ.get("GROQ_API_KEY")

        if not self.config.api_key:
            raise ValueError("Groq API key required. Set GROQ_API_KEY or pass api_key.")

        self._client: groq.AsyncGroq | None = None

    @property
    def client(self) -> groq.AsyncGroq:
        """Lazy-create the Groq client."""
        if self._client is None:
            self._client = groq.AsyncGroq(
                api_key=self.config.api_key,
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
                max_retries=0,
            )
        return self._client

    def _convert_messages(
        self,
        messages: list[ChatMessage] | list[dict[str, Any]],
        system_prompt: str | None = None,
    ) -> list[dict[str, Any]]:
        """Convert messages to Groq format."""
        result = []

        if system_prompt:
            result.append({"role": "system", "content": system_prompt})

        for msg in messages:
            if isinstance(msg, ChatMessage):
                result.append(msg.to_dict())
            else:
                result.append(dict(msg))

        return result

    async def chat(
        self,
        messages: list[ChatMessage] | list[dict[str, Any]],
        *,
        system_prompt: str | None = None,
        temperature: float = 0.4,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> ChatResponse:
        """Complete a chat conversation using Groq.

        Raises:
            ProviderError: Classified client failure
        """
        start_time = time.time()

        kwargs: dict[str, Any] = {
            "model": self.config.model,
            "messages": self._convert_messages(messages, system_prompt),
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        if json_mode:
            kwargs["response_format"] = {"type": "json_object"}

        attempt = 0
        while True:
            try:
                response = await self.client.chat.completions.create(**kwargs)
                break
            except groq.GroqError as e:
                error = translate_error(e)
                attempt += 1
                if isinstance(error, ProviderRateLimitError) and attempt <= self.config.max_retries:
                    delay = error.retry_after or self.config.retry_delay_seconds * attempt
                    logger.debug(f"Groq rate limited, retrying in {delay:.2f}s")
                    await asyncio.sleep(delay)
                    continue
                raise error from e

        choice = response.choices[0]
        latency_ms = (time.time() - start_time) * 1000

        return ChatResponse(
            content=choice.message.content or "",
            role=choice.message.role,
            finish_reason=choice.finish_reason,
            model=response.model,
            usage={
                "prompt_tokens": response.usage.prompt_tokens if response.usage else 0,
                "completion_tokens": response.usage.completion_tokens if response.usage else 0,
                "total_tokens": response.usage.total_tokens if response.usage else 0,
            },
            latency_ms=latency_ms,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
