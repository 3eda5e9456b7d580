"""Abstract base class for LLM backends.

The neural and predictive providers depend on this interface, not on a
concrete client, so tests can swap in MockLLM.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal


@dataclass
class ChatMessage:
    """A message in a chat completion request."""

    role: Literal["system", "user", "assistant"]
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass
class ChatResponse:
    """Response from a chat completion."""

    content: str
    role: str = "assistant"
    finish_reason: str | None = None
    model: str | None = None
    usage: dict[str, int] | None = None  # tokens used

    # Timing
    latency_ms: float | None = None
    created_at: float = field(default_factory=time.time)


class LLMProvider(ABC):
    """Abstract interface for LLM chat backends.

    Implementations raise ProviderError subclasses (timeout, auth, rate
    limit, network) so the gateway can classify failures without knowing
    the client library.
    """

    @abstractmethod
    async def chat(
        self,
        messages: list[ChatMessage] | list[dict[str, Any]],
        *,
        system_prompt: str | None = None,
        temperature: float = 0.4,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> ChatResponse:
        """Complete a chat conversation.

        Args:
            messages: Conversation history
            system_prompt: Optional system prompt to prepend
            temperature: Sampling temperature (0-1)
            max_tokens: Maximum tokens in response
            json_mode: Ask the backend for a JSON object response

        Returns:
            ChatResponse with the model's reply
        """
        ...

    async def complete(
        self,
        prompt: str,
        *,
        system_prompt: str | None = None,
        temperature: float = 0.4,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> str:
        """Single-prompt completion (convenience wrapper around chat)."""
        response = await self.chat(
            messages=[{"role": "user", "content": prompt}],
            system_prompt=system_prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            json_mode=json_mode,
        )
        return response.content

    async def close(self) -> None:
        """Release client resources."""
        return None
