"""Mock LLM backend for testing.

Returns scripted responses without any network access.
"""

import asyncio
from typing import Any

from .base import ChatMessage, ChatResponse, LLMProvider


class MockLLM(LLMProvider):
    """Simple mock LLM that returns configurable responses.

    Usage:
        llm = MockLLM(default_response='{"suggestions": []}')

        # Or with a response sequence
        llm = MockLLM(responses=["First", "Second", "Third"])

        # Or failing
        llm = MockLLM(error=ProviderAuthError("bad key"))
    """

    def __init__(
        self,
        default_response: str = '{"suggestions": []}',
        responses: list[str] | None = None,
        delay_seconds: float = 0.0,
        error: Exception | None = None,
    ):
        """Initialize mock LLM.

        Args:
            default_response: Default response when no others available
            responses: Optional list of responses to cycle through
            delay_seconds: Simulated latency per call
            error: Exception raised on every call instead of answering
        """
        self.default_response = default_response
        self.responses = list(responses) if responses else []
        self.response_index = 0
        self.delay_seconds = delay_seconds
        self.error = error
        self.calls: list[dict] = []  # Track all calls for assertions

    async def chat(
        self,
        messages: list[ChatMessage] | list[dict[str, Any]],
        *,
        system_prompt: str | None = None,
        temperature: float = 0.4,
        max_tokens: int = 1024,
        json_mode: bool = False,
    ) -> ChatResponse:
        """Return mock response."""
        self.calls.append({
            "messages": messages,
            "system_prompt": system_prompt,
            "temperature": temperature,
            "json_mode": json_mode,
        })

        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        if self.error is not None:
            raise self.error

        if self.responses:
            response = self.responses[self.response_index % len(self.responses)]
            self.response_index += 1
        else:
            response = self.default_response

        return ChatResponse(
            content=response,
            role="assistant",
            model="mock",
            latency_ms=self.delay_seconds * 1000,
        )
