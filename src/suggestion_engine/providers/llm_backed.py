"""Shared plumbing for providers that ask an LLM for suggestions."""

from __future__ import annotations

import logging
from abc import abstractmethod

from suggestion_engine.core.types import ContextSnapshot, Suggestion
from suggestion_engine.exceptions import MalformedResponseError
from suggestion_engine.llm import LLMProvider

from .base import SuggestionPrompt, SuggestionProvider
from .parsing import decode_suggestions

logger = logging.getLogger(__name__)


SYSTEM_PROMPT = (
    "You are an expert conversation assistant that suggests what a user could say "
    "next. Provide natural, contextually appropriate suggestions. "
    "Output ONLY a JSON object, no markdown, no explanation."
)


class LLMBackedProvider(SuggestionProvider):
    """Base for LLM providers.

    Subclasses build the user prompt and name the JSON array to decode.
    Malformed output raises MalformedResponseError so the gateway records it
    instead of treating it as "no suggestions".
    """

    payload_key: str = "suggestions"

    def __init__(
        self,
        llm: LLMProvider,
        temperature: float = 0.4,
        max_tokens: int = 1200,
    ):
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    @abstractmethod
    def build_prompt(self, prompt: SuggestionPrompt, snapshot: ContextSnapshot) -> str:
        """Render the LLM user prompt."""
        ...

    async def generate(
        self,
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
    ) -> list[Suggestion]:
        raw = await self.llm.complete(
            self.build_prompt(prompt, snapshot),
            system_prompt=SYSTEM_PROMPT,
            temperature=self.temperature,
            max_tokens=self.max_tokens,
            json_mode=True,
        )

        result = decode_suggestions(raw, self.payload_key, self.source, self.provider_id)
        if not result.ok:
            raise MalformedResponseError(
                f"Provider '{self.provider_id}' returned an unusable response",
                provider_id=self.provider_id,
                cause=result.error,
            )
        suggestions = result.unwrap()
        logger.debug(f"{self.provider_id} decoded {len(suggestions)} suggestions")
        return suggestions

    async def close(self) -> None:
        await self.llm.close()
