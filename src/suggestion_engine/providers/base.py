"""Provider contract for suggestion backends.

Every backend implements ``generate``; callers go through ``call``, which
enforces the per-call timeout and turns any timeout into a
ProviderTimeoutError.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from suggestion_engine.core.types import (
    ContextSnapshot,
    PersonalityType,
    Suggestion,
    SuggestionSource,
)
from suggestion_engine.exceptions import ProviderTimeoutError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SuggestionPrompt:
    """What the user typed plus the per-user hints providers may use.

    Attributes:
        text: Partial or complete user input
        source_language: Language the input is written in
        target_language: Language suggestions should be in
        is_partial: True while the user is still typing
        user_id: Requesting user
        personality_type: User's communication personality
        formality: User's preferred formality (0 casual .. 1 formal)
        pattern_affinity: How much pattern-bank completions suit the user
        proficiency: User's proficiency in the source language
        max_suggestions: Upper bound a provider should return
    """

    text: str
    source_language: str = "en"
    target_language: str = "en"
    is_partial: bool = False
    user_id: str = ""
    personality_type: PersonalityType = PersonalityType.CASUAL
    formality: float = 0.3
    pattern_affinity: float = 0.7
    proficiency: float = 0.5
    max_suggestions: int = 5

    @property
    def language_pair(self) -> str:
        return f"{self.source_language}_{self.target_language}"


class SuggestionProvider(ABC):
    """Abstract suggestion backend.

    Subclasses set ``provider_id`` and ``source`` and implement
    ``generate``. ``generate`` raises ProviderError subclasses on failure
    and returns an empty list only when it genuinely has nothing to offer.
    """

    provider_id: str = ""
    source: SuggestionSource = SuggestionSource.RULE_BASED

    @abstractmethod
    async def generate(
        self,
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
    ) -> list[Suggestion]:
        """Produce suggestions for a prompt."""
        ...

    async def call(
        self,
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
        timeout: float,
    ) -> list[Suggestion]:
        """Run ``generate`` under a timeout.

        Raises:
            ProviderTimeoutError: If ``generate`` does not finish in time
            ProviderError: Any classified failure from the backend
        """
        try:
            suggestions = await asyncio.wait_for(self.generate(prompt, snapshot), timeout)
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Provider '{self.provider_id}' exceeded {timeout:.3f}s",
                provider_id=self.provider_id,
                cause=e,
            ) from e
        return suggestions[: prompt.max_suggestions]

    async def close(self) -> None:
        """Release backend resources."""
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(provider_id={self.provider_id!r})"
