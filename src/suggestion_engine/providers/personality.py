"""Personality provider.

Rephrases the user's input in their own communication style, picking
templates that suit the current conversation mood.
"""

from suggestion_engine.core.types import ContextSnapshot, Suggestion, SuggestionSource, clamp
from suggestion_engine.personality import get_style

from .base import SuggestionPrompt, SuggestionProvider


class PersonalityProvider(SuggestionProvider):
    """Style-matched phrasings.

    Confidence is highest when the style's formality matches the
    conversation's and decays slightly with template rank.
    """

    provider_id = "personality"
    source = SuggestionSource.PERSONALITY

    def __init__(self, base_confidence: float = 0.5, fit_weight: float = 0.4):
        self.base_confidence = base_confidence
        self.fit_weight = fit_weight

    async def generate(
        self,
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
    ) -> list[Suggestion]:
        text = prompt.text.strip()
        if not text:
            return []

        style = get_style(prompt.personality_type)
        fit = clamp(1.0 - abs(style.formality - snapshot.formality))

        suggestions = []
        seen = set()
        for rank, template in enumerate(style.templates_for(snapshot.tone)):
            phrased = template.format(text=text)
            if phrased in seen:
                continue
            seen.add(phrased)
            suggestions.append(
                Suggestion(
                    text=phrased,
                    confidence=self.base_confidence + self.fit_weight * fit - 0.05 * rank,
                    source=self.source,
                    reasoning=f"Phrased in a {style.personality.value} style",
                    context_relevance=fit,
                    provider_id=self.provider_id,
                )
            )
        return suggestions[: prompt.max_suggestions]
