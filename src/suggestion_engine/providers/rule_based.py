"""Rule-based provider and fallback generator.

A small phrase table per target language. With no table entry the input
is echoed back. This provider never fails, which is why the aggregator
uses it as the fallback when every other provider comes back empty.
"""

from suggestion_engine.core.types import (
    ContextSnapshot,
    Suggestion,
    SuggestionSource,
    normalize_text,
)

from .base import SuggestionPrompt, SuggestionProvider


# Target language -> normalized English phrase -> phrase
PHRASE_TABLE: dict[str, dict[str, str]] = {
    "es": {
        "hello": "Hola",
        "hello, how are you": "Hola, ¿cómo estás?",
        "how are you": "¿Cómo estás?",
        "good morning": "Buenos días",
        "good night": "Buenas noches",
        "thank you": "Gracias",
        "please": "Por favor",
        "goodbye": "Adiós",
        "yes": "Sí",
        "no": "No",
    },
    "fr": {
        "hello": "Bonjour",
        "hello, how are you": "Bonjour, comment allez-vous ?",
        "how are you": "Comment allez-vous ?",
        "good morning": "Bonjour",
        "good night": "Bonne nuit",
        "thank you": "Merci",
        "please": "S'il vous plaît",
        "goodbye": "Au revoir",
    },
    "de": {
        "hello": "Hallo",
        "hello, how are you": "Hallo, wie geht es dir?",
        "how are you": "Wie geht es dir?",
        "good morning": "Guten Morgen",
        "thank you": "Danke",
        "please": "Bitte",
        "goodbye": "Auf Wiedersehen",
    },
}


class RuleBasedProvider(SuggestionProvider):
    """Deterministic phrase-table suggestions.

    Usage:
        provider = RuleBasedProvider(confidence=0.5)
        fallback = provider.fallback(prompt)
    """

    provider_id = "rule_based"
    source = SuggestionSource.RULE_BASED

    def __init__(
        self,
        confidence: float = 0.5,
        phrase_table: dict[str, dict[str, str]] | None = None,
    ):
        self.confidence = confidence
        self.phrase_table = phrase_table if phrase_table is not None else PHRASE_TABLE

    def lookup(self, text: str, target_language: str) -> str | None:
        table = self.phrase_table.get(target_language, {})
        return table.get(normalize_text(text).rstrip("?!."))

    def fallback(self, prompt: SuggestionPrompt) -> Suggestion:
        """Exactly one suggestion, always."""
        phrase = self.lookup(prompt.text, prompt.target_language)
        if phrase is not None:
            return Suggestion(
                text=phrase,
                confidence=self.confidence,
                source=self.source,
                reasoning="Common phrase",
                context_relevance=0.5,
                provider_id=self.provider_id,
            )
        return Suggestion(
            text=prompt.text.strip() or "...",
            confidence=self.confidence,
            source=self.source,
            reasoning="No suggestion available, keeping the original text",
            context_relevance=0.5,
            provider_id=self.provider_id,
        )

    async def generate(
        self,
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
    ) -> list[Suggestion]:
        return [self.fallback(prompt)]
