"""Suggestion providers.

Every provider implements the same contract:

    async call(prompt, snapshot, timeout) -> list[Suggestion]

and raises a ProviderError subclass on failure. The gateway classifies
those errors and never lets them reach callers.

Providers:
- NeuralContextProvider: LLM, conversation-aware
- PredictiveProvider: LLM, user-style-aware
- PatternProvider: phrase pattern banks
- PersonalityProvider: communication-style templates
- RuleBasedProvider: phrase table, doubles as the fallback generator
"""

from suggestion_engine.llm import LLMProvider

from .base import SuggestionPrompt, SuggestionProvider
from .neural import NeuralContextProvider
from .parsing import ParseResult, decode_suggestions, strip_code_fences
from .pattern import PatternProvider, PhrasePattern, PhrasePatternBank, default_pattern_banks
from .personality import PersonalityProvider
from .predictive import PredictiveProvider
from .rule_based import RuleBasedProvider


def default_providers(
    llm: LLMProvider,
    temperature: float = 0.4,
    max_tokens: int = 1200,
    fallback_confidence: float = 0.5,
) -> list[SuggestionProvider]:
    """The standard five providers sharing one LLM backend."""
    return [
        NeuralContextProvider(llm, temperature=temperature, max_tokens=max_tokens),
        PersonalityProvider(),
        PredictiveProvider(llm, temperature=temperature, max_tokens=max_tokens),
        PatternProvider(),
        RuleBasedProvider(confidence=fallback_confidence),
    ]


__all__ = [
    "SuggestionPrompt",
    "SuggestionProvider",
    "NeuralContextProvider",
    "PredictiveProvider",
    "PatternProvider",
    "PhrasePattern",
    "PhrasePatternBank",
    "PersonalityProvider",
    "RuleBasedProvider",
    "ParseResult",
    "decode_suggestions",
    "strip_code_fences",
    "default_pattern_banks",
    "default_providers",
]
