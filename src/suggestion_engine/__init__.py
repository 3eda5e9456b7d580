"""Suggestion Engine - context-aware multi-provider suggestions.

Given partial or complete user input plus conversation and personality
context, the engine:
- Fans out to several independent suggestion providers concurrently
- Merges their outputs into one ranked, deduplicated list
- Caches results with single-flight computation
- Learns per-user provider weights from acceptance feedback
- Always answers, even when every backend fails

Example:
    from suggestion_engine import EngineConfig, SuggestionEngine, SuggestionRequest

    engine = SuggestionEngine(EngineConfig.from_env())
    result = await engine.suggest(SuggestionRequest(
        user_id="user_1",
        conversation_id="conv_1",
        text="Hello, how are you",
        target_language="es",
    ))
    print(result.top.text)
"""

__version__ = "0.1.0"

# Configuration
from suggestion_engine.config import EngineConfig, LLMConfig, StoreConfig

# Core types
from suggestion_engine.core import (
    AggregatedResult,
    ContextSnapshot,
    ConversationMessage,
    ConversationMood,
    ConversationPhase,
    PersonalityType,
    Suggestion,
    SuggestionSource,
)

# Components
from suggestion_engine.cache import ResultCache
from suggestion_engine.conversation import ContextWindowManager
from suggestion_engine.orchestration import FanOutResult, ProviderGateway, ProviderOutcome
from suggestion_engine.personality import AlignmentScore, PersonalityAlignmentAnalyzer
from suggestion_engine.profiles import ProfileStore, UserProfile
from suggestion_engine.providers import SuggestionPrompt, SuggestionProvider
from suggestion_engine.ranking import SuggestionAggregator

# Engine
from suggestion_engine.engine import SuggestionEngine, SuggestionRequest

# Exceptions
from suggestion_engine.exceptions import (
    AggregationEmptyError,
    CacheUnavailableError,
    ConfigurationError,
    MalformedResponseError,
    ParseError,
    PersistenceError,
    ProviderAuthError,
    ProviderError,
    ProviderErrorKind,
    ProviderNetworkError,
    ProviderRateLimitError,
    ProviderTimeoutError,
    SuggestionEngineError,
)

__all__ = [
    "__version__",
    # Configuration
    "EngineConfig",
    "LLMConfig",
    "StoreConfig",
    # Core types
    "AggregatedResult",
    "ContextSnapshot",
    "ConversationMessage",
    "ConversationMood",
    "ConversationPhase",
    "PersonalityType",
    "Suggestion",
    "SuggestionSource",
    # Components
    "ResultCache",
    "ContextWindowManager",
    "FanOutResult",
    "ProviderGateway",
    "ProviderOutcome",
    "AlignmentScore",
    "PersonalityAlignmentAnalyzer",
    "ProfileStore",
    "UserProfile",
    "SuggestionPrompt",
    "SuggestionProvider",
    "SuggestionAggregator",
    # Engine
    "SuggestionEngine",
    "SuggestionRequest",
    # Exceptions
    "AggregationEmptyError",
    "CacheUnavailableError",
    "ConfigurationError",
    "MalformedResponseError",
    "ParseError",
    "PersistenceError",
    "ProviderAuthError",
    "ProviderError",
    "ProviderErrorKind",
    "ProviderNetworkError",
    "ProviderRateLimitError",
    "ProviderTimeoutError",
    "SuggestionEngineError",
]
