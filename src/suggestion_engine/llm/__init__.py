"""LLM backends for the neural and predictive providers.

Usage:
    from suggestion_engine.llm import create_llm
    from suggestion_engine.config import LLMConfig

    llm = create_llm(LLMConfig(provider="groq", api_key="..."))
"""

from suggestion_engine.config import LLMConfig

from .base import ChatMessage, ChatResponse, LLMProvider
from .mock import MockLLM


def create_llm(config: LLMConfig | None = None, **kwargs) -> LLMProvider:
    """Create an LLM backend from configuration.

    Args:
        config: LLM configuration (defaults to Groq)
        **kwargs: Passed to MockLLM when provider is "mock"

    Returns:
        Configured LLM backend
    """
    config = config or LLMConfig()

    if config.provider == "groq":
        from .groq import GroqConfig, GroqLLM

        return GroqLLM(
            api_key=config.api_key,
            config=GroqConfig(model=config.model, base_url=config.base_url),
        )

    elif config.provider == "mock":
        return MockLLM(**kwargs)

    else:
        raise ValueError(f"Unknown LLM provider: {config.provider}")


__all__ = [
    "ChatMessage",
    "ChatResponse",
    "LLMProvider",
    "MockLLM",
    "create_llm",
]
