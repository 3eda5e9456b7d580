"""Pytest configuration for suggestion-engine tests."""

import asyncio

import pytest

from suggestion_engine.core.types import ContextSnapshot, Suggestion, SuggestionSource
from suggestion_engine.exceptions import PersistenceError
from suggestion_engine.persistence import InMemoryKeyValueStore, KeyValueStore
from suggestion_engine.providers import SuggestionPrompt, SuggestionProvider


@pytest.fixture
def anyio_backend():
    """Use asyncio for async tests."""
    return "asyncio"


# =============================================================================
# Fake Providers
# =============================================================================


class ScriptedProvider(SuggestionProvider):
    """Provider returning canned suggestions, optionally slowly or failing.

    Usage:
        provider = make_provider("neural", ["Hola"], delay=0.01)
        provider = make_provider("pattern", error=ProviderAuthError("bad"))

    Attributes:
        call_count: Number of times generate() was invoked
        cancelled: Number of calls cancelled mid-flight
        prompts: Prompts seen, for assertions
        snapshots: Snapshots seen, for assertions
    """

    def __init__(
        self,
        provider_id: str,
        texts: list[str] | None = None,
        confidence: float = 0.8,
        source: SuggestionSource | None = None,
        delay: float = 0.0,
        error: Exception | None = None,
        context_relevance: float = 0.5,
    ):
        self.provider_id = provider_id
        self.source = source or _source_for(provider_id)
        self.texts = list(texts or [])
        self.confidence = confidence
        self.delay = delay
        self.error = error
        self.context_relevance = context_relevance
        self.call_count = 0
        self.cancelled = 0
        self.prompts: list[SuggestionPrompt] = []
        self.snapshots: list[ContextSnapshot] = []
        self.closed = False

    async def generate(
        self,
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
    ) -> list[Suggestion]:
        self.call_count += 1
        self.prompts.append(prompt)
        self.snapshots.append(snapshot)
        if self.delay:
            try:
                await asyncio.sleep(self.delay)
            except asyncio.CancelledError:
                self.cancelled += 1
                raise
        if self.error is not None:
            raise self.error
        return [
            Suggestion(
                text=text,
                confidence=self.confidence,
                source=self.source,
                reasoning=f"from {self.provider_id}",
                context_relevance=self.context_relevance,
                provider_id=self.provider_id,
            )
            for text in self.texts
        ]

    async def close(self) -> None:
        self.closed = True


def _source_for(provider_id: str) -> SuggestionSource:
    try:
        return SuggestionSource(provider_id)
    except ValueError:
        return SuggestionSource.NEURAL


class CrashingProvider(SuggestionProvider):
    """Provider raising an unclassified exception."""

    source = SuggestionSource.PREDICTIVE

    def __init__(self, provider_id: str = "predictive", error: Exception | None = None):
        self.provider_id = provider_id
        self.error = error or RuntimeError("boom")

    async def generate(self, prompt, snapshot):
        raise self.error


class FailingKeyValueStore(KeyValueStore):
    """Store whose every operation fails."""

    def __init__(self):
        self.attempts = 0

    async def get(self, key: str) -> bytes | None:
        self.attempts += 1
        raise PersistenceError("store down", key=key)

    async def set(self, key: str, value: bytes, ttl: float | None = None) -> None:
        self.attempts += 1
        raise PersistenceError("store down", key=key)

    async def delete(self, key: str) -> bool:
        self.attempts += 1
        raise PersistenceError("store down", key=key)


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def make_provider():
    """Factory for ScriptedProvider instances."""
    return ScriptedProvider


@pytest.fixture
def crashing_provider():
    """Provider raising an unclassified RuntimeError."""
    return CrashingProvider()


@pytest.fixture
def snapshot():
    """Empty conversation snapshot."""
    return ContextSnapshot(conversation_id="conv-1")


@pytest.fixture
def prompt():
    """Complete English-to-Spanish prompt."""
    return SuggestionPrompt(
        text="Hello, how are you",
        source_language="en",
        target_language="es",
        user_id="user-1",
    )


@pytest.fixture
def memory_store():
    """In-memory key-value store."""
    return InMemoryKeyValueStore()


@pytest.fixture
def failing_store():
    """Key-value store that always fails."""
    return FailingKeyValueStore()
