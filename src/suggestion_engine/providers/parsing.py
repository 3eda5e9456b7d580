"""Schema-validated decoding of LLM provider responses.

LLM output is free-form text that should contain a JSON object. Decoding
strips markdown fences, parses JSON and validates it with pydantic. The
result is tagged: either a list of suggestions or a ParseError, never a
silent empty list on malformed input.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Generic, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator

from suggestion_engine.core.types import Suggestion, SuggestionSource
from suggestion_engine.exceptions import ParseError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SuggestionItem(BaseModel):
    """One suggestion as an LLM returns it."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    suggested_text: str = Field(
        ..., min_length=1, validation_alias=AliasChoices("suggested_text", "text")
    )
    confidence: float = Field(..., ge=0.0, le=1.0)
    reasoning: str = ""
    context_relevance: float = Field(default=0.5, ge=0.0, le=1.0)
    alternatives: list[str] = Field(default_factory=list)

    @field_validator("suggested_text")
    @classmethod
    def text_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("suggested_text must not be blank")
        return value

    @field_validator("alternatives")
    @classmethod
    def drop_blank_alternatives(cls, value: list[str]) -> list[str]:
        return [alt.strip() for alt in value if alt and alt.strip()]


class SuggestionsPayload(BaseModel):
    """Neural context provider response."""

    suggestions: list[SuggestionItem]


class PredictionsPayload(BaseModel):
    """Predictive provider response."""

    predictions: list[SuggestionItem]


PAYLOAD_SCHEMAS: dict[str, type[BaseModel]] = {
    "suggestions": SuggestionsPayload,
    "predictions": PredictionsPayload,
}


@dataclass(frozen=True)
class ParseResult(Generic[T]):
    """Tagged decode result: exactly one of ``value`` or ``error`` is set."""

    value: T | None = None
    error: ParseError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> ParseResult[T]:
        return cls(value=value)

    @classmethod
    def failure(cls, error: ParseError) -> ParseResult[T]:
        return cls(error=error)

    def unwrap(self) -> T:
        """Return the value or raise the ParseError."""
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def strip_code_fences(raw: str) -> str:
    """Remove a surrounding ```json ... ``` block if present."""
    cleaned = raw.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[7:]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    return cleaned.strip()


def decode_suggestions(
    raw: str,
    key: str,
    source: SuggestionSource,
    provider_id: str,
) -> ParseResult[list[Suggestion]]:
    """Decode an LLM response into suggestions.

    Args:
        raw: Raw model output
        key: Top-level array name ("suggestions" or "predictions")
        source: Source tag for the produced suggestions
        provider_id: Provider that produced the output

    Returns:
        ParseResult holding the suggestions or a ParseError
    """
    schema = PAYLOAD_SCHEMAS.get(key)
    if schema is None:
        return ParseResult.failure(ParseError(f"No schema registered for '{key}'", raw=raw))

    cleaned = strip_code_fences(raw)
    if not cleaned:
        return ParseResult.failure(ParseError("Empty response", raw=raw))

    try:
        payload = schema.model_validate(json.loads(cleaned))
    except json.JSONDecodeError as e:
        logger.debug(f"JSON parsing failed for {provider_id}: {e}")
        return ParseResult.failure(ParseError("Response is not valid JSON", raw=raw, cause=e))
    except ValidationError as e:
        logger.debug(f"Schema validation failed for {provider_id}: {e}")
        return ParseResult.failure(
            ParseError(f"Response does not match '{key}' schema", raw=raw, cause=e)
        )

    items: list[SuggestionItem] = getattr(payload, key)
    return ParseResult.success([
        Suggestion(
            text=item.suggested_text,
            confidence=item.confidence,
            source=source,
            reasoning=item.reasoning,
            context_relevance=item.context_relevance,
            alternatives=tuple(item.alternatives),
            provider_id=provider_id,
        )
        for item in items
    ])
