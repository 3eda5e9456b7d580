"""Standard exception hierarchy for the suggestion engine.

All engine exceptions inherit from SuggestionEngineError, making it easy
to catch all library-specific errors.

Exception Hierarchy:
    SuggestionEngineError (base)
    ├── ConfigurationError - Invalid configuration
    ├── ProviderError - Base for suggestion provider errors
    │   ├── ProviderTimeoutError - Provider exceeded its time budget
    │   ├── ProviderAuthError - Credentials rejected by the backend
    │   ├── ProviderRateLimitError - Backend throttled the request
    │   ├── MalformedResponseError - Response failed schema validation
    │   └── ProviderNetworkError - Transport-level failure
    ├── ParseError - Provider payload could not be decoded
    ├── CacheUnavailableError - Result cache backing store failed
    ├── PersistenceError - Key-value store failure
    └── AggregationEmptyError - No provider produced a usable suggestion

Provider errors never reach callers of the engine: the gateway converts
them into empty per-provider results, and AggregationEmptyError is always
intercepted by the rule-based fallback.
"""

from __future__ import annotations

from enum import Enum


class ProviderErrorKind(str, Enum):
    """Classification attached to every failed provider call."""

    TIMEOUT = "timeout"
    AUTH_FAILURE = "auth_failure"
    RATE_LIMITED = "rate_limited"
    MALFORMED_RESPONSE = "malformed_response"
    NETWORK_ERROR = "network_error"
    CIRCUIT_OPEN = "circuit_open"


class SuggestionEngineError(Exception):
    """Base exception for all suggestion engine errors.

    Catch this to handle any library-specific exception:
        try:
            result = await engine.suggest(request)
        except SuggestionEngineError as e:
            logger.error(f"Suggestion engine error: {e}")
    """

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.cause = cause

    def __str__(self) -> str:
        if self.cause:
            return f"{super().__str__()} (caused by: {self.cause})"
        return super().__str__()


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(SuggestionEngineError):
    """Invalid configuration.

    Raised when EngineConfig has out-of-range values, empty provider tiers,
    or duplicate provider ids.
    """

    pass


# =============================================================================
# Provider Errors
# =============================================================================


class ProviderError(SuggestionEngineError):
    """Base exception for suggestion provider failures."""

    kind: ProviderErrorKind = ProviderErrorKind.NETWORK_ERROR

    def __init__(
        self,
        message: str,
        provider_id: str | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, cause)
        self.provider_id = provider_id


class ProviderTimeoutError(ProviderError):
    """Provider did not answer within its per-call timeout."""

    kind = ProviderErrorKind.TIMEOUT


class ProviderAuthError(ProviderError):
    """Provider rejected our credentials."""

    kind = ProviderErrorKind.AUTH_FAILURE


class ProviderRateLimitError(ProviderError):
    """Provider throttled the request.

    Attributes:
        retry_after: Seconds the backend asked us to wait, if known
    """

    kind = ProviderErrorKind.RATE_LIMITED

    def __init__(
        self,
        message: str,
        provider_id: str | None = None,
        retry_after: float | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message, provider_id, cause)
        self.retry_after = retry_after


class MalformedResponseError(ProviderError):
    """Provider answered, but the payload failed schema validation."""

    kind = ProviderErrorKind.MALFORMED_RESPONSE


class ProviderNetworkError(ProviderError):
    """Connection, DNS or other transport failure."""

    kind = ProviderErrorKind.NETWORK_ERROR


# =============================================================================
# Decoding Errors
# =============================================================================


class ParseError(SuggestionEngineError):
    """Free-form provider output could not be decoded.

    Attributes:
        raw: Truncated raw payload for diagnostics
    """

    def __init__(self, message: str, raw: str = "", cause: Exception | None = None):
        super().__init__(message, cause)
        self.raw = raw[:200]


# =============================================================================
# Cache / Persistence Errors
# =============================================================================


class CacheUnavailableError(SuggestionEngineError):
    """Result cache could not be read or written.

    Always degraded to a cache bypass by the engine.
    """

    pass


class PersistenceError(SuggestionEngineError):
    """Key-value store operation failed."""

    def __init__(self, message: str, key: str | None = None, cause: Exception | None = None):
        super().__init__(message, cause)
        self.key = key


# =============================================================================
# Aggregation Errors
# =============================================================================


class AggregationEmptyError(SuggestionEngineError):
    """Every provider came back empty.

    Raised inside the aggregator and caught by the rule-based fallback;
    callers of the engine never observe it.
    """

    pass
