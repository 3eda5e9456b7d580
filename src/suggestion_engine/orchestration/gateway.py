"""Provider gateway: concurrent, fail-open fan-out to suggestion providers.

Every provider is called concurrently. Each call has its own timeout, and
an optional deadline bounds the whole fan-out. Providers are also grouped
into priority tiers; with short-circuit enabled the tiers run in order and
lower tiers are skipped once enough suggestions have arrived.

A failing provider never aborts its siblings or the request. Its error is
classified, logged and recorded in the outcome, and it contributes no
suggestions.

Example:
    gateway = ProviderGateway(
        providers=[neural, personality, pattern, rule_based],
        short_circuit_enabled=True,
        short_circuit_threshold=5,
    )
    result = await gateway.fan_out(
        tiers=[["neural", "personality"], ["pattern"], ["rule_based"]],
        prompt=prompt,
        snapshot=snapshot,
        per_call_timeout=1.5,
        deadline=2.0,
    )
    for provider_id, outcome in result.outcomes.items():
        ...
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import time
from dataclasses import dataclass, field
from typing import Any

from suggestion_engine.core.types import ContextSnapshot, Suggestion
from suggestion_engine.exceptions import (
    ParseError,
    ProviderError,
    ProviderErrorKind,
)
from suggestion_engine.providers import SuggestionPrompt, SuggestionProvider

from .resilience import CircuitBreaker, CircuitBreakerConfig, CircuitState

logger = logging.getLogger(__name__)


def classify_error(error: BaseException) -> ProviderErrorKind:
    """Map any exception raised by a provider onto an error kind."""
    if isinstance(error, ProviderError):
        return error.kind
    # TimeoutError subclasses OSError, so check it first
    if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
        return ProviderErrorKind.TIMEOUT
    if isinstance(error, ParseError):
        return ProviderErrorKind.MALFORMED_RESPONSE
    if isinstance(error, PermissionError):
        return ProviderErrorKind.AUTH_FAILURE
    return ProviderErrorKind.NETWORK_ERROR


@dataclass
class ProviderOutcome:
    """Result of calling a single provider.

    Attributes:
        provider_id: Provider that was called
        suggestions: What it produced (empty on error)
        error_kind: Classified failure, if any
        error: Failure message, if any
        elapsed_ms: Wall time spent on the call
        skipped: True when the provider was never called
        retry_after: Seconds a rate-limiting backend asked us to wait
    """

    provider_id: str
    suggestions: list[Suggestion] = field(default_factory=list)
    error_kind: ProviderErrorKind | None = None
    error: str | None = None
    elapsed_ms: float = 0.0
    skipped: bool = False
    retry_after: float | None = None

    @property
    def ok(self) -> bool:
        return self.error_kind is None and not self.skipped

    def to_dict(self) -> dict[str, Any]:
        return {
            "provider_id": self.provider_id,
            "suggestions": [s.to_dict() for s in self.suggestions],
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error": self.error,
            "elapsed_ms": self.elapsed_ms,
            "skipped": self.skipped,
            "retry_after": self.retry_after,
        }


@dataclass
class FanOutResult:
    """Everything a fan-out produced.

    Attributes:
        outcomes: Provider id -> outcome, for every provider attempted or skipped
        skipped: Providers never called (short-circuit, deadline, open circuit)
        tiers_run: Number of tiers that were started
        short_circuited: True when lower tiers were skipped for having enough results
        deadline_exceeded: True when the global deadline cut the fan-out short
        elapsed_ms: Total wall time
    """

    outcomes: dict[str, ProviderOutcome] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)
    tiers_run: int = 0
    short_circuited: bool = False
    deadline_exceeded: bool = False
    elapsed_ms: float = 0.0

    @property
    def total_suggestions(self) -> int:
        return sum(len(o.suggestions) for o in self.outcomes.values())

    def suggestions_by_provider(self) -> dict[str, list[Suggestion]]:
        """Successful providers' suggestions, keyed by provider id."""
        return {
            pid: list(outcome.suggestions)
            for pid, outcome in self.outcomes.items()
            if outcome.suggestions
        }

    def errors(self) -> dict[str, str]:
        """Provider id -> error kind value for failed providers."""
        return {
            pid: outcome.error_kind.value
            for pid, outcome in self.outcomes.items()
            if outcome.error_kind is not None
        }


def _consume_result(task: asyncio.Task) -> None:
    # Abandoned tasks still need their exception retrieved
    if not task.cancelled():
        task.exception()


class ProviderGateway:
    """Invokes suggestion providers concurrently with fail-open semantics.

    Args:
        providers: Providers to register (by their provider_id)
        short_circuit_enabled: Skip lower tiers once enough suggestions exist
        short_circuit_threshold: Cumulative suggestion count that stops lower tiers
        circuit_breaker_config: Per-provider breaker settings (None disables breakers)
    """

    def __init__(
        self,
        providers: list[SuggestionProvider] | None = None,
        short_circuit_enabled: bool = False,
        short_circuit_threshold: int = 5,
        circuit_breaker_config: CircuitBreakerConfig | None = None,
    ):
        self._providers: dict[str, SuggestionProvider] = {}
        self.short_circuit_enabled = short_circuit_enabled
        self.short_circuit_threshold = short_circuit_threshold
        self.circuit_breaker_config = circuit_breaker_config
        self._breakers: dict[str, CircuitBreaker] = {}
        self._stats: dict[str, Any] = {
            "fan_outs": 0,
            "calls": 0,
            "failures": {kind.value: 0 for kind in ProviderErrorKind},
            "short_circuits": 0,
            "deadline_exceeded": 0,
        }

        for provider in providers or []:
            self.register(provider)

    # =========================================================================
    # Registration
    # =========================================================================

    def register(self, provider: SuggestionProvider) -> None:
        """Register a provider under its provider_id (replacing any existing one)."""
        if not provider.provider_id:
            raise ValueError(f"{provider!r} has no provider_id")
        self._providers[provider.provider_id] = provider
        self._breakers.pop(provider.provider_id, None)
        logger.debug(f"Registered provider {provider.provider_id}")

    def unregister(self, provider_id: str) -> bool:
        self._breakers.pop(provider_id, None)
        return self._providers.pop(provider_id, None) is not None

    def get_provider(self, provider_id: str) -> SuggestionProvider | None:
        return self._providers.get(provider_id)

    @property
    def provider_ids(self) -> list[str]:
        return list(self._providers.keys())

    def breaker_for(self, provider_id: str) -> CircuitBreaker | None:
        if self.circuit_breaker_config is None:
            return None
        breaker = self._breakers.get(provider_id)
        if breaker is None:
            breaker = CircuitBreaker(provider_id, self.circuit_breaker_config)
            self._breakers[provider_id] = breaker
        return breaker

    # =========================================================================
    # Fan-out
    # =========================================================================

    async def fan_out(
        self,
        tiers: list[list[str]],
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
        per_call_timeout: float,
        deadline: float | None = None,
    ) -> FanOutResult:
        """Call every provider named in the tiers.

        Args:
            tiers: Provider ids grouped by priority, highest first
            prompt: User input and per-user hints
            snapshot: Conversation snapshot
            per_call_timeout: Seconds each provider call may take
            deadline: Seconds the whole fan-out may take (None = unbounded)

        Returns:
            FanOutResult with an outcome per provider. Never raises for
            provider failures.
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        deadline_at = started + deadline if deadline is not None else None
        result = FanOutResult()
        self._stats["fan_outs"] += 1

        if self.short_circuit_enabled:
            await self._walk_tiers(tiers, prompt, snapshot, per_call_timeout, deadline_at, result)
        else:
            # Tiers only matter for short-circuit; otherwise every provider starts at once
            batch = [provider_id for tier in tiers for provider_id in tier]
            result.tiers_run = len(tiers)
            await self._run_tier(batch, prompt, snapshot, per_call_timeout, deadline_at, result)

        if result.deadline_exceeded:
            self._stats["deadline_exceeded"] += 1
            logger.warning(
                f"Fan-out for conversation {snapshot.conversation_id} hit the "
                f"{deadline:.3f}s deadline after {result.tiers_run} tier(s)"
            )

        result.elapsed_ms = (loop.time() - started) * 1000
        return result

    async def _walk_tiers(
        self,
        tiers: list[list[str]],
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
        per_call_timeout: float,
        deadline_at: float | None,
        result: FanOutResult,
    ) -> None:
        """Run tiers in priority order, stopping once enough suggestions exist."""
        loop = asyncio.get_running_loop()
        cumulative = 0

        for tier_index, tier in enumerate(tiers):
            if deadline_at is not None and loop.time() >= deadline_at:
                result.deadline_exceeded = True
                self._skip_tiers(tiers[tier_index:], result)
                return

            result.tiers_run += 1
            cumulative += await self._run_tier(
                tier, prompt, snapshot, per_call_timeout, deadline_at, result
            )

            remaining_tiers = tiers[tier_index + 1:]
            if result.deadline_exceeded or (
                deadline_at is not None and loop.time() >= deadline_at
            ):
                result.deadline_exceeded = True
                self._skip_tiers(remaining_tiers, result)
                return

            if remaining_tiers and cumulative >= self.short_circuit_threshold:
                result.short_circuited = True
                self._stats["short_circuits"] += 1
                skipped_before = len(result.skipped)
                self._skip_tiers(remaining_tiers, result)
                logger.debug(
                    f"Short-circuit after tier {tier_index} with {cumulative} suggestions, "
                    f"skipped {len(result.skipped) - skipped_before} providers"
                )
                return

    def _skip_tiers(self, tiers: list[list[str]], result: FanOutResult) -> None:
        for tier in tiers:
            for provider_id in tier:
                if provider_id not in self._providers or provider_id in result.outcomes:
                    continue
                result.outcomes[provider_id] = ProviderOutcome(provider_id, skipped=True)
                result.skipped.append(provider_id)

    async def _run_tier(
        self,
        tier: list[str],
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
        per_call_timeout: float,
        deadline_at: float | None,
        result: FanOutResult,
    ) -> int:
        """Run a batch of providers concurrently; returns how many suggestions it produced."""
        loop = asyncio.get_running_loop()
        tasks: dict[asyncio.Task, str] = {}

        for provider_id in dict.fromkeys(tier):
            provider = self._providers.get(provider_id)
            if provider is None:
                logger.debug(f"Tier names unregistered provider {provider_id}, ignoring")
                continue
            if provider_id in result.outcomes:
                continue

            breaker = self.breaker_for(provider_id)
            if breaker is not None and not breaker.allow():
                remaining = breaker.remaining_open_seconds()
                result.outcomes[provider_id] = ProviderOutcome(
                    provider_id,
                    error_kind=ProviderErrorKind.CIRCUIT_OPEN,
                    error=f"circuit open for {remaining:.1f}s",
                    skipped=True,
                )
                result.skipped.append(provider_id)
                self._stats["failures"][ProviderErrorKind.CIRCUIT_OPEN.value] += 1
                logger.debug(f"Circuit open for {provider_id}, skipping")
                continue

            task = asyncio.create_task(
                self._invoke(provider, prompt, snapshot, per_call_timeout),
                name=f"provider:{provider_id}",
            )
            tasks[task] = provider_id

        if not tasks:
            return 0

        self._stats["calls"] += len(tasks)
        timeout = None
        if deadline_at is not None:
            timeout = max(0.0, deadline_at - loop.time())

        done, pending = await asyncio.wait(tasks.keys(), timeout=timeout)

        # Unresolved calls contribute nothing and are not awaited further
        if pending:
            result.deadline_exceeded = True
        for task in pending:
            task.cancel()
            task.add_done_callback(_consume_result)
            provider_id = tasks[task]
            result.outcomes[provider_id] = ProviderOutcome(
                provider_id,
                error_kind=ProviderErrorKind.TIMEOUT,
                error="global deadline exceeded",
                elapsed_ms=(timeout or 0.0) * 1000,
            )

        for task in done:
            outcome = task.result()
            result.outcomes[outcome.provider_id] = outcome

        produced = 0
        for provider_id in tasks.values():
            outcome = result.outcomes[provider_id]
            breaker = self.breaker_for(provider_id)
            if outcome.error_kind is not None:
                self._stats["failures"][outcome.error_kind.value] += 1
                if breaker is not None:
                    was_open = breaker.state == CircuitState.OPEN
                    breaker.on_failure(outcome.error_kind, outcome.retry_after)
                    if breaker.state == CircuitState.OPEN and not was_open:
                        logger.warning(
                            f"Circuit opened for provider {provider_id} "
                            f"({outcome.error_kind.value}) for "
                            f"{breaker.remaining_open_seconds():.1f}s"
                        )
            else:
                produced += len(outcome.suggestions)
                if breaker is not None:
                    breaker.on_success()
        return produced

    async def _invoke(
        self,
        provider: SuggestionProvider,
        prompt: SuggestionPrompt,
        snapshot: ContextSnapshot,
        per_call_timeout: float,
    ) -> ProviderOutcome:
        """Call one provider; never raises except on cancellation."""
        provider_id = provider.provider_id
        started = time.perf_counter()
        try:
            suggestions = await asyncio.wait_for(
                provider.call(prompt, snapshot, per_call_timeout),
                per_call_timeout,
            )
        except asyncio.CancelledError:
            raise
        except ProviderError as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.warning(f"Provider {provider_id} failed ({e.kind.value}) after {elapsed:.0f}ms: {e}")
            return ProviderOutcome(
                provider_id,
                error_kind=e.kind,
                error=str(e),
                elapsed_ms=elapsed,
                retry_after=getattr(e, "retry_after", None),
            )
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            kind = classify_error(e)
            if kind == ProviderErrorKind.TIMEOUT:
                logger.warning(f"Provider {provider_id} timed out after {elapsed:.0f}ms")
            else:
                logger.error(f"Provider {provider_id} raised unexpected exception: {e!r}")
            return ProviderOutcome(
                provider_id, error_kind=kind, error=str(e) or type(e).__name__, elapsed_ms=elapsed
            )

        elapsed = (time.perf_counter() - started) * 1000
        tagged = [
            s if s.provider_id == provider_id else dataclasses.replace(s, provider_id=provider_id)
            for s in suggestions
        ]
        logger.debug(f"Provider {provider_id} returned {len(tagged)} suggestions in {elapsed:.0f}ms")
        return ProviderOutcome(provider_id, suggestions=tagged, elapsed_ms=elapsed)

    # =========================================================================
    # Lifecycle / stats
    # =========================================================================

    async def close(self) -> None:
        """Close every registered provider."""
        for provider in self._providers.values():
            try:
                await provider.close()
            except Exception as e:
                logger.warning(f"Error closing provider {provider.provider_id}: {e}")

    def get_stats(self) -> dict[str, Any]:
        """Get gateway statistics."""
        return {
            **self._stats,
            "failures": dict(self._stats["failures"]),
            "providers": self.provider_ids,
            "breakers": {pid: b.to_dict() for pid, b in self._breakers.items()},
        }
