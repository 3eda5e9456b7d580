"""Models for per-user suggestion preferences.

A UserProfile holds what the engine has learned about one user: how much
to trust each provider, how much they like pattern-bank completions, and
their communication personality.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any

from suggestion_engine.core.types import PersonalityType, clamp


@dataclass
class ProviderFeedback:
    """Acceptance counters for one provider.

    Attributes:
        provider_id: Provider identifier
        accepted: Suggestions the user accepted
        rejected: Suggestions the user dismissed
        last_updated: When feedback was last recorded
    """

    provider_id: str
    accepted: int = 0
    rejected: int = 0
    last_updated: float = field(default_factory=time.time)

    @property
    def total(self) -> int:
        return self.accepted + self.rejected

    @property
    def acceptance_rate(self) -> float:
        """Raw acceptance rate (0.5 with no data)."""
        if self.total == 0:
            return 0.5
        return self.accepted / self.total

    def record(self, accepted: bool) -> None:
        if accepted:
            self.accepted += 1
        else:
            self.rejected += 1
        self.last_updated = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "provider_id": self.provider_id,
            "accepted": self.accepted,
            "rejected": self.rejected,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProviderFeedback:
        """Create from dictionary."""
        return cls(
            provider_id=data["provider_id"],
            accepted=data.get("accepted", 0),
            rejected=data.get("rejected", 0),
            last_updated=data.get("last_updated", time.time()),
        )


@dataclass
class UserProfile:
    """Learned suggestion preferences for a user.

    Usage:
        profile = UserProfile(user_id="user-123")
        profile.weight_for("neural")        # 1.0 until feedback arrives
        profile.apply_feedback("neural", accepted=True, learning_rate=0.05)

    Attributes:
        user_id: User identifier
        provider_weights: Provider id -> reliability weight (0.0-1.0)
        pattern_affinity: How much pattern-bank completions suit this user
        personality_type: Primary communication personality
        formality: Preferred formality (0 casual .. 1 formal)
        language_proficiency: Language code -> proficiency (0.0-1.0)
        feedback: Per-provider acceptance counters
        created_at: When the profile was created
        last_updated: Last update timestamp
    """

    user_id: str
    provider_weights: dict[str, float] = field(default_factory=dict)
    pattern_affinity: float = 0.7
    personality_type: PersonalityType = PersonalityType.CASUAL
    formality: float = 0.3
    language_proficiency: dict[str, float] = field(default_factory=dict)
    feedback: dict[str, ProviderFeedback] = field(default_factory=dict)
    created_at: float = field(default_factory=time.time)
    last_updated: float = field(default_factory=time.time)

    def weight_for(self, provider_id: str, default: float = 1.0) -> float:
        """Reliability weight for a provider, or ``default`` if never updated."""
        return self.provider_weights.get(provider_id, default)

    def apply_feedback(
        self,
        provider_id: str,
        accepted: bool,
        learning_rate: float,
        default: float = 1.0,
    ) -> float:
        """Move a provider weight toward the feedback signal.

        new = clamp(old * (1 - lr) + signal * lr, 0, 1)

        Returns:
            The new weight
        """
        signal = 1.0 if accepted else 0.0
        old = self.weight_for(provider_id, default)
        new = clamp(old * (1.0 - learning_rate) + signal * learning_rate)
        self.provider_weights[provider_id] = new

        counters = self.feedback.get(provider_id)
        if counters is None:
            counters = ProviderFeedback(provider_id=provider_id)
            self.feedback[provider_id] = counters
        counters.record(accepted)

        self.last_updated = time.time()
        return new

    def apply_pattern_feedback(self, accepted: bool, learning_rate: float) -> float:
        """Same EMA rule applied to the pattern-affinity score."""
        signal = 1.0 if accepted else 0.0
        self.pattern_affinity = clamp(
            self.pattern_affinity * (1.0 - learning_rate) + signal * learning_rate
        )
        self.last_updated = time.time()
        return self.pattern_affinity

    def proficiency(self, language: str) -> float:
        return self.language_proficiency.get(language, 0.5)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "user_id": self.user_id,
            "provider_weights": dict(self.provider_weights),
            "pattern_affinity": self.pattern_affinity,
            "personality_type": self.personality_type.value,
            "formality": self.formality,
            "language_proficiency": dict(self.language_proficiency),
            "feedback": {k: v.to_dict() for k, v in self.feedback.items()},
            "created_at": self.created_at,
            "last_updated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserProfile:
        """Create from dictionary."""
        return cls(
            user_id=data["user_id"],
            provider_weights={
                k: clamp(float(v)) for k, v in data.get("provider_weights", {}).items()
            },
            pattern_affinity=clamp(float(data.get("pattern_affinity", 0.7))),
            personality_type=PersonalityType(data.get("personality_type", "casual")),
            formality=clamp(float(data.get("formality", 0.3))),
            language_proficiency=dict(data.get("language_proficiency", {})),
            feedback={
                k: ProviderFeedback.from_dict(v)
                for k, v in data.get("feedback", {}).items()
            },
            created_at=data.get("created_at", time.time()),
            last_updated=data.get("last_updated", time.time()),
        )
