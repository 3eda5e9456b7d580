"""Personality-context alignment scoring.

Compares the conversation's mood and formality against a user's
personality profile. The score feeds a ranking boost for
personality-sourced suggestions; a poor fit only produces
recommendations, it never blocks a request.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any

from suggestion_engine.core.types import (
    ContextSnapshot,
    ConversationMood,
    PersonalityType,
    clamp,
)
from suggestion_engine.profiles.models import UserProfile

logger = logging.getLogger(__name__)


# Mood -> (personality type that fits it, score on match, score otherwise)
MOOD_PERSONALITY_TABLE: dict[ConversationMood, tuple[PersonalityType, float, float]] = {
    ConversationMood.PROFESSIONAL: (PersonalityType.PROFESSIONAL, 1.0, 0.6),
    ConversationMood.FRIENDLY: (PersonalityType.CASUAL, 1.0, 0.7),
    ConversationMood.ANALYTICAL: (PersonalityType.TECHNICAL, 1.0, 0.5),
}
NEUTRAL_MOOD_ALIGNMENT = 0.7
LOW_ALIGNMENT = 0.6

FACTOR_RECOMMENDATIONS = {
    "mood_personality": (
        "Consider adjusting personality expression to better match conversation mood"
    ),
    "communication_style": "Communication style could be better aligned with context",
}


@dataclass(frozen=True)
class AlignmentScore:
    """Result of an alignment analysis.

    Attributes:
        score: Mean of all factors (0.0-1.0)
        factors: Factor name -> score
        recommendations: Human-readable tuning hints
    """

    score: float
    factors: dict[str, float] = field(default_factory=dict, hash=False)
    recommendations: tuple[str, ...] = ()
    analyzed_at: float = field(default_factory=time.time)

    @classmethod
    def default(cls) -> AlignmentScore:
        """Used when no profile or context is available."""
        return cls(
            score=NEUTRAL_MOOD_ALIGNMENT,
            factors={"default": NEUTRAL_MOOD_ALIGNMENT},
            recommendations=("Continue using the app to improve alignment",),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "score": self.score,
            "factors": dict(self.factors),
            "recommendations": list(self.recommendations),
        }


class PersonalityAlignmentAnalyzer:
    """Scores fit between a user's personality and the conversation.

    Usage:
        analyzer = PersonalityAlignmentAnalyzer()
        alignment = analyzer.align(profile, snapshot)
        if alignment.score >= 0.7:
            ...
    """

    def __init__(
        self,
        mood_table: dict[ConversationMood, tuple[PersonalityType, float, float]] | None = None,
        neutral_alignment: float = NEUTRAL_MOOD_ALIGNMENT,
    ):
        self.mood_table = mood_table or MOOD_PERSONALITY_TABLE
        self.neutral_alignment = neutral_alignment

    def mood_personality(self, mood: ConversationMood, personality: PersonalityType) -> float:
        entry = self.mood_table.get(mood)
        if entry is None:
            return self.neutral_alignment
        fitting_type, match_score, other_score = entry
        return match_score if personality == fitting_type else other_score

    @staticmethod
    def communication_style(context_formality: float, profile_formality: float) -> float:
        """1 - |context formality - profile formality|."""
        return clamp(1.0 - abs(context_formality - profile_formality))

    def align(
        self,
        profile: UserProfile | None,
        snapshot: ContextSnapshot | None,
    ) -> AlignmentScore:
        """Compute alignment between a profile and a conversation snapshot."""
        if profile is None or snapshot is None:
            return AlignmentScore.default()

        factors = {
            "mood_personality": self.mood_personality(snapshot.tone, profile.personality_type),
            "communication_style": self.communication_style(
                snapshot.formality, profile.formality
            ),
        }
        overall = sum(factors.values()) / len(factors)

        recommendations = [
            FACTOR_RECOMMENDATIONS[name]
            for name, value in factors.items()
            if value < LOW_ALIGNMENT
        ]
        if (
            snapshot.tone == ConversationMood.PROFESSIONAL
            and profile.personality_type != PersonalityType.PROFESSIONAL
        ):
            recommendations.append("Consider adjusting tone for more professional context")

        if overall < LOW_ALIGNMENT:
            logger.debug(
                f"Low personality alignment {overall:.2f} for user={profile.user_id} "
                f"conversation={snapshot.conversation_id}"
            )

        return AlignmentScore(
            score=clamp(overall),
            factors=factors,
            recommendations=tuple(recommendations) or ("Good alignment detected",),
        )
