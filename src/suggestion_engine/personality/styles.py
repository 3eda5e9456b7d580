"""Pre-built communication styles per personality type.

A style is a small template describing how a personality phrases things.
The personality provider uses it to propose phrasings of the user's input
that match who they are.

Example:
    from suggestion_engine.personality import get_style
    from suggestion_engine.core import PersonalityType

    style = get_style(PersonalityType.PROFESSIONAL)
    style.formality   # 0.85
"""

from dataclasses import dataclass, field

from suggestion_engine.core.types import ConversationMood, PersonalityType


@dataclass(frozen=True)
class CommunicationStyle:
    """How a personality tends to phrase things."""

    personality: PersonalityType
    description: str
    formality: float = 0.5
    verbosity: float = 0.5

    # Phrasing templates; "{text}" is the user's input
    templates: tuple[str, ...] = ()

    # Extra templates tried when the conversation is in a given mood
    mood_templates: dict[ConversationMood, tuple[str, ...]] = field(
        default_factory=dict, hash=False
    )

    def templates_for(self, mood: ConversationMood) -> tuple[str, ...]:
        return self.mood_templates.get(mood, ()) + self.templates


# =============================================================================
# Styles
# =============================================================================


PROFESSIONAL = CommunicationStyle(
    personality=PersonalityType.PROFESSIONAL,
    description="Calm, precise and courteous.",
    formality=0.85,
    verbosity=0.5,
    templates=(
        "Could you please confirm: {text}",
        "I would like to ask: {text}",
    ),
    mood_templates={
        ConversationMood.TENSE: ("I understand your concern. {text}",),
        ConversationMood.PROFESSIONAL: ("Thank you. {text}",),
    },
)

CASUAL = CommunicationStyle(
    personality=PersonalityType.CASUAL,
    description="Relaxed and friendly.",
    formality=0.2,
    verbosity=0.3,
    templates=(
        "Hey, {text}",
        "{text} :)",
    ),
    mood_templates={
        ConversationMood.FRIENDLY: ("Awesome! {text}",),
    },
)

TECHNICAL = CommunicationStyle(
    personality=PersonalityType.TECHNICAL,
    description="Exact and to the point.",
    formality=0.6,
    verbosity=0.4,
    templates=(
        "To be precise: {text}",
        "{text} (details to follow)",
    ),
    mood_templates={
        ConversationMood.ANALYTICAL: ("Based on the data, {text}",),
    },
)

DIPLOMATIC = CommunicationStyle(
    personality=PersonalityType.DIPLOMATIC,
    description="Tactful, softens every request.",
    formality=0.7,
    verbosity=0.6,
    templates=(
        "If it's not too much trouble, {text}",
        "I was wondering, {text}",
    ),
    mood_templates={
        ConversationMood.TENSE: ("I see where you're coming from. {text}",),
    },
)

CREATIVE = CommunicationStyle(
    personality=PersonalityType.CREATIVE,
    description="Expressive and playful.",
    formality=0.3,
    verbosity=0.6,
    templates=("Here's a thought: {text}",),
)

ACADEMIC = CommunicationStyle(
    personality=PersonalityType.ACADEMIC,
    description="Careful and well-qualified.",
    formality=0.8,
    verbosity=0.7,
    templates=("It may be worth noting that {text}",),
)

ENERGETIC = CommunicationStyle(
    personality=PersonalityType.ENERGETIC,
    description="Upbeat and enthusiastic.",
    formality=0.2,
    verbosity=0.4,
    templates=("{text}!", "Great news: {text}"),
)

MINIMALIST = CommunicationStyle(
    personality=PersonalityType.MINIMALIST,
    description="As few words as possible.",
    formality=0.5,
    verbosity=0.1,
    templates=("{text}",),
)


STYLES: dict[PersonalityType, CommunicationStyle] = {
    style.personality: style
    for style in (
        PROFESSIONAL,
        CASUAL,
        TECHNICAL,
        DIPLOMATIC,
        CREATIVE,
        ACADEMIC,
        ENERGETIC,
        MINIMALIST,
    )
}


def get_style(personality: PersonalityType) -> CommunicationStyle:
    """Get the communication style for a personality type.

    Unknown types fall back to the casual style.
    """
    return STYLES.get(personality, CASUAL)


def list_styles() -> list[PersonalityType]:
    """List personality types that have a style."""
    return list(STYLES.keys())
