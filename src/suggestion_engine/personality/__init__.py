"""Personality subsystem for the suggestion engine.

This module provides:
- PersonalityAlignmentAnalyzer: personality vs conversation fit score
- CommunicationStyle: phrasing templates per personality type
"""

from suggestion_engine.personality.alignment import (
    AlignmentScore,
    PersonalityAlignmentAnalyzer,
    MOOD_PERSONALITY_TABLE,
)
from suggestion_engine.personality.styles import (
    CommunicationStyle,
    STYLES,
    get_style,
    list_styles,
)

__all__ = [
    "AlignmentScore",
    "PersonalityAlignmentAnalyzer",
    "MOOD_PERSONALITY_TABLE",
    "CommunicationStyle",
    "STYLES",
    "get_style",
    "list_styles",
]
