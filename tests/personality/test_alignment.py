"""Tests for personality alignment scoring and communication styles."""

import pytest

from suggestion_engine.core.types import (
    ContextSnapshot,
    ConversationMood,
    PersonalityType,
)
from suggestion_engine.personality import (
    STYLES,
    AlignmentScore,
    PersonalityAlignmentAnalyzer,
    get_style,
    list_styles,
)
from suggestion_engine.profiles import UserProfile


def make_snapshot(tone=ConversationMood.NEUTRAL, formality=0.5):
    return ContextSnapshot(conversation_id="conv-1", tone=tone, formality=formality)


@pytest.fixture
def analyzer():
    return PersonalityAlignmentAnalyzer()


class TestMoodPersonality:
    """Tests for the mood/personality lookup."""

    @pytest.mark.parametrize(
        "mood,personality,expected",
        [
            (ConversationMood.PROFESSIONAL, PersonalityType.PROFESSIONAL, 1.0),
            (ConversationMood.PROFESSIONAL, PersonalityType.CASUAL, 0.6),
            (ConversationMood.FRIENDLY, PersonalityType.CASUAL, 1.0),
            (ConversationMood.FRIENDLY, PersonalityType.TECHNICAL, 0.7),
            (ConversationMood.ANALYTICAL, PersonalityType.TECHNICAL, 1.0),
            (ConversationMood.ANALYTICAL, PersonalityType.CREATIVE, 0.5),
            (ConversationMood.NEUTRAL, PersonalityType.CREATIVE, 0.7),
            (ConversationMood.TENSE, PersonalityType.DIPLOMATIC, 0.7),
        ],
    )
    def test_table(self, analyzer, mood, personality, expected):
        assert analyzer.mood_personality(mood, personality) == expected


class TestCommunicationStyleFactor:
    """Tests for formality closeness."""

    def test_identical_formality(self, analyzer):
        assert analyzer.communication_style(0.4, 0.4) == 1.0

    def test_opposite_formality(self, analyzer):
        assert analyzer.communication_style(0.0, 1.0) == 0.0

    def test_partial_difference(self, analyzer):
        assert analyzer.communication_style(0.8, 0.3) == pytest.approx(0.5)


class TestAlign:
    """Tests for the combined alignment score."""

    def test_missing_inputs_use_default(self, analyzer):
        """No profile or snapshot means a neutral default."""
        default = AlignmentScore.default()
        result = analyzer.align(None, make_snapshot())
        assert result.score == default.score == 0.7
        assert result.factors == {"default": 0.7}
        assert analyzer.align(UserProfile(user_id="u"), None).score == 0.7

    def test_score_is_mean_of_factors(self, analyzer):
        """Overall score averages the two factors."""
        profile = UserProfile(
            user_id="u", personality_type=PersonalityType.CASUAL, formality=0.3
        )
        result = analyzer.align(profile, make_snapshot(ConversationMood.FRIENDLY, 0.5))

        assert result.factors["mood_personality"] == 1.0
        assert result.factors["communication_style"] == pytest.approx(0.8)
        assert result.score == pytest.approx(0.9)
        assert result.recommendations == ("Good alignment detected",)

    def test_poor_fit_produces_recommendations(self, analyzer):
        """Low factors each produce a recommendation."""
        profile = UserProfile(
            user_id="u", personality_type=PersonalityType.CREATIVE, formality=0.0
        )
        result = analyzer.align(profile, make_snapshot(ConversationMood.ANALYTICAL, 1.0))

        assert result.score == pytest.approx(0.25)
        assert len(result.recommendations) == 2
        assert "Good alignment detected" not in result.recommendations

    def test_professional_context_recommendation(self, analyzer):
        """A casual user in a professional context gets a tone hint."""
        profile = UserProfile(
            user_id="u", personality_type=PersonalityType.CASUAL, formality=0.8
        )
        result = analyzer.align(profile, make_snapshot(ConversationMood.PROFESSIONAL, 0.8))

        assert any("professional" in r for r in result.recommendations)

    def test_score_in_range(self, analyzer):
        """Every combination scores within [0, 1]."""
        for mood in ConversationMood:
            for personality in PersonalityType:
                profile = UserProfile(user_id="u", personality_type=personality)
                score = analyzer.align(profile, make_snapshot(mood, 0.9)).score
                assert 0.0 <= score <= 1.0

    def test_to_dict(self, analyzer):
        result = analyzer.align(UserProfile(user_id="u"), make_snapshot())
        data = result.to_dict()
        assert set(data) == {"score", "factors", "recommendations"}


class TestStyles:
    """Tests for the communication style registry."""

    def test_every_personality_has_a_style(self):
        assert set(list_styles()) == set(PersonalityType)
        assert all(style.templates for style in STYLES.values())

    def test_get_style(self):
        style = get_style(PersonalityType.PROFESSIONAL)
        assert style.formality == 0.85

    def test_mood_templates_come_first(self):
        style = get_style(PersonalityType.PROFESSIONAL)
        templates = style.templates_for(ConversationMood.TENSE)
        assert templates[0] == "I understand your concern. {text}"
        assert templates[1:] == style.templates

    def test_templates_without_mood_entry(self):
        style = get_style(PersonalityType.MINIMALIST)
        assert style.templates_for(ConversationMood.TENSE) == style.templates
