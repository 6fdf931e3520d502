"""Tests for voice enforcement, banned terms and executive refinement."""

import pytest

from synthesis.style import (
    BannedWordsFilter,
    VoiceEnforcer,
    cap_words,
    refine_executive_text,
    remove_filler_phrases,
    split_sentences,
)

LONG_SENTENCE = (
    "The network added twelve clinics across three states over the last two years "
    "and the leadership team expects that pace to continue through the next planning cycle without pause."
)


# =============================================================================
# Banned Words Tests
# =============================================================================


class TestBannedWordsFilter:
    """Tests for BannedWordsFilter."""

    def test_find_banned_words(self):
        """Test matches are reported in order with suggestions."""
        matches = BannedWordsFilter().find_banned_words("We leverage best practices daily.")
        assert [m.word for m in matches] == ["leverage", "best practices"]
        assert matches[0].suggestion == "use"
        assert "leverage" in matches[0].context

    def test_whole_words_only(self):
        """Test banned terms inside other words are ignored."""
        assert BannedWordsFilter().find_banned_words("A recall of templated emailing") == []

    def test_multi_word_phrases_first(self):
        """Test longer phrases win over their parts."""
        text, count = BannedWordsFilter().replace_banned_words("One cold call a day.")
        assert text == "One connection a day."
        assert count == 1

    def test_replacement_keeps_capital(self):
        """Test capitalized terms get capitalized replacements."""
        text, count = BannedWordsFilter().replace_banned_words("Leverage the roadmap.")
        assert text == "Use the plan."
        assert count == 2

    def test_custom_lists(self):
        """Test a filter limited to its own terms."""
        custom = BannedWordsFilter(banned_words={"pivot"}, replacements={"pivot": "change"})
        assert custom.is_word_banned("Pivot")
        assert not custom.is_word_banned("synergy")
        assert custom.get_suggestion("pivot") == "change"


# =============================================================================
# Voice Enforcement Tests
# =============================================================================


class TestVoiceEnforcer:
    """Tests for VoiceEnforcer."""

    @pytest.fixture
    def enforcer(self):
        return VoiceEnforcer()

    def test_rewrites_in_order(self, enforcer):
        """Test asides, consultant-speak and execution terms are rewritten."""
        result = enforcer.enforce(
            "Honestly, we will leverage synergies. The email cadence matters.",
            "margin_pressures",
        )
        assert result.text == "We will use collaboration. The communication frequency matters."
        assert result.rewrites == [
            "Removed casual asides",
            "Replaced 2 consultant-speak terms",
            "Replaced 2 execution detail terms",
        ]
        assert result.score == 100.0
        assert result.passed

    def test_check_order(self, enforcer):
        """Test the five checks are reported."""
        result = enforcer.enforce("Costs rose 9% in 2024.", "financial_trajectory")
        assert list(result.checks) == [
            "casual_asides", "ban_list", "execution_details", "sentence_breath", "concrete_numbers",
        ]

    def test_missing_numbers_never_invented(self, enforcer):
        """Test a summary without figures loses score but keeps its text."""
        text = "Leadership is focused on outpatient growth."
        result = enforcer.enforce(text, "executive_insight")
        assert result.text == text
        assert not result.checks["concrete_numbers"]["passed"]
        assert result.score == 80.0

    def test_numbers_not_required_elsewhere(self, enforcer):
        """Test sections outside the numeric list pass without figures."""
        result = enforcer.enforce("Committee approval is required.", "buying_behavior")
        assert result.checks["concrete_numbers"]["passed"]

    def test_long_sentence_split(self, enforcer):
        """Test a long sentence is split at its first conjunction."""
        result = enforcer.enforce(LONG_SENTENCE, "current_initiatives")
        assert "Split long sentences" in result.rewrites
        assert split_sentences(result.text) == [
            "The network added twelve clinics across three states over the last two years.",
            "The leadership team expects that pace to continue through the next planning cycle without pause.",
        ]
        assert result.checks["sentence_breath"]["passed"]

    def test_empty_text(self, enforcer):
        """Test empty text passes trivially."""
        result = enforcer.enforce("  ", "risk_signals")
        assert result.score == 100.0
        assert result.checks == {}

    def test_to_dict(self, enforcer):
        """Test serialization includes the pass flag."""
        data = enforcer.enforce("Revenue grew 12%.", "financial_trajectory").to_dict()
        assert data["passed"] is True
        assert data["score"] == 100.0


# =============================================================================
# Refinement Tests
# =============================================================================


class TestRefinement:
    """Tests for executive text refinement."""

    def test_filler_removed(self):
        """Test filler phrases are removed or shortened."""
        assert remove_filler_phrases("In order to grow due to the fact that demand rose") == (
            "to grow because demand rose"
        )

    def test_refine_cleans_and_capitalizes(self):
        """Test ellipses, intensifiers and filler are cleaned up."""
        text = "It is worth noting that revenue is very strong... In order to grow, the team expands."
        assert refine_executive_text(text) == "Revenue is strong. To grow, the team expands."

    def test_refine_empty(self):
        """Test empty input gives an empty string."""
        assert refine_executive_text("   ") == ""

    def test_refine_caps_words(self):
        """Test the word limit is enforced."""
        text = " ".join(f"Sentence number {i} has five words." for i in range(40))
        refined = refine_executive_text(text, word_limit=120)
        assert len(refined.split()) <= 120
        assert refined.endswith(".")

    def test_cap_words_cuts_at_late_sentence_end(self):
        """Test a sentence end in the final stretch is used."""
        assert cap_words("a b c d e f g h. i j", 9) == "a b c d e f g h."

    def test_cap_words_appends_stop(self):
        """Test an early sentence end is ignored and a stop appended."""
        assert cap_words("Alpha beta gamma delta. Epsilon zeta eta theta iota", 7) == (
            "Alpha beta gamma delta. Epsilon zeta eta."
        )

    def test_cap_words_short_text(self):
        """Test text within the limit is unchanged."""
        assert cap_words("Short text", 5) == "Short text"
