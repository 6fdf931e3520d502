"""Tests for section contract validation."""

import pytest

from synthesis.errors.exceptions import SectionContractViolation
from synthesis.review.validation import is_empty, section_ok, section_ok_tolerant
from synthesis.state.enums import SectionName
from synthesis.state.models import Section, SectionItem


def items(count: int) -> list[SectionItem]:
    return [SectionItem(title=f"Item {i}", body=f"Body {i}.") for i in range(count)]


class TestIsEmpty:
    """Tests for the emptiness check."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}, ["", "  "], {"a": ""}, SectionItem()])
    def test_empty_values(self, value):
        """Test values treated as empty."""
        assert is_empty(value)

    @pytest.mark.parametrize("value", ["x", ["", "x"], {"a": "b"}, 0, SectionItem(title="t")])
    def test_non_empty_values(self, value):
        """Test values treated as present."""
        assert not is_empty(value)

    def test_section_with_items_only(self):
        """Test a section with items but no text is present."""
        section = Section(name=SectionName.GROWTH_LEVERS, items=items(2))
        assert not is_empty(section)


class TestSectionOk:
    """Tests for the strict check."""

    def test_empty_section_invalid(self):
        """Test an empty section is invalid."""
        result = section_ok("margin_pressures", Section(name=SectionName.MARGIN_PRESSURES))
        assert not result
        assert result.errors == ["margin_pressures is empty"]

    def test_present_section_valid(self):
        """Test a section with text is valid."""
        assert section_ok("margin_pressures", "Costs are rising.")


class TestSectionOkTolerant:
    """Tests for contract validation."""

    def test_long_executive_insight_only_warns(self):
        """Test the executive word limit is a warning."""
        result = section_ok_tolerant("executive_insight", " ".join(["word"] * 150))
        assert result.is_valid
        assert result.warnings == ["executive_insight has 150 words (limit 140)"]

    def test_item_counts_within_contract(self):
        """Test item lists inside the bounds pass."""
        assert section_ok_tolerant("growth_levers", items(4))
        assert section_ok_tolerant("risk_signals", items(3))

    def test_too_few_items_raises(self):
        """Test a violation raises outside safe mode."""
        with pytest.raises(SectionContractViolation) as exc_info:
            section_ok_tolerant("risk_signals", Section(name=SectionName.RISK_SIGNALS, items=items(2)))
        assert exc_info.value.section == "risk_signals"
        assert "minimum 3" in exc_info.value.details["constraint"]

    def test_too_many_items_raises(self):
        """Test the item maximum."""
        with pytest.raises(SectionContractViolation):
            section_ok_tolerant("growth_levers", items(5))

    def test_items_need_title_and_body(self):
        """Test an item without a body violates the contract."""
        value = items(2) + [{"title": "Third", "body": ""}]
        with pytest.raises(SectionContractViolation) as exc_info:
            section_ok_tolerant("risk_signals", value)
        assert "item 3" in str(exc_info.value)

    def test_unexpected_type(self):
        """Test non-section values are rejected."""
        with pytest.raises(SectionContractViolation):
            section_ok_tolerant("buying_behavior", 42)

    def test_safe_mode_requests_fallback(self):
        """Test safe mode turns violations into warnings and a fallback request."""
        result = section_ok_tolerant("growth_levers", items(1), safe_mode=True)
        assert result.is_valid
        assert result.needs_fallback
        assert result.errors == []
        assert result.warnings == ["growth_levers has 1 items (minimum 2)"]

    def test_sections_without_contract(self):
        """Test sections without a contract only need content."""
        assert section_ok_tolerant("buying_behavior", "Committee approval.")
