"""Unit tests for the state models and the typed payload tree."""

import pytest
from pydantic import ValidationError

from synthesis.state.enums import SECTION_ORDER, SECTION_TITLES, SectionName
from synthesis.state.models import (
    Bridge,
    BridgeItem,
    DiagnosticsContext,
    PhaseRecord,
    QAWarning,
    Section,
    SectionItem,
)
from synthesis.state.tree import ListNode, MapNode, Scalar, from_python, parse_json, to_python


# =============================================================================
# Tree Tests
# =============================================================================


class TestTree:
    """Tests for the typed payload tree."""

    def test_parse_json_builds_nodes(self):
        """Nested JSON becomes MapNode, ListNode and Scalar values."""
        tree = parse_json('{"Acme": {"Overview": {"Focus": "Payments", "Tags": ["a", 2]}}}')
        assert isinstance(tree, MapNode)
        focus = tree.get("Acme").get("Overview").get("Focus")
        assert isinstance(focus, Scalar)
        assert focus.text() == "Payments"
        tags = tree.get("Acme").get("Overview").get("Tags")
        assert isinstance(tags, ListNode)
        assert len(tags) == 2

    @pytest.mark.parametrize("text", [None, "", "   ", "{not json", b""])
    def test_parse_json_invalid(self, text):
        """Empty or invalid JSON gives None."""
        assert parse_json(text) is None

    def test_text_only_for_strings(self):
        """Non-string scalars have no text."""
        assert Scalar(42).text() is None
        assert Scalar("x").text() == "x"

    def test_is_empty(self):
        """Blank strings, None and empty containers are empty."""
        assert Scalar("  ").is_empty()
        assert Scalar(None).is_empty()
        assert not Scalar(0).is_empty()
        assert MapNode({"a": Scalar(""), "b": ListNode([])}).is_empty()
        assert not from_python({"a": ["", "x"]}).is_empty()

    def test_walk_yields_paths(self):
        """walk yields every scalar with its path."""
        tree = from_python({"a": {"b": ["x", "y"]}, "c": 1})
        paths = [path for path, _ in tree.walk()]
        assert paths == [("a", "b", "0"), ("a", "b", "1"), ("c",)]

    def test_round_trip_preserves_order(self):
        """to_python restores the original structure and key order."""
        data = {"z": 1, "a": [True, None, {"k": "v"}]}
        assert to_python(from_python(data)) == data
        assert list(to_python(from_python(data)).keys()) == ["z", "a"]

    def test_get_on_non_map(self):
        """get on lists and scalars returns None."""
        assert ListNode([Scalar("x")]).get("x") is None
        assert Scalar("x").get("x") is None


# =============================================================================
# Model Tests
# =============================================================================


class TestSectionModels:
    """Tests for section models."""

    def test_section_order_and_titles(self):
        """Nine sections in document order, each with a title."""
        assert len(SECTION_ORDER) == 9
        assert SECTION_ORDER[0] == SectionName.EXECUTIVE_INSIGHT
        assert SECTION_ORDER[-1] == SectionName.RISK_SIGNALS
        assert set(SECTION_TITLES) == set(SECTION_ORDER)

    def test_full_text_includes_items(self):
        """full_text joins body text and item text."""
        section = Section(
            name=SectionName.GROWTH_LEVERS,
            text="Two levers.",
            items=[SectionItem(title="Expansion", body="New regions [2].")],
        )
        assert section.full_text == "Two levers. Expansion. New regions [2]."
        assert section.word_count == 2

    def test_citation_cap(self):
        """A section cannot hold more than eight citation ids."""
        with pytest.raises(ValidationError):
            Section(name=SectionName.RISK_SIGNALS, citation_ids=list(range(1, 10)))

    def test_bridge_item_cap(self):
        """A bridge holds at most five items."""
        items = [BridgeItem(theme=f"t{i}", why_it_matters="w") for i in range(6)]
        with pytest.raises(ValidationError):
            Bridge(items=items)

    def test_qa_warning_truncated(self):
        """QA warnings are truncated to 500 characters."""
        warning = QAWarning(section="drafting", warning="x" * 900)
        assert len(warning.warning) == 500


class TestDiagnosticsContext:
    """Tests for the per-invocation diagnostics context."""

    def test_checkpoint_records_notes(self):
        """Checkpoints update the last checkpoint and keep notes."""
        context = DiagnosticsContext(run_id="run-1")
        context.checkpoint("normalization")
        context.checkpoint("cache", "hit")
        assert context.last_checkpoint == "cache"
        assert context.notes == ["cache: hit"]

    def test_phase_lookup(self):
        """phase() finds a recorded phase by name."""
        context = DiagnosticsContext(run_id="run-1")
        context.phases.append(PhaseRecord(phase="drafting", started_at_ms=1, ended_at_ms=5, duration_ms=4))
        assert context.phase("drafting").duration_ms == 4
        assert context.phase("render") is None
