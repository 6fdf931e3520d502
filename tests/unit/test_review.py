"""Tests for QA scoring, the self-check and coherence checks."""

from datetime import date

import pytest

from synthesis.review import (
    QA_DIMENSIONS,
    calculate_coherence,
    calculate_qa_scores,
    compare_patterns,
    run_selfcheck,
    weighted_overall,
)
from synthesis.review.qa import (
    score_clarity,
    score_evidence_strength,
    score_insight_depth,
    score_relevance,
    score_structural_consistency,
)
from synthesis.state.enums import SECTION_ORDER, SectionName
from synthesis.state.models import Citation, Pattern, PatternSet, Section, SectionItem

TODAY = date(2024, 6, 1)


def plain_sections(text: str = "Outpatient demand keeps rising.") -> list[Section]:
    sections = []
    for name in SECTION_ORDER:
        items = []
        if name == SectionName.GROWTH_LEVERS:
            items = [SectionItem(title="Clinics", body="New sites."), SectionItem(title="Imaging", body="More scans.")]
        sections.append(Section(name=name, text=text, items=items))
    return sections


# =============================================================================
# QA Tests
# =============================================================================


class TestQaDimensions:
    """Tests for the individual QA dimensions."""

    def test_weights_sum_to_one(self):
        """Test dimension weights sum to one."""
        assert sum(d["weight"] for d in QA_DIMENSIONS.values()) == pytest.approx(1.0)

    def test_weighted_overall_bounds(self):
        """Test the weighted blend of perfect and missing scores."""
        assert weighted_overall({d: 1.0 for d in QA_DIMENSIONS}) == 1.0
        assert weighted_overall({}) == 0.0

    def test_clarity(self):
        """Test clarity penalizes jargon."""
        assert score_clarity("Revenue grew.") == 1.0
        assert score_clarity("We leverage synergies.") == pytest.approx(0.7)
        assert score_clarity("") == 0.0

    def test_relevance(self):
        """Test relevance rewards organization names and period markers."""
        score = score_relevance("Acme Health grows in 2024.", subject_name="Acme Health", today=TODAY)
        assert score == pytest.approx(0.57)

    def test_insight_depth(self):
        """Test figures, causal terms and pattern terms add depth."""
        score = score_insight_depth("Revenue grew 12% because demand rose.", ["revenue", "margin", "growth"])
        assert score == pytest.approx(0.3 + 0.04 + 0.05 + 0.2 / 3)

    def test_evidence_strength(self):
        """Test three recent citations from distinct domains score fully."""
        citations = [
            Citation(id=i, url=f"https://d{i}.com/a", domain=f"d{i}.com", year=2024) for i in range(1, 4)
        ]
        assert score_evidence_strength(citations, TODAY) == 1.0
        assert score_evidence_strength([], TODAY) == 0.1

    def test_structural_consistency_balanced(self):
        """Test identical section lengths without term drift score fully."""
        assert score_structural_consistency(plain_sections()[:5]) == 1.0
        assert score_structural_consistency([]) == 0.0


class TestCalculateQaScores:
    """Tests for calculate_qa_scores."""

    def test_report_scores(self):
        """Test the report carries every dimension and per-section scores."""
        scores = calculate_qa_scores(
            plain_sections(),
            subject_name="Acme Health",
            coherence_score=0.5,
            pattern_alignment_score=0.8,
            today=TODAY,
        )
        for dimension in QA_DIMENSIONS:
            assert 0.0 <= scores[dimension] <= 1.0
        assert scores["coherence"] == 0.5
        assert scores["pattern_alignment"] == 0.8
        assert set(scores["section_scores"]) == {n.value for n in SECTION_ORDER}
        assert 0.0 <= scores["overall_weighted"] <= 1.0

    def test_citations_raise_evidence(self):
        """Test cited sections score higher evidence strength."""
        sections = plain_sections()
        sections[0] = sections[0].model_copy(update={"citation_ids": [1, 2, 3]})
        citations = {
            i: Citation(id=i, url=f"https://d{i}.com/a", domain=f"d{i}.com", year=2024) for i in range(1, 4)
        }
        scores = calculate_qa_scores(sections, citations=citations, today=TODAY)
        section_scores = scores["section_scores"]
        assert section_scores["executive_insight"]["evidence_strength"] == 1.0
        assert section_scores["risk_signals"]["evidence_strength"] == 0.1


# =============================================================================
# Self-check Tests
# =============================================================================


class TestSelfCheck:
    """Tests for run_selfcheck."""

    def test_clean_report_passes(self):
        """Test a complete report passes every check."""
        report = run_selfcheck(plain_sections())
        assert report.passed
        assert len(report.checks) == 9 * 3
        assert report.to_dict()["failure_count"] == 0

    def test_missing_section(self):
        """Test a missing section fails the presence check."""
        report = run_selfcheck(plain_sections()[:-1])
        assert not report.passed
        assert report.failures == [{
            "check": "present", "section": "risk_signals", "status": "fail", "detail": "section missing",
        }]

    def test_empty_and_banned(self):
        """Test empty sections and leftover banned terms fail."""
        sections = plain_sections()
        sections[1] = Section(name=SectionName.CUSTOMER_FUNDAMENTALS)
        sections[2] = sections[2].model_copy(update={"text": "Next quarter brings a paradigm shift."})
        report = run_selfcheck(sections)
        failed = {(f["check"], f["section"]) for f in report.failures}
        assert failed == {
            ("non_empty", "customer_fundamentals"),
            ("banned_terms", "financial_trajectory"),
        }
        banned = [f for f in report.failures if f["check"] == "banned_terms"][0]
        assert banned["detail"] == "paradigm shift"


# =============================================================================
# Coherence Tests
# =============================================================================


class TestCoherence:
    """Tests for the coherence and pattern alignment checks."""

    def test_shared_vocabulary(self):
        """Test adjacent sections sharing terms score by overlap."""
        sections = [
            Section(name=SectionName.EXECUTIVE_INSIGHT, text="Outpatient imaging growth drives revenue."),
            Section(name=SectionName.CUSTOMER_FUNDAMENTALS, text="Imaging revenue depends on outpatient volumes."),
            Section(name=SectionName.FINANCIAL_TRAJECTORY, text="Committee approval matters."),
        ]
        result = calculate_coherence(sections)
        assert result["transitions"][0]["score"] == 0.6
        assert result["transitions"][0]["shared_terms"] == ["imaging", "outpatient", "revenue"]
        assert result["weak_transitions"] == ["customer_fundamentals -> financial_trajectory"]
        assert result["score"] == 0.3

    def test_single_section(self):
        """Test a single section is trivially coherent."""
        result = calculate_coherence(plain_sections()[:1])
        assert result["score"] == 1.0
        assert result["transitions"] == []

    def test_pattern_alignment(self):
        """Test alignment counts pattern keywords found in the draft."""
        patterns = PatternSet(pressures=[Pattern(text="Labor costs rose sharply among nurses")])
        sections = [Section(name=SectionName.MARGIN_PRESSURES, text="Labor costs climbed.")]
        result = compare_patterns(sections, patterns)
        assert result["total"] == 3
        assert result["matched"] == 2
        assert result["score"] == 0.667
        assert result["missing"] == ["sharply"]

    def test_pattern_alignment_without_patterns(self):
        """Test an empty pattern set scores 1.0."""
        assert compare_patterns(plain_sections(), PatternSet())["score"] == 1.0
