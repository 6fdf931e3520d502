"""Tests for citation confidence scoring."""

from datetime import date, timedelta

import pytest

from synthesis.citations.confidence import (
    authority_score,
    calculate_confidence,
    classify_source_type,
    corroboration_score,
    recency_score,
    relevance_score,
)
from synthesis.state.enums import SourceType

TODAY = date(2024, 7, 15)


class TestFactors:
    """Tests for the individual confidence factors."""

    @pytest.mark.parametrize("domain,score", [
        ("sec.gov", 1.0),
        ("reuters.com", 0.95),
        ("investors.acmehealth.com", 0.75),
        ("example.org", 0.40),
    ])
    def test_authority(self, domain, score):
        """Test authority table lookups."""
        assert authority_score(domain) == score

    def test_authority_subdomain_discount(self):
        """Test subdomains of known hosts are discounted slightly."""
        assert authority_score("news.reuters.com") == pytest.approx(0.9025)

    @pytest.mark.parametrize("days,score", [(10, 1.0), (60, 0.85), (120, 0.70), (300, 0.55), (800, 0.40)])
    def test_recency_bands(self, days, score):
        """Test recency bands by age in days."""
        assert recency_score(TODAY - timedelta(days=days), TODAY) == score

    def test_recency_inputs(self):
        """Test ISO strings and missing dates."""
        assert recency_score("2024-07-01", TODAY) == 1.0
        assert recency_score(None, TODAY) == 0.50
        assert recency_score("sometime", TODAY) == 0.50

    def test_corroboration(self):
        """Test corroboration steps."""
        assert corroboration_score(1) == 0.50
        assert corroboration_score(2) == 0.75
        assert corroboration_score(5) == 1.0

    def test_relevance(self):
        """Test keyword overlap with a section."""
        assert relevance_score("market expansion at scale", "growth_levers") == 1.0
        assert relevance_score("market expansion", "growth_levers") == 0.8
        assert relevance_score("nothing related", "growth_levers") == 0.4
        assert relevance_score("anything", "buying_behavior") == 0.60


class TestCalculateConfidence:
    """Tests for the blended confidence."""

    def test_regulatory_source(self):
        """Test an authoritative, recent, corroborated source."""
        assert calculate_confidence("sec.gov", "2024-07-01", 3, today=TODAY) == 0.94

    def test_blend(self):
        """Test a mid-authority source of moderate age."""
        published = TODAY - timedelta(days=100)
        assert calculate_confidence("reuters.com", published, 2, today=TODAY) == 0.8

    def test_bounded(self):
        """Test confidence stays within [0, 1]."""
        score = calculate_confidence("", None, 0, today=TODAY)
        assert 0.0 <= score <= 1.0


class TestClassifySourceType:
    """Tests for source classification."""

    @pytest.mark.parametrize("domain,source_type", [
        ("sec.gov", SourceType.REGULATORY),
        ("reuters.com", SourceType.NEWS),
        ("gartner.com", SourceType.ANALYST),
        ("investors.acmehealth.com", SourceType.COMPANY),
        ("stanford.edu", SourceType.ACADEMIC),
        ("healthaffairs.org", SourceType.HEALTHCARE),
        ("example.com", SourceType.INDUSTRY),
    ])
    def test_classification(self, domain, source_type):
        """Test the first matching indicator wins."""
        assert classify_source_type(domain) == source_type
