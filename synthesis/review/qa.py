"""QA scoring for synthesized reports.

Scores every section on four text dimensions and the report as a whole on
structural consistency, then blends them with the coherence and pattern
alignment scores into one weighted overall score.

Dimensions:
- Clarity: sentence length, jargon, passive voice
- Relevance: organization mentions, theme alignment, temporal markers
- Insight depth: analytical phrasing, figures, causal language
- Evidence strength: citation count, domain diversity, recency
- Structural consistency: length balance and terminology across sections
- Coherence: flow between adjacent sections
- Pattern alignment: coverage of the extracted patterns
"""

import logging
import math
import re
from datetime import date
from typing import Any

from synthesis.state.models import Citation, Section
from synthesis.style.enforcer import split_sentences

logger = logging.getLogger(__name__)


# =============================================================================
# Dimensions Configuration
# =============================================================================


QA_DIMENSIONS = {
    "clarity": {
        "name": "Clarity",
        "weight": 0.18,
        "description": "Readable sentences without jargon or passive constructions",
    },
    "relevance": {
        "name": "Relevance",
        "weight": 0.18,
        "description": "Focus on the organizations, extracted themes and current period",
    },
    "insight_depth": {
        "name": "Insight Depth",
        "weight": 0.14,
        "description": "Analytical and causal reasoning backed by figures",
    },
    "evidence_strength": {
        "name": "Evidence Strength",
        "weight": 0.13,
        "description": "Enough recent citations from distinct domains",
    },
    "structural_consistency": {
        "name": "Structural Consistency",
        "weight": 0.12,
        "description": "Balanced section lengths and consistent terminology",
    },
    "coherence": {
        "name": "Coherence",
        "weight": 0.15,
        "description": "Shared vocabulary between adjacent sections",
    },
    "pattern_alignment": {
        "name": "Pattern Alignment",
        "weight": 0.10,
        "description": "Extracted patterns reflected in the drafted text",
    },
}

SECTION_DIMENSIONS = ("clarity", "relevance", "insight_depth", "evidence_strength")

JARGON_TERMS = (
    "leverage", "synergies", "paradigm", "bandwidth",
    "mindshare", "ecosystem", "touchpoint", "deliverables",
)
PASSIVE_INDICATORS = ("was ", "were ", "been ", "being ", "are being", "have been")
ANALYTICAL_PHRASES = (
    "this indicates", "suggests that", "demonstrates", "reveals", "implies",
    "underlying", "root cause", "correlation", "trend", "pattern", "driver",
)
CAUSAL_TERMS = ("because", "therefore", "thus", "consequently", "as a result", "due to")
CONSISTENCY_TERMS = (
    ("strategy", "strategies"),
    ("objective", "objectives"),
    ("initiative", "initiatives"),
    ("priority", "priorities"),
)

SECTION_PATTERN_TERMS: dict[str, list[str]] = {
    "executive_insight": ["strategic", "growth", "efficiency"],
    "financial_trajectory": ["revenue", "margin", "growth"],
    "customer_fundamentals": ["customer", "retention", "segment"],
    "margin_pressures": ["cost", "efficiency", "pressure"],
    "strategic_priorities": ["initiative", "transformation", "priority"],
}
DEFAULT_PATTERN_TERMS = ["efficiency", "growth"]

_FIGURE = re.compile(r"\d+%|\$[\d,]+|\d+x|\d+\.\d+")


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


# =============================================================================
# Section Dimensions
# =============================================================================


def score_clarity(text: str) -> float:
    """Start at 1.0 and subtract for long sentences, jargon and passive voice."""
    if not text or not text.strip():
        return 0.0
    score = 1.0
    counts = [len(s.split()) for s in split_sentences(text)]
    if counts:
        average = sum(counts) / len(counts)
        if average > 25:
            score -= 0.2
        elif average > 20:
            score -= 0.1

    lowered = text.lower()
    words = len(text.split())
    jargon = sum(lowered.count(term) for term in JARGON_TERMS)
    passive = sum(lowered.count(indicator) for indicator in PASSIVE_INDICATORS)
    if words:
        score -= min(0.3, jargon / words * 10)
        score -= min(0.2, passive / words * 5)
    return _clamp(score)


def score_relevance(
    text: str,
    subject_name: str = "",
    comparison_name: str = "",
    themes: list[str] | None = None,
    today: date | None = None,
) -> float:
    """Start at 0.5 and add for organization mentions, themes and period markers."""
    if not text or not text.strip():
        return 0.0
    score = 0.5
    for name in (subject_name, comparison_name):
        if name:
            score += min(0.2, text.count(name) * 0.05)

    themes = themes or []
    if themes:
        lowered = text.lower()
        matched = sum(1 for theme in themes if theme and theme.lower() in lowered)
        score += matched / len(themes) * 0.3

    year = (today or date.today()).year
    markers = {str(year), str(year - 1), "Q1", "Q2", "Q3", "Q4"}
    found = sum(1 for marker in markers if marker in text)
    score += min(0.1, found * 0.02)
    return _clamp(score)


def score_insight_depth(text: str, pattern_terms: list[str] | None = None) -> float:
    """Start at 0.3 and add for analysis, figures, causality and pattern terms."""
    if not text or not text.strip():
        return 0.0
    lowered = text.lower()
    score = 0.3
    score += min(0.3, sum(1 for p in ANALYTICAL_PHRASES if p in lowered) * 0.05)
    score += min(0.2, len(_FIGURE.findall(text)) * 0.04)
    score += min(0.2, sum(1 for t in CAUSAL_TERMS if t in lowered) * 0.05)
    pattern_terms = pattern_terms or []
    if pattern_terms:
        matched = sum(1 for term in pattern_terms if term.lower() in lowered)
        score += matched / len(pattern_terms) * 0.2
    return _clamp(score)


def score_evidence_strength(citations: list[Citation], today: date | None = None) -> float:
    """
    Score the citations of one section.

    No citations gives 0.1. Three to five citations is the sweet spot.
    """
    if not citations:
        return 0.1
    count = len(citations)
    score = 0.3
    if 3 <= count <= 5:
        score += 0.3
    elif 2 <= count <= 8:
        score += 0.2
    else:
        score += 0.1

    domains = {c.domain for c in citations if c.domain}
    score += len(domains) / count * 0.2

    year = (today or date.today()).year
    recent = sum(1 for c in citations if c.year and c.year >= year - 2)
    score += recent / count * 0.2
    return _clamp(score)


def score_structural_consistency(sections: list[Section]) -> float:
    """Reward balanced section lengths and consistent singular/plural terms."""
    if not sections:
        return 0.0
    score = 0.5
    lengths = [len(s.full_text.split()) for s in sections]
    if len(lengths) > 1:
        average = sum(lengths) / len(lengths)
        deviation = math.sqrt(sum((n - average) ** 2 for n in lengths) / len(lengths))
        ratio = deviation / average if average else 1.0
        if ratio < 0.3:
            score += 0.2
        elif ratio < 0.5:
            score += 0.1

    combined = " ".join(s.full_text for s in sections).lower()
    variations = 0
    for singular_form, plural_form in CONSISTENCY_TERMS:
        plural = combined.count(plural_form)
        singular = combined.count(singular_form)
        if plural_form.startswith(singular_form):
            singular -= plural
        if singular > 0 and plural > 0 and min(singular, plural) / max(singular, plural) > 0.3:
            variations += 1
    score += max(0.0, 0.3 - variations * 0.05)
    return _clamp(score)


# =============================================================================
# Report Scores
# =============================================================================


def weighted_overall(scores: dict[str, float]) -> float:
    """Blend dimension scores with their weights, clamped to [0, 1]."""
    total = sum(
        scores.get(dimension, 0.0) * config["weight"]
        for dimension, config in QA_DIMENSIONS.items()
    )
    return round(_clamp(total), 3)


def calculate_qa_scores(
    sections: list[Section],
    citations: dict[int, Citation] | None = None,
    subject_name: str = "",
    comparison_name: str = "",
    themes: list[str] | None = None,
    coherence_score: float = 1.0,
    pattern_alignment_score: float = 1.0,
    today: date | None = None,
) -> dict[str, Any]:
    """
    Score a drafted report.

    Args:
        sections: Drafted sections.
        citations: Citation id -> Citation, for evidence scoring.
        subject_name: Subject organization name.
        comparison_name: Comparison organization name, if any.
        themes: Leading pressure themes for relevance scoring.
        coherence_score: Result of the coherence check (1.0 when disabled).
        pattern_alignment_score: Result of pattern comparison (1.0 when disabled).
        today: Reference date for recency.

    Returns:
        Dict of dimension scores, ``overall_weighted`` and ``section_scores``.
    """
    citations = citations or {}
    structural = score_structural_consistency(sections)

    section_scores: dict[str, dict[str, float]] = {}
    totals = {dimension: 0.0 for dimension in SECTION_DIMENSIONS}
    for section in sections:
        name = section.name.value
        text = section.full_text
        scores = {
            "clarity": score_clarity(text),
            "relevance": score_relevance(text, subject_name, comparison_name, themes, today),
            "insight_depth": score_insight_depth(
                text, SECTION_PATTERN_TERMS.get(name, DEFAULT_PATTERN_TERMS)
            ),
            "evidence_strength": score_evidence_strength(
                [citations[cid] for cid in section.citation_ids if cid in citations], today
            ),
        }
        for dimension in SECTION_DIMENSIONS:
            totals[dimension] += scores[dimension]
        section_scores[name] = {
            **{k: round(v, 3) for k, v in scores.items()},
            "overall_weighted": weighted_overall({
                **scores,
                "structural_consistency": structural,
                "coherence": coherence_score,
                "pattern_alignment": pattern_alignment_score,
            }),
        }

    count = max(1, len(sections))
    final: dict[str, Any] = {
        dimension: round(totals[dimension] / count, 3) for dimension in SECTION_DIMENSIONS
    }
    final["structural_consistency"] = round(structural, 3)
    final["coherence"] = round(_clamp(coherence_score), 3)
    final["pattern_alignment"] = round(_clamp(pattern_alignment_score), 3)
    final["overall_weighted"] = weighted_overall(final)
    final["section_scores"] = section_scores

    logger.debug(f"QA: overall {final['overall_weighted']}")
    return final
