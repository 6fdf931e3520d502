"""Citation confidence scoring and source classification.

Confidence is a weighted blend of four factors:

    authority * 0.40 + recency * 0.20 + corroboration * 0.25 + relevance * 0.15

clamped to [0, 1] and rounded to two decimals.
"""

import re
from datetime import date, datetime, timezone

from synthesis.state.enums import SourceType


# =============================================================================
# Weights and tables
# =============================================================================

CONFIDENCE_WEIGHTS: dict[str, float] = {
    "authority": 0.40,
    "recency": 0.20,
    "corroboration": 0.25,
    "relevance": 0.15,
}

DOMAIN_AUTHORITY: dict[str, float] = {
    "sec.gov": 1.0,
    "edgar.sec.gov": 1.0,
    "fda.gov": 1.0,
    "nih.gov": 0.98,
    "duke.edu": 0.95,
    "investor.gov": 0.95,
    "bloomberg.com": 0.95,
    "reuters.com": 0.95,
    "wsj.com": 0.95,
    "ft.com": 0.90,
    "nejm.org": 0.90,
    "jama.jamanetwork.com": 0.90,
    "forbes.com": 0.85,
    "fortune.com": 0.85,
    "businesswire.com": 0.80,
    "prnewswire.com": 0.80,
    "medscape.com": 0.80,
    "techcrunch.com": 0.75,
    "crunchbase.com": 0.75,
    "linkedin.com": 0.70,
    "glassdoor.com": 0.65,
}

DEFAULT_AUTHORITY = 0.40
INVESTOR_RELATIONS_AUTHORITY = 0.75
_INVESTOR_RELATIONS = re.compile(r"investor|ir\.|investors")

# (max age in days, score), checked in order
RECENCY_BANDS: list[tuple[int, float]] = [
    (30, 1.0),
    (90, 0.85),
    (180, 0.70),
    (365, 0.55),
]
STALE_RECENCY = 0.40
UNDATED_RECENCY = 0.50

SECTION_KEYWORDS: dict[str, list[str]] = {
    "executive_insight": ["leadership", "strategy", "ceo", "executive", "vision"],
    "financial_trajectory": ["revenue", "growth", "ebitda", "margin", "financial"],
    "margin_pressures": ["cost", "efficiency", "pressure", "expense", "overhead"],
    "strategic_priorities": ["priority", "initiative", "transformation", "digital"],
    "growth_levers": ["expansion", "market", "opportunity", "potential", "scale"],
}
DEFAULT_RELEVANCE = 0.60

# Checked in order; the first matching indicator wins
SOURCE_TYPE_INDICATORS: list[tuple[SourceType, list[str]]] = [
    (SourceType.REGULATORY, [
        "sec.gov", "edgar.sec", "investor.gov", "fdic.gov", "occ.gov", "fda.gov", "nih.gov",
    ]),
    (SourceType.NEWS, [
        "bloomberg", "reuters", "wsj", "ft.com", "forbes", "fortune", "cnbc", "marketwatch",
    ]),
    (SourceType.ANALYST, [
        "gartner", "forrester", "idc.com", "mckinsey", "deloitte", "pwc", "bcg.com",
    ]),
    (SourceType.COMPANY, ["investor.", "ir.", "investors.", "about.", "newsroom."]),
    (SourceType.INDUSTRY, ["trade", "association", "institute", "society", "foundation"]),
    (SourceType.ACADEMIC, ["edu", "ac.uk", "research", "university", "college"]),
    (SourceType.HEALTHCARE, ["pharma", "medscape", "nejm", "jama", "healthcare", "health"]),
]


# =============================================================================
# Factor scores
# =============================================================================


def authority_score(domain: str) -> float:
    """Score the authority of a domain from the authority table."""
    domain = (domain or "").lower()
    if domain in DOMAIN_AUTHORITY:
        return DOMAIN_AUTHORITY[domain]
    for known, score in DOMAIN_AUTHORITY.items():
        if known in domain:
            return round(score * 0.95, 4)
    if _INVESTOR_RELATIONS.search(domain):
        return INVESTOR_RELATIONS_AUTHORITY
    return DEFAULT_AUTHORITY


def _parse_date(value: str | date | datetime | None) -> date | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    if re.fullmatch(r"\d{4}", text):
        return date(int(text), 7, 1)
    return None


def recency_score(
    published: str | date | datetime | None,
    today: date | None = None,
) -> float:
    """Score how recent a source is by its age in days."""
    published_date = _parse_date(published)
    if published_date is None:
        return UNDATED_RECENCY
    today = today or datetime.now(timezone.utc).date()
    age_days = (today - published_date).days
    for max_days, score in RECENCY_BANDS:
        if age_days <= max_days:
            return score
    return STALE_RECENCY


def corroboration_score(count: int) -> float:
    """Score how many independent mentions back a source."""
    if count >= 3:
        return 1.0
    if count == 2:
        return 0.75
    return 0.50


def relevance_score(text: str, section: str | None) -> float:
    """Score keyword overlap between a source's text and a section."""
    keywords = SECTION_KEYWORDS.get(section or "")
    if not keywords:
        return DEFAULT_RELEVANCE
    haystack = (text or "").lower()
    ratio = sum(1 for keyword in keywords if keyword in haystack) / len(keywords)
    if ratio >= 0.6:
        return 1.0
    if ratio >= 0.4:
        return 0.8
    if ratio >= 0.2:
        return 0.6
    return 0.4


# =============================================================================
# Public API
# =============================================================================


def calculate_confidence(
    domain: str,
    published: str | date | datetime | None = None,
    corroboration_count: int = 1,
    text: str = "",
    section: str | None = None,
    today: date | None = None,
) -> float:
    """
    Calculate the confidence of a citation.

    Args:
        domain: Source domain.
        published: Publication date (ISO string, year, or date).
        corroboration_count: Number of corroborating mentions.
        text: Title and snippet, used for section relevance.
        section: Section the citation supports.
        today: Reference date for recency (defaults to today, UTC).

    Returns:
        Confidence in [0, 1], rounded to two decimals.
    """
    score = (
        authority_score(domain) * CONFIDENCE_WEIGHTS["authority"]
        + recency_score(published, today) * CONFIDENCE_WEIGHTS["recency"]
        + corroboration_score(corroboration_count) * CONFIDENCE_WEIGHTS["corroboration"]
        + relevance_score(text, section) * CONFIDENCE_WEIGHTS["relevance"]
    )
    return round(max(0.0, min(1.0, score)), 2)


def classify_source_type(domain: str) -> SourceType:
    """Classify a source by substring indicators in its domain."""
    domain = (domain or "").lower()
    for source_type, indicators in SOURCE_TYPE_INDICATORS:
        if any(indicator in domain for indicator in indicators):
            return source_type
    return SourceType.INDUSTRY
