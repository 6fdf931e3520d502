"""Citation management for synthesized reports.

Provides the citation ledger, confidence scoring, source diversity
rebalancing and batched metadata enrichment.
"""

from synthesis.citations.confidence import calculate_confidence, classify_source_type
from synthesis.citations.enrichment import EnrichmentReport, enrich_citations
from synthesis.citations.formatter import (
    SECTION_PREFIXES,
    extract_citation_ids,
    extract_domain,
    format_marker,
    format_source_entry,
    normalize_citation_urls,
    normalize_url,
)
from synthesis.citations.ledger import CitationLedger, CitationOutput, SectionCitations
from synthesis.citations.rebalancer import (
    DiversityRebalancer,
    RebalanceResult,
    calculate_diversity_metrics,
    needs_rebalancing,
)
from synthesis.citations.resolver import (
    CitationResolver,
    HttpCitationResolver,
    ResolvedCitation,
    UrlCitationResolver,
    build_resolver,
)

__all__ = [
    "calculate_confidence",
    "classify_source_type",
    "EnrichmentReport",
    "enrich_citations",
    "SECTION_PREFIXES",
    "extract_citation_ids",
    "extract_domain",
    "format_marker",
    "format_source_entry",
    "normalize_citation_urls",
    "normalize_url",
    "CitationLedger",
    "CitationOutput",
    "SectionCitations",
    "DiversityRebalancer",
    "RebalanceResult",
    "calculate_diversity_metrics",
    "needs_rebalancing",
    "CitationResolver",
    "HttpCitationResolver",
    "ResolvedCitation",
    "UrlCitationResolver",
    "build_resolver",
]
