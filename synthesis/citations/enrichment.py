"""Batched citation metadata enrichment."""

import logging
from dataclasses import dataclass, field

from synthesis.citations.formatter import normalize_url
from synthesis.citations.ledger import CitationLedger
from synthesis.citations.resolver import CitationResolver
from synthesis.errors.exceptions import EnrichmentFailure
from synthesis.errors.handlers import handle_phase_error
from synthesis.state.models import QAWarning

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 20
DEFAULT_MAX_BATCHES = 3


@dataclass
class EnrichmentReport:
    """Outcome of an enrichment pass."""

    numeric_id: dict[str, int] = field(default_factory=dict)  # normalized url -> citation id
    batches_run: int = 0
    resolved: int = 0
    skipped_urls: int = 0
    warnings: list[QAWarning] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "numeric_id": self.numeric_id,
            "batches_run": self.batches_run,
            "resolved": self.resolved,
            "skipped_urls": self.skipped_urls,
            "failed_batches": len(self.warnings),
        }


def collect_enrichment_targets(ledger: CitationLedger) -> dict[str, int]:
    """
    Map normalized URLs to citation ids, referenced citations first.

    Non-http(s) URLs are skipped; URLs that normalize to the same value
    keep the first citation id.
    """
    used = ledger.get_output().global_order
    used_set = set(used)
    others = [cid for cid in range(1, len(ledger) + 1) if cid not in used_set]
    targets: dict[str, int] = {}
    for citation_id in used + others:
        citation = ledger.get(citation_id)
        if citation is None:
            continue
        normalized = normalize_url(citation.url)
        if normalized and normalized not in targets:
            targets[normalized] = citation_id
    return targets


def enrich_citations(
    ledger: CitationLedger,
    resolver: CitationResolver,
    batch_size: int = DEFAULT_BATCH_SIZE,
    max_batches: int = DEFAULT_MAX_BATCHES,
) -> EnrichmentReport:
    """
    Resolve metadata for ledger citations in bounded batches.

    At most ``batch_size * max_batches`` URLs are resolved. A failing
    batch is logged and recorded as a warning; the remaining batches
    still run.

    Args:
        ledger: Ledger whose citations are enriched in place.
        resolver: Metadata resolver.
        batch_size: URLs per resolver call.
        max_batches: Maximum resolver calls.

    Returns:
        EnrichmentReport with the url -> id map and counters.
    """
    targets = collect_enrichment_targets(ledger)
    report = EnrichmentReport(numeric_id=dict(targets))
    urls = list(targets.keys())
    limit = batch_size * max_batches
    report.skipped_urls = max(0, len(urls) - limit)
    urls = urls[:limit]

    for index in range(0, len(urls), batch_size):
        batch = urls[index:index + batch_size]
        batch_index = index // batch_size
        report.batches_run += 1
        try:
            resolved = resolver.resolve(batch)
        except Exception as e:
            failure = EnrichmentFailure(
                f"Resolver batch {batch_index} failed: {e}",
                batch_index=batch_index,
                batch_size=len(batch),
            )
            report.warnings.append(
                handle_phase_error(failure, "citation_enrichment", section="citations")
            )
            continue

        for entry in resolved:
            citation_id = targets.get(normalize_url(entry.url) or "")
            if citation_id is None:
                continue
            if ledger.update_metadata(
                citation_id,
                title=entry.title,
                publisher=entry.publisher,
                year=entry.year,
                published_at=entry.published_at,
            ):
                report.resolved += 1

    logger.info(
        f"CITATION_ENRICHMENT: {report.resolved} resolved in {report.batches_run} batch(es), "
        f"{report.skipped_urls} skipped"
    )
    return report
