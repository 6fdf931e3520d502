"""Source diversity measurement and rebalancing.

Citations are pooled across all modules plus the run's top-level list.
When one domain dominates the pool, or too few domains are represented,
citations from over-represented domains are trimmed so the report does
not lean on a single source.
"""

import logging
import math
from collections import Counter
from dataclasses import dataclass, replace
from typing import Any

from synthesis.citations.formatter import extract_domain
from synthesis.errors.exceptions import RebalancingFailure
from synthesis.errors.handlers import log_error_with_context
from synthesis.memory.base import ArtifactStore, TelemetrySink
from synthesis.state.models import (
    CitationSource,
    DiversityMetrics,
    DiversityReport,
    NormalizedInputs,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Thresholds
# =============================================================================

# Rebalance when one domain holds more than this share (percent)
MAX_DOMAIN_SHARE = 25.0
# ... or when fewer domains than this are represented
MIN_UNIQUE_DOMAINS = 10
# Offending domains keep at most this share of the pool
OFFENDER_RETAIN_SHARE = 0.15


@dataclass
class RebalanceResult:
    """Outcome of a rebalancing pass."""

    inputs: NormalizedInputs
    report: DiversityReport

    @property
    def applied(self) -> bool:
        return self.report.applied


# =============================================================================
# Metrics
# =============================================================================


def calculate_diversity_metrics(urls: list[str]) -> DiversityMetrics:
    """
    Measure domain diversity of a pool of citation URLs.

    ``score = min(50, 3 * unique) - penalty + bonus`` clamped to [0, 100],
    where the penalty is 30 above 25% concentration (15 above 15%) and
    the bonus is 20 for at least 10 domains under 15% concentration.
    """
    if not urls:
        return DiversityMetrics()

    distribution = Counter(extract_domain(url) for url in urls)
    total = len(urls)
    unique = len(distribution)
    max_concentration = round(max(distribution.values()) / total * 100, 2)

    score = min(50.0, 3.0 * unique)
    if max_concentration > 25:
        score -= 30
    elif max_concentration > 15:
        score -= 15
    if unique >= 10 and max_concentration < 15:
        score += 20
    score = max(0.0, min(100.0, score))

    return DiversityMetrics(
        total_citations=total,
        unique_domains=unique,
        max_concentration=max_concentration,
        diversity_score=score,
        domain_distribution=dict(distribution.most_common()),
    )


def needs_rebalancing(metrics: DiversityMetrics) -> bool:
    """Rebalance when one domain dominates or too few domains appear."""
    if metrics.total_citations == 0:
        return False
    return (
        metrics.max_concentration > MAX_DOMAIN_SHARE
        or metrics.unique_domains < MIN_UNIQUE_DOMAINS
    )


# =============================================================================
# Rebalancer
# =============================================================================


class DiversityRebalancer:
    """
    Trim citations from over-represented domains.

    Never raises: any failure keeps the original inputs and is reported
    through telemetry as ``rebalancing_error``.
    """

    def __init__(
        self,
        telemetry: TelemetrySink | None = None,
        artifacts: ArtifactStore | None = None,
    ):
        self.telemetry = telemetry
        self.artifacts = artifacts

    def rebalance(self, inputs: NormalizedInputs) -> RebalanceResult:
        """
        Rebalance the citation pool of a run.

        Args:
            inputs: Normalized inputs.

        Returns:
            RebalanceResult with (possibly) filtered inputs and the report.
        """
        run_id = inputs.run.id
        try:
            result = self._rebalance(inputs)
        except Exception as e:
            error = RebalancingFailure(f"Rebalancing failed: {e}", details={"run_id": run_id})
            log_error_with_context(error, phase="rebalancing", level=logging.WARNING)
            self._metric(run_id, "rebalancing_error", str(e)[:200])
            return RebalanceResult(
                inputs=inputs,
                report=DiversityReport(note=f"rebalancing_error: {str(e)[:200]}"),
            )

        self._record(run_id, result.report)
        return result

    def _rebalance(self, inputs: NormalizedInputs) -> RebalanceResult:
        pool = inputs.all_citation_sources()
        before = calculate_diversity_metrics([c.url for c in pool])

        if not needs_rebalancing(before):
            logger.info(
                f"REBALANCING: not needed (score={before.diversity_score}, "
                f"domains={before.unique_domains})"
            )
            return RebalanceResult(
                inputs=inputs,
                report=DiversityReport(before=before, after=before),
            )

        keep = self._select(pool, before)
        if len(keep) == len(pool):
            logger.info("REBALANCING: triggered but no domain exceeds its share")
            return RebalanceResult(
                inputs=inputs,
                report=DiversityReport(before=before, after=before, note="no_offending_domains"),
            )
        after = calculate_diversity_metrics([c.url for c in pool if id(c) in keep])

        if (
            after.max_concentration > before.max_concentration
            or after.unique_domains < before.unique_domains
        ):
            logger.warning(
                "REBALANCING: rejected, result would reduce diversity "
                f"(concentration {before.max_concentration} -> {after.max_concentration}, "
                f"domains {before.unique_domains} -> {after.unique_domains})"
            )
            return RebalanceResult(
                inputs=inputs,
                report=DiversityReport(
                    before=before,
                    after=before,
                    note="rejected_non_monotonic",
                ),
            )

        filtered = self._apply(inputs, keep)
        report = DiversityReport(
            before=before,
            after=after,
            applied=True,
            strategy="domain_diversification",
            concentration_reduction=round(before.max_concentration - after.max_concentration, 2),
            unique_domains_increase=after.unique_domains - before.unique_domains,
            score_improvement=round(after.diversity_score - before.diversity_score, 2),
        )
        logger.info(
            f"REBALANCING: applied, {before.total_citations} -> {after.total_citations} "
            f"citations, max concentration {before.max_concentration}% -> "
            f"{after.max_concentration}%"
        )
        return RebalanceResult(inputs=filtered, report=report)

    @staticmethod
    def _select(pool: list[CitationSource], before: DiversityMetrics) -> set[int]:
        """Return ``id()`` of the pool entries to keep."""
        total = before.total_citations
        offenders = {
            domain
            for domain, count in before.domain_distribution.items()
            if count / total * 100 > MAX_DOMAIN_SHARE
        }
        allowance = max(1, math.floor(OFFENDER_RETAIN_SHARE * total))
        admitted: Counter[str] = Counter()
        keep: set[int] = set()
        for citation in pool:
            domain = extract_domain(citation.url)
            if domain not in offenders:
                keep.add(id(citation))
            elif admitted[domain] < allowance:
                admitted[domain] += 1
                keep.add(id(citation))
        return keep

    @staticmethod
    def _apply(inputs: NormalizedInputs, keep: set[int]) -> NormalizedInputs:
        modules = {
            code: replace(record, citations=[c for c in record.citations if id(c) in keep])
            for code, record in inputs.modules.items()
        }
        return replace(
            inputs,
            modules=modules,
            citations=[c for c in inputs.citations if id(c) in keep],
            stats={**inputs.stats, "citation_count_rebalanced": len(keep)},
        )

    # =========================================================================
    # Reporting
    # =========================================================================

    def _record(self, run_id: str, report: DiversityReport) -> None:
        if report.applied:
            self._metric(run_id, "rebalancing_applied", True)
            self._metric(run_id, "diversity_score_before", report.before.diversity_score)
            self._metric(run_id, "diversity_score_after", report.after.diversity_score)
            self._metric(run_id, "unique_domains_before", report.before.unique_domains)
            self._metric(run_id, "unique_domains_after", report.after.unique_domains)
        else:
            self._metric(run_id, "rebalancing_applied", False)
            self._metric(run_id, "diversity_score", report.before.diversity_score)
            self._metric(run_id, "unique_domains", report.before.unique_domains)
        if report.note:
            self._metric(run_id, "rebalancing_note", report.note)

        if self.artifacts is not None:
            try:
                self.artifacts.save_artifact(
                    run_id,
                    "rebalancing",
                    "diversity_metrics",
                    report.model_dump(mode="json"),
                    persistent=True,
                )
            except Exception as e:
                logger.warning(f"REBALANCING: failed to save diversity metrics: {e}")

    def _metric(self, run_id: str, key: str, value: Any) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.log_metric(run_id, key, value)
        except Exception as e:
            logger.debug(f"Telemetry metric {key} dropped: {e}")
