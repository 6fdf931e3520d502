"""Input normalization for synthesis runs.

The normalizer is the ingestion boundary of the pipeline. It:
1. Loads the run, its organizations and its analysis modules
2. Canonicalizes module codes (``nb-01`` -> ``NB1``) and registers aliases
3. Decodes every payload into the typed tree, exactly once
4. Pools citation sources, deduplicated by URL
5. Computes coverage statistics and flags placeholder modules

Only an empty run is fatal (``InputMissing``); low coverage is a warning.
"""

import json
import logging
import re
from typing import Any

from synthesis.citations.formatter import normalize_citation_urls
from synthesis.errors.exceptions import InputMissing
from synthesis.memory.base import ModuleStore, OrganizationStore
from synthesis.state.enums import (
    CORE_MODULES,
    MIN_MODULE_COVERAGE,
    OPTIONAL_MODULES,
    TOTAL_MODULE_SLOTS,
    ModuleStatus,
)
from synthesis.state.models import (
    AnalysisModule,
    CitationSource,
    ModuleRecord,
    NormalizedInputs,
    Organization,
    Run,
)
from synthesis.state.tree import MapNode, Node, Scalar, from_python, parse_json

logger = logging.getLogger(__name__)

_DIGITS = re.compile(r"\d+")

ALL_MODULES: tuple[str, ...] = tuple(f"NB{n}" for n in range(1, TOTAL_MODULE_SLOTS + 1))


# =============================================================================
# Module codes
# =============================================================================


def canonical_code(code: str) -> str:
    """
    Canonicalize a module code.

    The first run of digits is parsed as an integer, so leading zeros and
    separators disappear: ``"nb-01"``, ``"NB_01"``, ``"Nb01"`` all give
    ``"NB1"``. A code without digits is upper-cased unchanged.
    """
    code = (code or "").strip()
    match = _DIGITS.search(code)
    if match is None:
        return code.upper()
    return f"NB{int(match.group(0))}"


def code_aliases(canonical: str) -> list[str]:
    """Alias spellings that resolve to a canonical code."""
    match = _DIGITS.search(canonical)
    if match is None:
        return [canonical]
    n = int(match.group(0))
    return [
        f"NB{n}", f"NB-{n}", f"NB_{n}",
        f"nb{n}", f"nb-{n}", f"nb_{n}",
        f"Nb{n:02d}",
    ]


# =============================================================================
# Payload decoding
# =============================================================================


def decode_payload(payload: Any, code: str) -> Node:
    """Decode a module payload into the typed tree; invalid JSON gives an empty map."""
    if payload is None:
        return MapNode()
    if isinstance(payload, (str, bytes)):
        tree = parse_json(payload)
        if tree is None:
            logger.debug(f"NORMALIZATION: {code} payload is not valid JSON; using empty payload")
            return MapNode()
        return tree
    return from_python(payload)


def decode_citations(raw: Any, origin: str | None = None) -> list[CitationSource]:
    """
    Decode a raw citation list.

    Accepts JSON text, or a list of URL strings and ``{url, title, ...}``
    objects. Entries without a URL are skipped; undecodable input gives
    an empty list.
    """
    if raw is None:
        return []
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except (json.JSONDecodeError, TypeError, ValueError):
            logger.debug(f"NORMALIZATION: citations of {origin} are not valid JSON")
            return []
    if isinstance(raw, (dict, CitationSource)):
        raw = [raw]
    if not isinstance(raw, list):
        return []

    sources: list[CitationSource] = []
    for item in raw:
        if isinstance(item, CitationSource):
            source = item
        elif isinstance(item, str):
            source = CitationSource(url=item.strip())
        elif isinstance(item, dict):
            url = item.get("url") or item.get("link") or item.get("href") or ""
            year = item.get("year")
            try:
                year = int(year) if year not in (None, "") else None
            except (TypeError, ValueError):
                year = None
            source = CitationSource(
                url=str(url).strip(),
                title=item.get("title"),
                publisher=item.get("publisher") or item.get("source"),
                year=year,
                published_at=item.get("published_at") or item.get("date"),
                snippet=item.get("snippet"),
            )
        else:
            continue
        if not source.url:
            continue
        if origin and not source.origin:
            source = source.model_copy(update={"origin": origin})
        sources.append(source)
    return sources


def _flag(tree: Node, key: str) -> Any:
    node = tree.get(key) if isinstance(tree, MapNode) else None
    return node.value if isinstance(node, Scalar) else None


def _organization_data(tree: Node) -> Node:
    """Unwrap a top-level ``data`` envelope, if present."""
    if isinstance(tree, MapNode):
        data = tree.get("data")
        if isinstance(data, MapNode):
            return data
    return tree


# =============================================================================
# Normalizer
# =============================================================================


def normalize(
    run: Run,
    modules: list[AnalysisModule],
    subject: Organization,
    comparison: Organization | None = None,
    run_citations: list[Any] | None = None,
) -> NormalizedInputs:
    """
    Normalize the raw inputs of a run.

    Args:
        run: The run.
        modules: Raw modules in storage order.
        subject: Subject organization.
        comparison: Optional comparison organization.
        run_citations: Citations attached to the run itself.

    Returns:
        NormalizedInputs with canonical module records and statistics.

    Raises:
        InputMissing: If the run has no usable modules.
    """
    records: dict[str, ModuleRecord] = {}
    aliases: dict[str, str] = {}
    warnings: list[str] = []

    for module in modules:
        code = canonical_code(module.code)
        if not code:
            logger.warning("NORMALIZATION: module without a code ignored")
            continue
        if module.status == ModuleStatus.MISSING:
            continue

        raw_tree = decode_payload(module.payload, code)
        placeholder = (
            module.status in (ModuleStatus.PLACEHOLDER, ModuleStatus.FAILED)
            or _flag(raw_tree, "placeholder") is True
            or _flag(raw_tree, "execution_status") == "failed"
        )
        reason = module.failure_reason or _flag(raw_tree, "failure_reason")

        record = ModuleRecord(
            code=code,
            status=module.status,
            tree=_organization_data(raw_tree),
            citations=decode_citations(module.citations, origin=code),
            tokens_used=module.tokens_used,
            duration_ms=module.duration_ms,
            is_placeholder=placeholder,
            placeholder_reason=str(reason) if placeholder and reason else None,
        )

        existing = records.get(code)
        if existing is not None:
            # Duplicate spellings of one code: a completed record beats a placeholder
            if existing.is_completed or not record.is_completed:
                logger.debug(f"NORMALIZATION: duplicate module {module.code} ignored")
                continue
        records[code] = record
        for alias in code_aliases(code):
            aliases[alias] = code
        aliases[module.code.strip()] = code

    if not records:
        raise InputMissing(
            f"No analysis modules found for run {run.id}",
            run_id=run.id,
        )

    # Pool citations, deduplicated by URL (first seen wins)
    seen: set[str] = set()
    pooled: list[CitationSource] = []
    for record in records.values():
        for source in record.citations:
            if source.url not in seen:
                seen.add(source.url)
                pooled.append(source)
    top_level = decode_citations(run_citations or [], origin="run")
    for source in top_level:
        if source.url not in seen:
            seen.add(source.url)
            pooled.append(source)

    present = set(records.keys())
    missing_core = [c for c in CORE_MODULES if c not in present]
    missing_optional = [c for c in OPTIONAL_MODULES if c not in present]
    missing = [c for c in ALL_MODULES if c not in present]
    completed = [r.code for r in records.values() if r.is_completed]
    placeholders = [r.code for r in records.values() if r.is_placeholder]

    coverage = len([c for c in present if c in ALL_MODULES])
    if coverage < MIN_MODULE_COVERAGE:
        message = (
            f"Only {coverage} of {TOTAL_MODULE_SLOTS} modules available "
            f"(threshold {MIN_MODULE_COVERAGE}); proceeding with reduced coverage"
        )
        logger.warning(f"NORMALIZATION: {message}")
        warnings.append(message)
    if missing_core:
        warnings.append(f"Missing core modules: {', '.join(missing_core)}")

    stats = {
        "module_count": len(records),
        "completed_count": len(completed),
        "completed_modules": completed,
        "citation_count": len(pooled),
        "unique_citation_urls": len(normalize_citation_urls(pooled)),
        "missing": missing,
        "missing_core": missing_core,
        "missing_optional": missing_optional,
        "placeholders": placeholders,
        "coverage_ratio": round(coverage / TOTAL_MODULE_SLOTS, 2),
        "tokens_used": sum(r.tokens_used for r in records.values()),
    }

    logger.info(
        f"NORMALIZATION: {len(records)} modules, {len(pooled)} citations, "
        f"{len(missing)} missing"
    )

    return NormalizedInputs(
        run=run,
        subject=subject,
        comparison=comparison,
        modules=records,
        aliases=aliases,
        citations=top_level,
        stats=stats,
        warnings=warnings,
    )


class InputNormalizer:
    """Load a run's raw inputs from the stores and normalize them."""

    def __init__(self, modules: ModuleStore, organizations: OrganizationStore):
        self.modules = modules
        self.organizations = organizations

    def normalize(self, run_id: str) -> NormalizedInputs:
        """
        Normalize the inputs of a stored run.

        Raises:
            InputMissing: If the run does not exist or has no modules.
        """
        run = self.modules.get_run(run_id)
        if run is None:
            raise InputMissing(f"Run {run_id} not found", run_id=run_id)

        subject = self.organizations.get_organization(run.subject_org_id)
        if subject is None:
            logger.warning(f"NORMALIZATION: subject organization {run.subject_org_id} not found")
            subject = Organization(id=run.subject_org_id)

        comparison = None
        if run.comparison_org_id:
            comparison = self.organizations.get_organization(run.comparison_org_id)
            if comparison is None:
                logger.warning(
                    f"NORMALIZATION: comparison organization {run.comparison_org_id} not found"
                )

        return normalize(
            run,
            self.modules.list_modules(run_id),
            subject,
            comparison,
            run_citations=self.modules.list_run_citations(run_id),
        )
