"""Bridge between the subject and an optional comparison organization."""

import logging
import re

from synthesis.state.models import Bridge, BridgeItem, Organization, Pattern, PatternSet

logger = logging.getLogger(__name__)

MAX_BRIDGE_ITEMS = 5

SINGLE_ORGANIZATION_RATIONALE = "Single-company analysis: no target bridge required"
BRIDGE_FAILED_PREFIX = "Bridge analysis failed"

_WORD = re.compile(r"[a-z][a-z\-]{3,}")


def _terms(text: str) -> set[str]:
    return set(_WORD.findall((text or "").lower()))


def _comparison_terms(org: Organization) -> set[str]:
    parts = [org.name, org.sector or ""]
    parts.extend(str(v) for v in org.metadata.values() if isinstance(v, str))
    terms: set[str] = set()
    for part in parts:
        terms |= _terms(part)
    return terms


def _relevance(pattern: Pattern, terms: set[str]) -> float:
    overlap = len(_terms(pattern.text) & terms)
    return round(min(1.0, 0.5 + 0.1 * overlap), 2)


def build_bridge(
    subject: Organization,
    comparison: Organization | None,
    patterns: PatternSet,
) -> Bridge:
    """
    Relate the subject's pressures and levers to the comparison organization.

    A comparison run whose subject has no name yields an empty bridge with a
    failure rationale instead of failing the build.

    Args:
        subject: Subject organization.
        comparison: Comparison organization, if the run has one.
        patterns: Extracted patterns of the run.

    Returns:
        Bridge with at most five items, most relevant first.
    """
    if comparison is None:
        return Bridge(items=[], rationale=SINGLE_ORGANIZATION_RATIONALE)

    if not (subject.name or "").strip():
        reason = f"Subject organization {subject.id} has no name"
        logger.warning(f"TARGET_BRIDGE: {reason}")
        return Bridge(items=[], rationale=f"{BRIDGE_FAILED_PREFIX}: {reason[:100]}")

    terms = _comparison_terms(comparison)
    target = comparison.name or comparison.id
    candidates: list[BridgeItem] = []
    for pattern in patterns.pressures + patterns.levers:
        if pattern.kind in ("market", "competitive", "operational", "strategic", "change"):
            why = f"{subject.name} faces this pressure; {target} can address it directly."
        else:
            why = f"{subject.name} is investing here; {target} can extend the capability."
        candidates.append(BridgeItem(
            theme=pattern.text[:200],
            why_it_matters=why,
            relevance_score=_relevance(pattern, terms),
        ))

    ranked = sorted(candidates, key=lambda item: item.relevance_score, reverse=True)
    items = ranked[:MAX_BRIDGE_ITEMS]
    logger.info(f"TARGET_BRIDGE: {len(items)} bridge items for {target}")
    return Bridge(
        items=items,
        rationale=f"Themes from {subject.name} that matter to {target}",
    )
