"""Routing functions for the synthesis pipeline graph.

The optional phases (coherence, pattern comparison) are entered only when
their feature flags are set in the state's ``options``.
"""

import logging
from typing import Literal

from synthesis.state.schema import SynthesisState

logger = logging.getLogger(__name__)


def _enabled(state: SynthesisState, flag: str) -> bool:
    return bool((state.get("options") or {}).get(flag, False))


def route_after_voice(
    state: SynthesisState,
) -> Literal["coherence", "pattern_comparison", "citation_enrichment"]:
    """
    Route after voice enforcement.

    Args:
        state: Current pipeline state

    Returns:
        The first enabled optional phase, or citation enrichment
    """
    if _enabled(state, "enable_coherence_engine"):
        return "coherence"
    return route_after_coherence(state)


def route_after_coherence(
    state: SynthesisState,
) -> Literal["pattern_comparison", "citation_enrichment"]:
    """Route to pattern comparison when enabled, else to citation enrichment."""
    if _enabled(state, "enable_pattern_comparator"):
        return "pattern_comparison"
    logger.debug("Skipping optional pattern comparison")
    return "citation_enrichment"
