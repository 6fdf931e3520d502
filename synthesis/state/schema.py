"""SynthesisState schema for the pipeline graph.

This module defines the state object that flows through all nodes of the
LangGraph synthesis pipeline. It uses TypedDict with ``total=False`` so each
node returns only the keys it updates; warnings and phase records
accumulate through ``operator.add`` reducers.
"""

import operator
from typing import Annotated, Any

from typing_extensions import TypedDict

from synthesis.state.enums import SynthesisStatus
from synthesis.state.models import (
    Bridge,
    DiversityReport,
    NormalizedInputs,
    PatternSet,
    PhaseRecord,
    QAWarning,
    Section,
    SynthesisBundle,
)


class SynthesisState(TypedDict, total=False):
    """
    Central state schema for one synthesis build.

    The state is structured in logical groups:
    1. Run identity
    2. Inputs (normalized modules, rebalancing report)
    3. Analysis (patterns, bridge)
    4. Draft (sections, per-phase reports)
    5. Output (rendered documents, bundle)
    6. Pipeline metadata (status, phases, warnings, failure)

    Usage with LangGraph:
        ```python
        from langgraph.graph import StateGraph
        from synthesis.state import SynthesisState

        graph = StateGraph(SynthesisState)
        graph.add_node("normalization", normalization_node)
        ```
    """

    # =========================================================================
    # Run identity
    # =========================================================================

    run_id: str
    options: dict[str, Any]  # Feature flags read by the routers

    # =========================================================================
    # Inputs
    # =========================================================================

    inputs: NormalizedInputs
    diversity: DiversityReport

    # =========================================================================
    # Analysis
    # =========================================================================

    patterns: PatternSet
    bridge: Bridge

    # =========================================================================
    # Draft
    # =========================================================================

    sections: list[Section]
    voice_report: dict[str, Any]
    coherence_report: dict[str, Any]
    pattern_alignment_report: dict[str, Any]
    enrichment_report: dict[str, Any]
    inline_citation_count: int
    selfcheck_report: dict[str, Any]

    # =========================================================================
    # Output
    # =========================================================================

    html: str
    markdown: str
    json_payload: dict[str, Any]
    bundle: SynthesisBundle

    # =========================================================================
    # Pipeline metadata
    # =========================================================================

    status: SynthesisStatus
    phases: Annotated[list[PhaseRecord], operator.add]
    warnings: Annotated[list[QAWarning], operator.add]
    failure: dict[str, Any] | None
    qa_scores: dict[str, Any]
