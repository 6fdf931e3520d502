"""Synthesis pipeline graph assembly.

This module provides the factory that wires the synthesis phases into a
LangGraph ``StateGraph``:

NORMALIZATION -> REBALANCING -> VALIDATION -> PATTERNS -> TARGET_BRIDGE
    -> DRAFTING -> VOICE_ENFORCEMENT -> [COHERENCE] -> [PATTERN_COMPARISON]
    -> CITATION_ENRICHMENT -> INLINE_CITATIONS -> EXECUTIVE_REFINEMENT
    -> SELF_CHECK -> RENDER -> BUNDLE

Nodes are closures over a per-build ``PipelineRuntime`` holding the
citation ledger, the collaborators and the diagnostics context. Hard-fail
phases raise ``SynthesisPhaseError``; every other phase degrades to a QA
warning and leaves its input unchanged.
"""

import logging
from dataclasses import dataclass, field
from typing import Any

from langgraph.checkpoint.base import BaseCheckpointSaver
from langgraph.graph import END, START, StateGraph

from synthesis.citations.enrichment import enrich_citations
from synthesis.citations.ledger import CitationLedger
from synthesis.citations.rebalancer import DiversityRebalancer
from synthesis.citations.resolver import CitationResolver
from synthesis.config.settings import Settings
from synthesis.errors.exceptions import SynthesisPhaseError
from synthesis.errors.handlers import build_phase_error, handle_phase_error
from synthesis.errors.recovery import is_blocking
from synthesis.graphs.phases import timed_phase
from synthesis.graphs.routers import route_after_coherence, route_after_voice
from synthesis.inputs.normalizer import ALL_MODULES, InputNormalizer
from synthesis.memory.base import ArtifactStore, TelemetrySink
from synthesis.output.render import (
    appendix_notes,
    compile_json,
    render_html,
    render_markdown,
    source_entries,
)
from synthesis.patterns.bridge import build_bridge
from synthesis.patterns.extractor import extract_patterns
from synthesis.review.coherence import calculate_coherence, compare_patterns
from synthesis.review.qa import calculate_qa_scores
from synthesis.review.selfcheck import run_selfcheck
from synthesis.state.enums import Phase, SectionName, SectionStatus, SynthesisStatus
from synthesis.state.models import (
    DiagnosticsContext,
    QAReport,
    QAWarning,
    Section,
    SectionItem,
    SynthesisBundle,
)
from synthesis.state.schema import SynthesisState
from synthesis.style.enforcer import VoiceEnforcer
from synthesis.style.refinement import refine_executive_text
from synthesis.writers.base import DraftContext, SectionProvider
from synthesis.writers.drafter import (
    attach_inline_citations,
    draft_sections,
    refresh_section_citations,
)

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# All nodes in pipeline order
PIPELINE_NODES = [phase.value for phase in Phase]

OPTIONAL_NODES = [Phase.COHERENCE.value, Phase.PATTERN_COMPARISON.value]

# Enforced text shorter than this share of the original is discarded
MIN_VOICE_LENGTH_RATIO = 0.8

# Word ceiling of each growth lever body after refinement
GROWTH_LEVER_WORD_LIMIT = 120


# =============================================================================
# Configuration and Runtime
# =============================================================================


@dataclass
class PipelineConfig:
    """Configuration for pipeline compilation.

    Attributes:
        checkpointer: Checkpoint saver for persistence (optional)
        debug: Enable debug logging
    """
    checkpointer: BaseCheckpointSaver | None = None
    debug: bool = False


@dataclass
class PipelineRuntime:
    """Everything the nodes of one build share."""

    run_id: str
    settings: Settings
    normalizer: InputNormalizer
    context: DiagnosticsContext
    ledger: CitationLedger = field(default_factory=CitationLedger)
    artifacts: ArtifactStore | None = None
    telemetry: TelemetrySink | None = None
    resolver: CitationResolver | None = None
    providers: dict[SectionName, SectionProvider] | None = None
    voice: VoiceEnforcer = field(default_factory=VoiceEnforcer)
    module_citations: dict[str, list[int]] = field(default_factory=dict)

    def phase_error(self, error: Exception, phase: Phase, operation: str) -> SynthesisPhaseError:
        return build_phase_error(error, self.run_id, phase.value, operation, self.context.module_keys)

    def save_artifact(self, phase: Phase, name: str, payload: Any, persistent: bool = False) -> None:
        """Save an artifact in trace mode, or always when persistent. Never raises."""
        if self.artifacts is None:
            return
        if not persistent and not self.settings.enable_trace_mode:
            return
        try:
            self.artifacts.save_artifact(self.run_id, phase.value, name, payload, persistent=persistent)
        except Exception as e:
            logger.warning(f"{phase.value.upper()}: failed to save artifact {name}: {e}")

    def metric(self, key: str, value: Any, extra: dict[str, Any] | None = None) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.log_metric(self.run_id, key, value, extra)
        except Exception as e:
            logger.debug(f"Telemetry metric {key} dropped: {e}")

    def trace(self, record: dict[str, Any]) -> None:
        if self.telemetry is None or not self.settings.enable_trace_mode:
            return
        try:
            self.telemetry.log_trace(self.run_id, record)
        except Exception as e:
            logger.debug(f"Telemetry trace dropped: {e}")


def initial_state(runtime: PipelineRuntime) -> SynthesisState:
    """Starting state of a build."""
    settings = runtime.settings
    return {
        "run_id": runtime.run_id,
        "options": {
            "enable_coherence_engine": settings.enable_coherence_engine,
            "enable_pattern_comparator": settings.enable_pattern_comparator,
        },
        "status": SynthesisStatus.RUNNING,
        "phases": [],
        "warnings": [],
        "failure": None,
    }


# =============================================================================
# Section helpers
# =============================================================================


def _enforce_voice(
    voice: VoiceEnforcer,
    text: str,
    section: str,
) -> tuple[str, dict[str, Any] | None]:
    """Return the text to keep and the voice result, if enforcement ran."""
    if not text or not text.strip():
        return text, None
    result = voice.enforce(text, section)
    enforced = result.text.strip()
    if enforced and len(enforced) >= MIN_VOICE_LENGTH_RATIO * len(text.strip()):
        return enforced, result.to_dict()
    logger.debug(f"VOICE: kept original text of {section}, enforced text too short")
    return text, {**result.to_dict(), "kept_original": True}


def _refine_section(section: Section, word_limit: int) -> Section:
    if section.name == SectionName.EXECUTIVE_INSIGHT:
        text = refine_executive_text(section.text, word_limit)
        if text == section.text:
            return section
        return section.model_copy(update={"text": text, "status": SectionStatus.REFINED})
    if section.name == SectionName.GROWTH_LEVERS:
        items = [
            SectionItem(title=item.title, body=refine_executive_text(item.body, GROWTH_LEVER_WORD_LIMIT))
            for item in section.items
        ]
        if items == section.items:
            return section
        return section.model_copy(update={"items": items, "status": SectionStatus.REFINED})
    return section


# =============================================================================
# Pipeline Factory
# =============================================================================


def create_synthesis_pipeline(
    runtime: PipelineRuntime,
    config: PipelineConfig | None = None,
):
    """
    Create the synthesis pipeline graph for one build.

    Args:
        runtime: Per-build runtime shared by the nodes
        config: Pipeline configuration (optional)

    Returns:
        Compiled StateGraph ready for ``invoke(initial_state(runtime))``

    Example:
        runtime = PipelineRuntime(run_id, settings, normalizer, DiagnosticsContext(run_id))
        pipeline = create_synthesis_pipeline(runtime)
        final_state = pipeline.invoke(initial_state(runtime))
    """
    if config is None:
        config = PipelineConfig()

    if config.debug:
        logger.setLevel(logging.DEBUG)
        logger.debug("Creating synthesis pipeline with debug enabled")

    settings = runtime.settings
    run_id = runtime.run_id
    ledger = runtime.ledger

    def timed(phase: Phase):
        return timed_phase(
            phase,
            run_id,
            runtime.context,
            runtime.telemetry,
            settings.enable_detailed_trace_logging,
        )

    # ==========================================================================
    # Input phases
    # ==========================================================================

    @timed(Phase.NORMALIZATION)
    def normalization(state: SynthesisState):
        logger.info(f"NORMALIZATION: loading run {run_id}")
        try:
            inputs = runtime.normalizer.normalize(run_id)
        except Exception as e:
            raise runtime.phase_error(e, Phase.NORMALIZATION, "normalize") from e

        runtime.context.module_keys = inputs.module_keys
        runtime.save_artifact(
            Phase.NORMALIZATION,
            "normalized_inputs",
            {
                "module_keys": inputs.module_keys,
                "aliases": inputs.aliases,
                "stats": inputs.stats,
                "warnings": inputs.warnings,
            },
            persistent=True,
        )
        warnings = [QAWarning(section=Phase.NORMALIZATION.value, warning=w) for w in inputs.warnings]
        return (
            {"inputs": inputs, "warnings": warnings},
            {"module_count": len(inputs.modules), "citation_count": inputs.stats.get("citation_count", 0)},
        )

    @timed(Phase.REBALANCING)
    def rebalancing(state: SynthesisState):
        rebalancer = DiversityRebalancer(telemetry=runtime.telemetry, artifacts=runtime.artifacts)
        result = rebalancer.rebalance(state["inputs"])
        if result.applied:
            runtime.metric("diversity_score", result.report.after.diversity_score)
        return (
            {"inputs": result.inputs, "diversity": result.report},
            {
                "citation_count": result.report.after.total_citations,
                "applied": result.applied,
                "strategy": result.report.strategy,
            },
        )

    @timed(Phase.VALIDATION)
    def validation(state: SynthesisState):
        inputs = state["inputs"]
        canonical_keys = [
            code for code, record in inputs.modules.items()
            if code in ALL_MODULES and record.is_completed and not record.tree.is_empty()
        ]
        rejected = [code for code in inputs.modules if code not in canonical_keys]
        if rejected:
            logger.info(f"VALIDATION: {len(rejected)} modules without usable data: {', '.join(rejected)}")
        if not canonical_keys:
            logger.warning(f"VALIDATION: no module of run {run_id} passed validation")
        return {}, {"canonical_keys": canonical_keys, "rejected": rejected}

    # ==========================================================================
    # Analysis phases (hard-fail)
    # ==========================================================================

    @timed(Phase.PATTERNS)
    def patterns(state: SynthesisState):
        try:
            pattern_set = extract_patterns(state["inputs"])
        except Exception as e:
            raise runtime.phase_error(e, Phase.PATTERNS, "extract_patterns") from e
        runtime.save_artifact(Phase.PATTERNS, "patterns", pattern_set.model_dump(mode="json"))
        return {"patterns": pattern_set}, {"counts": pattern_set.counts()}

    @timed(Phase.TARGET_BRIDGE)
    def target_bridge(state: SynthesisState):
        inputs = state["inputs"]
        try:
            bridge = build_bridge(inputs.subject, inputs.comparison, state["patterns"])
        except Exception as e:
            raise runtime.phase_error(e, Phase.TARGET_BRIDGE, "build_bridge") from e
        runtime.save_artifact(Phase.TARGET_BRIDGE, "target_bridge", bridge.model_dump(mode="json"))
        return {"bridge": bridge}, {"item_count": len(bridge.items)}

    # ==========================================================================
    # Drafting phases
    # ==========================================================================

    @timed(Phase.DRAFTING)
    def drafting(state: SynthesisState):
        safe_mode = settings.pipeline_safe_mode
        # Citations are registered once; the fallback redraft reuses them
        context = None
        try:
            context = DraftContext.build(state["inputs"], state["patterns"], state["bridge"], ledger)
            result = draft_sections(
                state["patterns"],
                state["bridge"],
                state["inputs"],
                ledger=ledger,
                providers=runtime.providers,
                safe_mode=safe_mode,
                context=context,
            )
        except Exception as e:
            if is_blocking(e, Phase.DRAFTING.value, safe_mode=safe_mode):
                raise runtime.phase_error(e, Phase.DRAFTING, "section_ok_tolerant") from e
            warning = handle_phase_error(e, Phase.DRAFTING.value)
            result = draft_sections(
                state["patterns"], state["bridge"], state["inputs"],
                ledger=ledger, providers={}, safe_mode=True, context=context,
            )
            result.warnings.insert(0, warning)

        runtime.module_citations = result.context.module_citations
        runtime.trace({
            "kind": "drafting",
            "fallback_sections": result.fallback_sections,
            "citations_by_section": ledger.get_citations_by_section(),
        })
        runtime.save_artifact(
            Phase.DRAFTING,
            "draft_sections",
            [s.model_dump(mode="json") for s in result.sections],
        )
        return (
            {"sections": result.sections, "warnings": result.warnings},
            {
                "section_count": len(result.sections),
                "fallback_sections": result.fallback_sections,
            },
        )

    @timed(Phase.VOICE_ENFORCEMENT)
    def voice_enforcement(state: SynthesisState):
        sections = state["sections"]
        try:
            updated: list[Section] = []
            report: dict[str, Any] = {}
            for section in sections:
                name = section.name.value
                text, text_result = _enforce_voice(runtime.voice, section.text, name)
                items = []
                item_results = []
                for item in section.items:
                    body, body_result = _enforce_voice(runtime.voice, item.body, name)
                    items.append(SectionItem(title=item.title, body=body))
                    if body_result is not None:
                        item_results.append(body_result)
                changed = section.model_copy(update={"text": text, "items": items})
                updated.append(refresh_section_citations(changed, ledger))
                scores = [r["score"] for r in [text_result, *item_results] if r is not None]
                report[name] = {
                    "score": round(sum(scores) / len(scores), 1) if scores else 100.0,
                    "text": text_result,
                    "items": item_results,
                }
        except Exception as e:
            warning = handle_phase_error(e, Phase.VOICE_ENFORCEMENT.value)
            return {"warnings": [warning]}, {"degraded": True}

        overall = [entry["score"] for entry in report.values()]
        voice_report = {
            "overall_score": round(sum(overall) / len(overall), 1) if overall else 100.0,
            "sections": report,
        }
        return {"sections": updated, "voice_report": voice_report}, {"overall_score": voice_report["overall_score"]}

    @timed(Phase.COHERENCE)
    def coherence(state: SynthesisState):
        try:
            report = calculate_coherence(state["sections"])
        except Exception as e:
            return {"warnings": [handle_phase_error(e, Phase.COHERENCE.value)]}, {"degraded": True}
        return {"coherence_report": report}, {"score": report["score"]}

    @timed(Phase.PATTERN_COMPARISON)
    def pattern_comparison(state: SynthesisState):
        try:
            report = compare_patterns(state["sections"], state["patterns"])
        except Exception as e:
            return {"warnings": [handle_phase_error(e, Phase.PATTERN_COMPARISON.value)]}, {"degraded": True}
        return {"pattern_alignment_report": report}, {"score": report["score"]}

    # ==========================================================================
    # Citation phases
    # ==========================================================================

    @timed(Phase.CITATION_ENRICHMENT)
    def citation_enrichment(state: SynthesisState):
        if runtime.resolver is None:
            logger.debug("CITATION_ENRICHMENT: no resolver configured, skipping")
            return {"enrichment_report": {"skipped": True}}, {"skipped": True}
        try:
            report = enrich_citations(
                ledger,
                runtime.resolver,
                batch_size=settings.resolver_batch_size,
                max_batches=settings.resolver_max_batches,
            )
        except Exception as e:
            return {"warnings": [handle_phase_error(e, Phase.CITATION_ENRICHMENT.value)]}, {"degraded": True}
        summary = report.to_dict()
        return {"enrichment_report": summary, "warnings": report.warnings}, {
            "resolved": report.resolved,
            "batches_run": report.batches_run,
        }

    @timed(Phase.INLINE_CITATIONS)
    def inline_citations(state: SynthesisState):
        try:
            sections, attached = attach_inline_citations(
                state["sections"], ledger, runtime.module_citations
            )
        except Exception as e:
            return {"warnings": [handle_phase_error(e, Phase.INLINE_CITATIONS.value)]}, {"degraded": True}
        return {"sections": sections, "inline_citation_count": attached}, {"attached": attached}

    @timed(Phase.EXECUTIVE_REFINEMENT)
    def executive_refinement(state: SynthesisState):
        try:
            sections = []
            refined = []
            for section in state["sections"]:
                updated = _refine_section(section, settings.executive_word_limit)
                if updated is not section:
                    updated = refresh_section_citations(updated, ledger)
                    refined.append(section.name.value)
                sections.append(updated)
        except Exception as e:
            return {"warnings": [handle_phase_error(e, Phase.EXECUTIVE_REFINEMENT.value)]}, {"degraded": True}
        return {"sections": sections}, {"refined": refined}

    # ==========================================================================
    # Review and output phases
    # ==========================================================================

    @timed(Phase.SELF_CHECK)
    def self_check(state: SynthesisState):
        sections = state["sections"]
        updates: dict[str, Any] = {}
        try:
            report = run_selfcheck(sections).to_dict()
            updates["selfcheck_report"] = report
        except Exception as e:
            return {"warnings": [handle_phase_error(e, Phase.SELF_CHECK.value)]}, {"degraded": True}

        inputs = state["inputs"]
        try:
            updates["qa_scores"] = calculate_qa_scores(
                sections,
                citations={c.id: c for c in ledger.get_output().sources},
                subject_name=inputs.subject.name or inputs.subject.id,
                comparison_name=(inputs.comparison.name if inputs.comparison else "") or "",
                themes=[p.text for p in state["patterns"].pressures[:3]],
                coherence_score=(state.get("coherence_report") or {}).get("score", 1.0),
                pattern_alignment_score=(state.get("pattern_alignment_report") or {}).get("score", 1.0),
            )
        except Exception as e:
            updates["warnings"] = [handle_phase_error(e, Phase.SELF_CHECK.value, section="qa")]
        return updates, {"passed": report["passed"], "failure_count": report["failure_count"]}

    @timed(Phase.RENDER)
    def render(state: SynthesisState):
        inputs = state["inputs"]
        sections = [
            s.model_copy(update={"status": SectionStatus.RENDERED}) for s in state["sections"]
        ]
        selfcheck = state.get("selfcheck_report")
        operation = "render_html"
        try:
            html = render_html(sections, ledger, inputs, selfcheck)
            operation = "render_markdown"
            markdown = render_markdown(sections, ledger, inputs, selfcheck)
            operation = "compile_json"
            payload = compile_json(
                sections, ledger, inputs, state.get("patterns"), state.get("bridge"), selfcheck
            )
        except Exception as e:
            raise runtime.phase_error(e, Phase.RENDER, operation) from e
        return (
            {"sections": sections, "html": html, "markdown": markdown, "json_payload": payload},
            {"html_chars": len(html), "markdown_chars": len(markdown)},
        )

    @timed(Phase.BUNDLE)
    def bundle(state: SynthesisState):
        inputs = state["inputs"]
        try:
            output = ledger.get_output()
            warnings = list(state.get("warnings") or [])
            selfcheck = state.get("selfcheck_report") or {}
            qa_report = QAReport(
                passed=bool(selfcheck.get("passed", False)),
                warnings=warnings,
                scores=state.get("qa_scores") or {},
                stats={
                    "section_count": len(state["sections"]),
                    "fallback_sections": [s.name.value for s in state["sections"] if s.is_fallback],
                    "citations_used": len(output.sources),
                    "citations_total": len(ledger),
                    "inline_citations_attached": state.get("inline_citation_count", 0),
                    "enrichment": state.get("enrichment_report") or {},
                    "enhanced_citations": ledger.enhanced_metrics() if ledger.enhanced else None,
                },
            )
            result = SynthesisBundle(
                run_id=run_id,
                html=state.get("html", ""),
                markdown=state.get("markdown", ""),
                json_payload=state.get("json_payload") or {},
                sections=state["sections"],
                citations=output.sources,
                sources=source_entries(ledger),
                qa_report=qa_report,
                voice_report=state.get("voice_report") or {},
                selfcheck_report=selfcheck,
                coherence_report=state.get("coherence_report"),
                pattern_alignment_report=state.get("pattern_alignment_report"),
                diversity=state.get("diversity"),
                appendix_notes=appendix_notes(inputs),
                missing_modules=list(inputs.stats.get("missing", [])),
            )
        except Exception as e:
            raise runtime.phase_error(e, Phase.BUNDLE, "assemble_bundle") from e

        runtime.save_artifact(
            Phase.BUNDLE, "final_bundle", result.model_dump(mode="json"), persistent=True
        )
        return (
            {"bundle": result, "status": SynthesisStatus.COMPLETED},
            {"html": bool(result.html), "json": bool(result.json_payload)},
        )

    # ==========================================================================
    # Assemble graph
    # ==========================================================================

    graph = StateGraph(SynthesisState)

    graph.add_node(Phase.NORMALIZATION.value, normalization)
    graph.add_node(Phase.REBALANCING.value, rebalancing)
    graph.add_node(Phase.VALIDATION.value, validation)
    graph.add_node(Phase.PATTERNS.value, patterns)
    graph.add_node(Phase.TARGET_BRIDGE.value, target_bridge)
    graph.add_node(Phase.DRAFTING.value, drafting)
    graph.add_node(Phase.VOICE_ENFORCEMENT.value, voice_enforcement)
    graph.add_node(Phase.COHERENCE.value, coherence)
    graph.add_node(Phase.PATTERN_COMPARISON.value, pattern_comparison)
    graph.add_node(Phase.CITATION_ENRICHMENT.value, citation_enrichment)
    graph.add_node(Phase.INLINE_CITATIONS.value, inline_citations)
    graph.add_node(Phase.EXECUTIVE_REFINEMENT.value, executive_refinement)
    graph.add_node(Phase.SELF_CHECK.value, self_check)
    graph.add_node(Phase.RENDER.value, render)
    graph.add_node(Phase.BUNDLE.value, bundle)

    graph.add_edge(START, Phase.NORMALIZATION.value)
    graph.add_edge(Phase.NORMALIZATION.value, Phase.REBALANCING.value)
    graph.add_edge(Phase.REBALANCING.value, Phase.VALIDATION.value)
    graph.add_edge(Phase.VALIDATION.value, Phase.PATTERNS.value)
    graph.add_edge(Phase.PATTERNS.value, Phase.TARGET_BRIDGE.value)
    graph.add_edge(Phase.TARGET_BRIDGE.value, Phase.DRAFTING.value)
    graph.add_edge(Phase.DRAFTING.value, Phase.VOICE_ENFORCEMENT.value)

    # Voice -> Coherence or Pattern Comparison or Citation Enrichment
    graph.add_conditional_edges(
        Phase.VOICE_ENFORCEMENT.value,
        route_after_voice,
        [Phase.COHERENCE.value, Phase.PATTERN_COMPARISON.value, Phase.CITATION_ENRICHMENT.value],
    )

    # Coherence -> Pattern Comparison or Citation Enrichment
    graph.add_conditional_edges(
        Phase.COHERENCE.value,
        route_after_coherence,
        [Phase.PATTERN_COMPARISON.value, Phase.CITATION_ENRICHMENT.value],
    )

    graph.add_edge(Phase.PATTERN_COMPARISON.value, Phase.CITATION_ENRICHMENT.value)
    graph.add_edge(Phase.CITATION_ENRICHMENT.value, Phase.INLINE_CITATIONS.value)
    graph.add_edge(Phase.INLINE_CITATIONS.value, Phase.EXECUTIVE_REFINEMENT.value)
    graph.add_edge(Phase.EXECUTIVE_REFINEMENT.value, Phase.SELF_CHECK.value)
    graph.add_edge(Phase.SELF_CHECK.value, Phase.RENDER.value)
    graph.add_edge(Phase.RENDER.value, Phase.BUNDLE.value)
    graph.add_edge(Phase.BUNDLE.value, END)

    compile_kwargs = {}
    if config.checkpointer is not None:
        compile_kwargs["checkpointer"] = config.checkpointer

    logger.debug(f"Compiling synthesis pipeline for run {run_id}")
    return graph.compile(**compile_kwargs)
