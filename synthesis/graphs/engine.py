"""Synthesis engine: the public entry point of a build.

``SynthesisEngine.build_report`` serves a cached bundle when one exists,
otherwise runs the pipeline graph, caches the result and runs diagnostics.
"""

import logging
from dataclasses import dataclass

from synthesis.cache import BundleCache, get_cache
from synthesis.citations.ledger import CitationLedger
from synthesis.citations.resolver import CitationResolver
from synthesis.config.settings import Settings
from synthesis.config.settings import settings as default_settings
from synthesis.diagnostics.service import DiagnosticsService
from synthesis.errors.exceptions import DiagnosticsFailure, SynthesisPhaseError
from synthesis.errors.handlers import build_phase_error, log_error_with_context
from synthesis.graphs.pipeline import (
    PipelineConfig,
    PipelineRuntime,
    create_synthesis_pipeline,
    initial_state,
)
from synthesis.inputs.normalizer import InputNormalizer
from synthesis.memory.base import ArtifactStore, ModuleStore, OrganizationStore, TelemetrySink
from synthesis.memory.store import InMemoryArtifactStore, InMemoryTelemetry
from synthesis.state.enums import Phase, SectionName
from synthesis.state.models import DiagnosticsContext, DiagnosticsReport, SynthesisBundle
from synthesis.writers.base import SectionProvider

logger = logging.getLogger(__name__)


@dataclass
class SynthesisResult:
    """A built (or cached) bundle with the diagnostics of this invocation."""

    bundle: SynthesisBundle
    diagnostics: DiagnosticsContext
    health: DiagnosticsReport | None = None

    @property
    def cache_hit(self) -> bool:
        return self.diagnostics.cache_hit


class SynthesisEngine:
    """
    Build synthesis reports for runs.

    Example:
        run_store = InMemoryRunStore.from_fixture(fixture)
        engine = SynthesisEngine(run_store)
        result = engine.build_report("run-1")
        print(result.bundle.markdown)
    """

    def __init__(
        self,
        run_store: ModuleStore,
        org_store: OrganizationStore | None = None,
        artifacts: ArtifactStore | None = None,
        telemetry: TelemetrySink | None = None,
        cache: BundleCache | None = None,
        resolver: CitationResolver | None = None,
        settings: Settings | None = None,
        providers: dict[SectionName, SectionProvider] | None = None,
        pipeline_config: PipelineConfig | None = None,
    ):
        """
        Args:
            run_store: Source of runs and modules.
            org_store: Source of organizations; defaults to ``run_store``
                when it also serves organizations.
            artifacts: Artifact sink; in-memory when omitted.
            telemetry: Telemetry sink; in-memory when omitted.
            cache: Bundle cache; the shared process cache when omitted.
            resolver: Citation metadata resolver; enrichment is skipped when omitted.
            settings: Settings; the global settings when omitted.
            providers: Section providers; the defaults when omitted.
            pipeline_config: Graph compilation options.
        """
        if org_store is None:
            if not isinstance(run_store, OrganizationStore):
                raise ValueError("org_store is required when run_store does not serve organizations")
            org_store = run_store

        self.settings = settings or default_settings
        self.run_store = run_store
        self.org_store = org_store
        self.artifacts = artifacts if artifacts is not None else InMemoryArtifactStore()
        self.telemetry = telemetry if telemetry is not None else InMemoryTelemetry()
        if self.settings.cache_enabled:
            self.cache = cache if cache is not None else get_cache()
        else:
            self.cache = None
        self.resolver = resolver
        self.providers = providers
        self.pipeline_config = pipeline_config
        self.diagnostics = DiagnosticsService(self.artifacts, self.telemetry)
        self.pipeline_runs = 0

    # =========================================================================
    # Public operations
    # =========================================================================

    def build_report(self, run_id: str, force_regenerate: bool = False) -> SynthesisResult:
        """
        Build the report of a run.

        Args:
            run_id: Run to synthesize.
            force_regenerate: Ignore a cached bundle.

        Returns:
            SynthesisResult with the bundle and the diagnostics context.

        Raises:
            SynthesisPhaseError: If a hard-fail phase fails.
        """
        if not force_regenerate:
            cached = self.get_cached_synthesis(run_id)
            if cached is not None:
                logger.info(f"SYNTHESIS: serving cached bundle for run {run_id}")
                context = DiagnosticsContext(run_id=run_id, phases=list(cached.phases), cache_hit=True)
                context.checkpoint("cache", f"built at {cached.built_at.isoformat()}")
                return SynthesisResult(bundle=cached, diagnostics=context)

        context = DiagnosticsContext(run_id=run_id)
        result: SynthesisResult | None = None
        try:
            bundle = self._run_pipeline(run_id, context)
            self._cache_bundle(run_id, bundle)
            result = SynthesisResult(bundle=bundle, diagnostics=context)
        except SynthesisPhaseError as e:
            context.error = e.to_dict()
            raise
        finally:
            health = self._auto_run_diagnostics(run_id)
            if result is not None:
                result.health = health
        return result

    def get_cached_synthesis(self, run_id: str) -> SynthesisBundle | None:
        """Return the cached bundle of a run, or None."""
        if self.cache is None:
            return None
        try:
            return self.cache.get(run_id)
        except Exception as e:
            logger.warning(f"SYNTHESIS: cache read failed for run {run_id}: {e}")
            return None

    def run_diagnostics(self, run_id: str) -> DiagnosticsReport:
        """Run diagnostics on a run."""
        return self.diagnostics.run_diagnostics(run_id)

    # =========================================================================
    # Internals
    # =========================================================================

    def _run_pipeline(self, run_id: str, context: DiagnosticsContext) -> SynthesisBundle:
        ledger = CitationLedger()
        if self.settings.enable_enhanced_citations:
            ledger.enable_enhancements()

        runtime = PipelineRuntime(
            run_id=run_id,
            settings=self.settings,
            normalizer=InputNormalizer(self.run_store, self.org_store),
            context=context,
            ledger=ledger,
            artifacts=self.artifacts,
            telemetry=self.telemetry,
            resolver=self.resolver,
            providers=self.providers,
        )
        pipeline = create_synthesis_pipeline(runtime, self.pipeline_config)

        logger.info(f"SYNTHESIS: building run {run_id}")
        self.pipeline_runs += 1
        try:
            final_state = pipeline.invoke(
                initial_state(runtime),
                config={"configurable": {"thread_id": run_id}},
            )
        except SynthesisPhaseError:
            raise
        except Exception as e:
            raise build_phase_error(
                e, run_id, context.last_checkpoint or "pipeline", "invoke", context.module_keys
            ) from e

        bundle = final_state.get("bundle")
        if bundle is None:
            raise build_phase_error(
                RuntimeError("pipeline finished without a bundle"),
                run_id, Phase.BUNDLE.value, "invoke", context.module_keys,
            )

        bundle = bundle.model_copy(update={"phases": list(context.phases)})
        try:
            self.artifacts.save_artifact(
                run_id, Phase.BUNDLE.value, "final_bundle",
                bundle.model_dump(mode="json"), persistent=True,
            )
        except Exception as e:
            logger.warning(f"SYNTHESIS: failed to save final bundle for run {run_id}: {e}")

        total_ms = sum(record.duration_ms for record in context.phases)
        try:
            self.telemetry.log_metric(run_id, "synthesis_duration_ms", total_ms)
        except Exception as e:
            logger.debug(f"Telemetry metric synthesis_duration_ms dropped: {e}")

        logger.info(
            f"SYNTHESIS: run {run_id} completed in {total_ms}ms with "
            f"{len(bundle.sections)} sections, {len(bundle.citations)} citations, "
            f"{len(bundle.qa_report.warnings)} warnings"
        )
        return bundle

    def _cache_bundle(self, run_id: str, bundle: SynthesisBundle) -> None:
        if self.cache is None:
            return
        try:
            self.cache.put(run_id, bundle)
        except Exception as e:
            logger.warning(f"SYNTHESIS: cache write failed for run {run_id}: {e}")

    def _auto_run_diagnostics(self, run_id: str) -> DiagnosticsReport | None:
        if not self.settings.auto_run_diagnostics:
            return None
        try:
            return self.diagnostics.run_diagnostics(run_id)
        except Exception as e:
            error = DiagnosticsFailure(f"Auto diagnostics failed: {e}", run_id=run_id)
            log_error_with_context(error, phase="diagnostics", level=logging.WARNING)
            return None
