"""Graph definitions and pipeline assembly for the synthesis engine.

This module provides:
- The synthesis pipeline graph factory
- Phase timing and anomaly classification
- Routing of the optional phases
- The engine that builds, caches and diagnoses reports
"""

from synthesis.graphs.engine import (
    SynthesisEngine,
    SynthesisResult,
)
from synthesis.graphs.phases import (
    PhaseTimer,
    classify_anomalies,
    phase_status,
    timed_phase,
)
from synthesis.graphs.pipeline import (
    OPTIONAL_NODES,
    PIPELINE_NODES,
    PipelineConfig,
    PipelineRuntime,
    create_synthesis_pipeline,
    initial_state,
)
from synthesis.graphs.routers import (
    route_after_coherence,
    route_after_voice,
)

__all__ = [
    # Engine
    "SynthesisEngine",
    "SynthesisResult",
    # Pipeline
    "create_synthesis_pipeline",
    "initial_state",
    "PipelineConfig",
    "PipelineRuntime",
    "PIPELINE_NODES",
    "OPTIONAL_NODES",
    # Phases
    "PhaseTimer",
    "classify_anomalies",
    "phase_status",
    "timed_phase",
    # Routers
    "route_after_voice",
    "route_after_coherence",
]
