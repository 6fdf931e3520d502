"""State management for the synthesis pipeline."""

from synthesis.state.enums import (
    CORE_MODULES,
    OPTIONAL_MODULES,
    SECTION_ORDER,
    SECTION_TITLES,
    AnomalySeverity,
    HealthStatus,
    ModuleStatus,
    Phase,
    PhaseStatus,
    SectionName,
    SectionStatus,
    SourceType,
    SynthesisStatus,
)
from synthesis.state.models import (
    AnalysisModule,
    Anomaly,
    Bridge,
    BridgeItem,
    Citation,
    CitationSource,
    DiagnosticsContext,
    DiagnosticsIssue,
    DiagnosticsReport,
    DiversityMetrics,
    DiversityReport,
    ModuleRecord,
    NormalizedInputs,
    Organization,
    Pattern,
    PatternSet,
    PhaseRecord,
    QAReport,
    QAWarning,
    Run,
    Section,
    SectionItem,
    SynthesisBundle,
)
from synthesis.state.schema import SynthesisState
from synthesis.state.tree import ListNode, MapNode, Node, Scalar

__all__ = [
    # Enums
    "AnomalySeverity",
    "HealthStatus",
    "ModuleStatus",
    "Phase",
    "PhaseStatus",
    "SectionName",
    "SectionStatus",
    "SourceType",
    "SynthesisStatus",
    "CORE_MODULES",
    "OPTIONAL_MODULES",
    "SECTION_ORDER",
    "SECTION_TITLES",
    # Models
    "AnalysisModule",
    "Anomaly",
    "Bridge",
    "BridgeItem",
    "Citation",
    "CitationSource",
    "DiagnosticsContext",
    "DiagnosticsIssue",
    "DiagnosticsReport",
    "DiversityMetrics",
    "DiversityReport",
    "ModuleRecord",
    "NormalizedInputs",
    "Organization",
    "Pattern",
    "PatternSet",
    "PhaseRecord",
    "QAReport",
    "QAWarning",
    "Run",
    "Section",
    "SectionItem",
    "SynthesisBundle",
    # Schema
    "SynthesisState",
    # Tree
    "ListNode",
    "MapNode",
    "Node",
    "Scalar",
]
