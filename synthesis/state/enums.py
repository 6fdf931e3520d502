"""Enums and constants for synthesis pipeline state."""

from enum import Enum


class SynthesisStatus(str, Enum):
    """Status of a synthesis run."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ModuleStatus(str, Enum):
    """Status of an upstream analysis module."""

    COMPLETED = "completed"
    MISSING = "missing"
    PLACEHOLDER = "placeholder"  # Upstream substituted fallback data
    FAILED = "failed"


class SectionName(str, Enum):
    """The nine canonical report sections, in document order."""

    EXECUTIVE_INSIGHT = "executive_insight"
    CUSTOMER_FUNDAMENTALS = "customer_fundamentals"
    FINANCIAL_TRAJECTORY = "financial_trajectory"
    MARGIN_PRESSURES = "margin_pressures"
    STRATEGIC_PRIORITIES = "strategic_priorities"
    GROWTH_LEVERS = "growth_levers"
    BUYING_BEHAVIOR = "buying_behavior"
    CURRENT_INITIATIVES = "current_initiatives"
    RISK_SIGNALS = "risk_signals"


class SectionStatus(str, Enum):
    """Lifecycle of a drafted section."""

    DRAFTED = "drafted"
    VALIDATED = "validated"
    FALLBACK = "fallback"
    ANNOTATED = "annotated"  # Citations attached
    REFINED = "refined"
    RENDERED = "rendered"


class Phase(str, Enum):
    """Timed pipeline phases, in execution order."""

    NORMALIZATION = "normalization"
    REBALANCING = "rebalancing"
    VALIDATION = "validation"
    PATTERNS = "patterns"
    TARGET_BRIDGE = "target_bridge"
    DRAFTING = "drafting"
    VOICE_ENFORCEMENT = "voice_enforcement"
    COHERENCE = "coherence"
    PATTERN_COMPARISON = "pattern_comparison"
    CITATION_ENRICHMENT = "citation_enrichment"
    INLINE_CITATIONS = "inline_citations"
    EXECUTIVE_REFINEMENT = "executive_refinement"
    SELF_CHECK = "self_check"
    RENDER = "render"
    BUNDLE = "bundle"


class PhaseStatus(str, Enum):
    """Outcome of a single timed phase."""

    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


# Kind of the telemetry trace record written when a phase closes
PHASE_TRACE_KIND = "phase"


class AnomalySeverity(str, Enum):
    """Severity of a phase anomaly."""

    WARNING = "warning"
    ERROR = "error"


class HealthStatus(str, Enum):
    """Overall health of a run as judged by diagnostics."""

    OK = "OK"
    DEGRADED = "DEGRADED"
    FAILED = "FAILED"


class SourceType(str, Enum):
    """Classification of a citation source by its domain."""

    REGULATORY = "regulatory"
    NEWS = "news"
    ANALYST = "analyst"
    COMPANY = "company"
    INDUSTRY = "industry"
    ACADEMIC = "academic"
    HEALTHCARE = "healthcare"
    UNKNOWN = "unknown"


# =============================================================================
# Module code constants
# =============================================================================

# Modules without which the report is materially weaker
CORE_MODULES: tuple[str, ...] = (
    "NB1", "NB2", "NB3", "NB4", "NB7", "NB12", "NB14", "NB15",
)

OPTIONAL_MODULES: tuple[str, ...] = (
    "NB5", "NB6", "NB8", "NB9", "NB10", "NB11", "NB13",
)

TOTAL_MODULE_SLOTS = 15

# 80% of the slots; below this the run proceeds with a warning
MIN_MODULE_COVERAGE = 12


SECTION_ORDER: tuple[SectionName, ...] = tuple(SectionName)

SECTION_TITLES: dict[SectionName, str] = {
    SectionName.EXECUTIVE_INSIGHT: "Executive Insight",
    SectionName.CUSTOMER_FUNDAMENTALS: "Customer Fundamentals",
    SectionName.FINANCIAL_TRAJECTORY: "Financial Trajectory",
    SectionName.MARGIN_PRESSURES: "Margin Pressures",
    SectionName.STRATEGIC_PRIORITIES: "Strategic Priorities",
    SectionName.GROWTH_LEVERS: "Growth Levers",
    SectionName.BUYING_BEHAVIOR: "Buying Behavior",
    SectionName.CURRENT_INITIATIVES: "Current Initiatives",
    SectionName.RISK_SIGNALS: "Risk Signals",
}
