"""Pydantic models for synthesis pipeline state.

These models define the data structures that flow through the pipeline,
from the raw analysis modules of a run through the final cached bundle
and the diagnostics report.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, Field, field_validator

from synthesis.state.tree import Node
from synthesis.state.enums import (
    AnomalySeverity,
    HealthStatus,
    ModuleStatus,
    PhaseStatus,
    SectionName,
    SectionStatus,
    SourceType,
    SynthesisStatus,
)


def _utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


# Per-section cap on referenced citations
MAX_CITATIONS_PER_SECTION = 8


# =============================================================================
# Input Models
# =============================================================================


class Organization(BaseModel):
    """Subject or comparison organization."""

    id: str = Field(..., description="Organization identifier")
    name: str = Field(default="", description="Display name")
    sector: str | None = Field(default=None, description="Industry sector")
    website: str | None = Field(default=None, description="Primary website")
    ticker: str | None = Field(default=None, description="Exchange ticker, if listed")
    metadata: dict[str, Any] = Field(default_factory=dict)


class Run(BaseModel):
    """A synthesis run. Only the cache fields change after creation."""

    id: str = Field(..., description="Run identifier")
    subject_org_id: str = Field(..., description="Organization the report is about")
    comparison_org_id: str | None = Field(
        default=None,
        description="Optional organization the subject is bridged to"
    )
    status: SynthesisStatus = Field(default=SynthesisStatus.PENDING)
    reused_from_run_id: str | None = Field(default=None)
    cache_built_at: datetime | None = Field(default=None)


class AnalysisModule(BaseModel):
    """Raw upstream analysis module as stored for a run."""

    code: str = Field(..., description="Module code, any alias form (e.g. 'nb-01')")
    status: ModuleStatus = Field(default=ModuleStatus.COMPLETED)
    payload: Any = Field(
        default=None,
        description="JSON text or already decoded structure"
    )
    citations: Any = Field(
        default=None,
        description="JSON text or list of URL strings / {url, title, ...} objects"
    )
    tokens_used: int = Field(default=0, ge=0)
    duration_ms: int = Field(default=0, ge=0)
    failure_reason: str | None = Field(default=None)


class CitationSource(BaseModel):
    """A citation source as discovered in module data, before id allocation."""

    url: str
    title: str | None = None
    publisher: str | None = None
    year: int | None = None
    published_at: str | None = Field(
        default=None,
        description="ISO date, used for recency scoring"
    )
    snippet: str | None = None
    origin: str | None = Field(default=None, description="Module code the source came from")


# =============================================================================
# Citation Models
# =============================================================================


class CitationProvenance(BaseModel):
    """Where a citation came from and how far it has been validated."""

    extraction_date: datetime = Field(default_factory=_utc_now)
    validation_status: str = Field(default="pending")
    corroboration_count: int = Field(default=1, ge=0)


class Citation(BaseModel):
    """A ledger citation. The URL is the unique key; ids are never reused."""

    id: int = Field(..., ge=1)
    url: str
    title: str = ""
    publisher: str = ""
    year: int | None = None
    published_at: str | None = None
    domain: str = ""
    confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    relevance: float = Field(default=0.5, ge=0.0, le=1.0)
    source_type: SourceType = Field(default=SourceType.UNKNOWN)
    snippet: str | None = None
    section: str | None = None
    markers: list[str] = Field(default_factory=list)
    provenance: CitationProvenance = Field(default_factory=CitationProvenance)


# =============================================================================
# Pattern Models
# =============================================================================


class Pattern(BaseModel):
    """A theme, lever, signal, accountability or numeric proof."""

    text: str
    field: str = ""
    source: str = Field(default="", description="Canonical module code")
    organization: str = ""
    kind: str | None = None
    value: str | None = Field(default=None, description="Matched figure for numeric proofs")


class PatternSet(BaseModel):
    """Patterns extracted from one run's modules. Recomputed per run."""

    pressures: list[Pattern] = Field(default_factory=list)
    levers: list[Pattern] = Field(default_factory=list)
    timing: list[Pattern] = Field(default_factory=list)
    executives: list[Pattern] = Field(default_factory=list)
    numeric_proofs: list[Pattern] = Field(default_factory=list)

    def counts(self) -> dict[str, int]:
        return {
            "pressures": len(self.pressures),
            "levers": len(self.levers),
            "timing": len(self.timing),
            "executives": len(self.executives),
            "numeric_proofs": len(self.numeric_proofs),
        }


class BridgeItem(BaseModel):
    """One theme linking the subject to the comparison organization."""

    theme: str
    why_it_matters: str
    relevance_score: float = Field(default=0.0, ge=0.0, le=1.0)


class Bridge(BaseModel):
    """Bridge between subject and comparison organization (at most 5 items)."""

    items: list[BridgeItem] = Field(default_factory=list, max_length=5)
    rationale: str = ""


# =============================================================================
# Section Models
# =============================================================================


class SectionItem(BaseModel):
    """A titled entry in a list-style section."""

    title: str = ""
    body: str = ""


class Section(BaseModel):
    """A drafted report section."""

    name: SectionName
    title: str = ""
    text: str = ""
    items: list[SectionItem] = Field(default_factory=list)
    citation_ids: list[int] = Field(
        default_factory=list,
        max_length=MAX_CITATIONS_PER_SECTION,
        description="Referenced citation ids in first-appearance order"
    )
    status: SectionStatus = Field(default=SectionStatus.DRAFTED)
    is_fallback: bool = False
    source_modules: list[str] = Field(default_factory=list)

    @property
    def word_count(self) -> int:
        return len(self.text.split())

    @property
    def full_text(self) -> str:
        """Body text followed by each item's title and body."""
        parts = [self.text] + [f"{item.title}. {item.body}" for item in self.items]
        return " ".join(part for part in parts if part and part.strip())


# =============================================================================
# Diversity Models
# =============================================================================


class DiversityMetrics(BaseModel):
    """Source diversity measured over a pool of citation URLs."""

    total_citations: int = 0
    unique_domains: int = 0
    max_concentration: float = Field(default=0.0, description="Largest domain share, percent")
    diversity_score: float = Field(default=0.0, ge=0.0, le=100.0)
    domain_distribution: dict[str, int] = Field(default_factory=dict)


class DiversityReport(BaseModel):
    """Before/after metrics for one rebalancing pass."""

    before: DiversityMetrics = Field(default_factory=DiversityMetrics)
    after: DiversityMetrics = Field(default_factory=DiversityMetrics)
    applied: bool = False
    strategy: str = "no_rebalancing_needed"
    concentration_reduction: float = 0.0
    unique_domains_increase: int = 0
    score_improvement: float = 0.0
    note: str | None = None


# =============================================================================
# Phase and QA Models
# =============================================================================


class Anomaly(BaseModel):
    """A condition flagged by the phase anomaly classifier."""

    type: AnomalySeverity
    issue: str
    description: str


class PhaseRecord(BaseModel):
    """Timing and outcome of one pipeline phase."""

    phase: str
    started_at_ms: int
    ended_at_ms: int | None = None
    duration_ms: int = 0
    status: PhaseStatus = PhaseStatus.SUCCESS
    notes: dict[str, Any] = Field(default_factory=dict)
    anomalies: list[Anomaly] = Field(default_factory=list)


class QAWarning(BaseModel):
    """A non-blocking problem recorded during a build."""

    section: str = Field(..., description="Section or phase the warning belongs to")
    warning: str

    @field_validator("warning")
    @classmethod
    def truncate_warning(cls, v: str) -> str:
        return v[:500]


class QAReport(BaseModel):
    """Quality summary attached to every bundle."""

    passed: bool = True
    warnings: list[QAWarning] = Field(default_factory=list)
    scores: dict[str, Any] = Field(default_factory=dict)
    stats: dict[str, Any] = Field(default_factory=dict)


class SynthesisBundle(BaseModel):
    """The final output of a run. Persisted by run id, overwritten on rebuild."""

    run_id: str
    html: str = ""
    markdown: str = ""
    json_payload: dict[str, Any] = Field(default_factory=dict)
    sections: list[Section] = Field(default_factory=list)
    citations: list[Citation] = Field(
        default_factory=list,
        description="Only citations referenced by at least one section"
    )
    sources: list[str] = Field(default_factory=list)
    qa_report: QAReport = Field(default_factory=QAReport)
    voice_report: dict[str, Any] = Field(default_factory=dict)
    selfcheck_report: dict[str, Any] = Field(default_factory=dict)
    coherence_report: dict[str, Any] | None = None
    pattern_alignment_report: dict[str, Any] | None = None
    diversity: DiversityReport | None = None
    appendix_notes: list[str] = Field(default_factory=list)
    missing_modules: list[str] = Field(default_factory=list)
    phases: list[PhaseRecord] = Field(default_factory=list)
    built_at: datetime = Field(default_factory=_utc_now)


# =============================================================================
# Diagnostics Models
# =============================================================================


class DiagnosticsIssue(BaseModel):
    """A finding reported by the diagnostics service."""

    category: str
    issue: str
    description: str
    severity: str = "warning"
    confidence: float | None = None


class DiagnosticsReport(BaseModel):
    """Health assessment of a run."""

    run_id: str
    health: HealthStatus = HealthStatus.OK
    summary: str = ""
    artifacts: dict[str, Any] = Field(default_factory=dict)
    phases: dict[str, Any] = Field(default_factory=dict)
    performance: dict[str, Any] = Field(default_factory=dict)
    alerts: list[DiagnosticsIssue] = Field(default_factory=list)
    issues: list[DiagnosticsIssue] = Field(default_factory=list)
    warnings: list[DiagnosticsIssue] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=_utc_now)


@dataclass
class DiagnosticsContext:
    """Per-invocation debug record, returned alongside the bundle.

    Replaces any process-wide debug slot: each build owns its own context.
    """

    run_id: str
    phases: list[PhaseRecord] = field(default_factory=list)
    module_keys: list[str] = field(default_factory=list)
    last_checkpoint: str | None = None
    notes: list[str] = field(default_factory=list)
    cache_hit: bool = False
    error: dict[str, Any] | None = None

    def checkpoint(self, name: str, note: str | None = None) -> None:
        self.last_checkpoint = name
        if note:
            self.notes.append(f"{name}: {note}")

    def phase(self, name: str) -> PhaseRecord | None:
        for record in self.phases:
            if record.phase == name:
                return record
        return None


# =============================================================================
# Normalized Inputs
# =============================================================================


@dataclass
class ModuleRecord:
    """One normalized module, keyed by canonical code."""

    code: str
    status: ModuleStatus
    tree: Node
    citations: list[CitationSource] = field(default_factory=list)
    tokens_used: int = 0
    duration_ms: int = 0
    is_placeholder: bool = False
    placeholder_reason: str | None = None

    @property
    def is_completed(self) -> bool:
        return self.status == ModuleStatus.COMPLETED and not self.is_placeholder


@dataclass
class NormalizedInputs:
    """Canonical view of a run's inputs, produced once by the normalizer."""

    run: Run
    subject: Organization
    comparison: Organization | None = None
    modules: dict[str, ModuleRecord] = field(default_factory=dict)
    aliases: dict[str, str] = field(default_factory=dict)
    citations: list[CitationSource] = field(default_factory=list)
    stats: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def lookup(self, code: str) -> ModuleRecord | None:
        """Resolve any alias form of a module code to its record."""
        canonical = self.aliases.get(code.strip())
        if canonical is None:
            return self.modules.get(code.strip().upper())
        return self.modules.get(canonical)

    @property
    def module_keys(self) -> list[str]:
        return list(self.modules.keys())

    @property
    def placeholders(self) -> list[ModuleRecord]:
        return [m for m in self.modules.values() if m.is_placeholder]

    def all_citation_sources(self) -> list[CitationSource]:
        """Module citations followed by top-level citations, in order."""
        pooled: list[CitationSource] = []
        for record in self.modules.values():
            pooled.extend(record.citations)
        pooled.extend(self.citations)
        return pooled
