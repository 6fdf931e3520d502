"""Base section provider and the drafting context shared by all providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from synthesis.citations.ledger import CitationLedger
from synthesis.state.enums import SECTION_TITLES, SectionName
from synthesis.state.models import (
    Bridge,
    BridgeItem,
    NormalizedInputs,
    Pattern,
    PatternSet,
    SectionItem,
)

# How many patterns of each family a provider sees
CONTEXT_LIMITS: dict[str, int] = {
    "pressures": 3,
    "levers": 3,
    "timing": 4,
    "executives": 2,
    "numeric_proofs": 10,
    "bridge": 5,
}

# Citations a provider attaches per sentence
CITATIONS_PER_CLAIM = 2


@dataclass
class SectionContent:
    """What a provider returns for one section."""

    text: str = ""
    items: list[SectionItem] = field(default_factory=list)
    source_modules: list[str] = field(default_factory=list)


@dataclass
class DraftContext:
    """Everything a provider may read while drafting a section."""

    inputs: NormalizedInputs
    pressures: list[Pattern] = field(default_factory=list)
    levers: list[Pattern] = field(default_factory=list)
    timing: list[Pattern] = field(default_factory=list)
    executives: list[Pattern] = field(default_factory=list)
    numeric_proofs: list[Pattern] = field(default_factory=list)
    bridge_items: list[BridgeItem] = field(default_factory=list)
    bridge_rationale: str = ""
    module_citations: dict[str, list[int]] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        inputs: NormalizedInputs,
        patterns: PatternSet,
        bridge: Bridge,
        ledger: CitationLedger,
    ) -> "DraftContext":
        """
        Slice the patterns and register every citation source in the ledger.

        Module citations are allocated in module order, then the run's own
        citations under the ``run`` key.
        """
        module_citations: dict[str, list[int]] = {}
        for code, record in inputs.modules.items():
            ids = [cid for cid in ledger.add_citations(record.citations) if cid]
            module_citations[code] = list(dict.fromkeys(ids))
        run_ids = [cid for cid in ledger.add_citations(inputs.citations) if cid]
        module_citations["run"] = list(dict.fromkeys(run_ids))

        return cls(
            inputs=inputs,
            pressures=patterns.pressures[:CONTEXT_LIMITS["pressures"]],
            levers=patterns.levers[:CONTEXT_LIMITS["levers"]],
            timing=patterns.timing[:CONTEXT_LIMITS["timing"]],
            executives=patterns.executives[:CONTEXT_LIMITS["executives"]],
            numeric_proofs=patterns.numeric_proofs[:CONTEXT_LIMITS["numeric_proofs"]],
            bridge_items=bridge.items[:CONTEXT_LIMITS["bridge"]],
            bridge_rationale=bridge.rationale,
            module_citations=module_citations,
        )

    @property
    def subject_name(self) -> str:
        subject = self.inputs.subject
        return subject.name or subject.id

    @property
    def comparison_name(self) -> str | None:
        comparison = self.inputs.comparison
        if comparison is None:
            return None
        return comparison.name or comparison.id

    def citations_for(self, *modules: str, limit: int = CITATIONS_PER_CLAIM) -> list[int]:
        """Citation ids of the given modules, in module order, at most ``limit``."""
        ids: list[int] = []
        for module in modules:
            for cid in self.module_citations.get(module, []):
                if cid not in ids:
                    ids.append(cid)
        return ids[:limit]

    def cite(self, *modules: str, limit: int = CITATIONS_PER_CLAIM) -> str:
        """Inline ``[n]`` tokens for the given modules, with a leading space."""
        ids = self.citations_for(*modules, limit=limit)
        return "".join(f" [{cid}]" for cid in ids)


class SectionProvider(ABC):
    """
    Base class for section content providers.

    Subclasses set ``section_name`` and ``source_modules`` and implement
    ``draft``. A provider may raise; the drafter substitutes the section's
    fallback content.
    """

    section_name: SectionName
    source_modules: tuple[str, ...] = ()

    @property
    def section_title(self) -> str:
        return SECTION_TITLES[self.section_name]

    @abstractmethod
    def draft(self, context: DraftContext) -> SectionContent:
        """
        Draft the section.

        Args:
            context: Drafting context.

        Returns:
            SectionContent with text and, for list sections, items.
        """
        pass
