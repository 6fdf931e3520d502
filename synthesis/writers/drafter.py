"""Section drafting with per-section failure isolation.

Every canonical section is drafted by its provider inside its own
try/except. A provider that raises yields the section's fallback content
and one warning naming the section; the remaining sections proceed.
Drafted text passes through the citation ledger and the section contract.
"""

import logging
from dataclasses import dataclass, field

from synthesis.citations.formatter import CITATION_TOKEN, extract_citation_ids
from synthesis.citations.ledger import CitationLedger, CitationOutput
from synthesis.review.validation import section_ok_tolerant
from synthesis.state.enums import SECTION_ORDER, SECTION_TITLES, SectionName, SectionStatus
from synthesis.state.models import (
    Bridge,
    NormalizedInputs,
    PatternSet,
    QAWarning,
    Section,
    SectionItem,
)
from synthesis.writers.base import DraftContext, SectionContent, SectionProvider
from synthesis.writers.fallbacks import fallback_content
from synthesis.writers.sections import default_providers

logger = logging.getLogger(__name__)


@dataclass
class DraftResult:
    """Drafted sections, the citations they reference, and drafting warnings."""

    sections: list[Section]
    citations: CitationOutput
    context: DraftContext
    warnings: list[QAWarning] = field(default_factory=list)

    @property
    def fallback_sections(self) -> list[str]:
        return [s.name.value for s in self.sections if s.is_fallback]


def _strip_ids(text: str, dropped: set[int]) -> str:
    if not dropped or not text:
        return text
    cleaned = CITATION_TOKEN.sub(lambda m: "" if int(m.group(1)) in dropped else m.group(0), text)
    return " ".join(cleaned.split())


def build_section(
    name: SectionName,
    content: SectionContent,
    ledger: CitationLedger,
    is_fallback: bool = False,
) -> Section:
    """
    Turn provider content into a Section and record its citations.

    Citation tokens in the text and in item bodies are processed together,
    so the per-section cap applies across both.
    """
    combined = " ".join(
        [content.text] + [f"{item.title} {item.body}" for item in content.items]
    )
    processed = ledger.process_section_citations(combined, name.value)
    dropped = set(processed.dropped_ids)

    items = [
        SectionItem(title=_strip_ids(item.title, dropped), body=_strip_ids(item.body, dropped))
        for item in content.items
    ]
    return Section(
        name=name,
        title=SECTION_TITLES[name],
        text=_strip_ids(content.text, dropped),
        items=items,
        citation_ids=processed.used_ids,
        status=SectionStatus.FALLBACK if is_fallback else SectionStatus.DRAFTED,
        is_fallback=is_fallback,
        source_modules=list(content.source_modules),
    )


def draft_sections(
    patterns: PatternSet,
    bridge: Bridge,
    inputs: NormalizedInputs,
    ledger: CitationLedger | None = None,
    providers: dict[SectionName, SectionProvider] | None = None,
    safe_mode: bool = False,
    context: DraftContext | None = None,
) -> DraftResult:
    """
    Draft the nine canonical sections.

    Args:
        patterns: Extracted patterns.
        bridge: Target bridge (may be empty).
        inputs: Normalized inputs.
        ledger: Citation ledger of this build; a new one when omitted.
        providers: Section providers; defaults to ``default_providers()``.
            Sections without a provider use their fallback.
        safe_mode: Downgrade contract violations to fallback substitution.
        context: Draft context already registered in ``ledger``; built
            from the inputs when omitted.

    Returns:
        DraftResult with nine sections in canonical order.

    Raises:
        SectionContractViolation: A section violates its contract outside
            safe mode.
    """
    ledger = ledger if ledger is not None else CitationLedger()
    providers = providers if providers is not None else default_providers()
    if context is None:
        context = DraftContext.build(inputs, patterns, bridge, ledger)

    sections: list[Section] = []
    warnings: list[QAWarning] = []

    for name in SECTION_ORDER:
        title = SECTION_TITLES[name]
        provider = providers.get(name)
        is_fallback = False
        try:
            if provider is None:
                raise LookupError(f"no provider registered for {name.value}")
            content = provider.draft(context)
        except Exception as e:
            logger.warning(f"DRAFTING: {title} generation failed: {e}")
            warnings.append(QAWarning(section=name.value, warning=f"{title} generation failed: {e}"))
            content = fallback_content(name)
            content.source_modules = list(provider.source_modules) if provider else []
            is_fallback = True

        section = build_section(name, content, ledger, is_fallback)

        validation = section_ok_tolerant(name.value, section, safe_mode=safe_mode)
        for message in validation.warnings:
            warnings.append(QAWarning(section=name.value, warning=message))
        if validation.needs_fallback and not is_fallback:
            replacement = fallback_content(name)
            replacement.source_modules = list(content.source_modules)
            section = build_section(name, replacement, ledger, is_fallback=True)

        sections.append(section)

    fallback_count = sum(1 for s in sections if s.is_fallback)
    logger.info(
        f"DRAFTING: {len(sections)} sections drafted, {fallback_count} fallbacks, "
        f"{len(ledger.get_used_ids())} citations referenced"
    )
    return DraftResult(
        sections=sections,
        citations=ledger.get_output(),
        context=context,
        warnings=warnings,
    )


# =============================================================================
# Post-drafting citation maintenance
# =============================================================================


def refresh_section_citations(section: Section, ledger: CitationLedger) -> Section:
    """
    Re-record a section's citations after its text was rewritten.

    Ids still referenced by a token are kept in token order; ids that were
    attached without a token are appended after them.
    """
    name = section.name.value
    text_ids = set(extract_citation_ids(section.full_text))
    attached = [cid for cid in section.citation_ids if cid not in text_ids]
    ledger.process_section_citations(section.full_text, name)
    ledger.attach(name, attached)
    return section.model_copy(update={"citation_ids": ledger.section_ids(name)})


def attach_inline_citations(
    sections: list[Section],
    ledger: CitationLedger,
    module_citations: dict[str, list[int]],
    per_section: int = 2,
) -> tuple[list[Section], int]:
    """
    Give every uncited section citations from its source modules.

    Args:
        sections: Drafted sections.
        ledger: Citation ledger of this build.
        module_citations: Module code -> citation ids, from the draft context.
        per_section: Most citations attached to one section.

    Returns:
        Tuple of (updated sections, number of citations attached).
    """
    updated: list[Section] = []
    total = 0
    for section in sections:
        if section.citation_ids:
            updated.append(section)
            continue
        candidates: list[int] = []
        for module in section.source_modules:
            for cid in module_citations.get(module, []):
                if cid not in candidates:
                    candidates.append(cid)
        attached = ledger.attach(section.name.value, candidates[:per_section])
        total += len(attached)
        if attached:
            section = section.model_copy(update={
                "citation_ids": ledger.section_ids(section.name.value),
                "status": SectionStatus.ANNOTATED,
            })
        updated.append(section)
    if total:
        logger.info(f"INLINE_CITATIONS: attached {total} citations")
    return updated, total
