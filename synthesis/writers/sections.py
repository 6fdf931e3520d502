"""Default section providers.

Each provider composes a short, deterministic narrative from the extracted
patterns, the bridge and the module data, and cites the modules it draws
from with ``[n]`` tokens.
"""

import re

from synthesis.patterns.extractor import iter_fields
from synthesis.review.validation import SECTION_CONTRACTS
from synthesis.state.enums import SectionName
from synthesis.state.models import Pattern, SectionItem
from synthesis.writers.base import DraftContext, SectionContent, SectionProvider
from synthesis.writers.fallbacks import pad_items

# Longest pattern excerpt quoted in a sentence
MAX_EXCERPT_CHARS = 180


def excerpt(text: str, limit: int = MAX_EXCERPT_CHARS) -> str:
    """Collapse whitespace, drop citation tokens and trailing punctuation, cap length."""
    text = re.sub(r"\[\d+\]", "", text or "")
    text = " ".join(text.split()).rstrip(" .;:,")
    if len(text) > limit:
        text = text[:limit].rsplit(" ", 1)[0].rstrip(" .;:,")
    return text


def _lower_first(text: str) -> str:
    if len(text) > 1 and text[0].isupper() and not text[1].isupper():
        return text[0].lower() + text[1:]
    return text


def _module_fields(context: DraftContext, modules: tuple[str, ...], keywords: tuple[str, ...]) -> list[tuple[str, str]]:
    """``(module, text)`` for fields whose name contains any keyword."""
    found = []
    for code in modules:
        record = context.inputs.lookup(code)
        if record is None or record.is_placeholder:
            continue
        for _, _, field_name, text in iter_fields(record):
            name = field_name.lower()
            if any(keyword in name for keyword in keywords):
                found.append((record.code, text))
    return found


def _item_from_pattern(pattern: Pattern, context: DraftContext, title: str) -> SectionItem:
    return SectionItem(
        title=title,
        body=f"{excerpt(pattern.text)}.{context.cite(pattern.source, limit=1)}",
    )


# =============================================================================
# Providers
# =============================================================================


class ExecutiveInsightProvider(SectionProvider):
    section_name = SectionName.EXECUTIVE_INSIGHT
    source_modules = ("NB1", "NB2", "NB3")

    def draft(self, context: DraftContext) -> SectionContent:
        name = context.subject_name
        count = len(context.pressures)
        sentences = [
            f"{name}'s leadership faces {count} converging pressure{'s' if count != 1 else ''}."
            if count else f"{name}'s leadership is setting priorities for the next planning cycle."
        ]
        if context.pressures:
            top = context.pressures[0]
            sentences.append(
                f"The most pressing is {_lower_first(excerpt(top.text))}.{context.cite(top.source)}"
            )
        if context.numeric_proofs:
            proof = context.numeric_proofs[0]
            sentences.append(f"A defining figure: {excerpt(proof.text)}.{context.cite(proof.source, limit=1)}")
        if context.executives:
            sentences.append(f"Leadership has committed to {_lower_first(excerpt(context.executives[0].text))}.")
        if context.comparison_name and context.bridge_items:
            sentences.append(
                f"For {context.comparison_name}, the most relevant theme is "
                f"{_lower_first(excerpt(context.bridge_items[0].theme))}."
            )
        return SectionContent(text=" ".join(sentences), source_modules=list(self.source_modules))


class CustomerFundamentalsProvider(SectionProvider):
    section_name = SectionName.CUSTOMER_FUNDAMENTALS
    source_modules = ("NB1", "NB5")

    def draft(self, context: DraftContext) -> SectionContent:
        name = context.subject_name
        fields = _module_fields(
            context, self.source_modules,
            ("customer", "segment", "business model", "revenue stream", "market positioning"),
        )
        sentences = []
        for module, text in fields[:3]:
            sentences.append(f"{excerpt(text)}.{context.cite(module, limit=1)}")
        if not sentences:
            sector = context.inputs.subject.sector
            sentences.append(
                f"{name} serves customers in {sector}." if sector
                else f"{name}'s customer base is described without segment detail."
            )
        return SectionContent(text=" ".join(sentences), source_modules=list(self.source_modules))


class FinancialTrajectoryProvider(SectionProvider):
    section_name = SectionName.FINANCIAL_TRAJECTORY
    source_modules = ("NB2", "NB3", "NB12")

    def draft(self, context: DraftContext) -> SectionContent:
        name = context.subject_name
        proofs = [p for p in context.numeric_proofs if p.kind in ("percentage", "magnitude")][:3]
        if not proofs:
            proofs = context.numeric_proofs[:3]
        if not proofs:
            return SectionContent(
                text=f"No quantified financial data was reported for {name}.",
                source_modules=list(self.source_modules),
            )
        sentences = [f"{name}'s reported figures point to the current trajectory."]
        for proof in proofs:
            sentences.append(f"{excerpt(proof.text)}.{context.cite(proof.source, limit=1)}")
        return SectionContent(text=" ".join(sentences), source_modules=list(self.source_modules))


class MarginPressuresProvider(SectionProvider):
    section_name = SectionName.MARGIN_PRESSURES
    source_modules = ("NB3", "NB4")

    def draft(self, context: DraftContext) -> SectionContent:
        name = context.subject_name
        pressures = [p for p in context.pressures if p.kind in ("operational", "competitive")]
        if not pressures:
            pressures = context.pressures
        if not pressures:
            return SectionContent(
                text=f"No specific cost or pricing pressure on {name} was identified.",
                source_modules=list(self.source_modules),
            )
        sentences = [f"Margins at {name} are exposed on {len(pressures)} front{'s' if len(pressures) != 1 else ''}."]
        for pressure in pressures:
            sentences.append(f"{excerpt(pressure.text)}.{context.cite(pressure.source, limit=1)}")
        return SectionContent(text=" ".join(sentences), source_modules=list(self.source_modules))


class StrategicPrioritiesProvider(SectionProvider):
    section_name = SectionName.STRATEGIC_PRIORITIES
    source_modules = ("NB1", "NB11", "NB13")

    def draft(self, context: DraftContext) -> SectionContent:
        name = context.subject_name
        sentences = []
        for executive in context.executives:
            label = "Mission" if executive.kind == "mission" else (
                "Vision" if executive.kind == "vision" else executive.field
            )
            sentences.append(f"{label}: {excerpt(executive.text)}.{context.cite(executive.source, limit=1)}")
        strategic = [p for p in context.pressures + context.levers if p.kind == "strategic"]
        for pattern in strategic[:2]:
            sentences.append(f"{excerpt(pattern.text)}.{context.cite(pattern.source, limit=1)}")
        if not sentences:
            sentences.append(f"{name} has not published explicit strategic priorities.")
        return SectionContent(text=" ".join(sentences), source_modules=list(self.source_modules))


class GrowthLeversProvider(SectionProvider):
    section_name = SectionName.GROWTH_LEVERS
    source_modules = ("NB1", "NB8", "NB13")

    def draft(self, context: DraftContext) -> SectionContent:
        contract = SECTION_CONTRACTS[self.section_name.value]
        items = [
            _item_from_pattern(lever, context, f"{lever.kind.replace('_', ' ').title()} lever")
            for lever in context.levers
        ]
        for bridge_item in context.bridge_items:
            if len(items) >= contract.max_items:
                break
            items.append(SectionItem(title=excerpt(bridge_item.theme, 60), body=bridge_item.why_it_matters))
        items = pad_items(items[:contract.max_items], self.section_name, contract.min_items)
        text = f"{context.subject_name} has {len(items)} levers available for growth."
        return SectionContent(text=text, items=items, source_modules=list(self.source_modules))


class BuyingBehaviorProvider(SectionProvider):
    section_name = SectionName.BUYING_BEHAVIOR
    source_modules = ("NB6", "NB7", "NB9")

    def draft(self, context: DraftContext) -> SectionContent:
        name = context.subject_name
        fields = _module_fields(
            context, self.source_modules,
            ("procure", "buying", "purchas", "decision", "budget", "vendor"),
        )
        sentences = [f"{excerpt(text)}.{context.cite(module, limit=1)}" for module, text in fields[:3]]
        if not sentences:
            sentences.append(f"Purchasing decisions at {name} follow an unreported approval process.")
        return SectionContent(text=" ".join(sentences), source_modules=list(self.source_modules))


class CurrentInitiativesProvider(SectionProvider):
    section_name = SectionName.CURRENT_INITIATIVES
    source_modules = ("NB2", "NB10", "NB13")

    def draft(self, context: DraftContext) -> SectionContent:
        name = context.subject_name
        signals = context.timing
        if not signals:
            return SectionContent(
                text=f"No active initiative at {name} was reported in the current period.",
                source_modules=list(self.source_modules),
            )
        sentences = [f"{name} has {len(signals)} initiative{'s' if len(signals) != 1 else ''} in motion."]
        for signal in signals:
            sentences.append(f"{excerpt(signal.text)}.{context.cite(signal.source, limit=1)}")
        return SectionContent(text=" ".join(sentences), source_modules=list(self.source_modules))


class RiskSignalsProvider(SectionProvider):
    section_name = SectionName.RISK_SIGNALS
    source_modules = ("NB4", "NB14", "NB15")

    def draft(self, context: DraftContext) -> SectionContent:
        contract = SECTION_CONTRACTS[self.section_name.value]
        candidates = [p for p in context.timing if p.kind == "regulatory"]
        candidates += [p for p in context.pressures if p.kind in ("competitive", "change")]
        items = []
        for pattern in candidates[:contract.max_items]:
            title = "Regulatory signal" if pattern.kind == "regulatory" else (
                "Market shift" if pattern.kind == "change" else "Competitive signal"
            )
            items.append(_item_from_pattern(pattern, context, title))
        items = pad_items(items, self.section_name, contract.min_items)
        text = f"{len(items)} signals could change {context.subject_name}'s timing."
        return SectionContent(text=text, items=items, source_modules=list(self.source_modules))


DEFAULT_PROVIDERS: tuple[type[SectionProvider], ...] = (
    ExecutiveInsightProvider,
    CustomerFundamentalsProvider,
    FinancialTrajectoryProvider,
    MarginPressuresProvider,
    StrategicPrioritiesProvider,
    GrowthLeversProvider,
    BuyingBehaviorProvider,
    CurrentInitiativesProvider,
    RiskSignalsProvider,
)


def default_providers() -> dict[SectionName, SectionProvider]:
    """Instantiate the default provider of every section."""
    return {cls.section_name: cls() for cls in DEFAULT_PROVIDERS}
