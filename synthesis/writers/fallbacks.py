"""Deterministic fallback content, one entry per section.

Used when a provider raises or, in safe mode, when its output violates the
section contract. Every entry satisfies its section's contract.
"""

from synthesis.state.enums import SectionName
from synthesis.state.models import SectionItem
from synthesis.writers.base import SectionContent

FALLBACK_TEXT: dict[SectionName, str] = {
    SectionName.EXECUTIVE_INSIGHT: "Executive strategic priorities focus on operational excellence.",
    SectionName.CUSTOMER_FUNDAMENTALS: "Operating model emphasizes customer-centric value delivery.",
    SectionName.FINANCIAL_TRAJECTORY: (
        "Financial performance shows growth trajectory with margin expansion opportunities."
    ),
    SectionName.MARGIN_PRESSURES: "Cost optimization initiatives target operational efficiency gains.",
    SectionName.STRATEGIC_PRIORITIES: "Digital transformation drives strategic agenda.",
    SectionName.GROWTH_LEVERS: "Geographic expansion and product innovation fuel growth.",
    SectionName.BUYING_BEHAVIOR: "Consensus-driven procurement with ROI validation requirements.",
    SectionName.CURRENT_INITIATIVES: "Active transformation programs drive modernization agenda.",
    SectionName.RISK_SIGNALS: "Regulatory changes and market dynamics create urgency windows.",
}

FALLBACK_ITEMS: dict[SectionName, list[SectionItem]] = {
    SectionName.GROWTH_LEVERS: [
        SectionItem(
            title="Geographic expansion",
            body="New regions extend the reach of the existing offering.",
        ),
        SectionItem(
            title="Product innovation",
            body="Extensions of the core product open adjacent revenue.",
        ),
    ],
    SectionName.RISK_SIGNALS: [
        SectionItem(
            title="Regulatory change",
            body="Pending rules can shift compliance cost and timelines.",
        ),
        SectionItem(
            title="Competitive pressure",
            body="New entrants compress pricing on core products.",
        ),
        SectionItem(
            title="Execution capacity",
            body="Concurrent programs strain delivery teams and slow adoption.",
        ),
    ],
}


def fallback_content(section: SectionName) -> SectionContent:
    """Return a fresh copy of a section's fallback content."""
    items = [item.model_copy() for item in FALLBACK_ITEMS.get(section, [])]
    return SectionContent(text=FALLBACK_TEXT[section], items=items)


def pad_items(items: list[SectionItem], section: SectionName, minimum: int) -> list[SectionItem]:
    """Append fallback items (skipping duplicate titles) until ``minimum`` is reached."""
    padded = list(items)
    titles = {item.title.lower() for item in padded}
    for item in FALLBACK_ITEMS.get(section, []):
        if len(padded) >= minimum:
            break
        if item.title.lower() not in titles:
            padded.append(item.model_copy())
            titles.add(item.title.lower())
    return padded
