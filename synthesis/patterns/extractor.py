"""Pattern extraction over normalized module trees.

Walks each module's ``organization -> section -> field`` tree depth-first
and collects five pattern families:

- pressures: market, strategic, operational and competitive pressure themes
- levers: capabilities the organization can pull
- timing: signals that something is changing now
- executives: leadership accountabilities
- numeric_proofs: figures (percentages, magnitudes) with context

Families are capped by ordinal position (first found, first kept).
Numeric proofs are not capped.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterator

from synthesis.state.models import ModuleRecord, NormalizedInputs, Pattern, PatternSet
from synthesis.state.tree import MapNode

logger = logging.getLogger(__name__)


# =============================================================================
# Configuration
# =============================================================================

PATTERN_CAPS: dict[str, int] = {
    "pressures": 4,
    "levers": 4,
    "timing": 6,
    "executives": 3,
}

# Free-text values shorter than this are labels, not themes
MIN_THEME_LENGTH = 20

NUMERIC_CONTEXT_LENGTH = 150

TEMPORAL_KEYWORDS: tuple[str, ...] = (
    "recent", "upcoming", "currently", "now", "future", "shift", "transition",
    "emerging", "new", "change", "evolving", "growing", "expanding",
    "launched", "planned",
)

NUMERIC_PATTERN = re.compile(
    r"(\d+(?:\.\d+)?)\s*%|(\d+(?:,\d{3})*(?:\.\d+)?)\s*(?:million|billion|thousand|M|B|K)\b",
    re.IGNORECASE,
)

_MODULE_CODE = re.compile(r"^NB\d+$")

# NB1 fields whose whole value is a strategic metric when it contains a digit
STRATEGIC_METRIC_FIELDS: tuple[str, ...] = ("Market Positioning", "Revenue Streams", "Ownership")


@dataclass
class FieldRule:
    """Collect named fields of one module as patterns of one kind."""

    module: str
    fields: dict[str, str] | None = None  # field name -> kind
    any_long_text: str | None = None       # kind for every long string
    temporal_only: str | None = None       # kind for strings with a temporal keyword


PRESSURE_RULES = [
    FieldRule("NB1", fields={
        "Market Positioning": "market",
        "Focus": "strategic",
        "Notable Shifts": "change",
    }),
    FieldRule("NB3", any_long_text="operational"),
    FieldRule("NB4", any_long_text="competitive"),
    FieldRule("NB8", any_long_text="competitive"),
]

LEVER_RULES = [
    FieldRule("NB1", fields={
        "Innovation": "innovation",
        "Collaboration": "collaboration",
        "Business Model": "business_model",
    }),
    FieldRule("NB8", any_long_text="technology"),
    FieldRule("NB13", any_long_text="strategic"),
]

TIMING_RULES = [
    FieldRule("NB1", fields={"Notable Shifts": "strategic_shift"}),
    FieldRule("NB2", temporal_only="market_timing"),
    FieldRule("NB10", any_long_text="partnership"),
    FieldRule("NB15", any_long_text="regulatory"),
]


# =============================================================================
# Tree walking
# =============================================================================


def iter_fields(record: ModuleRecord) -> Iterator[tuple[str, str, str, str]]:
    """
    Yield ``(organization, section, field, text)`` for every string leaf.

    Lists under a field yield one entry per string item.
    """
    tree = record.tree
    if not isinstance(tree, MapNode):
        return
    for org, org_node in tree.items():
        if not isinstance(org_node, MapNode):
            continue
        for section, section_node in org_node.items():
            if isinstance(section_node, MapNode):
                for field_name, node in section_node.items():
                    for _, scalar in node.walk((field_name,)):
                        text = scalar.text()
                        if text and text.strip():
                            yield org, section, field_name, text.strip()
            else:
                for _, scalar in section_node.walk((section,)):
                    text = scalar.text()
                    if text and text.strip():
                        yield org, section, section, text.strip()


def _has_temporal_keyword(text: str) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in TEMPORAL_KEYWORDS)


def _apply_rule(rule: FieldRule, inputs: NormalizedInputs) -> list[Pattern]:
    record = inputs.modules.get(rule.module)
    if record is None:
        return []

    patterns: list[Pattern] = []
    temporal_fields: set[tuple[str, str, str]] = set()
    named = {k.lower(): v for k, v in (rule.fields or {}).items()}

    for org, section, field_name, text in iter_fields(record):
        kind = None
        if named and field_name.lower() in named:
            kind = named[field_name.lower()]
        elif rule.any_long_text and len(text) > MIN_THEME_LENGTH:
            kind = rule.any_long_text
        elif rule.temporal_only and _has_temporal_keyword(text):
            # One signal per field
            key = (org, section, field_name)
            if key in temporal_fields:
                continue
            temporal_fields.add(key)
            kind = rule.temporal_only
        if kind is None:
            continue
        patterns.append(Pattern(
            text=text,
            field=field_name,
            source=rule.module,
            organization=org,
            kind=kind,
        ))
    return patterns


def _collect(rules: list[FieldRule], inputs: NormalizedInputs, cap: int) -> list[Pattern]:
    collected: list[Pattern] = []
    for rule in rules:
        collected.extend(_apply_rule(rule, inputs))
    return collected[:cap]


# =============================================================================
# Families
# =============================================================================


def extract_pressures(inputs: NormalizedInputs) -> list[Pattern]:
    return _collect(PRESSURE_RULES, inputs, PATTERN_CAPS["pressures"])


def extract_levers(inputs: NormalizedInputs) -> list[Pattern]:
    return _collect(LEVER_RULES, inputs, PATTERN_CAPS["levers"])


def extract_timing(inputs: NormalizedInputs) -> list[Pattern]:
    return _collect(TIMING_RULES, inputs, PATTERN_CAPS["timing"])


def extract_executives(inputs: NormalizedInputs) -> list[Pattern]:
    """Mission and vision statements, then leadership accountabilities."""
    executives: list[Pattern] = []
    nb1 = inputs.modules.get("NB1")
    if nb1 is not None:
        for org, _, field_name, text in iter_fields(nb1):
            if field_name.lower() in ("mission", "vision"):
                executives.append(Pattern(
                    text=text,
                    field="Organization",
                    source="NB1",
                    organization=org,
                    kind=field_name.lower(),
                ))
    nb11 = inputs.modules.get("NB11")
    if nb11 is not None:
        for org, _, field_name, text in iter_fields(nb11):
            if len(text) > MIN_THEME_LENGTH:
                executives.append(Pattern(
                    text=text,
                    field=field_name,
                    source="NB11",
                    organization=org,
                    kind="leadership",
                ))
    return executives[:PATTERN_CAPS["executives"]]


def extract_numeric_proofs(inputs: NormalizedInputs) -> list[Pattern]:
    """Every percentage or magnitude in any module, plus NB1 strategic metrics."""
    proofs: list[Pattern] = []
    for code, record in inputs.modules.items():
        if not _MODULE_CODE.match(code):
            continue
        for org, _, field_name, text in iter_fields(record):
            for match in NUMERIC_PATTERN.finditer(text):
                proofs.append(Pattern(
                    text=text[:NUMERIC_CONTEXT_LENGTH],
                    field=field_name,
                    source=code,
                    organization=org,
                    kind="percentage" if match.group(1) else "magnitude",
                    value=match.group(0).strip(),
                ))

    nb1 = inputs.modules.get("NB1")
    if nb1 is not None:
        whitelist = {f.lower() for f in STRATEGIC_METRIC_FIELDS}
        for org, _, field_name, text in iter_fields(nb1):
            if field_name.lower() in whitelist and any(ch.isdigit() for ch in text):
                proofs.append(Pattern(
                    text=text[:NUMERIC_CONTEXT_LENGTH],
                    field=field_name,
                    source="NB1",
                    organization=org,
                    kind="strategic_metric",
                ))
    return proofs


def extract_patterns(inputs: NormalizedInputs) -> PatternSet:
    """
    Extract all pattern families for a run.

    Args:
        inputs: Normalized inputs.

    Returns:
        PatternSet (recomputed per run, never cached).
    """
    patterns = PatternSet(
        pressures=extract_pressures(inputs),
        levers=extract_levers(inputs),
        timing=extract_timing(inputs),
        executives=extract_executives(inputs),
        numeric_proofs=extract_numeric_proofs(inputs),
    )
    logger.info(f"PATTERNS: {patterns.counts()}")
    return patterns
