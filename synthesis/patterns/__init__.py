"""Pattern extraction and bridge building."""

from synthesis.patterns.bridge import MAX_BRIDGE_ITEMS, build_bridge
from synthesis.patterns.extractor import (
    PATTERN_CAPS,
    TEMPORAL_KEYWORDS,
    extract_executives,
    extract_levers,
    extract_numeric_proofs,
    extract_patterns,
    extract_pressures,
    extract_timing,
    iter_fields,
)

__all__ = [
    "MAX_BRIDGE_ITEMS",
    "build_bridge",
    "PATTERN_CAPS",
    "TEMPORAL_KEYWORDS",
    "extract_executives",
    "extract_levers",
    "extract_numeric_proofs",
    "extract_patterns",
    "extract_pressures",
    "extract_timing",
    "iter_fields",
]
