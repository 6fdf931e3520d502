"""Post-run diagnostics and health assessment."""

from synthesis.diagnostics.service import (
    EXPECTED_ARTIFACTS,
    EXPECTED_PHASES,
    PERFORMANCE_THRESHOLDS,
    DiagnosticsService,
    health_summary,
)

__all__ = [
    "EXPECTED_ARTIFACTS",
    "EXPECTED_PHASES",
    "PERFORMANCE_THRESHOLDS",
    "DiagnosticsService",
    "health_summary",
]
