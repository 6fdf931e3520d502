"""Error handling and recovery for the synthesis engine.

This module provides:
- Custom exception types for pipeline errors
- Error handlers for graceful degradation
- Recovery strategies that separate hard-fail from degradable phases
"""

from synthesis.errors.exceptions import (
    SynthesisError,
    InputMissing,
    SectionContractViolation,
    EnrichmentFailure,
    RebalancingFailure,
    RenderFailure,
    DiagnosticsFailure,
    SynthesisPhaseError,
)
from synthesis.errors.handlers import (
    build_phase_error,
    create_error_response,
    detect_error_category,
    handle_phase_error,
    log_error_with_context,
)
from synthesis.errors.recovery import (
    HARD_FAIL_PHASES,
    RecoveryAction,
    RecoveryStrategy,
    determine_recovery_strategy,
    is_blocking,
)

__all__ = [
    # Exceptions
    "SynthesisError",
    "InputMissing",
    "SectionContractViolation",
    "EnrichmentFailure",
    "RebalancingFailure",
    "RenderFailure",
    "DiagnosticsFailure",
    "SynthesisPhaseError",
    # Handlers
    "build_phase_error",
    "create_error_response",
    "detect_error_category",
    "handle_phase_error",
    "log_error_with_context",
    # Recovery
    "HARD_FAIL_PHASES",
    "RecoveryAction",
    "RecoveryStrategy",
    "determine_recovery_strategy",
    "is_blocking",
]
