"""Error handlers for graceful error management.

This module provides error handling functions for pipeline phases,
turning errors in degradable phases into QA warnings and building the
structured error surfaced by hard-fail phases.
"""

import logging
import traceback
from datetime import datetime, timezone
from typing import Any

from synthesis.errors.exceptions import (
    DiagnosticsFailure,
    EnrichmentFailure,
    InputMissing,
    RebalancingFailure,
    RenderFailure,
    SectionContractViolation,
    SynthesisError,
    SynthesisPhaseError,
)
from synthesis.state.models import QAWarning

logger = logging.getLogger(__name__)


# =============================================================================
# Error Response Creation
# =============================================================================


def create_error_response(
    error: Exception,
    phase: str | None = None,
    include_traceback: bool = False,
) -> dict[str, Any]:
    """Create a standardized error response dictionary.

    Args:
        error: The exception that occurred
        phase: Phase where the error occurred
        include_traceback: Whether to include full traceback

    Returns:
        Standardized error response dictionary
    """
    if isinstance(error, SynthesisError):
        response = {
            "error_type": error.__class__.__name__,
            "message": error.message,
            "details": error.details,
            "recoverable": error.recoverable,
        }
    else:
        response = {
            "error_type": error.__class__.__name__,
            "message": str(error),
            "details": {},
            "recoverable": True,  # Assume recoverable for unknown errors
        }

    if phase:
        response["phase"] = phase

    response["category"] = detect_error_category(error)
    response["timestamp"] = datetime.now(timezone.utc).isoformat()

    if include_traceback:
        response["traceback"] = traceback.format_exc()

    return response


def detect_error_category(error: Exception) -> str:
    """Detect error category from exception type.

    Args:
        error: The exception

    Returns:
        Category string
    """
    if isinstance(error, SynthesisPhaseError):
        return "phase_error"
    elif isinstance(error, InputMissing):
        return "input_missing"
    elif isinstance(error, SectionContractViolation):
        return "section_contract"
    elif isinstance(error, EnrichmentFailure):
        return "enrichment_error"
    elif isinstance(error, RebalancingFailure):
        return "rebalancing_error"
    elif isinstance(error, RenderFailure):
        return "render_error"
    elif isinstance(error, DiagnosticsFailure):
        return "diagnostics_error"
    elif isinstance(error, SynthesisError):
        return "synthesis_error"
    elif isinstance(error, (TimeoutError, ConnectionError)):
        return "connection_error"
    else:
        return "unknown_error"


# =============================================================================
# Error Logging
# =============================================================================


def log_error_with_context(
    error: Exception,
    phase: str | None = None,
    context: dict[str, Any] | None = None,
    level: int = logging.ERROR,
) -> None:
    """Log an error with full context.

    Args:
        error: The exception that occurred
        phase: Phase where the error occurred
        context: Additional context to log
        level: Logging level (default: ERROR)
    """
    parts = [f"Error: {error.__class__.__name__}: {error}"]

    if phase:
        parts.append(f"Phase: {phase}")

    if isinstance(error, SynthesisError):
        if error.details:
            parts.append(f"Details: {error.details}")
        parts.append(f"Recoverable: {error.recoverable}")

    if context:
        parts.append(f"Context: {context}")

    message = " | ".join(parts)

    logger.log(level, message)

    # Log traceback at debug level
    logger.debug(f"Traceback:\n{traceback.format_exc()}")


# =============================================================================
# Phase Error Handling
# =============================================================================


def handle_phase_error(
    error: Exception,
    phase: str,
    section: str | None = None,
    context: dict[str, Any] | None = None,
) -> QAWarning:
    """Handle an error in a degradable phase.

    Logs the error at WARNING level and converts it into a QA warning so
    the build can continue.

    Args:
        error: The exception that occurred
        phase: Phase where the error occurred
        section: Section the warning belongs to (defaults to the phase)
        context: Additional context to log

    Returns:
        QAWarning describing the failure
    """
    log_error_with_context(error, phase=phase, context=context, level=logging.WARNING)
    message = error.message if isinstance(error, SynthesisError) else str(error)
    return QAWarning(
        section=section or phase,
        warning=f"{phase} failed: {message[:200]}",
    )


def build_phase_error(
    error: Exception,
    run_id: str,
    phase: str,
    operation: str,
    module_keys: list[str] | None = None,
) -> SynthesisPhaseError:
    """Wrap an error from a hard-fail phase into the structured build error."""
    if isinstance(error, SynthesisPhaseError):
        return error
    inner = error.message if isinstance(error, SynthesisError) else str(error)
    phase_error = SynthesisPhaseError(
        run_id=run_id,
        phase=phase,
        operation=operation,
        module_keys=module_keys,
        inner=inner,
        details={"category": detect_error_category(error)},
    )
    log_error_with_context(phase_error, phase=phase)
    return phase_error
