"""Recovery strategies for phase failures.

This module decides, per phase, whether an error aborts the build or
degrades it, and what the pipeline does instead of the failed step.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from synthesis.errors.exceptions import (
    EnrichmentFailure,
    InputMissing,
    RebalancingFailure,
    RenderFailure,
    SectionContractViolation,
    SynthesisError,
)
from synthesis.state.enums import Phase

logger = logging.getLogger(__name__)


# =============================================================================
# Recovery Types
# =============================================================================


class RecoveryAction(str, Enum):
    """Actions that can be taken for recovery."""

    ABORT = "abort"                    # Raise the structured phase error
    KEEP_ORIGINAL = "keep_original"    # Continue with the unmodified input
    FALLBACK = "fallback"              # Substitute deterministic fallback content
    SKIP = "skip"                      # Record a warning and continue


# Phases whose failure aborts the build
HARD_FAIL_PHASES: frozenset[str] = frozenset({
    Phase.NORMALIZATION.value,
    Phase.PATTERNS.value,
    Phase.TARGET_BRIDGE.value,
    Phase.RENDER.value,
})


@dataclass
class RecoveryStrategy:
    """Strategy for recovering from an error.

    Attributes:
        action: The recovery action to take
        reason: Why this strategy was chosen
        params: Additional parameters for the action
    """

    action: RecoveryAction
    reason: str
    params: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "action": self.action.value,
            "reason": self.reason,
            "params": self.params,
        }


# =============================================================================
# Strategy Determination
# =============================================================================


def determine_recovery_strategy(
    error: Exception,
    phase: str,
    safe_mode: bool = False,
) -> RecoveryStrategy:
    """Determine the recovery strategy for an error raised in a phase.

    Args:
        error: The exception that occurred
        phase: Phase where the error occurred
        safe_mode: Whether section contract violations are downgraded

    Returns:
        Recovery strategy to use
    """
    if isinstance(error, (InputMissing, RenderFailure)):
        return RecoveryStrategy(
            action=RecoveryAction.ABORT,
            reason=f"{error.__class__.__name__} is fatal",
        )

    if isinstance(error, SectionContractViolation):
        if safe_mode:
            return RecoveryStrategy(
                action=RecoveryAction.FALLBACK,
                reason="Safe mode substitutes fallback content",
                params={"section": error.section},
            )
        return RecoveryStrategy(
            action=RecoveryAction.ABORT,
            reason="Section contract violated outside safe mode",
            params={"section": error.section},
        )

    if phase in HARD_FAIL_PHASES:
        return RecoveryStrategy(
            action=RecoveryAction.ABORT,
            reason=f"Phase '{phase}' is required for synthesis",
        )

    if isinstance(error, RebalancingFailure) or phase == Phase.REBALANCING.value:
        return RecoveryStrategy(
            action=RecoveryAction.KEEP_ORIGINAL,
            reason="Rebalancing falls back to the original inputs",
        )

    if isinstance(error, EnrichmentFailure):
        return RecoveryStrategy(
            action=RecoveryAction.SKIP,
            reason="Citation metadata stays unenriched",
            params={"batch_index": error.batch_index},
        )

    if phase == Phase.DRAFTING.value:
        return RecoveryStrategy(
            action=RecoveryAction.FALLBACK,
            reason="Section drafting substitutes fallback content",
        )

    recoverable = error.recoverable if isinstance(error, SynthesisError) else True
    if not recoverable:
        logger.warning(f"Unrecoverable error in degradable phase {phase}; continuing")

    return RecoveryStrategy(
        action=RecoveryAction.SKIP,
        reason=f"Phase '{phase}' degrades to a QA warning",
    )


def is_blocking(error: Exception, phase: str, safe_mode: bool = False) -> bool:
    """Return True if the error must abort the build."""
    strategy = determine_recovery_strategy(error, phase, safe_mode=safe_mode)
    return strategy.action == RecoveryAction.ABORT
