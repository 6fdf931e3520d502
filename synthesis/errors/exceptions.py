"""Custom exception types for the synthesis engine.

This module defines a hierarchy of exceptions for categorizing errors
throughout the synthesis pipeline, so that hard-fail phases can abort
with a structured error while degradable phases turn errors into
QA warnings.
"""

from typing import Any


class SynthesisError(Exception):
    """Base exception for all synthesis errors.

    Attributes:
        message: Human-readable error description
        details: Additional error context
        recoverable: Whether the pipeline can continue after this error
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
        recoverable: bool = True,
    ):
        self.message = message
        self.details = details or {}
        self.recoverable = recoverable
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for logging/serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
        }


# =============================================================================
# Input Errors
# =============================================================================


class InputMissing(SynthesisError):
    """No usable analysis modules exist for the run.

    Fatal: the pipeline cannot draft anything without inputs.
    """

    def __init__(
        self,
        message: str,
        run_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if run_id:
            details["run_id"] = run_id
        super().__init__(message, details, recoverable=False)
        self.run_id = run_id


# =============================================================================
# Drafting Errors
# =============================================================================


class SectionContractViolation(SynthesisError):
    """A drafted section breaks its shape contract.

    Fatal unless the pipeline runs in safe mode, where the violation
    is downgraded to a warning and fallback text is substituted.
    """

    def __init__(
        self,
        message: str,
        section: str,
        constraint: str | None = None,
        word_count: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details["section"] = section
        if constraint:
            details["constraint"] = constraint
        if word_count is not None:
            details["word_count"] = word_count
        super().__init__(message, details, recoverable=False)
        self.section = section
        self.constraint = constraint
        self.word_count = word_count


# =============================================================================
# Citation Errors
# =============================================================================


class EnrichmentFailure(SynthesisError):
    """A citation metadata resolver batch failed."""

    def __init__(
        self,
        message: str,
        batch_index: int | None = None,
        batch_size: int | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if batch_index is not None:
            details["batch_index"] = batch_index
        if batch_size is not None:
            details["batch_size"] = batch_size
        super().__init__(
            message,
            details,
            recoverable=True,  # Enrichment only improves metadata
        )
        self.batch_index = batch_index
        self.batch_size = batch_size


class RebalancingFailure(SynthesisError):
    """Source diversity rebalancing failed; original inputs are kept."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message, details, recoverable=True)


# =============================================================================
# Output Errors
# =============================================================================


class RenderFailure(SynthesisError):
    """The final document could not be rendered."""

    def __init__(
        self,
        message: str,
        output_format: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if output_format:
            details["format"] = output_format
        super().__init__(message, details, recoverable=False)
        self.output_format = output_format


class DiagnosticsFailure(SynthesisError):
    """Post-run diagnostics raised; never blocks the build."""

    def __init__(
        self,
        message: str,
        run_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if run_id:
            details["run_id"] = run_id
        super().__init__(message, details, recoverable=True)
        self.run_id = run_id


# =============================================================================
# Pipeline Errors
# =============================================================================


class SynthesisPhaseError(SynthesisError):
    """Structured error surfaced by a failed build.

    Carries the run id, failing phase and operation, the module keys seen
    so far, and the inner error message truncated to 200 characters.
    """

    def __init__(
        self,
        run_id: str,
        phase: str,
        operation: str,
        module_keys: list[str] | None = None,
        inner: str = "",
        details: dict[str, Any] | None = None,
    ):
        inner = (inner or "")[:200]  # Truncate
        module_keys = list(module_keys or [])
        details = details or {}
        details.update({
            "run_id": run_id,
            "phase": phase,
            "operation": operation,
            "module_keys": module_keys,
            "inner": inner,
        })
        message = f"Synthesis failed in phase '{phase}' ({operation}): {inner}"
        super().__init__(message, details, recoverable=False)
        self.run_id = run_id
        self.phase = phase
        self.operation = operation
        self.module_keys = module_keys
        self.inner = inner
