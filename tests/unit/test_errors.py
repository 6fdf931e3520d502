"""Tests for error handling and recovery module.

This module tests:
- Custom exception hierarchy
- Error handlers
- Recovery strategies
"""

import logging

import pytest

from synthesis.errors import (
    # Exceptions
    SynthesisError,
    InputMissing,
    SectionContractViolation,
    EnrichmentFailure,
    RebalancingFailure,
    RenderFailure,
    DiagnosticsFailure,
    SynthesisPhaseError,
    # Handlers
    build_phase_error,
    create_error_response,
    detect_error_category,
    handle_phase_error,
    log_error_with_context,
    # Recovery
    HARD_FAIL_PHASES,
    RecoveryAction,
    determine_recovery_strategy,
    is_blocking,
)
from synthesis.state.models import QAWarning


# =============================================================================
# Exception Tests
# =============================================================================


class TestSynthesisError:
    """Tests for the base SynthesisError exception."""

    def test_basic_creation(self):
        """Test creating a basic SynthesisError."""
        error = SynthesisError("Test error")
        assert str(error) == "Test error"
        assert error.message == "Test error"
        assert error.details == {}

    def test_with_recoverable_flag(self):
        """Test SynthesisError with recoverable flag."""
        error = SynthesisError("Test error", recoverable=True)
        assert error.recoverable is True

    def test_to_dict(self):
        """Test conversion to dictionary."""
        error = SynthesisError("Test error", details={"key": "value"})
        result = error.to_dict()
        assert result["type"] == "SynthesisError"
        assert result["message"] == "Test error"
        assert result["details"] == {"key": "value"}


class TestSpecificErrors:
    """Tests for the specific error types."""

    def test_input_missing_is_fatal(self):
        """InputMissing carries the run id and is not recoverable."""
        error = InputMissing("No modules", run_id="run-1")
        assert error.details["run_id"] == "run-1"
        assert error.recoverable is False

    def test_section_contract_violation(self):
        """SectionContractViolation records section and constraint."""
        error = SectionContractViolation(
            "too few items", section="risk_signals", constraint="min 3", word_count=12
        )
        assert error.section == "risk_signals"
        assert error.details["constraint"] == "min 3"
        assert error.details["word_count"] == 12

    def test_enrichment_failure_is_recoverable(self):
        """EnrichmentFailure is recoverable and records the batch."""
        error = EnrichmentFailure("timeout", batch_index=2, batch_size=20)
        assert error.recoverable is True
        assert error.details == {"batch_index": 2, "batch_size": 20}

    def test_render_failure_format(self):
        """RenderFailure records the output format."""
        error = RenderFailure("bad", output_format="html")
        assert error.details["format"] == "html"
        assert error.recoverable is False

    def test_diagnostics_failure_is_recoverable(self):
        """DiagnosticsFailure never blocks a build."""
        assert DiagnosticsFailure("x", run_id="run-1").recoverable is True

    def test_phase_error_truncates_inner(self):
        """SynthesisPhaseError keeps at most 200 characters of the inner message."""
        error = SynthesisPhaseError(
            run_id="run-1",
            phase="patterns",
            operation="extract_patterns",
            module_keys=["NB1", "NB2"],
            inner="x" * 500,
        )
        assert len(error.inner) == 200
        assert error.details["phase"] == "patterns"
        assert error.details["module_keys"] == ["NB1", "NB2"]
        assert "patterns" in error.message
        assert "extract_patterns" in error.message


# =============================================================================
# Handler Tests
# =============================================================================


class TestHandlers:
    """Tests for error handler functions."""

    def test_handle_phase_error_returns_warning(self):
        """A degradable phase error becomes a QA warning."""
        warning = handle_phase_error(ValueError("boom"), "coherence")
        assert isinstance(warning, QAWarning)
        assert warning.section == "coherence"
        assert "coherence failed: boom" in warning.warning

    def test_handle_phase_error_with_section(self):
        """The warning can be attributed to a section."""
        warning = handle_phase_error(
            EnrichmentFailure("resolver down", batch_index=0), "citation_enrichment", section="citations"
        )
        assert warning.section == "citations"
        assert "resolver down" in warning.warning

    def test_build_phase_error(self):
        """build_phase_error wraps the inner error with phase context."""
        error = build_phase_error(KeyError("NB1"), "run-1", "patterns", "extract_patterns", ["NB1"])
        assert isinstance(error, SynthesisPhaseError)
        assert error.run_id == "run-1"
        assert error.operation == "extract_patterns"
        assert error.details["category"] == "unknown_error"

    def test_build_phase_error_passthrough(self):
        """An existing phase error is returned unchanged."""
        original = SynthesisPhaseError("run-1", "render", "render_html")
        assert build_phase_error(original, "run-2", "bundle", "x") is original

    def test_create_error_response_synthesis_error(self):
        """Test error response for synthesis errors."""
        error = RenderFailure("broken", output_format="markdown")
        response = create_error_response(error, phase="render")
        assert response["error_type"] == "RenderFailure"
        assert response["phase"] == "render"
        assert response["category"] == "render_error"
        assert response["recoverable"] is False

    def test_create_error_response_generic_error(self):
        """Test error response for generic errors."""
        response = create_error_response(ValueError("Generic error"))
        assert response["error_type"] == "ValueError"
        assert response["recoverable"] is True

    @pytest.mark.parametrize("error,category", [
        (InputMissing("x"), "input_missing"),
        (SectionContractViolation("x", section="s"), "section_contract"),
        (RebalancingFailure("x"), "rebalancing_error"),
        (DiagnosticsFailure("x"), "diagnostics_error"),
        (TimeoutError("x"), "connection_error"),
    ])
    def test_detect_error_category(self, error, category):
        """Each error type maps to its category."""
        assert detect_error_category(error) == category

    def test_log_error_with_context(self, caplog):
        """Log messages join their parts with a pipe."""
        with caplog.at_level(logging.WARNING):
            log_error_with_context(
                RebalancingFailure("bad pool", details={"run_id": "r"}),
                phase="rebalancing",
                level=logging.WARNING,
            )
        assert "Phase: rebalancing | " in caplog.text
        assert "Recoverable: True" in caplog.text


# =============================================================================
# Recovery Tests
# =============================================================================


class TestRecoveryStrategies:
    """Tests for recovery strategy determination."""

    def test_hard_fail_phases(self):
        """Normalization, patterns, bridge and render abort the build."""
        assert HARD_FAIL_PHASES == {"normalization", "patterns", "target_bridge", "render"}
        for phase in HARD_FAIL_PHASES:
            assert is_blocking(RuntimeError("x"), phase)

    def test_input_missing_aborts(self):
        """InputMissing aborts in any phase."""
        strategy = determine_recovery_strategy(InputMissing("x"), "drafting")
        assert strategy.action == RecoveryAction.ABORT

    def test_contract_violation_outside_safe_mode(self):
        """A contract violation aborts outside safe mode."""
        error = SectionContractViolation("x", section="growth_levers")
        assert determine_recovery_strategy(error, "drafting").action == RecoveryAction.ABORT

    def test_contract_violation_in_safe_mode(self):
        """Safe mode substitutes fallback content instead."""
        error = SectionContractViolation("x", section="growth_levers")
        strategy = determine_recovery_strategy(error, "drafting", safe_mode=True)
        assert strategy.action == RecoveryAction.FALLBACK
        assert strategy.params["section"] == "growth_levers"

    def test_rebalancing_keeps_original(self):
        """Rebalancing errors keep the original inputs."""
        strategy = determine_recovery_strategy(ValueError("x"), "rebalancing")
        assert strategy.action == RecoveryAction.KEEP_ORIGINAL

    def test_degradable_phase_skips(self):
        """Errors in optional phases only record a warning."""
        for phase in ("voice_enforcement", "coherence", "citation_enrichment", "self_check"):
            assert not is_blocking(RuntimeError("x"), phase)

    def test_strategy_to_dict(self):
        """Strategies serialize with their action value."""
        strategy = determine_recovery_strategy(EnrichmentFailure("x", batch_index=1), "citation_enrichment")
        result = strategy.to_dict()
        assert result["action"] == "skip"
        assert result["params"] == {"batch_index": 1}
