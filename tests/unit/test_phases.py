"""Tests for phase timing and anomaly classification."""

import pytest

from synthesis.graphs.phases import PhaseTimer, classify_anomalies, phase_status, timed_phase
from synthesis.state.enums import AnomalySeverity, Phase, PhaseStatus
from synthesis.state.models import Anomaly, DiagnosticsContext


# =============================================================================
# Anomaly Classification Tests
# =============================================================================


class TestClassifyAnomalies:
    """Tests for classify_anomalies."""

    @pytest.mark.parametrize("phase,data,issue", [
        ("normalization", {"module_count": 0}, "empty_nb_data"),
        ("normalization", {"module_count": 4}, "insufficient_nb_data"),
        ("rebalancing", {"citation_count": 2}, "low_citation_count"),
        ("validation", {"canonical_keys": []}, "validation_failure"),
        ("drafting", {"section_count": 5}, "incomplete_sections"),
        ("bundle", {"html": True, "json": False}, "missing_artifacts"),
    ])
    def test_issues(self, phase, data, issue):
        """Test each phase rule reports its issue."""
        anomalies = classify_anomalies(phase, data)
        assert [a.issue for a in anomalies] == [issue]

    def test_healthy_phases(self):
        """Test healthy data produces no anomalies."""
        assert classify_anomalies("normalization", {"module_count": 15}) == []
        assert classify_anomalies("drafting", {"section_count": 9}) == []
        assert classify_anomalies("bundle", {"html": True, "json": True}) == []

    def test_unclassified_phase(self):
        """Test phases without rules never report anomalies."""
        assert classify_anomalies("voice_enforcement", None) == []

    def test_severities(self):
        """Test validation and bundle failures are errors."""
        assert classify_anomalies("validation", {})[0].type == AnomalySeverity.ERROR
        assert classify_anomalies("rebalancing", {})[0].type == AnomalySeverity.WARNING

    def test_phase_status(self):
        """Test status follows the most severe anomaly."""
        warning = Anomaly(type=AnomalySeverity.WARNING, issue="w", description="")
        error = Anomaly(type=AnomalySeverity.ERROR, issue="e", description="")
        assert phase_status([]) == PhaseStatus.SUCCESS
        assert phase_status([warning]) == PhaseStatus.WARNING
        assert phase_status([warning, error]) == PhaseStatus.ERROR


# =============================================================================
# Phase Timer Tests
# =============================================================================


class TestPhaseTimer:
    """Tests for PhaseTimer."""

    def test_finish_records_phase(self, telemetry):
        """Test finishing a phase logs start, end and a phase trace."""
        timer = PhaseTimer("run-1", "normalization", telemetry).start()
        record = timer.finish({"module_count": 4})

        assert record.phase == "normalization"
        assert record.status == PhaseStatus.WARNING
        assert record.duration_ms >= 0
        assert record.notes == {"module_count": 4}

        events = telemetry.phase_events("run-1")
        assert [e["event"] for e in events] == ["start", "end"]
        traces = telemetry.traces("run-1")
        assert traces[0]["kind"] == "phase"
        assert traces[0]["phase"] == "normalization"
        assert traces[0]["anomalies"][0]["issue"] == "insufficient_nb_data"

    def test_fail(self, telemetry):
        """Test a failed phase is an error with the exception type noted."""
        timer = PhaseTimer("run-1", "patterns", telemetry).start()
        record = timer.fail(ValueError("bad payload"))
        assert record.status == PhaseStatus.ERROR
        assert record.notes == {"error": "ValueError"}
        assert record.anomalies[0].description == "bad payload"

    def test_without_telemetry(self):
        """Test timing works without a telemetry sink or start call."""
        record = PhaseTimer("run-1", "render").finish()
        assert record.status == PhaseStatus.SUCCESS

    def test_telemetry_errors_ignored(self):
        """Test a broken telemetry sink never fails the phase."""
        class BrokenTelemetry:
            def log_phase_start(self, run_id, phase):
                raise RuntimeError("down")

            def log_phase_end(self, run_id, phase, record=None):
                raise RuntimeError("down")

        record = PhaseTimer("run-1", "render", BrokenTelemetry()).start().finish()
        assert record.status == PhaseStatus.SUCCESS


# =============================================================================
# Timed Node Tests
# =============================================================================


class TestTimedPhase:
    """Tests for the timed_phase decorator."""

    def test_wraps_updates(self):
        """Test the node update gains the phase record."""
        context = DiagnosticsContext(run_id="run-1")

        @timed_phase(Phase.DRAFTING, "run-1", context)
        def drafting(state):
            return {"sections": ["a"]}, {"section_count": 9}

        updates = drafting({})
        assert updates["sections"] == ["a"]
        assert updates["phases"][0].phase == "drafting"
        assert context.phases == updates["phases"]
        assert context.last_checkpoint == "drafting"
        assert drafting.__name__ == "drafting"

    def test_failure_recorded_and_raised(self):
        """Test a raising node records a failed phase and propagates."""
        context = DiagnosticsContext(run_id="run-1")

        @timed_phase(Phase.PATTERNS, "run-1", context)
        def patterns(state):
            raise KeyError("inputs")

        with pytest.raises(KeyError):
            patterns({})
        assert context.phase("patterns").status == PhaseStatus.ERROR
        assert context.last_checkpoint == "patterns"
