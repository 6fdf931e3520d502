"""Post-run diagnostics.

Checks a run's artifacts, phase coverage and phase timing, applies the
predictive anomaly rules, and assigns an overall health status. The report
is stored per run, overwriting any earlier one. Diagnostics never raise: an
internal failure produces a FAILED report with a ``diagnostic_error`` issue.
"""

import logging
from typing import Any

from synthesis.errors.exceptions import DiagnosticsFailure
from synthesis.errors.handlers import log_error_with_context
from synthesis.memory.base import ArtifactStore, TelemetrySink
from synthesis.state.enums import PHASE_TRACE_KIND, HealthStatus, PhaseStatus
from synthesis.state.models import DiagnosticsIssue, DiagnosticsReport

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

EXPECTED_PHASES: tuple[str, ...] = (
    "normalization",
    "rebalancing",
    "validation",
    "drafting",
    "bundle",
)

EXPECTED_ARTIFACTS: tuple[str, ...] = (
    "normalized_inputs",
    "diversity_metrics",
    "final_bundle",
)

# Expected phase duration range, milliseconds
PERFORMANCE_THRESHOLDS: dict[str, dict[str, int]] = {
    "normalization": {"min": 100, "max": 30000},
    "rebalancing": {"min": 50, "max": 15000},
    "validation": {"min": 10, "max": 5000},
    "drafting": {"min": 1000, "max": 120000},
    "bundle": {"min": 100, "max": 10000},
}

# Rule A
BYPASS_MIN_MODULES = 10
BYPASS_MAX_CITATIONS = 5

# Rule B
FAST_VALIDATION_MS = 1000

# Rule C
DIVERSITY_LOOKBACK_RUNS = 5
DIVERSITY_ZERO_RUNS = 3

DIAGNOSTICS_ARTIFACT = "diagnostics_report"


def health_summary(status: HealthStatus, issue_count: int, warning_count: int) -> str:
    """Human-readable summary of a health status."""
    if status == HealthStatus.OK:
        return "Run completed successfully with no detected issues."
    if status == HealthStatus.DEGRADED:
        return f"Run completed with {warning_count} warning(s). Some components may not be optimal."
    return (
        f"Run encountered {issue_count} critical issue(s) and {warning_count} warning(s). "
        "Manual review required."
    )


def _is_empty_payload(payload: Any) -> bool:
    if isinstance(payload, (str, list, dict, tuple, set)):
        return len(payload) == 0
    return False


class DiagnosticsService:
    """
    Assess the health of a synthesis run.

    Example:
        service = DiagnosticsService(artifacts, telemetry)
        report = service.run_diagnostics(run_id)
        if report.health == HealthStatus.FAILED:
            ...
    """

    def __init__(self, artifacts: ArtifactStore, telemetry: TelemetrySink):
        self.artifacts = artifacts
        self.telemetry = telemetry

    def run_diagnostics(self, run_id: str) -> DiagnosticsReport:
        """
        Run every diagnostic check on a run.

        Args:
            run_id: Run to diagnose.

        Returns:
            DiagnosticsReport; FAILED with a ``diagnostic_error`` issue when
            the diagnostics themselves fail.
        """
        try:
            report = self._diagnose(run_id)
        except Exception as e:
            error = DiagnosticsFailure(f"Diagnostics failed: {e}", run_id=run_id)
            log_error_with_context(error, phase="diagnostics", level=logging.WARNING)
            report = DiagnosticsReport(
                run_id=run_id,
                health=HealthStatus.FAILED,
                summary=f"Diagnostics failed: {e}",
                issues=[
                    DiagnosticsIssue(
                        category="diagnostics",
                        issue="diagnostic_error",
                        description=str(e)[:200],
                        severity="critical",
                    )
                ],
            )

        self._store(run_id, report)
        logger.info(f"DIAGNOSTICS: run {run_id} health {report.health.value}")
        return report

    def _diagnose(self, run_id: str) -> DiagnosticsReport:
        phase_records = self._phase_records(run_id)
        artifacts = self.check_artifacts(run_id)
        phases = self.check_phase_coverage(phase_records)
        performance = self.check_performance(phase_records)
        alerts = self.detect_anomalies(run_id, phase_records)

        issues: list[DiagnosticsIssue] = []
        warnings: list[DiagnosticsIssue] = []
        health = HealthStatus.OK

        if artifacts["missing"]:
            health = HealthStatus.FAILED
            issues.append(DiagnosticsIssue(
                category="artifacts",
                issue="missing_artifacts",
                description=f"Missing: {', '.join(artifacts['missing'])}",
                severity="critical",
            ))
        elif artifacts["corrupted"]:
            warnings.append(DiagnosticsIssue(
                category="artifacts",
                issue="corrupted_artifacts",
                description=f"Corrupted: {', '.join(artifacts['corrupted'])}",
                severity="medium",
            ))

        if phases["skipped"]:
            health = HealthStatus.FAILED
            issues.append(DiagnosticsIssue(
                category="phases",
                issue="incomplete_phases",
                description=f"Skipped: {', '.join(phases['skipped'])}",
                severity="critical",
            ))
        elif phases["zero_duration"]:
            warnings.append(DiagnosticsIssue(
                category="phases",
                issue="zero_duration_phases",
                description=f"Zero duration: {', '.join(phases['zero_duration'])}",
                severity="medium",
            ))

        if performance["anomalies"]:
            warnings.append(DiagnosticsIssue(
                category="performance",
                issue="performance_anomalies",
                description=f"Anomalous phases: {len(performance['anomalies'])}",
                severity="medium",
            ))

        warnings.extend(alerts)

        if health != HealthStatus.FAILED and warnings:
            health = HealthStatus.DEGRADED

        return DiagnosticsReport(
            run_id=run_id,
            health=health,
            summary=health_summary(health, len(issues), len(warnings)),
            artifacts=artifacts,
            phases=phases,
            performance=performance,
            alerts=alerts,
            issues=issues,
            warnings=warnings,
        )

    # =========================================================================
    # Checks
    # =========================================================================

    def _phase_records(self, run_id: str) -> dict[str, dict[str, Any]]:
        """Latest phase trace record per phase name."""
        records: dict[str, dict[str, Any]] = {}
        for trace in self.telemetry.traces(run_id):
            if trace.get("kind") == PHASE_TRACE_KIND and trace.get("phase"):
                records[trace["phase"]] = trace
        return records

    def check_artifacts(self, run_id: str) -> dict[str, Any]:
        found, missing, corrupted = [], [], []
        details: dict[str, Any] = {}
        for name in EXPECTED_ARTIFACTS:
            try:
                payload = self.artifacts.load_artifact(run_id, name)
            except Exception as e:
                corrupted.append(name)
                details[name] = {"status": "error", "reason": str(e)[:200]}
                continue
            if payload is None:
                missing.append(name)
                details[name] = {"status": "missing"}
            elif _is_empty_payload(payload):
                corrupted.append(name)
                details[name] = {"status": "corrupted", "reason": "empty_data"}
            else:
                found.append(name)
                details[name] = {"status": "found", "type": type(payload).__name__}
        return {"found": found, "missing": missing, "corrupted": corrupted, "details": details}

    def check_phase_coverage(self, records: dict[str, dict[str, Any]]) -> dict[str, Any]:
        completed, skipped, zero_duration = [], [], []
        for phase in EXPECTED_PHASES:
            record = records.get(phase)
            if record is None:
                skipped.append(phase)
            elif record.get("duration_ms", 0) == 0 and record.get("status") != PhaseStatus.ERROR.value:
                zero_duration.append(phase)
            else:
                completed.append(phase)
        return {"completed": completed, "skipped": skipped, "zero_duration": zero_duration}

    def check_performance(self, records: dict[str, dict[str, Any]]) -> dict[str, Any]:
        phase_performance: dict[str, Any] = {}
        anomalies: list[dict[str, Any]] = []
        total = 0
        for phase, record in records.items():
            duration = record.get("duration_ms", 0)
            total += duration
            thresholds = PERFORMANCE_THRESHOLDS.get(phase)
            if thresholds is None:
                continue
            status = "normal"
            if duration < thresholds["min"]:
                status = "too_fast"
            elif duration > thresholds["max"]:
                status = "too_slow"
            phase_performance[phase] = {"duration_ms": duration, "status": status, "thresholds": thresholds}
            if status != "normal":
                anomalies.append({"phase": phase, "type": status, "duration_ms": duration})
        return {"total_duration_ms": total, "phases": phase_performance, "anomalies": anomalies}

    def detect_anomalies(
        self,
        run_id: str,
        records: dict[str, dict[str, Any]],
    ) -> list[DiagnosticsIssue]:
        """Predictive alerts from heuristic rules A, B and C."""
        alerts: list[DiagnosticsIssue] = []

        # Rule A: many completed modules but few citations
        normalized = self.artifacts.load_artifact(run_id, "normalized_inputs") or {}
        stats = normalized.get("stats", {}) if isinstance(normalized, dict) else {}
        modules = stats.get("completed_count", 0)
        citations = stats.get("citation_count", 0)
        if modules >= BYPASS_MIN_MODULES and citations < BYPASS_MAX_CITATIONS:
            alerts.append(DiagnosticsIssue(
                category="predictive",
                issue="normalization_bypass_suspected",
                description=(
                    "Modules completed but low citation count suggests normalization "
                    "may have been bypassed"
                ),
                severity="high",
                confidence=min(90, 10 * modules - 5 * citations),
            ))

        # Rule B: validation finished suspiciously fast
        validation = records.get("validation")
        if validation is not None and validation.get("duration_ms", 0) < FAST_VALIDATION_MS:
            duration = validation.get("duration_ms", 0)
            alerts.append(DiagnosticsIssue(
                category="predictive",
                issue="empty_artifact_probable",
                description="Validation completed unusually quickly, indicating a possible empty artifact",
                severity="high",
                confidence=min(95, 100 - duration / 10),
            ))

        # Rule C: diversity score zero across recent runs
        recent = self.telemetry.recent_metric("diversity_score", DIVERSITY_LOOKBACK_RUNS)
        zero_count = sum(1 for value in recent if value == 0)
        if zero_count >= DIVERSITY_ZERO_RUNS:
            alerts.append(DiagnosticsIssue(
                category="predictive",
                issue="diversity_calculation_failure",
                description="Diversity metrics are consistently zero, suggesting calculation issues",
                severity="high",
                confidence=min(95, 25 * zero_count),
            ))

        return alerts

    def _store(self, run_id: str, report: DiagnosticsReport) -> None:
        try:
            self.artifacts.save_artifact(
                run_id,
                "diagnostics",
                DIAGNOSTICS_ARTIFACT,
                report.model_dump(mode="json"),
                persistent=True,
            )
        except Exception as e:
            logger.warning(f"DIAGNOSTICS: failed to store report for run {run_id}: {e}")

    def get_diagnostics(self, run_id: str) -> DiagnosticsReport | None:
        """Return the stored report of a run, or None."""
        payload = self.artifacts.load_artifact(run_id, DIAGNOSTICS_ARTIFACT)
        if payload is None:
            return None
        return DiagnosticsReport.model_validate(payload)
