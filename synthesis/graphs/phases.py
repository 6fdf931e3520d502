"""Phase timing and anomaly classification for the synthesis pipeline.

Every graph node runs inside a ``PhaseTimer``. The timer records start and
end timestamps, classifies anomalies from the data the phase produced, and
reports the record to telemetry on a best-effort basis.
"""

import logging
import time
from functools import wraps
from typing import Any, Callable

from synthesis.memory.base import TelemetrySink
from synthesis.state.enums import PHASE_TRACE_KIND, AnomalySeverity, Phase, PhaseStatus
from synthesis.state.models import Anomaly, DiagnosticsContext, PhaseRecord

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Fewer modules than this after normalization is reported as insufficient
MIN_MODULES_FOR_FULL_REPORT = 10

# Fewer citations than this after rebalancing is reported as low
MIN_CITATIONS = 5

# Fewer drafted sections than this is reported as incomplete
MIN_SECTIONS = 8


def now_ms() -> int:
    """Current wall-clock time in milliseconds."""
    return int(time.time() * 1000)


# =============================================================================
# Anomaly Classification
# =============================================================================


def _anomaly(severity: AnomalySeverity, issue: str, description: str) -> Anomaly:
    return Anomaly(type=severity, issue=issue, description=description)


def classify_anomalies(phase: str, data: dict[str, Any] | None) -> list[Anomaly]:
    """
    Classify anomalies from the data a phase produced.

    Args:
        phase: Phase name.
        data: Phase summary. Keys read per phase:
            normalization ``module_count``; rebalancing ``citation_count``;
            validation ``canonical_keys``; drafting ``section_count``;
            bundle ``html`` and ``json``.

    Returns:
        List of anomalies, empty when the phase looks healthy.
    """
    data = data or {}
    anomalies: list[Anomaly] = []

    if phase == Phase.NORMALIZATION.value:
        module_count = data.get("module_count", 0)
        if module_count == 0:
            anomalies.append(_anomaly(
                AnomalySeverity.WARNING, "empty_nb_data",
                "No module data found during normalization",
            ))
        elif module_count < MIN_MODULES_FOR_FULL_REPORT:
            anomalies.append(_anomaly(
                AnomalySeverity.WARNING, "insufficient_nb_data",
                f"Less than {MIN_MODULES_FOR_FULL_REPORT} modules available",
            ))

    elif phase == Phase.REBALANCING.value:
        if data.get("citation_count", 0) < MIN_CITATIONS:
            anomalies.append(_anomaly(
                AnomalySeverity.WARNING, "low_citation_count",
                "Citation count below recommended threshold",
            ))

    elif phase == Phase.VALIDATION.value:
        if not data.get("canonical_keys"):
            anomalies.append(_anomaly(
                AnomalySeverity.ERROR, "validation_failure",
                "No data passed validation checks",
            ))

    elif phase == Phase.DRAFTING.value:
        if data.get("section_count", 0) < MIN_SECTIONS:
            anomalies.append(_anomaly(
                AnomalySeverity.WARNING, "incomplete_sections",
                "Not all expected sections were generated",
            ))

    elif phase == Phase.BUNDLE.value:
        if not data.get("html") or not data.get("json"):
            anomalies.append(_anomaly(
                AnomalySeverity.ERROR, "missing_artifacts",
                "Critical output artifacts missing from bundle",
            ))

    return anomalies


def phase_status(anomalies: list[Anomaly]) -> PhaseStatus:
    """Error if any anomaly is an error, warning if any exists, else success."""
    if any(a.type == AnomalySeverity.ERROR for a in anomalies):
        return PhaseStatus.ERROR
    if anomalies:
        return PhaseStatus.WARNING
    return PhaseStatus.SUCCESS


# =============================================================================
# Phase Timer
# =============================================================================


class PhaseTimer:
    """
    Time one phase and produce its ``PhaseRecord``.

    Example:
        timer = PhaseTimer(run_id, "drafting", telemetry).start()
        ...
        record = timer.finish({"section_count": 9})
    """

    def __init__(
        self,
        run_id: str,
        phase: str,
        telemetry: TelemetrySink | None = None,
        detailed_logging: bool = False,
    ):
        self.run_id = run_id
        self.phase = phase
        self.telemetry = telemetry
        self.detailed_logging = detailed_logging
        self.started_at_ms: int | None = None

    def start(self) -> "PhaseTimer":
        self.started_at_ms = now_ms()
        if self.telemetry is not None:
            try:
                self.telemetry.log_phase_start(self.run_id, self.phase)
            except Exception as e:
                logger.debug(f"Telemetry phase start failed for {self.phase}: {e}")
        return self

    def finish(
        self,
        data: dict[str, Any] | None = None,
        notes: dict[str, Any] | None = None,
    ) -> PhaseRecord:
        """Close the phase, classifying anomalies from ``data``."""
        anomalies = classify_anomalies(self.phase, data)
        return self._close(phase_status(anomalies), anomalies, notes or dict(data or {}))

    def fail(self, error: Exception) -> PhaseRecord:
        """Close the phase as failed."""
        anomaly = _anomaly(AnomalySeverity.ERROR, "phase_exception", str(error)[:200])
        return self._close(PhaseStatus.ERROR, [anomaly], {"error": type(error).__name__})

    def _close(
        self,
        status: PhaseStatus,
        anomalies: list[Anomaly],
        notes: dict[str, Any],
    ) -> PhaseRecord:
        started = self.started_at_ms if self.started_at_ms is not None else now_ms()
        ended = now_ms()
        record = PhaseRecord(
            phase=self.phase,
            started_at_ms=started,
            ended_at_ms=ended,
            duration_ms=max(0, ended - started),
            status=status,
            notes=notes,
            anomalies=anomalies,
        )

        level = logging.INFO if self.detailed_logging else logging.DEBUG
        logger.log(
            level,
            f"PHASE: {self.phase} {status.value} in {record.duration_ms}ms "
            f"({len(anomalies)} anomalies)",
        )

        if self.telemetry is not None:
            try:
                payload = record.model_dump(mode="json")
                self.telemetry.log_phase_end(self.run_id, self.phase, payload)
                self.telemetry.log_trace(self.run_id, {"kind": PHASE_TRACE_KIND, **payload})
            except Exception as e:
                logger.debug(f"Telemetry phase end failed for {self.phase}: {e}")
        return record


def timed_phase(
    phase: Phase,
    run_id: str,
    context: DiagnosticsContext,
    telemetry: TelemetrySink | None = None,
    detailed_logging: bool = False,
):
    """Decorator that times a graph node.

    The wrapped function returns ``(updates, data)``; ``data`` feeds anomaly
    classification and the node's state update gains the phase record.
    A raised exception closes the phase as failed and propagates.

    Example:
        @timed_phase(Phase.DRAFTING, run_id, context)
        def drafting(state):
            ...
            return {"sections": sections}, {"section_count": len(sections)}
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(state: dict[str, Any]) -> dict[str, Any]:
            timer = PhaseTimer(run_id, phase.value, telemetry, detailed_logging).start()
            context.checkpoint(phase.value)
            try:
                updates, data = func(state)
            except Exception as e:
                context.phases.append(timer.fail(e))
                raise
            record = timer.finish(data)
            context.phases.append(record)
            return {**updates, "phases": [record]}

        return wrapper
    return decorator
