"""Collaborator interfaces the pipeline depends on.

The pipeline reads runs, modules and organizations, and writes artifacts
and telemetry, only through these abstract stores. In-memory
implementations live in ``synthesis.memory.store``.
"""

from abc import ABC, abstractmethod
from typing import Any

from synthesis.state.models import AnalysisModule, CitationSource, Organization, Run


class ModuleStore(ABC):
    """Source of runs and their upstream analysis modules."""

    @abstractmethod
    def get_run(self, run_id: str) -> Run | None:
        """Return the run, or None if it does not exist."""

    @abstractmethod
    def list_modules(self, run_id: str) -> list[AnalysisModule]:
        """Return all stored modules for a run, in storage order."""

    def list_run_citations(self, run_id: str) -> list[CitationSource | str | dict]:
        """Return citations attached to the run itself rather than a module."""
        return []


class OrganizationStore(ABC):
    """Source of organization records."""

    @abstractmethod
    def get_organization(self, org_id: str) -> Organization | None:
        """Return the organization, or None if it does not exist."""


class ArtifactStore(ABC):
    """Sink for intermediate and final artifacts."""

    @abstractmethod
    def save_artifact(
        self,
        run_id: str,
        phase: str,
        name: str,
        payload: Any,
        persistent: bool = False,
    ) -> None:
        """Persist an artifact produced by a phase."""

    @abstractmethod
    def load_artifact(self, run_id: str, name: str) -> Any | None:
        """Return a stored artifact payload, or None."""


class TelemetrySink(ABC):
    """Best-effort sink for phase events, metrics and trace records."""

    @abstractmethod
    def log_phase_start(self, run_id: str, phase: str) -> None:
        """Record that a phase started."""

    @abstractmethod
    def log_phase_end(
        self,
        run_id: str,
        phase: str,
        record: dict[str, Any] | None = None,
    ) -> None:
        """Record that a phase ended, with its timing record."""

    @abstractmethod
    def log_metric(
        self,
        run_id: str,
        key: str,
        value: Any,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """Record a named metric for a run."""

    @abstractmethod
    def log_trace(self, run_id: str, record: dict[str, Any]) -> None:
        """Record a detailed trace entry for a run."""

    @abstractmethod
    def metrics(self, run_id: str, key: str | None = None) -> list[dict[str, Any]]:
        """Return metrics recorded for a run, oldest first."""

    @abstractmethod
    def traces(self, run_id: str) -> list[dict[str, Any]]:
        """Return trace records for a run, oldest first."""

    @abstractmethod
    def recent_metric(self, key: str, limit: int = 5) -> list[Any]:
        """Return the latest values of a metric across runs, newest first."""
