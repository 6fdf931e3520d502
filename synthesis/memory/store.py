"""In-memory stores backed by LangGraph's ``InMemoryStore``.

The stores enable:
- Loading runs, modules and organizations from a fixture
- Persisting phase artifacts per run
- Recording telemetry (phase events, metrics, traces) per run
"""

import itertools
import logging
from enum import Enum
from typing import Any

from langgraph.store.memory import InMemoryStore

from synthesis.memory.base import (
    ArtifactStore,
    ModuleStore,
    OrganizationStore,
    TelemetrySink,
)
from synthesis.state.models import AnalysisModule, CitationSource, Organization, Run

logger = logging.getLogger(__name__)

# InMemoryStore.search pages results; callers want everything
_SEARCH_LIMIT = 10_000


class StoreNamespace(str, Enum):
    """Predefined namespaces for organizing stored records."""

    RUNS = "runs"
    MODULES = "modules"
    RUN_CITATIONS = "run_citations"
    ORGANIZATIONS = "organizations"
    ARTIFACTS = "artifacts"
    PHASE_EVENTS = "phase_events"
    METRICS = "metrics"
    TRACES = "traces"
    METRIC_INDEX = "metric_index"


def get_memory_store() -> InMemoryStore:
    """
    Get an in-memory key-value store.

    Example:
        ```python
        store = get_memory_store()
        store.put(("runs",), "run-1", {"id": "run-1", "subject_org_id": "acme"})
        item = store.get(("runs",), "run-1")
        ```
    """
    return InMemoryStore()


# =============================================================================
# Runs, modules and organizations
# =============================================================================


class InMemoryRunStore(ModuleStore, OrganizationStore):
    """
    Module and organization store over one ``InMemoryStore``.

    Modules keep their insertion order so normalization is deterministic.
    """

    def __init__(self, store: InMemoryStore | None = None):
        self.store = store if store is not None else get_memory_store()
        self._seq = itertools.count()

    @classmethod
    def from_fixture(cls, data: dict[str, Any]) -> "InMemoryRunStore":
        """Build a store from a fixture dictionary.

        Expected shape::

            {
              "organizations": [{"id": ..., "name": ...}, ...],
              "runs": [{"id": ..., "subject_org_id": ..., "modules": [...],
                        "citations": [...]}]
            }
        """
        run_store = cls()
        for org in data.get("organizations", []):
            run_store.add_organization(Organization.model_validate(org))
        for run_data in data.get("runs", []):
            run_data = dict(run_data)
            modules = run_data.pop("modules", [])
            citations = run_data.pop("citations", [])
            run = Run.model_validate(run_data)
            run_store.add_run(run)
            for module in modules:
                run_store.add_module(run.id, AnalysisModule.model_validate(module))
            for citation in citations:
                run_store.add_run_citation(run.id, citation)
        return run_store

    # Writers

    def add_run(self, run: Run) -> None:
        self.store.put(
            (StoreNamespace.RUNS.value,),
            run.id,
            run.model_dump(mode="json"),
        )

    def add_module(self, run_id: str, module: AnalysisModule) -> None:
        seq = next(self._seq)
        self.store.put(
            (StoreNamespace.MODULES.value, run_id),
            f"{seq:08d}",
            {"seq": seq, "module": module.model_dump(mode="json")},
        )

    def add_run_citation(self, run_id: str, citation: CitationSource | str | dict) -> None:
        seq = next(self._seq)
        if isinstance(citation, CitationSource):
            citation = citation.model_dump(mode="json")
        self.store.put(
            (StoreNamespace.RUN_CITATIONS.value, run_id),
            f"{seq:08d}",
            {"seq": seq, "citation": citation},
        )

    def add_organization(self, org: Organization) -> None:
        self.store.put(
            (StoreNamespace.ORGANIZATIONS.value,),
            org.id,
            org.model_dump(mode="json"),
        )

    # ModuleStore

    def get_run(self, run_id: str) -> Run | None:
        item = self.store.get((StoreNamespace.RUNS.value,), run_id)
        if item is None:
            return None
        return Run.model_validate(item.value)

    def list_modules(self, run_id: str) -> list[AnalysisModule]:
        items = self.store.search(
            (StoreNamespace.MODULES.value, run_id), limit=_SEARCH_LIMIT
        )
        ordered = sorted(items, key=lambda item: item.value["seq"])
        return [AnalysisModule.model_validate(item.value["module"]) for item in ordered]

    def list_run_citations(self, run_id: str) -> list[CitationSource | str | dict]:
        items = self.store.search(
            (StoreNamespace.RUN_CITATIONS.value, run_id), limit=_SEARCH_LIMIT
        )
        ordered = sorted(items, key=lambda item: item.value["seq"])
        return [item.value["citation"] for item in ordered]

    # OrganizationStore

    def get_organization(self, org_id: str) -> Organization | None:
        item = self.store.get((StoreNamespace.ORGANIZATIONS.value,), org_id)
        if item is None:
            return None
        return Organization.model_validate(item.value)


# =============================================================================
# Artifacts
# =============================================================================


class InMemoryArtifactStore(ArtifactStore):
    """Artifact store keeping the latest payload per ``(run, name)``."""

    def __init__(self, store: InMemoryStore | None = None):
        self.store = store if store is not None else get_memory_store()

    def save_artifact(
        self,
        run_id: str,
        phase: str,
        name: str,
        payload: Any,
        persistent: bool = False,
    ) -> None:
        self.store.put(
            (StoreNamespace.ARTIFACTS.value, run_id),
            name,
            {"phase": phase, "payload": payload, "persistent": persistent},
        )
        logger.debug(f"Saved artifact {name} for run {run_id} (phase {phase})")

    def load_artifact(self, run_id: str, name: str) -> Any | None:
        item = self.store.get((StoreNamespace.ARTIFACTS.value, run_id), name)
        if item is None:
            return None
        return item.value.get("payload")

    def list_artifacts(self, run_id: str) -> dict[str, Any]:
        items = self.store.search(
            (StoreNamespace.ARTIFACTS.value, run_id), limit=_SEARCH_LIMIT
        )
        return {item.key: item.value.get("payload") for item in items}


# =============================================================================
# Telemetry
# =============================================================================


class InMemoryTelemetry(TelemetrySink):
    """Telemetry sink keeping every event in insertion order."""

    def __init__(self, store: InMemoryStore | None = None):
        self.store = store if store is not None else get_memory_store()
        self._seq = itertools.count()

    def _append(self, namespace: tuple[str, ...], value: dict[str, Any]) -> int:
        seq = next(self._seq)
        self.store.put(namespace, f"{seq:08d}", {"seq": seq, **value})
        return seq

    def _ordered(self, namespace: tuple[str, ...]) -> list[dict[str, Any]]:
        items = self.store.search(namespace, limit=_SEARCH_LIMIT)
        return [item.value for item in sorted(items, key=lambda i: i.value["seq"])]

    def log_phase_start(self, run_id: str, phase: str) -> None:
        self._append(
            (StoreNamespace.PHASE_EVENTS.value, run_id),
            {"phase": phase, "event": "start"},
        )

    def log_phase_end(
        self,
        run_id: str,
        phase: str,
        record: dict[str, Any] | None = None,
    ) -> None:
        self._append(
            (StoreNamespace.PHASE_EVENTS.value, run_id),
            {"phase": phase, "event": "end", "record": record or {}},
        )

    def log_metric(
        self,
        run_id: str,
        key: str,
        value: Any,
        extra: dict[str, Any] | None = None,
    ) -> None:
        entry = {"run_id": run_id, "key": key, "value": value, "extra": extra or {}}
        self._append((StoreNamespace.METRICS.value, run_id), entry)
        self._append((StoreNamespace.METRIC_INDEX.value, key), entry)

    def log_trace(self, run_id: str, record: dict[str, Any]) -> None:
        self._append((StoreNamespace.TRACES.value, run_id), {"record": record})

    def phase_events(self, run_id: str) -> list[dict[str, Any]]:
        return self._ordered((StoreNamespace.PHASE_EVENTS.value, run_id))

    def metrics(self, run_id: str, key: str | None = None) -> list[dict[str, Any]]:
        entries = self._ordered((StoreNamespace.METRICS.value, run_id))
        if key is not None:
            entries = [e for e in entries if e["key"] == key]
        return entries

    def traces(self, run_id: str) -> list[dict[str, Any]]:
        return [e["record"] for e in self._ordered((StoreNamespace.TRACES.value, run_id))]

    def recent_metric(self, key: str, limit: int = 5) -> list[Any]:
        entries = self._ordered((StoreNamespace.METRIC_INDEX.value, key))
        return [e["value"] for e in reversed(entries)][:limit]
