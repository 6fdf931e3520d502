"""Stores for runs, artifacts and telemetry."""

from synthesis.memory.base import (
    ArtifactStore,
    ModuleStore,
    OrganizationStore,
    TelemetrySink,
)
from synthesis.memory.store import (
    InMemoryArtifactStore,
    InMemoryRunStore,
    InMemoryTelemetry,
    StoreNamespace,
    get_memory_store,
)

__all__ = [
    "ArtifactStore",
    "ModuleStore",
    "OrganizationStore",
    "TelemetrySink",
    "InMemoryArtifactStore",
    "InMemoryRunStore",
    "InMemoryTelemetry",
    "StoreNamespace",
    "get_memory_store",
]
