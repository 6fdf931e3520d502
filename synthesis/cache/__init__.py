"""Bundle cache keyed by run id.

Avoids rebuilding a report whose inputs have not changed. The cache lives in
a LangGraph ``InMemoryStore``; a later build of the same run id overwrites
the prior entry.

Usage:
    from synthesis.cache import get_cache

    cache = get_cache()  # Returns BundleCache or None based on settings
    bundle = cache.get(run_id) if cache is not None else None

Configuration via environment variables:
    CACHE_ENABLED=true       Enable/disable the bundle cache (default: true)
"""

import logging

from langgraph.store.memory import InMemoryStore

from synthesis.config import settings
from synthesis.state.models import SynthesisBundle

logger = logging.getLogger(__name__)

BUNDLE_NAMESPACE = ("synthesis_bundles",)

# Cache backend - lazily initialized
_cache_instance = None


class BundleCache:
    """Store of the latest synthesis bundle per run id."""

    def __init__(self, store: InMemoryStore | None = None):
        self.store = store if store is not None else InMemoryStore()

    def get(self, run_id: str) -> SynthesisBundle | None:
        item = self.store.get(BUNDLE_NAMESPACE, run_id)
        if item is None:
            return None
        return SynthesisBundle.model_validate(item.value["bundle"])

    def put(self, run_id: str, bundle: SynthesisBundle) -> None:
        self.store.put(
            BUNDLE_NAMESPACE,
            run_id,
            {"bundle": bundle.model_dump(mode="json")},
        )
        logger.debug(f"Cached bundle for run {run_id}")

    def delete(self, run_id: str) -> None:
        self.store.delete(BUNDLE_NAMESPACE, run_id)

    def clear(self) -> int:
        """Remove every cached bundle and return how many were removed."""
        items = self.store.search(BUNDLE_NAMESPACE, limit=10_000)
        for item in items:
            self.store.delete(BUNDLE_NAMESPACE, item.key)
        return len(items)

    def __len__(self) -> int:
        return len(self.store.search(BUNDLE_NAMESPACE, limit=10_000))


def get_cache() -> BundleCache | None:
    """
    Get the bundle cache instance.

    The instance is lazily initialized and reused.

    Returns:
        BundleCache instance or None if caching is disabled.
    """
    global _cache_instance

    if not settings.cache_enabled:
        logger.debug("Bundle caching is disabled")
        return None

    if _cache_instance is None:
        logger.info("Initializing in-memory bundle cache")
        _cache_instance = BundleCache()

    return _cache_instance


def clear_cache() -> bool:
    """
    Clear all cached bundles.

    Returns:
        True if the cache was cleared, False if caching is disabled.
    """
    cache = get_cache()
    if cache is None:
        return False

    removed = cache.clear()
    logger.info(f"Bundle cache cleared ({removed} entries)")
    return True


def get_cache_stats() -> dict:
    """
    Get cache statistics.

    Returns:
        Dictionary with cache statistics.
    """
    if not settings.cache_enabled:
        return {"enabled": False}

    cache = get_cache()
    return {
        "enabled": True,
        "namespace": "/".join(BUNDLE_NAMESPACE),
        "entries": len(cache) if cache is not None else 0,
    }


# Convenience exports
__all__ = [
    "BUNDLE_NAMESPACE",
    "BundleCache",
    "get_cache",
    "clear_cache",
    "get_cache_stats",
]
