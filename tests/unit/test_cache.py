"""Unit tests for the bundle cache module."""

from synthesis.cache import BundleCache, clear_cache, get_cache, get_cache_stats
from synthesis.config import settings
from synthesis.config.settings import Settings
from synthesis.state.enums import SectionName
from synthesis.state.models import Section, SynthesisBundle


def make_bundle(run_id: str = "run-1", markdown: str = "# Report\n") -> SynthesisBundle:
    return SynthesisBundle(
        run_id=run_id,
        markdown=markdown,
        sections=[Section(name=SectionName.EXECUTIVE_INSIGHT, text="Growth.", citation_ids=[1])],
    )


class TestCacheSettings:
    """Tests for cache configuration in settings."""

    def test_cache_enabled_default(self):
        """Cache should be enabled by default."""
        assert Settings().cache_enabled is True


class TestBundleCache:
    """Tests for BundleCache."""

    def test_round_trip(self):
        """A cached bundle comes back equal to the original."""
        cache = BundleCache()
        bundle = make_bundle()
        cache.put("run-1", bundle)

        cached = cache.get("run-1")
        assert cached == bundle
        assert cached is not bundle

    def test_miss(self):
        """Unknown run ids miss."""
        assert BundleCache().get("run-unknown") is None

    def test_overwrite(self):
        """A later build of the same run replaces the entry."""
        cache = BundleCache()
        cache.put("run-1", make_bundle(markdown="first"))
        cache.put("run-1", make_bundle(markdown="second"))
        assert cache.get("run-1").markdown == "second"
        assert len(cache) == 1

    def test_delete_and_clear(self):
        """Entries can be deleted one by one or all at once."""
        cache = BundleCache()
        for run_id in ("run-1", "run-2", "run-3"):
            cache.put(run_id, make_bundle(run_id))
        cache.delete("run-1")
        assert cache.get("run-1") is None
        assert cache.clear() == 2
        assert len(cache) == 0

    def test_explicit_store_used(self):
        """A store passed in is used, not replaced."""
        store = BundleCache().store
        cache = BundleCache(store)
        assert cache.store is store


class TestCacheModule:
    """Tests for cache module functions."""

    def test_get_cache_singleton(self):
        """get_cache should return the same instance on multiple calls."""
        if settings.cache_enabled:
            assert get_cache() is get_cache()

    def test_get_cache_stats(self, monkeypatch):
        """get_cache_stats should report entries when enabled."""
        monkeypatch.setattr(settings, "cache_enabled", True)
        get_cache().put("run-1", make_bundle())
        stats = get_cache_stats()
        assert stats == {"enabled": True, "namespace": "synthesis_bundles", "entries": 1}

    def test_clear_cache(self, monkeypatch):
        """clear_cache should empty the shared cache."""
        monkeypatch.setattr(settings, "cache_enabled", True)
        get_cache().put("run-1", make_bundle())
        assert clear_cache() is True
        assert len(get_cache()) == 0


class TestCacheDisabled:
    """Tests for behavior when caching is disabled."""

    def test_get_cache_returns_none_when_disabled(self, monkeypatch):
        """get_cache should return None when caching is disabled."""
        monkeypatch.setattr(settings, "cache_enabled", False)
        assert get_cache() is None

    def test_clear_cache_returns_false_when_disabled(self, monkeypatch):
        """clear_cache should return False when caching is disabled."""
        monkeypatch.setattr(settings, "cache_enabled", False)
        assert clear_cache() is False

    def test_stats_when_disabled(self, monkeypatch):
        """get_cache_stats should only report the flag when disabled."""
        monkeypatch.setattr(settings, "cache_enabled", False)
        assert get_cache_stats() == {"enabled": False}
