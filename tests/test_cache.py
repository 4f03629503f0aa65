import gzip
import pickle

import pytest

from localhub import HubDirectory
from localhub.cache import CacheEntry, CacheMissError, DiskCache, EphemeralCache, multicache


class Counter:
    """Minimal object exposing what multicache expects."""

    cache_namespace = "counter"

    def __init__(self, cache_backend):
        self.cache_backend = cache_backend
        self.calls = 0

    @multicache(key_prefix="double", key_list=["x"])
    def double(self, x, unused=None):
        self.calls += 1
        return 2 * x


class TestEphemeralCache:
    def test_get_and_set(self):
        cache = EphemeralCache()
        cache.set("a", 1)
        assert cache.get("a") == 1
        assert cache.exists("a")

    def test_miss_raises(self):
        with pytest.raises(CacheMissError):
            EphemeralCache().get("nope")

    def test_values_are_wrapped(self):
        cache = EphemeralCache()
        cache.set("a", 1)
        entry = cache._get_entry("a")
        assert isinstance(entry, CacheEntry)
        assert entry.cache_key == "a"
        assert entry.age_seconds() >= 0

    def test_lru_eviction(self):
        cache = EphemeralCache(max_keys=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.get("a")
        cache.set("c", 3)

        assert cache.exists("a")
        assert not cache.exists("b")
        assert cache.keys() == ["a", "c"]


class TestDiskCache:
    def test_persists_between_instances(self, tmp_path):
        path = tmp_path / "cache.gz"
        DiskCache(path).set("a", 42)

        assert DiskCache(path).get("a") == 42

    def test_missing_parent_directory_is_created(self, tmp_path):
        path = tmp_path / "deep" / "cache.gz"
        DiskCache(path).set("a", 1)
        assert path.exists()

    def test_corrupt_file_starts_fresh(self, tmp_path):
        path = tmp_path / "cache.gz"
        path.write_bytes(b"definitely not gzip")

        cache = DiskCache(path)
        assert cache.keys() == []
        cache.set("a", 1)
        assert DiskCache(path).get("a") == 1

    def test_wrong_format_starts_fresh(self, tmp_path):
        path = tmp_path / "cache.gz"
        with gzip.open(path, "wb") as f:
            pickle.dump(["not", "a", "dict"], f)

        assert DiskCache(path).keys() == []

    def test_no_temporary_file_left(self, tmp_path):
        path = tmp_path / "cache.gz"
        DiskCache(path).set("a", 1)
        assert sorted(p.name for p in tmp_path.iterdir()) == ["cache.gz"]


class TestMulticache:
    def test_without_backend_always_computes(self):
        counter = Counter(None)
        assert counter.double(2) == 4
        assert counter.double(2) == 4
        assert counter.calls == 2

    def test_hit_skips_computation(self):
        counter = Counter(EphemeralCache())
        assert counter.double(2) == 4
        assert counter.double(x=2) == 4
        assert counter.calls == 1

    def test_key_uses_only_listed_arguments(self):
        cache = EphemeralCache()
        counter = Counter(cache)
        counter.double(3, unused="a")
        counter.double(3, unused="b")

        assert counter.calls == 1
        assert cache.keys() == ["double||counter||3"]

    def test_force_refresh(self):
        counter = Counter(EphemeralCache())
        counter.double(2)
        counter.double(2, force_refresh=True)
        assert counter.calls == 2

    def test_broken_backend_does_not_break_call(self):
        class Broken(EphemeralCache):
            def _get_entry(self, k):
                raise RuntimeError("backend down")

            def set(self, k, v):
                raise RuntimeError("backend down")

        counter = Counter(Broken())
        assert counter.double(5) == 10


class TestCommitCountCache:
    def test_counts_are_cached_per_head(self, hub_path, work_repo, commit_and_push):
        cache = EphemeralCache()
        hub = HubDirectory(hub_path, cache_backend=cache)
        path = hub.create_repo("proj")
        commit_and_push(path)

        assert hub.commit_count("proj") == 3
        assert len(cache.keys()) == 1
        assert cache.keys()[0].startswith(f"commit_count||{hub.hub_path}||{path}_")

        commit_and_push(path, filename="more.txt")
        assert hub.commit_count("proj") == 4
        assert len(cache.keys()) == 2

    def test_empty_repo_is_not_cached(self, hub_path):
        cache = EphemeralCache()
        hub = HubDirectory(hub_path, cache_backend=cache)
        hub.create_repo("proj")

        assert hub.commit_count("proj") is None
        assert cache.keys() == []

    def test_cached_value_is_used(self, hub_path, commit_and_push):
        cache = EphemeralCache()
        hub = HubDirectory(hub_path, cache_backend=cache)
        path = hub.create_repo("proj")
        commit_and_push(path)
        hub.commit_count("proj")

        key = cache.keys()[0]
        cache.set(key, 99)
        assert hub.commit_count("proj") == 99
