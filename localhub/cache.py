"""
.. module:: cache
   :synopsis: Small LRU caches used to avoid re-walking repository history

Cached values are keyed ``"<prefix>||<namespace>||<args>"``. The hub registry
only caches values that are immutable for a given key (commit counts keyed by
head sha), so entries never need to be invalidated.
"""

import gzip
import inspect
import os
import pickle
import threading
from datetime import datetime, timezone
from functools import wraps

from localhub.logging import get_logger

logger = get_logger("cache")


class CacheMissError(Exception):
    pass


class CacheEntry:
    """Wrapper for cached values that records when they were stored."""

    def __init__(self, data, cache_key=None):
        self.data = data
        self.cached_at = datetime.now(timezone.utc)
        self.cache_key = cache_key

    def age_seconds(self):
        """Return age of cache entry in seconds."""
        return (datetime.now(timezone.utc) - self.cached_at).total_seconds()


def multicache(key_prefix, key_list):
    """Decorator caching the result of a method in ``self.cache_backend``.

    Args:
        key_prefix (str): Prefix for the cache key.
        key_list (list[str]): Names of the method arguments (positional or keyword)
            that make up the cache key.

    The decorated method accepts ``force_refresh=True`` to skip the cache read;
    the fresh result is still written back. Cache failures are logged and the
    wrapped method runs as if no cache was configured.
    """

    def multicache_nest(func):
        signature = inspect.signature(func)

        @wraps(func)
        def deco(self, *args, **kwargs):
            force_refresh = kwargs.pop("force_refresh", False)
            if self.cache_backend is None:
                return func(self, *args, **kwargs)

            bound = signature.bind(self, *args, **kwargs)
            bound.apply_defaults()
            key_parts = [str(bound.arguments.get(k)) for k in key_list]
            key = f"{key_prefix}||{self.cache_namespace}||{'_'.join(key_parts)}"

            if not force_refresh:
                try:
                    entry = self.cache_backend._get_entry(key)
                    logger.debug(f"Cache hit for key: {key}, cached {entry.age_seconds():.0f}s ago")
                    return entry.data
                except CacheMissError:
                    logger.debug(f"Cache miss for key: {key}")
                except Exception as e:
                    logger.error(f"Error getting cache for key {key}: {e}", exc_info=True)
            else:
                logger.info(f"Force refresh requested for key: {key}, bypassing cache read.")

            ret = func(self, *args, **kwargs)
            try:
                self.cache_backend.set(key, CacheEntry(ret, cache_key=key))
                logger.debug(f"Cache set for key: {key}")
            except Exception as e:
                logger.error(f"Failed to set cache for key {key}: {e}", exc_info=True)
            return ret

        return deco

    return multicache_nest


class EphemeralCache:
    """
    A simple in-memory LRU cache.
    """

    def __init__(self, max_keys=1000):
        self._cache = {}
        self._key_list = []
        self._max_keys = max_keys

    def _touch(self, k):
        if k in self._key_list:
            self._key_list.remove(k)
        self._key_list.append(k)

    def evict(self, n=1):
        for _ in range(n):
            key = self._key_list.pop(0)
            self._cache.pop(key, None)

    def set(self, k, v):
        if not isinstance(v, CacheEntry):
            v = CacheEntry(v, cache_key=k)

        self._touch(k)
        self._cache[k] = v

        if len(self._key_list) > self._max_keys:
            self.evict(len(self._key_list) - self._max_keys)

        self.save()

    def get(self, k):
        return self._get_entry(k).data

    def _get_entry(self, k):
        """Internal method that returns the CacheEntry object."""
        if not self.exists(k):
            raise CacheMissError(k)
        self._touch(k)
        return self._cache[k]

    def exists(self, k):
        return k in self._cache

    def keys(self):
        return list(self._key_list)

    def save(self):
        """No-op; overridden by persistent caches."""
        pass


class DiskCache(EphemeralCache):
    """
    An in-memory cache persisted to a gzip-compressed pickle file.

    Thread-safe within one process. Nothing prevents two processes from
    overwriting each other's file.
    """

    def __init__(self, filepath, max_keys=1000):
        super().__init__(max_keys=max_keys)
        self.filepath = str(filepath)
        self._lock = threading.RLock()
        self.load()

    def set(self, k, v):
        with self._lock:
            super().set(k, v)

    def _get_entry(self, k):
        with self._lock:
            return super()._get_entry(k)

    def exists(self, k):
        with self._lock:
            return super().exists(k)

    def evict(self, n=1):
        with self._lock:
            super().evict(n)

    def load(self):
        """Load cache state from ``filepath``. A missing or unreadable file starts an empty cache."""
        with self._lock:
            if not os.path.exists(self.filepath) or os.path.getsize(self.filepath) == 0:
                logger.debug(f"Cache file not found or empty, starting fresh: {self.filepath}")
                return

            try:
                with gzip.open(self.filepath, "rb") as f:
                    loaded_data = pickle.load(f)
            except (OSError, EOFError, pickle.UnpicklingError, AttributeError, ImportError) as e:
                logger.warning(f"Error loading cache file {self.filepath}: {e}. Starting fresh.")
                self._cache = {}
                self._key_list = []
                return

            if not isinstance(loaded_data, dict) or "_cache" not in loaded_data or "_key_list" not in loaded_data:
                logger.warning(f"Invalid cache file format found: {self.filepath}. Starting fresh.")
                self._cache = {}
                self._key_list = []
                return

            self._cache = loaded_data["_cache"]
            self._key_list = [k for k in loaded_data["_key_list"] if k in self._cache]
            if len(self._key_list) > self._max_keys:
                self.evict(len(self._key_list) - self._max_keys)
            logger.debug(f"Cache loaded from {self.filepath} with {len(self._cache)} entries.")

    def save(self):
        """Write cache state to ``filepath`` through a temporary file."""
        with self._lock:
            tmp_path = self.filepath + ".tmp"
            try:
                parent = os.path.dirname(self.filepath)
                if parent:
                    os.makedirs(parent, exist_ok=True)
                with gzip.open(tmp_path, "wb") as f:
                    pickle.dump({"_cache": self._cache, "_key_list": self._key_list}, f)
                os.replace(tmp_path, self.filepath)
            except OSError as e:
                logger.error(f"Error saving cache to {self.filepath}: {e}")
                if os.path.exists(tmp_path):
                    os.remove(tmp_path)
