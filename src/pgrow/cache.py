"""
Shared memo caches for compiled shapes and field plans.

Compiling a target type, and resolving its fields against a column layout,
only depend on the target and the column names, so both are built once and
reused across rows. Uses cachetools TTLCache for automatic expiration.
"""
import logging
import threading
from collections.abc import Callable, Hashable
from typing import Any

import cachetools

logger = logging.getLogger(__name__)

_missing = object()


class Cache:
    """Registry of named TTL caches.

    Thread-safe singleton. cachetools caches are not thread-safe on their
    own, so every read and write goes through the registry's lock; values
    are built outside it.
    """

    _instance = None
    _caches: dict[str, cachetools.TTLCache] = {}
    _lock = threading.RLock()

    @classmethod
    def get_instance(cls) -> 'Cache':
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def get_cache(self, name: str, maxsize: int = 128, ttl: int = 600) -> cachetools.TTLCache:
        """Get the named cache, creating it on first use.

        Size and TTL only apply when the cache is created.
        """
        with self._lock:
            if name not in self._caches:
                self._caches[name] = cachetools.TTLCache(maxsize=maxsize, ttl=ttl)
                logger.debug(f'Created cache {name} (maxsize={maxsize}, ttl={ttl})')
            return self._caches[name]

    def get_or_build(self, name: str, key: Hashable, build: Callable[[], Any],
                     maxsize: int = 128, ttl: int = 600) -> Any:
        """Return the value cached under ``key``, building and storing it on a miss.

        Two threads missing at once may both build; the later store wins.
        Keys that turn out to be unhashable bypass the cache.

        Args:
            name: Name of the cache
            key: Cache key
            build: Zero-argument callable producing the value
            maxsize: Maximum cache size, if the cache is created here
            ttl: Time-to-live in seconds, if the cache is created here
        """
        cache = self.get_cache(name, maxsize, ttl)
        try:
            with self._lock:
                value = cache.get(key, _missing)
        except TypeError:
            logger.debug(f'Unhashable key for cache {name}, building without it')
            return build()
        if value is not _missing:
            return value
        value = build()
        with self._lock:
            cache[key] = value
        return value

    def clear_all(self) -> None:
        """Clear all managed caches."""
        with self._lock:
            for cache in self._caches.values():
                cache.clear()

    def clear_cache(self, name: str) -> None:
        with self._lock:
            if name in self._caches:
                self._caches[name].clear()

    def stats(self) -> dict[str, int]:
        """Current number of entries per cache."""
        with self._lock:
            return {name: len(cache) for name, cache in self._caches.items()}


__all__ = ['Cache']
