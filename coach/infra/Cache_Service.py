"""Explicit query cache with stale marking.

Keys are tuples modelled on the platform's API paths, e.g.
('/api/all-diet-plans',) or ('/api/diet-plans/c1',). Invalidating a key also
invalidates every cached key that starts with it, so ('/api/workout-plans',)
reaches each client's ('/api/workout-plans', 'c1') entry.

A stale entry keeps its value until the next read refetches it.
"""
from __future__ import annotations
import logging
from threading import Lock
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

logger = logging.getLogger(__name__)

CacheKey = Tuple[str, ...]


def as_key(key: Union[str, CacheKey]) -> CacheKey:
    if isinstance(key, str):
        return (key,)
    return tuple(key)


class CacheService:
    def __init__(self):
        self._lock = Lock()
        self._values: Dict[CacheKey, Any] = {}
        self._stale: set = set()

    def set(self, key, value) -> None:
        k = as_key(key)
        with self._lock:
            self._values[k] = value
            self._stale.discard(k)

    def get(self, key, default: Optional[Any] = None) -> Any:
        '''Return the cached value even when stale; callers check is_stale().'''
        with self._lock:
            return self._values.get(as_key(key), default)

    def is_stale(self, key) -> bool:
        k = as_key(key)
        with self._lock:
            return k not in self._values or k in self._stale

    def invalidate(self, key) -> int:
        '''Mark cached entries at or under key stale. Uncached keys are already stale.

        Returns how many entries changed from fresh to stale; repeating the
        call is a no-op and returns 0.
        '''
        prefix = as_key(key)
        n = len(prefix)
        changed = 0
        with self._lock:
            targets = [k for k in self._values if k[:n] == prefix]
            for k in targets:
                if k not in self._stale:
                    self._stale.add(k)
                    changed += 1
        logger.debug("Invalidated %s (%d cached entries)", prefix, changed)
        return changed

    def stale_keys(self) -> List[CacheKey]:
        with self._lock:
            return sorted(self._stale)

    def clear(self) -> None:
        with self._lock:
            self._values.clear()
            self._stale.clear()

    async def get_or_fetch(self, key, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        '''Return the fresh cached value, or await fetcher() and cache its result.'''
        k = as_key(key)
        if not self.is_stale(k):
            return self.get(k)
        value = await fetcher()
        self.set(k, value)
        return value
