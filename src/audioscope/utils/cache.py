"""In-process TTL cache for method results.

Used for results that are slow to compute and only change on external events,
such as the input device list. Entries are keyed by prefix, function name and
arguments so a whole prefix can be invalidated when the event fires.
"""

import threading
import time
from collections.abc import Callable
from functools import wraps
from typing import Any


class MemoryCache:
    """Thread-safe dictionary with per-entry expiry."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[float, Any]] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Any:  # noqa: ANN401
        """Return the cached value, or None when missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            expires_at, value = entry
            if expires_at <= time.monotonic():
                del self._entries[key]
                return None
            return value

    def set(self, key: str, value: Any, ttl: float) -> None:  # noqa: ANN401
        """Store ``value`` for ``ttl`` seconds."""
        with self._lock:
            self._entries[key] = (time.monotonic() + ttl, value)

    def delete_prefix(self, prefix: str) -> int:
        """Remove every entry whose key starts with ``prefix``."""
        with self._lock:
            doomed = [key for key in self._entries if key.startswith(prefix)]
            for key in doomed:
                del self._entries[key]
            return len(doomed)

    def clear(self) -> None:
        """Remove every entry."""
        with self._lock:
            self._entries.clear()


_cache = MemoryCache()


def _generate_cache_key(
    func_name: str, owner: object, args: tuple, kwargs: dict, prefix: str | None
) -> str:
    """Build a key unique to the prefix, bound instance and call arguments."""
    parts = [
        prefix or func_name,
        func_name,
        str(id(owner)),
        repr(args),
        repr(sorted(kwargs.items())),
    ]
    return ":".join(parts)


def cached(
    ttl: float = 300, key_prefix: str | None = None, ttl_attribute: str | None = None
) -> Callable:
    """Cache method results for ``ttl`` seconds.

    Args:
        ttl: Time-to-live in seconds for cached results (default: 300)
        key_prefix: Optional prefix, also the handle for ``invalidate_cache``
        ttl_attribute: Optional instance attribute overriding ``ttl`` per instance

    Returns:
        Decorated method that caches its results

    Example:
        @cached(ttl=60, key_prefix="audio_devices")
        def list_input_devices(self):
            return self._enumerate()
    """

    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(self: Any, *args: Any, **kwargs: Any) -> Any:  # noqa: ANN401
            cache_key = _generate_cache_key(func.__name__, self, args, kwargs, key_prefix)
            cached_value = _cache.get(cache_key)
            if cached_value is not None:
                return cached_value

            result = func(self, *args, **kwargs)
            entry_ttl = getattr(self, ttl_attribute, ttl) if ttl_attribute else ttl
            _cache.set(cache_key, result, entry_ttl)
            return result

        return wrapper

    return decorator


def invalidate_cache(key_prefix: str) -> int:
    """Drop all cached results stored under ``key_prefix``.

    Returns:
        Number of entries removed
    """
    return _cache.delete_prefix(f"{key_prefix}:")


def clear_all_cache() -> None:
    """Drop every cached result."""
    _cache.clear()
