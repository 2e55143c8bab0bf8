"""Tests for the in-process TTL cache."""

import time

import pytest

from audioscope.utils.cache import (
    MemoryCache,
    _generate_cache_key,
    cached,
    clear_all_cache,
    invalidate_cache,
)


class Counter:
    """Object whose cached method counts real invocations."""

    def __init__(self, cache_ttl: float = 60.0):
        self.calls = 0
        self.cache_ttl = cache_ttl

    @cached(ttl=60, key_prefix="counter")
    def value(self, offset: int = 0):
        self.calls += 1
        return self.calls + offset

    @cached(ttl=60, key_prefix="counter", ttl_attribute="cache_ttl")
    def configured(self):
        self.calls += 1
        return self.calls

    @cached(ttl=60, key_prefix="nothing")
    def nothing(self):
        self.calls += 1
        return None


class TestMemoryCache:
    """Test the backing store."""

    def test_set_and_get(self):
        """Should return stored values before they expire."""
        cache = MemoryCache()
        cache.set("key", [1, 2], ttl=60)
        assert cache.get("key") == [1, 2]

    def test_expiry(self, mocker):
        """Should drop entries once their TTL has passed."""
        cache = MemoryCache()
        mock_monotonic = mocker.patch("audioscope.utils.cache.time.monotonic", return_value=100.0)
        cache.set("key", "value", ttl=5)

        mock_monotonic.return_value = 104.9
        assert cache.get("key") == "value"

        mock_monotonic.return_value = 105.0
        assert cache.get("key") is None

    def test_delete_prefix(self):
        """Should remove only keys under the prefix."""
        cache = MemoryCache()
        cache.set("a:1", 1, ttl=60)
        cache.set("a:2", 2, ttl=60)
        cache.set("b:1", 3, ttl=60)

        assert cache.delete_prefix("a:") == 2
        assert cache.get("b:1") == 3


class TestCachedDecorator:
    """Test the method decorator."""

    def test_caches_results(self):
        """Should call through only once for repeated calls."""
        counter = Counter()
        assert counter.value() == 1
        assert counter.value() == 1
        assert counter.calls == 1

    def test_arguments_are_part_of_key(self):
        """Should cache separately per argument."""
        counter = Counter()
        assert counter.value(offset=10) == 11
        assert counter.value() == 2

    def test_instances_are_separate(self):
        """Should not share results between instances."""
        first, second = Counter(), Counter()
        first.value()
        second.value()
        assert first.calls == second.calls == 1

    def test_none_is_not_cached(self):
        """Should recompute results that were None."""
        counter = Counter()
        counter.nothing()
        counter.nothing()
        assert counter.calls == 2

    def test_ttl_attribute(self, mocker):
        """Should take the TTL from the instance when configured."""
        mock_monotonic = mocker.patch("audioscope.utils.cache.time.monotonic", return_value=0.0)
        counter = Counter(cache_ttl=1.0)
        counter.configured()

        mock_monotonic.return_value = 2.0
        counter.configured()

        assert counter.calls == 2

    def test_invalidate_cache(self):
        """Should force recomputation after invalidating the prefix."""
        counter = Counter()
        counter.value()
        assert invalidate_cache("counter") == 1
        counter.value()
        assert counter.calls == 2

    def test_invalidate_other_prefix(self):
        """Should leave other prefixes alone."""
        counter = Counter()
        counter.value()
        assert invalidate_cache("count") == 0
        counter.value()
        assert counter.calls == 1

    def test_clear_all_cache(self):
        """Should drop every cached result."""
        counter = Counter()
        counter.value()
        clear_all_cache()
        counter.value()
        assert counter.calls == 2

    def test_preserves_metadata(self):
        """Should keep the wrapped method's name."""
        assert Counter.value.__name__ == "value"


@pytest.mark.parametrize("prefix", ["audio_devices", None])
def test_generate_cache_key(prefix):
    """Should start keys with the prefix, or the function name without one."""
    owner = object()
    key = _generate_cache_key("list_input_devices", owner, (), {}, prefix)
    assert key.startswith(f"{prefix or 'list_input_devices'}:list_input_devices:{id(owner)}:")


def test_real_clock_expiry():
    """Should expire short-lived entries with the real clock."""
    cache = MemoryCache()
    cache.set("key", "value", ttl=0.01)
    time.sleep(0.02)
    assert cache.get("key") is None
