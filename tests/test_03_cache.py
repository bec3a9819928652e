"""
Tests for the bounded FIFO record cache.

Tests cover:
- put/get round trip
- Batch eviction of the oldest fifth at capacity
- Overwrites move a key to the newest position without evicting
- Reads never refresh eviction order
- stats() and clear()
- Size invariant under concurrent writers
"""
from __future__ import annotations

import threading

import pytest

from pronounce_ms.audio.cache import BoundedCache, CacheRecord


def _rec(key: str, language: str = "zh-CN") -> CacheRecord:
    return CacheRecord(key=key, resource_locator=f"https://audio.test/{key}", text=f"text-{key}", language=language)


class TestPutGet:

    def test_roundtrip(self):
        cache = BoundedCache(capacity=10)
        record = _rec("a")
        cache.put(record)
        got = cache.get("a")
        assert got is not None
        assert got.text == record.text
        assert got.language == record.language
        assert got.resource_locator == record.resource_locator

    def test_missing_key(self):
        assert BoundedCache(capacity=10).get("nope") is None

    def test_contains_and_len(self):
        cache = BoundedCache(capacity=10)
        cache.put(_rec("a"))
        assert "a" in cache
        assert "b" not in cache
        assert len(cache) == 1

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            BoundedCache(capacity=0)


class TestEviction:

    def test_capacity_five_evicts_oldest(self):
        """A..E fill a cache of 5; F evicts exactly A."""
        cache = BoundedCache(capacity=5)
        for key in "ABCDE":
            assert cache.put(_rec(key)) == 0
        evicted = cache.put(_rec("F"))
        assert evicted == 1
        assert cache.keys() == ["B", "C", "D", "E", "F"]

    def test_evicts_a_fifth(self):
        cache = BoundedCache(capacity=10)
        for i in range(10):
            cache.put(_rec(f"k{i}"))
        assert cache.put(_rec("new")) == 2
        assert cache.keys()[0] == "k2"
        assert cache.size() == 9

    def test_small_capacity_evicts_at_least_one(self):
        cache = BoundedCache(capacity=3)
        for key in "abc":
            cache.put(_rec(key))
        assert cache.put(_rec("d")) == 1
        assert cache.size() == 3

    def test_size_never_exceeds_capacity(self):
        cache = BoundedCache(capacity=7)
        for i in range(100):
            cache.put(_rec(f"k{i}"))
            assert cache.size() <= 7

    def test_get_does_not_refresh_order(self):
        """Eviction is FIFO by insertion, not LRU."""
        cache = BoundedCache(capacity=5)
        for key in "ABCDE":
            cache.put(_rec(key))
        assert cache.get("A") is not None
        cache.put(_rec("F"))
        assert "A" not in cache

    def test_overwrite_moves_to_newest_without_eviction(self):
        cache = BoundedCache(capacity=5)
        for key in "ABCDE":
            cache.put(_rec(key))
        replacement = CacheRecord(key="A", resource_locator="https://audio.test/new", text="new", language="zh-CN")
        assert cache.put(replacement) == 0
        assert cache.size() == 5
        assert cache.keys() == ["B", "C", "D", "E", "A"]
        assert cache.get("A").resource_locator == "https://audio.test/new"

        cache.put(_rec("F"))
        assert "B" not in cache
        assert "A" in cache


class TestStatsAndClear:

    def test_stats(self):
        cache = BoundedCache(capacity=4)
        cache.put(_rec("a", "zh-CN"))
        cache.put(_rec("b", "zh-CN"))
        cache.put(_rec("c", "zh-TW"))
        stats = cache.stats()
        assert stats["size"] == 3
        assert stats["capacity"] == 4
        assert stats["utilization"] == pytest.approx(0.75)
        assert stats["per_language_counts"] == {"zh-CN": 2, "zh-TW": 1}

    def test_clear_returns_previous_size(self):
        cache = BoundedCache(capacity=4)
        cache.put(_rec("a"))
        cache.put(_rec("b"))
        assert cache.clear() == 2
        assert cache.size() == 0
        assert cache.stats()["per_language_counts"] == {}

    def test_delete(self):
        cache = BoundedCache(capacity=4)
        cache.put(_rec("a"))
        assert cache.delete("a") is True
        assert cache.delete("a") is False


class TestConcurrency:

    def test_concurrent_puts_keep_invariant(self):
        cache = BoundedCache(capacity=50)
        errors = []

        def writer(prefix: str):
            try:
                for i in range(300):
                    cache.put(_rec(f"{prefix}-{i}"))
                    if cache.size() > 50:
                        errors.append(cache.size())
            except Exception as e:  # pragma: no cover - surfaced via assert
                errors.append(e)

        threads = [threading.Thread(target=writer, args=(f"t{n}",)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert cache.size() <= 50
