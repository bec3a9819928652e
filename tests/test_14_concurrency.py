"""Tests for concurrent access through the API."""
from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

from conftest import wait_terminal

TEXTS = ["学习", "中文", "很好", "你好", "谢谢", "再见", "朋友", "老师"]


class TestConcurrentRequests:

    def test_parallel_lookups_share_cache(self, client):
        """Parallel lookups of the same texts end with one record per text."""
        def lookup(text):
            return client.post("/audio", json={"text": text}).json()

        with ThreadPoolExecutor(max_workers=8) as pool:
            bodies = list(pool.map(lookup, TEXTS * 4))

        assert all(b["success"] for b in bodies)
        stats = client.get("/cache/stats").json()["cache"]
        assert stats["size"] == len(TEXTS)

    def test_capacity_never_exceeded(self, client):
        """More distinct texts than capacity (50) keep the cache bounded."""
        texts = [f"字{i}" for i in range(120)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(lambda t: client.post("/audio", json={"text": t}), texts))

        stats = client.get("/cache/stats").json()["cache"]
        assert 0 < stats["size"] <= 50

    def test_parallel_preloads(self, client):
        batches = [TEXTS[i:i + 2] for i in range(0, len(TEXTS), 2)]

        with ThreadPoolExecutor(max_workers=4) as pool:
            urls = list(pool.map(
                lambda b: client.post("/preload", json={"texts": b}).json()["statusUrl"],
                batches,
            ))

        for batch, url in zip(batches, urls):
            done = wait_terminal(client, url)
            assert done["status"] == "completed"
            assert [r["text"] for r in done["results"]] == batch
