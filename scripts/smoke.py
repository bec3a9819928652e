"""
End-to-end smoke checks against a running pronounce-ms.

Usage:
    python scripts/smoke.py --base-url http://127.0.0.1:3002
    python scripts/smoke.py --dry-run

Prints SMOKE_OK and exits 0 when every check passes.
"""
from __future__ import annotations

import argparse
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

import httpx


@dataclass
class SmokeResult:
    passed: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


def _expect(cond: bool, msg: str) -> None:
    if not cond:
        raise AssertionError(msg)


def _health(client: httpx.Client) -> None:
    r = client.get("/health")
    _expect(r.status_code == 200, f"status {r.status_code}")
    _expect(r.json()["status"] == "healthy", "not healthy")


def _audio_cold_then_hot(client: httpx.Client) -> None:
    client.post("/cache/clear")
    first = client.post("/audio", json={"text": "你好"}).json()
    second = client.post("/audio", json={"text": "你好"}).json()
    _expect(first["success"] and first["cached"] is False, f"first lookup {first}")
    _expect(second["cached"] is True, f"second lookup {second}")
    _expect(first["audioReference"] == f"/play/{first['cacheKey']}", "unexpected audioReference")


def _audio_rejects_non_chinese(client: httpx.Client) -> None:
    r = client.post("/audio", json={"text": "hello"})
    _expect(r.status_code == 400, f"status {r.status_code}")
    _expect(r.json()["error"] == "INVALID_INPUT", f"body {r.json()}")


def _preload_roundtrip(client: httpx.Client) -> None:
    texts = ["学习", "中文", "很好"]
    r = client.post("/preload", json={"texts": texts})
    _expect(r.status_code == 200, f"status {r.status_code}")
    body = r.json()
    _expect(body["status"] == "processing", f"body {body}")

    deadline = time.monotonic() + 10
    status: Dict[str, Any] = {}
    while time.monotonic() < deadline:
        status = client.get(body["statusUrl"]).json()
        if status["status"] != "processing":
            break
        time.sleep(0.1)
    _expect(status.get("status") == "completed", f"job {status}")
    _expect([x["text"] for x in status["results"]] == texts, "results out of order")


def _preload_limits(client: httpx.Client) -> None:
    _expect(client.post("/preload", json={"texts": []}).status_code == 400, "empty batch accepted")
    _expect(client.post("/preload", json={"texts": ["学习"] * 11}).status_code == 400, "11 texts accepted")


def _play_unknown_key(client: httpx.Client) -> None:
    _expect(client.get("/play/does-not-exist").status_code == 404, "unknown key not 404")


def _clear_then_stats(client: httpx.Client) -> None:
    client.post("/cache/clear")
    stats = client.get("/cache/stats").json()
    _expect(stats["cache"]["size"] == 0, f"stats {stats}")


CHECKS: List[Tuple[str, Callable[[httpx.Client], None]]] = [
    ("health", _health),
    ("audio cold then hot", _audio_cold_then_hot),
    ("audio rejects non-Chinese", _audio_rejects_non_chinese),
    ("preload round trip", _preload_roundtrip),
    ("preload batch limits", _preload_limits),
    ("play unknown key", _play_unknown_key),
    ("clear then stats", _clear_then_stats),
]


def run_smoke(
    base_url: str,
    timeout_s: float = 15.0,
    client: Optional[httpx.Client] = None,
) -> SmokeResult:
    """Run every check in order; pass `client` to reuse an existing session."""
    result = SmokeResult()
    if client is None:
        with httpx.Client(base_url=base_url, timeout=timeout_s) as owned:
            _run_checks(owned, result)
    else:
        _run_checks(client, result)
    return result


def _run_checks(client: httpx.Client, result: SmokeResult) -> None:
    for name, check in CHECKS:
        try:
            check(client)
            result.passed.append(name)
        except (AssertionError, httpx.HTTPError, KeyError) as e:
            result.failed.append((name, str(e)))


def main() -> int:
    ap = argparse.ArgumentParser(description="End-to-end smoke test against a running pronounce-ms")
    ap.add_argument("--base-url", default="http://127.0.0.1:3002")
    ap.add_argument("--timeout", type=float, default=15.0)
    ap.add_argument("--dry-run", action="store_true")
    args = ap.parse_args()

    if args.dry_run:
        print("SMOKE_DRY_RUN_OK")
        print({"base_url": args.base_url, "checks": [name for name, _ in CHECKS]})
        return 0

    res = run_smoke(args.base_url, timeout_s=args.timeout)
    for name in res.passed:
        print(f"PASS  {name}")
    for name, err in res.failed:
        print(f"FAIL  {name}: {err}")
    print(f"{len(res.passed)} passed, {len(res.failed)} failed")
    if res.ok:
        print("SMOKE_OK")
    return 0 if res.ok else 1


if __name__ == "__main__":
    raise SystemExit(main())
