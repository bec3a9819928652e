"""Shared fixtures: stub resolver, fake upstream audio host, app factory."""
from __future__ import annotations

import threading
import time
from urllib.parse import urlencode

import httpx
import pytest

AUDIO_BYTES = b"ID3\x03\x00fake-mp3-frames" * 64

# Texts whose locators point at misbehaving upstream paths
SLOW_TEXT = "超时"
BROKEN_TEXT = "断开"
GONE_TEXT = "失败"
# Text the resolver itself refuses
RESOLVER_FAIL_TEXT = "坏了"


class StubResolver:
    """Resolver that records calls and never touches the network."""

    def __init__(self, fail_on=(), locators=None, delay: float = 0.0):
        self.fail_on = set(fail_on)
        self.locators = dict(locators or {})
        self.delay = delay
        self.calls: list[tuple[str, str]] = []
        self._lock = threading.Lock()

    def resolve(self, text: str, language: str) -> str:
        with self._lock:
            self.calls.append((text, language))
        if self.delay:
            time.sleep(self.delay)
        if text in self.fail_on:
            raise RuntimeError(f"resolver unavailable for {text}")
        if text in self.locators:
            return self.locators[text]
        return f"https://audio.test/tts?{urlencode({'q': text, 'tl': language})}"


def audio_host(request: httpx.Request) -> httpx.Response:
    """Fake upstream: /slow times out, /broken refuses, /gone answers 503."""
    path = request.url.path
    if path == "/slow":
        raise httpx.ReadTimeout("read timed out", request=request)
    if path == "/broken":
        raise httpx.ConnectError("connection refused", request=request)
    if path == "/gone":
        return httpx.Response(503, text="unavailable")
    return httpx.Response(200, content=AUDIO_BYTES, headers={"content-type": "audio/mpeg"})


def wait_terminal(client, status_url: str, timeout: float = 5.0) -> dict:
    """Poll a preload status URL until the job leaves processing."""
    deadline = time.monotonic() + timeout
    body: dict = {}
    while time.monotonic() < deadline:
        body = client.get(status_url).json()
        if body.get("status") != "processing":
            return body
        time.sleep(0.02)
    raise AssertionError(f"job still processing after {timeout}s: {body}")


@pytest.fixture
def resolver() -> StubResolver:
    return StubResolver(
        fail_on={RESOLVER_FAIL_TEXT},
        locators={
            SLOW_TEXT: "https://audio.test/slow",
            BROKEN_TEXT: "https://audio.test/broken",
            GONE_TEXT: "https://audio.test/gone",
        },
    )


@pytest.fixture
def http_client():
    client = httpx.Client(transport=httpx.MockTransport(audio_host))
    yield client
    client.close()


@pytest.fixture
def settings():
    from pronounce_ms.core.config import Settings

    return Settings(raw={
        "cache": {"max_items": 50},
        "preload": {"max_workers": 2, "sweep_interval_seconds": 60},
        "proxy": {"timeout_s": 2},
    })


@pytest.fixture
def app(settings, resolver, http_client):
    from pronounce_ms.main import create_app

    return create_app(settings=settings, resolver=resolver, http_client=http_client)


@pytest.fixture
def client(app):
    from fastapi.testclient import TestClient

    with TestClient(app) as c:
        yield c
