"""
Tests for the audio retrieval proxy.

Uses httpx.MockTransport as the audio source, no network access.
"""
from __future__ import annotations

import httpx
import pytest

from pronounce_ms.audio.cache import BoundedCache, CacheRecord
from pronounce_ms.audio.proxy import AudioProxy
from pronounce_ms.core.config import ProxyConfig
from pronounce_ms.core.errors import NotFoundError, UpstreamFailure, UpstreamTimeout

from conftest import AUDIO_BYTES, audio_host


def _cache_with(**locators) -> BoundedCache:
    cache = BoundedCache(capacity=10)
    for key, url in locators.items():
        cache.put(CacheRecord(key=key, resource_locator=url, text="你好", language="zh-CN"))
    return cache


@pytest.fixture
def mock_client():
    client = httpx.Client(transport=httpx.MockTransport(audio_host))
    yield client
    client.close()


class TestOpen:

    def test_streams_audio(self, mock_client):
        proxy = AudioProxy(_cache_with(ok="https://audio.test/tts"), client=mock_client)

        audio = proxy.open("ok")
        try:
            data = b"".join(audio.iter_bytes())
        finally:
            audio.close()

        assert data == AUDIO_BYTES
        assert audio.bytes_sent == len(AUDIO_BYTES)
        assert audio.content_type == "audio/mpeg"

    def test_stream_end_closes_upstream(self, mock_client):
        proxy = AudioProxy(_cache_with(ok="https://audio.test/tts"), client=mock_client)

        audio = proxy.open("ok")
        b"".join(audio.iter_bytes())

        assert audio._response.is_closed

    def test_abandoned_stream_closes_upstream(self, mock_client):
        proxy = AudioProxy(_cache_with(ok="https://audio.test/tts"), client=mock_client)

        audio = proxy.open("ok")
        stream = audio.iter_bytes()
        next(stream)
        stream.close()

        assert audio._response.is_closed

    def test_headers(self, mock_client):
        proxy = AudioProxy(_cache_with(ok="https://audio.test/tts"), client=mock_client)
        audio = proxy.open("ok")
        audio.close()
        assert audio.headers == {
            "Cache-Control": "public, max-age=3600",
            "Access-Control-Allow-Origin": "*",
        }

    def test_from_config(self, mock_client):
        config = ProxyConfig(timeout_s=3.0, cache_max_age_s=60, content_type="audio/ogg")
        proxy = AudioProxy.from_config(_cache_with(ok="https://audio.test/tts"), config, client=mock_client)
        audio = proxy.open("ok")
        audio.close()
        assert proxy.timeout_s == 3.0
        assert audio.content_type == "audio/ogg"
        assert audio.headers["Cache-Control"] == "public, max-age=60"


class TestErrors:

    def test_unknown_key(self, mock_client):
        proxy = AudioProxy(_cache_with(), client=mock_client)
        with pytest.raises(NotFoundError) as exc_info:
            proxy.open("missing")
        assert exc_info.value.http_status == 404
        assert exc_info.value.details == {"cacheKey": "missing"}

    def test_timeout(self, mock_client):
        proxy = AudioProxy(_cache_with(slow="https://audio.test/slow"), client=mock_client)
        with pytest.raises(UpstreamTimeout) as exc_info:
            proxy.open("slow")
        assert exc_info.value.http_status == 504

    def test_connect_error(self, mock_client):
        proxy = AudioProxy(_cache_with(broken="https://audio.test/broken"), client=mock_client)
        with pytest.raises(UpstreamFailure) as exc_info:
            proxy.open("broken")
        assert exc_info.value.http_status == 500

    def test_non_success_status(self, mock_client):
        proxy = AudioProxy(_cache_with(gone="https://audio.test/gone"), client=mock_client)
        with pytest.raises(UpstreamFailure) as exc_info:
            proxy.open("gone")
        assert exc_info.value.details["upstreamStatus"] == 503

    def test_failures_leave_cache_untouched(self, mock_client):
        cache = _cache_with(
            slow="https://audio.test/slow",
            broken="https://audio.test/broken",
            gone="https://audio.test/gone",
        )
        proxy = AudioProxy(cache, client=mock_client)
        for key in ("slow", "broken", "gone"):
            with pytest.raises((UpstreamTimeout, UpstreamFailure)):
                proxy.open(key)
        assert cache.keys() == ["slow", "broken", "gone"]


class _BrokenStream(httpx.SyncByteStream):

    def __iter__(self):
        yield b"abc"
        raise httpx.ReadError("connection reset")


class TestMidStream:

    def test_error_after_headers_ends_stream(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, stream=_BrokenStream())

        client = httpx.Client(transport=httpx.MockTransport(handler))
        try:
            proxy = AudioProxy(_cache_with(ok="https://audio.test/tts"), client=client)
            audio = proxy.open("ok")
            data = b"".join(audio.iter_bytes())
            audio.close()
        finally:
            client.close()

        assert data in (b"", b"abc")


class TestClientOwnership:

    def test_injected_client_not_closed(self, mock_client):
        proxy = AudioProxy(_cache_with(), client=mock_client)
        proxy.close()
        assert mock_client.is_closed is False

    def test_owned_client_closed(self):
        proxy = AudioProxy(_cache_with())
        proxy.close()
        assert proxy._client.is_closed is True
