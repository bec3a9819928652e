"""Tests for the cache-backed lookup shared by /audio and preloading."""
from __future__ import annotations

import pytest

from pronounce_ms.audio.cache import BoundedCache
from pronounce_ms.audio.keys import derive_key
from pronounce_ms.audio.lookup import AudioLookup
from pronounce_ms.audio.resolver import AudioResolver, TranslateTTSResolver
from pronounce_ms.core.errors import UpstreamFailure, UpstreamTimeout

from conftest import StubResolver


class TestAudioLookup:

    def test_miss_then_hit(self):
        resolver = StubResolver()
        lookup = AudioLookup(BoundedCache(capacity=10), resolver)

        first = lookup.lookup("你好", "zh-CN")
        second = lookup.lookup("你好", "zh-CN")

        assert first.cached is False
        assert second.cached is True
        assert first.key == second.key == derive_key("你好", "zh-CN")
        assert resolver.calls == [("你好", "zh-CN")]

    def test_record_fields(self):
        lookup = AudioLookup(BoundedCache(capacity=10), StubResolver())
        record = lookup.lookup("学习", "zh-TW").record
        assert record.text == "学习"
        assert record.language == "zh-TW"
        assert record.resource_locator.startswith("https://audio.test/tts?")

    def test_resolver_failure_is_wrapped_and_not_cached(self):
        cache = BoundedCache(capacity=10)
        lookup = AudioLookup(cache, StubResolver(fail_on={"坏了"}))

        with pytest.raises(UpstreamFailure) as exc_info:
            lookup.lookup("坏了", "zh-CN")

        assert "resolver unavailable" in exc_info.value.message
        assert cache.size() == 0

    def test_service_errors_pass_through(self):
        class TimingOut:
            def resolve(self, text, language):
                raise UpstreamTimeout("too slow")

        lookup = AudioLookup(BoundedCache(capacity=10), TimingOut())
        with pytest.raises(UpstreamTimeout):
            lookup.lookup("你好", "zh-CN")


class TestTranslateTTSResolver:

    def test_locator_format(self):
        url = TranslateTTSResolver().resolve("你好", "zh-CN")
        assert url == (
            "https://translate.google.com/translate_tts"
            "?ie=UTF-8&q=%E4%BD%A0%E5%A5%BD&tl=zh-CN&client=tw-ob"
        )

    def test_configurable(self):
        url = TranslateTTSResolver(base_url="https://tts.example/api", client="abc").resolve("好", "zh-TW")
        assert url.startswith("https://tts.example/api?")
        assert "tl=zh-TW" in url
        assert "client=abc" in url

    def test_satisfies_protocol(self):
        assert isinstance(TranslateTTSResolver(), AudioResolver)
        assert isinstance(StubResolver(), AudioResolver)
