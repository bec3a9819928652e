"""Tests for cache key derivation."""
from __future__ import annotations

import hashlib

from pronounce_ms.audio.keys import derive_key


class TestDeriveKey:

    def test_deterministic(self):
        assert derive_key("你好", "zh-CN") == derive_key("你好", "zh-CN")

    def test_md5_of_text_and_language(self):
        expected = hashlib.md5("你好-zh-CN".encode("utf-8")).hexdigest()
        assert derive_key("你好", "zh-CN") == expected

    def test_language_changes_key(self):
        assert derive_key("你好", "zh-CN") != derive_key("你好", "zh-TW")

    def test_text_changes_key(self):
        assert derive_key("你好", "zh-CN") != derive_key("再见", "zh-CN")

    def test_hex_digest_shape(self):
        key = derive_key("学习", "zh-CN")
        assert len(key) == 32
        assert all(c in "0123456789abcdef" for c in key)
