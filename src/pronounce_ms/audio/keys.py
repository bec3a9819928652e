"""
Cache Key Derivation.

Keys are the MD5 hex digest of "{text}-{language}". They are a
best-effort cache identity, not a unique identifier: two different
pairs that produce the same digest share one cache slot.

Example:
    >>> derive_key("你好", "zh-CN") == derive_key("你好", "zh-CN")
    True
    >>> len(derive_key("你好", "zh-CN"))
    32
"""
from __future__ import annotations

import hashlib


def derive_key(text: str, language: str) -> str:
    """Return the cache key for a (text, language) pair."""
    payload = f"{text}-{language}".encode("utf-8")
    return hashlib.md5(payload).hexdigest()
