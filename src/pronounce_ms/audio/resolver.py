"""
Audio Resolvers.

A resolver turns (text, language) into a resource locator: a URI the
proxy can later fetch audio bytes from. Resolvers may be slow and may
fail; they are called at most once per cache miss and never retried.

The default TranslateTTSResolver builds the public translate TTS URL
without contacting the network. Anything with a matching `resolve`
method can be plugged into create_app() instead (tests use stubs).

Example:
    >>> r = TranslateTTSResolver()
    >>> r.resolve("你好", "zh-CN")
    'https://translate.google.com/translate_tts?ie=UTF-8&q=%E4%BD%A0%E5%A5%BD&tl=zh-CN&client=tw-ob'
"""
from __future__ import annotations

from typing import Protocol, runtime_checkable
from urllib.parse import urlencode

from pronounce_ms.core.config import Defaults, ResolverConfig


@runtime_checkable
class AudioResolver(Protocol):
    """Produces a fetchable audio locator for a text snippet."""

    def resolve(self, text: str, language: str) -> str:
        ...


class TranslateTTSResolver:
    """
    Resolver for the translate TTS endpoint.

    Attributes:
        base_url: Endpoint URL without query string.
        client: Value of the `client` query parameter.
    """

    def __init__(self, base_url: str = Defaults.RESOLVER_BASE_URL, client: str = Defaults.RESOLVER_CLIENT):
        self.base_url = base_url
        self.client = client

    @classmethod
    def from_config(cls, config: ResolverConfig) -> "TranslateTTSResolver":
        return cls(base_url=config.base_url, client=config.client)

    def resolve(self, text: str, language: str) -> str:
        query = urlencode({"ie": "UTF-8", "q": text, "tl": language, "client": self.client})
        return f"{self.base_url}?{query}"
