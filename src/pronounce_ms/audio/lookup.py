"""
Cache-Backed Audio Lookup.

The single lookup step shared by POST /audio and the preload pass:

    1. derive the cache key
    2. hit  -> return the stored record (cached=True)
    3. miss -> call the resolver, store a new record (cached=False)

A failed resolution is never cached. Resolver exceptions that are not
already service errors are reported as UpstreamFailure.
"""
from __future__ import annotations

from dataclasses import dataclass

from pronounce_ms.audio.cache import BoundedCache, CacheRecord
from pronounce_ms.audio.keys import derive_key
from pronounce_ms.audio.resolver import AudioResolver
from pronounce_ms.core.config import Defaults
from pronounce_ms.core.errors import PronounceError, UpstreamFailure
from pronounce_ms.core.logging import debug, get_logger, info, warn
from pronounce_ms.core.metrics import metrics
from pronounce_ms.utils.timeit import timeit

_LOG = get_logger("pronounce-ms.lookup")


@dataclass(frozen=True)
class LookupResult:
    record: CacheRecord
    cached: bool

    @property
    def key(self) -> str:
        return self.record.key


class AudioLookup:
    """
    Resolve text to a cached record, calling the resolver on a miss.

    Concurrent misses for the same key may both call the resolver; the
    last write wins.
    """

    def __init__(
        self,
        cache: BoundedCache,
        resolver: AudioResolver,
        preview_chars: int = Defaults.LOGGING_TEXT_PREVIEW_CHARS,
    ):
        self.cache = cache
        self.resolver = resolver
        self.preview_chars = preview_chars

    def lookup(self, text: str, language: str) -> LookupResult:
        key = derive_key(text, language)

        record = self.cache.get(key)
        if record is not None:
            metrics.record_cache("hit")
            info(_LOG, "hit", key=key[:8], language=language)
            return LookupResult(record=record, cached=True)

        metrics.record_cache("miss")
        debug(_LOG, "miss", key=key[:8], text=text[: self.preview_chars])

        with timeit("resolve") as t:
            try:
                locator = self.resolver.resolve(text, language)
            except PronounceError:
                raise
            except Exception as e:
                warn(_LOG, "resolve_failed", key=key[:8], error=str(e))
                raise UpstreamFailure(
                    f"Failed to resolve audio: {e}",
                    details={"key": key},
                ) from e

        record = CacheRecord(key=key, resource_locator=locator, text=text, language=language)
        self.cache.put(record)
        info(_LOG, "resolved", key=key[:8], language=language, seconds=round(t.timing.seconds, 4))
        return LookupResult(record=record, cached=False)
