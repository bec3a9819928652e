"""
Audio Retrieval Proxy.

Fetches the audio behind a cached record and relays it to the client,
so browsers never talk to the audio source directly.

Error Translation:
    unknown key             -> NotFoundError     (404)
    upstream timeout        -> UpstreamTimeout   (504)
    transport error/non-2xx -> UpstreamFailure   (500)

One attempt per request, no retries. The proxy never changes the cache.
Once the response headers have gone out, an upstream error can only end
the stream; it is logged instead of raised.
"""
from __future__ import annotations

from typing import Iterator, Optional

import httpx

from pronounce_ms.audio.cache import BoundedCache, CacheRecord
from pronounce_ms.core.config import Defaults, ProxyConfig
from pronounce_ms.core.errors import NotFoundError, UpstreamFailure, UpstreamTimeout
from pronounce_ms.core.logging import error, get_logger, info, verbose
from pronounce_ms.core.metrics import metrics

_LOG = get_logger("pronounce-ms.proxy")

_CHUNK_SIZE = 16 * 1024


class ProxiedAudio:
    """
    An open upstream audio response.

    Iterate with iter_bytes(); call close() when done (the API layer
    does this in a background task after the stream ends).
    """

    def __init__(
        self,
        record: CacheRecord,
        response: httpx.Response,
        content_type: str = Defaults.PROXY_CONTENT_TYPE,
        cache_max_age_s: int = Defaults.PROXY_CACHE_MAX_AGE_S,
    ):
        self.record = record
        self._response = response
        self.content_type = content_type
        self.cache_control = f"public, max-age={cache_max_age_s}"
        self.bytes_sent = 0

    @property
    def key(self) -> str:
        return self.record.key

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Cache-Control": self.cache_control,
            "Access-Control-Allow-Origin": "*",
        }

    def iter_bytes(self) -> Iterator[bytes]:
        try:
            for chunk in self._response.iter_bytes(_CHUNK_SIZE):
                self.bytes_sent += len(chunk)
                yield chunk
        except httpx.HTTPError as e:
            # Headers are already sent; ending the stream is all we can do
            error(_LOG, "stream_interrupted", key=self.key[:8], sent=self.bytes_sent, error=str(e))
        finally:
            self._response.close()
            metrics.record_proxy_bytes(self.bytes_sent)

    def close(self) -> None:
        self._response.close()
        verbose(_LOG, "stream_closed", key=self.key[:8], sent=self.bytes_sent)


class AudioProxy:
    """
    Streams cached audio from its upstream locator.

    Attributes:
        cache: Where locators are looked up.
        timeout_s: Bound on connecting to and reading from the source.
    """

    def __init__(
        self,
        cache: BoundedCache,
        timeout_s: float = Defaults.PROXY_TIMEOUT_S,
        content_type: str = Defaults.PROXY_CONTENT_TYPE,
        cache_max_age_s: int = Defaults.PROXY_CACHE_MAX_AGE_S,
        client: Optional[httpx.Client] = None,
    ):
        self.cache = cache
        self.timeout_s = float(timeout_s)
        self.content_type = content_type
        self.cache_max_age_s = cache_max_age_s
        self._owns_client = client is None
        self._client = client or httpx.Client(
            timeout=httpx.Timeout(self.timeout_s),
            follow_redirects=True,
        )

    @classmethod
    def from_config(
        cls,
        cache: BoundedCache,
        config: ProxyConfig,
        client: Optional[httpx.Client] = None,
    ) -> "AudioProxy":
        return cls(
            cache,
            timeout_s=config.timeout_s,
            content_type=config.content_type,
            cache_max_age_s=config.cache_max_age_s,
            client=client,
        )

    def open(self, key: str) -> ProxiedAudio:
        """
        Open the upstream audio for a cached key.

        Raises:
            NotFoundError: Key not in the cache.
            UpstreamTimeout: Source did not answer within timeout_s.
            UpstreamFailure: Transport error or non-2xx status.
        """
        record = self.cache.get(key)
        if record is None:
            raise NotFoundError("Audio not found in cache", details={"cacheKey": key})

        request = self._client.build_request(
            "GET",
            record.resource_locator,
            timeout=httpx.Timeout(self.timeout_s),
        )
        try:
            response = self._client.send(request, stream=True)
        except httpx.TimeoutException as e:
            error(_LOG, "upstream_timeout", key=key[:8], timeout=self.timeout_s)
            raise UpstreamTimeout(
                f"Audio source did not respond within {self.timeout_s}s",
                details={"cacheKey": key},
            ) from e
        except httpx.HTTPError as e:
            error(_LOG, "upstream_error", key=key[:8], error=str(e))
            raise UpstreamFailure(
                f"Failed to fetch audio: {e}",
                details={"cacheKey": key},
            ) from e

        if not response.is_success:
            status = response.status_code
            response.close()
            error(_LOG, "upstream_status", key=key[:8], status=status)
            raise UpstreamFailure(
                f"Audio source returned HTTP {status}",
                details={"cacheKey": key, "upstreamStatus": status},
            )

        info(_LOG, "proxy_open", key=key[:8])
        return ProxiedAudio(record, response, self.content_type, self.cache_max_age_s)

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
