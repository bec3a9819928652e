"""
Pronunciation Audio Service.

AudioService is the single entry point the API layer talks to. It owns
every stateful component and wires them together:

    AudioService
    ├── BoundedCache          (shared by lookups, preloads and the proxy)
    ├── AudioLookup           (cache + resolver)
    ├── JobRegistry           (preload jobs)
    ├── JobSweeper            (drops expired jobs every minute)
    ├── PreloadOrchestrator   (background preload passes)
    └── AudioProxy            (/play upstream streaming)

One instance is built per application by create_app() and stored on
app.state; there is no module-level singleton.

Example:
    >>> service = AudioService(ServiceConfig())
    >>> found = service.get_audio("你好")
    >>> found.cached
    False
"""
from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

from pronounce_ms import __version__
from pronounce_ms.audio.cache import BoundedCache
from pronounce_ms.audio.jobs import JobRegistry, JobStatus, JobSweeper, PreloadJob
from pronounce_ms.audio.lookup import AudioLookup, LookupResult
from pronounce_ms.audio.preload import PreloadOrchestrator
from pronounce_ms.audio.proxy import AudioProxy, ProxiedAudio
from pronounce_ms.audio.resolver import AudioResolver, TranslateTTSResolver
from pronounce_ms.core.config import ServiceConfig
from pronounce_ms.core.errors import NotFoundError
from pronounce_ms.core.logging import get_logger, info, success
from pronounce_ms.core.metrics import ResponseTimeTracker
from pronounce_ms.services.validators import validate_language, validate_text

_LOG = get_logger("pronounce-ms.service")

SERVICE_NAME = "Pronunciation Audio Service"


class AudioService:
    """
    Facade over the cache, preloading and proxy components.

    Attributes:
        config: Validated service configuration.
        cache: The shared record cache.
        registry: Preload job store.
        response_times: Rolling per-endpoint response times for /health.
    """

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        resolver: Optional[AudioResolver] = None,
        http_client: Optional[httpx.Client] = None,
    ):
        self.config = config or ServiceConfig()
        cfg = self.config

        self.cache = BoundedCache(cfg.cache.max_items, cfg.cache.eviction_fraction)
        self.resolver = resolver or TranslateTTSResolver.from_config(cfg.resolver)
        self.lookup = AudioLookup(self.cache, self.resolver, cfg.logging.text_preview_chars)

        self.registry = JobRegistry(cfg.preload.retention_seconds)
        self.sweeper = JobSweeper(self.registry, cfg.preload.sweep_interval_seconds)
        self.preloader = PreloadOrchestrator(
            self.lookup,
            self.registry,
            supported_languages=cfg.languages.supported,
            default_language=cfg.languages.default,
            max_texts=cfg.preload.max_texts,
            max_text_chars=cfg.text.max_chars,
            max_workers=cfg.preload.max_workers,
        )
        self.proxy = AudioProxy.from_config(self.cache, cfg.proxy, client=http_client)

        self.response_times = ResponseTimeTracker(cfg.logging.metrics_window)
        self._started_at = time.time()

    # ─────────────────────────────────────────────────────────────────────────
    # Lifecycle
    # ─────────────────────────────────────────────────────────────────────────

    def start(self) -> None:
        """Start background maintenance (the job sweeper)."""
        self.sweeper.start()
        success(
            _LOG, "service_started",
            capacity=self.cache.capacity,
            languages=",".join(self.config.languages.supported),
        )

    def shutdown(self, wait: bool = True) -> None:
        """Stop the sweeper and preload workers, release the HTTP client."""
        self.sweeper.stop()
        self.preloader.shutdown(wait=wait)
        self.proxy.close()
        info(_LOG, "service_stopped")

    @property
    def uptime(self) -> int:
        return int(time.time() - self._started_at)

    # ─────────────────────────────────────────────────────────────────────────
    # Operations
    # ─────────────────────────────────────────────────────────────────────────

    def get_audio(self, text: Any, language: Optional[str] = None) -> LookupResult:
        """
        Look up (and on a miss resolve) the audio for one text.

        Raises:
            ValidationError: Invalid text or language, cache untouched.
            UpstreamFailure: The resolver failed, nothing cached.
        """
        text = validate_text(text, self.config.text.max_chars)
        language = validate_language(language, self.config.languages.supported, self.config.languages.default)
        return self.lookup.lookup(text, language)

    def open_audio(self, key: str) -> ProxiedAudio:
        return self.proxy.open(key)

    def submit_preload(self, texts: Any, language: Optional[str] = None) -> PreloadJob:
        """
        Accept a preload batch.

        Returns:
            The job as registered (status processing).
        """
        return self.preloader.submit(texts, language)

    def get_preload(self, job_id: str) -> PreloadJob:
        """
        Raises:
            NotFoundError: Unknown id, purged or past the retention window.
        """
        job = self.registry.get(job_id)
        if job is None:
            raise NotFoundError("Preload job not found", details={"preloadId": job_id})
        return job

    def cache_stats(self) -> Dict[str, Any]:
        counts = self.registry.count_by_status()
        return {
            "cache": self.cache.stats(),
            "preload_queue": {
                "active": self.registry.size(),
                "processing": counts.get(JobStatus.PROCESSING, 0),
            },
        }

    def clear(self) -> Dict[str, int]:
        """
        Empty the cache and purge every preload job.

        Passes still running keep going; their later writes repopulate
        the cache and their final transition becomes a no-op.
        """
        previous_cache = self.cache.clear()
        previous_jobs = self.registry.clear()
        info(_LOG, "cache_cleared", records=previous_cache, jobs=previous_jobs)
        return {"previous_cache_size": previous_cache, "previous_jobs": previous_jobs}

    def health_info(self) -> Dict[str, Any]:
        return {
            "status": "healthy",
            "service": SERVICE_NAME,
            "version": __version__,
            "uptime": self.uptime,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cache": {
                "size": self.cache.size(),
                "capacity": self.cache.capacity,
            },
            "average_response_times": self.response_times.averages(),
        }
