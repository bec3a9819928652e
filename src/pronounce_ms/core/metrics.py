"""
Prometheus Metrics and Response Time Tracking.

Two kinds of measurements are kept:

    PronounceMetrics: Prometheus collectors on a private registry,
        exposed at GET /metrics.
    ResponseTimeTracker: rolling window of the last N response times per
        endpoint, averaged for GET /health.

Metrics Exposed:
    pronounce_requests_total            - Requests by endpoint and status code
    pronounce_request_duration_seconds  - Request latency histogram
    pronounce_cache_hits_total          - Cache hits
    pronounce_cache_misses_total        - Cache misses
    pronounce_cache_evictions_total     - Records removed by eviction
    pronounce_cache_size                - Current number of cached records
    pronounce_preload_jobs_total        - Preload jobs by outcome
    pronounce_proxy_bytes_total         - Audio bytes relayed by /play

Usage:
    from pronounce_ms.core.metrics import metrics

    metrics.record_request("/audio", 200, 0.012)
    metrics.record_cache("hit")
    content, content_type = metrics.get_metrics_response()
"""
from __future__ import annotations

import threading
from collections import deque
from typing import Deque, Dict

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

from pronounce_ms.core.config import Defaults


class PronounceMetrics:
    """
    Prometheus collectors for the pronunciation service.

    A custom CollectorRegistry keeps these metrics separate from anything
    else registered in the process, so several app instances (tests) can
    coexist.

    Thread Safety:
        Prometheus metric operations are thread-safe.
    """

    def __init__(self):
        self._registry = CollectorRegistry()

        self._requests_total = Counter(
            "pronounce_requests_total",
            "Total HTTP requests",
            ["endpoint", "status"],
            registry=self._registry,
        )
        self._request_duration = Histogram(
            "pronounce_request_duration_seconds",
            "HTTP request duration in seconds",
            ["endpoint"],
            buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
            registry=self._registry,
        )

        # Cache metrics
        self._cache_hits = Counter(
            "pronounce_cache_hits_total",
            "Total cache hits",
            registry=self._registry,
        )
        self._cache_misses = Counter(
            "pronounce_cache_misses_total",
            "Total cache misses",
            registry=self._registry,
        )
        self._cache_evictions = Counter(
            "pronounce_cache_evictions_total",
            "Total records evicted from the cache",
            registry=self._registry,
        )
        self._cache_size = Gauge(
            "pronounce_cache_size",
            "Current number of cached records",
            registry=self._registry,
        )

        self._preload_jobs = Counter(
            "pronounce_preload_jobs_total",
            "Preload jobs by outcome",
            ["outcome"],
            registry=self._registry,
        )
        self._proxy_bytes = Counter(
            "pronounce_proxy_bytes_total",
            "Audio bytes relayed to clients",
            registry=self._registry,
        )

    def record_request(self, endpoint: str, status: int, duration: float) -> None:
        """
        Record a completed HTTP request.

        Args:
            endpoint: Route path template (e.g. "/play/{cache_key}").
            status: HTTP status code.
            duration: Request duration in seconds.
        """
        self._requests_total.labels(endpoint=endpoint, status=str(status)).inc()
        self._request_duration.labels(endpoint=endpoint).observe(duration)

    def record_cache(self, result: str) -> None:
        """Record a cache "hit" or "miss"."""
        if result == "hit":
            self._cache_hits.inc()
        else:
            self._cache_misses.inc()

    def record_evictions(self, count: int) -> None:
        if count > 0:
            self._cache_evictions.inc(count)

    def set_cache_size(self, size: int) -> None:
        self._cache_size.set(size)

    def record_preload(self, outcome: str) -> None:
        """Record a preload job reaching "completed" or "failed"."""
        self._preload_jobs.labels(outcome=outcome).inc()

    def record_proxy_bytes(self, count: int) -> None:
        if count > 0:
            self._proxy_bytes.inc(count)

    def get_metrics_response(self) -> tuple[bytes, str]:
        """
        Get metrics in Prometheus format.

        Returns:
            Tuple of (content_bytes, content_type)
        """
        return generate_latest(self._registry), CONTENT_TYPE_LATEST


class ResponseTimeTracker:
    """
    Rolling response time window per endpoint.

    Only the most recent `window` samples are kept for each endpoint;
    averages are reported in milliseconds.

    Example:
        >>> tracker = ResponseTimeTracker(window=3)
        >>> for ms in (10, 20, 30, 40):
        ...     tracker.record("/audio", ms)
        >>> tracker.averages()
        {'/audio': 30}
    """

    def __init__(self, window: int = Defaults.METRICS_WINDOW):
        self.window = window
        self._samples: Dict[str, Deque[float]] = {}
        self._lock = threading.Lock()

    def record(self, endpoint: str, millis: float) -> None:
        with self._lock:
            samples = self._samples.get(endpoint)
            if samples is None:
                samples = deque(maxlen=self.window)
                self._samples[endpoint] = samples
            samples.append(millis)

    def averages(self) -> Dict[str, int]:
        """Average response time in whole milliseconds per endpoint."""
        with self._lock:
            return {
                endpoint: round(sum(samples) / len(samples))
                for endpoint, samples in self._samples.items()
                if samples
            }

    def clear(self) -> None:
        with self._lock:
            self._samples.clear()


# Global singleton metrics instance
metrics = PronounceMetrics()
