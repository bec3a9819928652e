"""
Pronunciation API Routes.

Endpoints:
    GET  /health            - Service status, uptime, cache size, response times
    POST /audio             - Look up (or resolve) audio for one text
    GET  /play/{cache_key}  - Stream the cached audio through the proxy
    POST /preload           - Start a background batch preload
    GET  /preload/{id}      - Poll a preload job
    GET  /cache/stats       - Cache and preload queue statistics
    POST /cache/clear       - Empty the cache and purge preload jobs
    GET  /metrics           - Prometheus metrics

Error Handling:
    Every error is returned as JSON:
    {
        "success": false,
        "error": "<ERROR_CODE>",
        "message": "<human readable message>",
        "details": {...}
    }

    HTTP status codes follow PronounceError.http_status:
        - INVALID_INPUT -> 400
        - NOT_FOUND -> 404
        - UPSTREAM_FAILED -> 500
        - UPSTREAM_TIMEOUT -> 504
        - INTERNAL_ERROR -> 500

Example Usage:
    >>> import httpx
    >>> r = httpx.post("http://localhost:3002/audio", json={"text": "你好"})
    >>> audio = httpx.get("http://localhost:3002" + r.json()["audioReference"])
"""
from __future__ import annotations

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.background import BackgroundTask

from pronounce_ms.api.dependencies import get_audio_service
from pronounce_ms.api.schemas import (
    AudioRequest,
    AudioResponse,
    CacheClearResponse,
    CacheInfo,
    CacheStatsResponse,
    HealthCache,
    HealthResponse,
    PreloadAccepted,
    PreloadQueueInfo,
    PreloadRequest,
    PreloadResultItem,
    PreloadStatusResponse,
)
from pronounce_ms.audio.jobs import PreloadJob
from pronounce_ms.audio.preload import play_reference
from pronounce_ms.core.errors import ErrorCode, PronounceError
from pronounce_ms.core.logging import fail, get_logger, get_request_id, info
from pronounce_ms.core.metrics import metrics
from pronounce_ms.services.audio_service import AudioService
from pronounce_ms.utils.timeit import timeit

router = APIRouter()

_LOG = get_logger("pronounce-ms.api")

# Listed in the body of 404 responses for unknown routes
AVAILABLE_ENDPOINTS = [
    "GET /health",
    "POST /audio",
    "GET /play/:cacheKey",
    "POST /preload",
    "GET /preload/:preloadId",
    "GET /cache/stats",
    "POST /cache/clear",
    "GET /metrics",
]


def _error_response(error: PronounceError) -> JSONResponse:
    """Render a PronounceError with its HTTP status."""
    return JSONResponse(status_code=error.http_status, content=error.to_dict())


def _internal_error(exc: Exception, where: str) -> JSONResponse:
    """Log an unexpected exception and hide its details from the client."""
    rid = get_request_id()
    fail(_LOG, "unhandled_error", where=where, error=f"{type(exc).__name__}: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": ErrorCode.INTERNAL_ERROR,
            "message": f"Internal server error while handling {where}",
            "requestId": rid,
        },
    )


def _job_status(job: PreloadJob, response_time: str) -> PreloadStatusResponse:
    duration_ms = None
    if job.processing_duration is not None:
        duration_ms = round(job.processing_duration * 1000)
    return PreloadStatusResponse(
        preload_id=job.id,
        status=job.status,
        results=[
            PreloadResultItem(
                text=r.text,
                cache_key=r.cache_key,
                audio_reference=r.audio_reference,
                was_cached=r.was_cached,
            )
            for r in job.results
        ],
        texts_count=len(job.texts),
        language=job.language,
        processing_duration=duration_ms,
        error=job.error,
        timestamp=datetime.fromtimestamp(job.started_at, timezone.utc).isoformat(),
        response_time=response_time,
    )


@router.get("/health", response_model=HealthResponse)
def health(service: AudioService = Depends(get_audio_service)):
    """
    Health check for load balancers and monitoring.

    Reports uptime, cache size/capacity and the rolling average response
    time of every endpoint (last 100 requests each).
    """
    try:
        with timeit("health") as t:
            data = service.health_info()
    except Exception as e:
        return _internal_error(e, "/health")

    return HealthResponse(
        status=data["status"],
        service=data["service"],
        version=data["version"],
        uptime=data["uptime"],
        timestamp=data["timestamp"],
        cache=HealthCache(**data["cache"]),
        average_response_times=data["average_response_times"],
        response_time=f"{t.timing.millis}ms",
    )


@router.post("/audio", response_model=AudioResponse)
def audio(req: AudioRequest, service: AudioService = Depends(get_audio_service)):
    """
    Look up the pronunciation audio for a text.

    The first request for a (text, language) pair resolves it and answers
    cached=false; later requests are served from the cache. The returned
    audioReference is always the /play path, never the upstream URL.

    Raises:
        400: Text missing, too long or without Chinese characters;
             unsupported language
        500: Resolver failure (nothing is cached)
    """
    try:
        with timeit("audio") as t:
            found = service.get_audio(req.text, req.language)
    except PronounceError as e:
        return _error_response(e)
    except Exception as e:
        return _internal_error(e, "/audio")

    record = found.record
    return AudioResponse(
        text=record.text,
        language=record.language,
        audio_reference=play_reference(record.key),
        cache_key=record.key,
        cached=found.cached,
        response_time=f"{t.timing.millis}ms",
    )


@router.get("/play/{cache_key}")
def play(cache_key: str, service: AudioService = Depends(get_audio_service)):
    """
    Stream cached audio from its upstream source.

    Response headers:
        - Content-Type: audio/mpeg
        - Cache-Control: public, max-age=3600
        - Access-Control-Allow-Origin: *

    Raises:
        404: Key not cached (never looked up, evicted or cleared)
        500: Upstream transport error or error status
        504: Upstream did not answer in time
    """
    try:
        audio = service.open_audio(cache_key)
    except PronounceError as e:
        return _error_response(e)
    except Exception as e:
        return _internal_error(e, "/play")

    info(_LOG, "play", key=cache_key[:8], text=audio.record.text[: service.config.logging.text_preview_chars])
    return StreamingResponse(
        audio.iter_bytes(),
        media_type=audio.content_type,
        headers=audio.headers,
        background=BackgroundTask(audio.close),
    )


@router.post("/preload", response_model=PreloadAccepted)
def preload(req: PreloadRequest, service: AudioService = Depends(get_audio_service)):
    """
    Start preloading a batch of up to 10 texts.

    Answers immediately with the job id; poll statusUrl for the results.

    Raises:
        400: Empty or oversized batch, an invalid text, unsupported language
    """
    try:
        with timeit("preload") as t:
            job = service.submit_preload(req.texts, req.language)
    except PronounceError as e:
        return _error_response(e)
    except Exception as e:
        return _internal_error(e, "/preload")

    return PreloadAccepted(
        preload_id=job.id,
        status=job.status,
        texts_count=len(job.texts),
        language=job.language,
        status_url=f"/preload/{job.id}",
        response_time=f"{t.timing.millis}ms",
    )


@router.get("/preload/{preload_id}", response_model=PreloadStatusResponse)
def preload_status(preload_id: str, service: AudioService = Depends(get_audio_service)):
    """
    Current state of a preload job.

    Finished jobs stay readable for 5 minutes after they started.

    Raises:
        404: Unknown, purged or expired job
    """
    try:
        with timeit("preload_status") as t:
            job = service.get_preload(preload_id)
    except PronounceError as e:
        return _error_response(e)
    except Exception as e:
        return _internal_error(e, "/preload/:preloadId")

    return _job_status(job, f"{t.timing.millis}ms")


@router.get("/cache/stats", response_model=CacheStatsResponse)
def cache_stats(service: AudioService = Depends(get_audio_service)):
    """Cache size, capacity, utilization, per-language counts and preload queue."""
    try:
        with timeit("cache_stats") as t:
            stats = service.cache_stats()
    except Exception as e:
        return _internal_error(e, "/cache/stats")

    cache = stats["cache"]
    queue = stats["preload_queue"]
    return CacheStatsResponse(
        cache=CacheInfo(
            size=cache["size"],
            capacity=cache["capacity"],
            utilization=round(cache["utilization"], 4),
            language_breakdown=cache["per_language_counts"],
        ),
        preload_queue=PreloadQueueInfo(active=queue["active"], processing=queue["processing"]),
        response_time=f"{t.timing.millis}ms",
    )


@router.post("/cache/clear", response_model=CacheClearResponse)
def cache_clear(service: AudioService = Depends(get_audio_service)):
    """Empty the audio cache and purge every preload job."""
    try:
        with timeit("cache_clear") as t:
            result = service.clear()
    except Exception as e:
        return _internal_error(e, "/cache/clear")

    return CacheClearResponse(
        message="Cache cleared successfully",
        previous_cache_size=result["previous_cache_size"],
        response_time=f"{t.timing.millis}ms",
    )


@router.get("/metrics")
def prometheus_metrics():
    """Prometheus metrics in text exposition format."""
    content, content_type = metrics.get_metrics_response()
    return Response(content=content, media_type=content_type)
