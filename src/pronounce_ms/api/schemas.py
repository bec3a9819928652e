"""
API Request/Response Schemas.

Pydantic models for the HTTP surface. Field names are snake_case in
Python and camelCase on the wire (alias generator), so clients see
`cacheKey`, `preloadId`, `responseTime` and so on.

Request bodies are deliberately loose (text content is checked by
services/validators.py so every rejection carries a precise reason).

Example Request:
    POST /audio
    {"text": "你好", "language": "zh-CN"}

Example Response:
    {
        "success": true,
        "text": "你好",
        "language": "zh-CN",
        "audioReference": "/play/5a2b9c1e...",
        "cacheKey": "5a2b9c1e...",
        "cached": false,
        "responseTime": "3ms"
    }
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ─────────────────────────────────────────────────────────────────────────────
# Requests
# ─────────────────────────────────────────────────────────────────────────────

class AudioRequest(CamelModel):
    """
    Body of POST /audio.

    Attributes:
        text: Chinese text, 1-100 characters.
        language: zh-CN or zh-TW. Defaults to the configured default.
    """
    text: Optional[Any] = Field(default=None, description="Chinese text to pronounce")
    language: Optional[str] = Field(default=None, description="Language code (zh-CN, zh-TW)")


class PreloadRequest(CamelModel):
    """Body of POST /preload. Up to 10 texts resolved in the background."""
    texts: Optional[Any] = Field(default=None, description="Texts to preload, in order")
    language: Optional[str] = Field(default=None, description="Language code for every text")


# ─────────────────────────────────────────────────────────────────────────────
# Responses
# ─────────────────────────────────────────────────────────────────────────────

class TimedResponse(CamelModel):
    success: bool = True
    response_time: str = Field(default="0ms", description="Handler time, e.g. '3ms'")


class AudioResponse(TimedResponse):
    text: str
    language: str
    audio_reference: str = Field(..., description="Playback path, /play/{cacheKey}")
    cache_key: str
    cached: bool


class PreloadAccepted(TimedResponse):
    preload_id: str
    status: str
    texts_count: int
    language: str
    status_url: str


class PreloadResultItem(CamelModel):
    text: str
    cache_key: str
    audio_reference: str
    was_cached: bool


class PreloadStatusResponse(TimedResponse):
    """
    Body of GET /preload/{id}.

    processing_duration is in milliseconds and only set once the job
    completed; error is only set once it failed.
    """
    preload_id: str
    status: str
    results: List[PreloadResultItem] = Field(default_factory=list)
    texts_count: int
    language: str
    processing_duration: Optional[int] = None
    error: Optional[str] = None
    timestamp: str


class CacheInfo(CamelModel):
    size: int
    capacity: int
    utilization: float = Field(..., description="size / capacity, 0.0-1.0")
    language_breakdown: Dict[str, int] = Field(default_factory=dict)


class PreloadQueueInfo(CamelModel):
    active: int
    processing: int


class CacheStatsResponse(TimedResponse):
    cache: CacheInfo
    preload_queue: PreloadQueueInfo


class CacheClearResponse(TimedResponse):
    message: str
    previous_cache_size: int


class HealthCache(CamelModel):
    size: int
    capacity: int


class HealthResponse(TimedResponse):
    status: str
    service: str
    version: str
    uptime: int
    timestamp: str
    cache: HealthCache
    average_response_times: Dict[str, int] = Field(default_factory=dict)
