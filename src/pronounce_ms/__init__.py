"""
pronounce-ms: Chinese Pronunciation Audio Microservice.

Resolves short Chinese text snippets to playable audio, keeps the
results in a bounded in-memory cache, preloads batches in the
background and proxies the audio bytes to clients.

Key Features:
    - POST /audio: cached lookup returning a /play reference
    - GET /play/{key}: upstream audio streaming with timeout handling
    - POST /preload: asynchronous batch preloading with status polling
    - Bounded FIFO cache with batch eviction
    - Prometheus metrics and structured logging

Example Usage:
    >>> from pronounce_ms.services.audio_service import AudioService
    >>> service = AudioService()
    >>> service.get_audio("你好").record.key
    '...'

Server:
    pronounce-ms serve --port 3002
    # or
    uvicorn pronounce_ms.main:app --port 3002
"""

__version__ = "0.1.0"
