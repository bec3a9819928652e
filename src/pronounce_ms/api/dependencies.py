"""
FastAPI Dependency Injection Providers.

The AudioService is built once per application by create_app() and kept
on app.state. Route handlers receive it through Depends(), so tests can
build independent apps with their own cache, registry and upstream
client.

Usage in Route Handlers:
    from pronounce_ms.api.dependencies import get_audio_service

    @router.post("/audio")
    def audio(req: AudioRequest, service: AudioService = Depends(get_audio_service)):
        ...
"""
from __future__ import annotations

from functools import lru_cache
import os

from fastapi import Request

from pronounce_ms.core.config import Settings, apply_env_overrides, load_settings
from pronounce_ms.core.logging import get_logger, warn
from pronounce_ms.services.audio_service import AudioService

_LOG = get_logger("pronounce-ms.api")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Load and cache application settings.

    The path comes from PRONOUNCE_MS_SETTINGS (default
    config/settings.yaml). A missing file means built-in defaults.
    """
    path = os.getenv("PRONOUNCE_MS_SETTINGS", "config/settings.yaml")
    try:
        return load_settings(path)
    except FileNotFoundError:
        warn(_LOG, "settings_missing", path=path)
        return Settings(raw=apply_env_overrides({}))


def get_audio_service(request: Request) -> AudioService:
    """
    Get the AudioService stored on app.state.

    Raises:
        RuntimeError: If the application was not built by create_app().
    """
    service = getattr(request.app.state, "audio_service", None)
    if service is None:
        raise RuntimeError("AudioService not initialized. Build the app with create_app().")
    return service
