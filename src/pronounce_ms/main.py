"""
FastAPI Application Entry Point.

Builds the pronounce-ms application: configuration, the AudioService
with its cache, preload registry and proxy, the HTTP routes, CORS and
request bookkeeping.

Each call to create_app() returns an independent application with its
own state, which is what the tests rely on.

Usage:
    # Run with uvicorn
    uvicorn pronounce_ms.main:app --host 0.0.0.0 --port 3002

    # Or through the CLI
    pronounce-ms serve
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from pronounce_ms import __version__
from pronounce_ms.api.dependencies import get_settings
from pronounce_ms.api.routes import AVAILABLE_ENDPOINTS, router
from pronounce_ms.audio.resolver import AudioResolver
from pronounce_ms.core.config import Settings
from pronounce_ms.core.errors import ErrorCode
from pronounce_ms.core.logging import configure_logging, get_logger, set_request_id, success, verbose
from pronounce_ms.core.metrics import metrics
from pronounce_ms.services.audio_service import AudioService
from pronounce_ms.utils.timeit import timeit

_LOG = get_logger("pronounce-ms.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start background maintenance on startup, release resources on shutdown."""
    service: AudioService = app.state.audio_service
    service.start()
    yield
    service.shutdown(wait=False)


def create_app(
    settings: Optional[Settings] = None,
    resolver: Optional[AudioResolver] = None,
    http_client: Optional[httpx.Client] = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Raw settings; loaded from PRONOUNCE_MS_SETTINGS when None.
        resolver: Audio resolver; the translate TTS resolver when None.
        http_client: Client used by the /play proxy; a new httpx.Client
            with the configured timeout when None.

    Returns:
        FastAPI: Configured application instance.

    Raises:
        ConfigValidationError: If the settings are invalid.
    """
    configure_logging()

    settings = settings if settings is not None else get_settings()
    config = settings.get_service_config()
    configure_logging(level=config.logging.level, force=True)

    app = FastAPI(title="pronounce-ms", version=__version__, lifespan=lifespan)
    app.state.settings = settings
    app.state.audio_service = AudioService(config, resolver=resolver, http_client=http_client)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def track_requests(request: Request, call_next):
        """Tag the request with an id and record its response time."""
        rid = request.headers.get("X-Request-Id") or uuid.uuid4().hex[:12]
        set_request_id(rid)
        with timeit("request") as t:
            response = await call_next(request)

        # Label by route template so /play/{cache_key} is one series
        route = request.scope.get("route")
        methods = getattr(route, "methods", None)
        if route is not None and (not methods or request.method in methods):
            endpoint = route.path
        elif response.status_code == 404:
            endpoint = "unmatched"
        else:
            endpoint = request.url.path
        metrics.record_request(endpoint, response.status_code, t.timing.seconds)
        if endpoint != "unmatched":
            app.state.audio_service.response_times.record(endpoint, t.timing.seconds * 1000)
        verbose(
            _LOG, "request",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            seconds=round(t.timing.seconds, 4),
        )
        response.headers["X-Request-Id"] = rid
        return response

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        # A known path with the wrong method is still an unknown endpoint
        if exc.status_code in (404, 405):
            return JSONResponse(
                status_code=404,
                content={
                    "success": False,
                    "error": ErrorCode.NOT_FOUND,
                    "message": f"Endpoint {request.method} {request.url.path} not found",
                    "availableEndpoints": AVAILABLE_ENDPOINTS,
                },
            )
        code = ErrorCode.INVALID_INPUT if exc.status_code < 500 else ErrorCode.INTERNAL_ERROR
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": code, "message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        # Malformed bodies are input errors like any other
        return JSONResponse(
            status_code=400,
            content={
                "success": False,
                "error": ErrorCode.INVALID_INPUT,
                "message": "Request body is malformed",
                "details": {"errors": [
                    {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
                    for err in exc.errors()
                ]},
            },
        )

    app.include_router(router)

    success(_LOG, "app_created", version=__version__, capacity=config.cache.max_items)
    return app


# Global application instance for ASGI servers (uvicorn, gunicorn, etc.)
app = create_app()
