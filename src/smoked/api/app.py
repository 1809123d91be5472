"""FastAPI application for the looking-glass service.

Endpoints:
    GET  /          → project banner
    GET  /lg        → names of the enabled operations
    POST /lg        → run one operation, body {"type": ..., "target": ...}
    GET  /files/*   → static files (when feature.files is enabled and its
                      directory exists at startup)

Every /lg reply is HTTP 200 with a body of either {"error": ...} or
{"data": ...}; failures are part of the payload, not the status code.

Middleware, outermost first: real client IP resolution, per-IP rate
limiting, CORS, request logging.

Usage:
    from smoked.api.app import create_app

    app = create_app(settings)
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Dict, Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.staticfiles import StaticFiles

from smoked import __version__
from smoked.api.rate_limit import RateLimiter, client_ip
from smoked.core.config import Settings, get_settings
from smoked.operations import Dispatcher, ProcessExecutor, build_registry

log = structlog.get_logger(__name__)

PROJECT_URL = "https://github.com/ccatss/smoked"

CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
CORS_ALLOW_HEADERS = ["Accept", "Content-Type", "X-Requested-With"]
CORS_MAX_AGE = 300


# -----------------------------------------------------------------------------
# Middleware
# -----------------------------------------------------------------------------


class _RealIPMiddleware(BaseHTTPMiddleware):
    """Stores the proxy-aware client address on ``request.state.client_ip``."""

    async def dispatch(self, request: Request, call_next):
        peer = request.client.host if request.client else None
        request.state.client_ip = client_ip(request.headers, peer)
        return await call_next(request)


class _RateLimitMiddleware(BaseHTTPMiddleware):
    """Rejects clients that exceed their request budget with HTTP 429."""

    def __init__(self, app, limiter: RateLimiter) -> None:
        super().__init__(app)
        self._limiter = limiter

    async def dispatch(self, request: Request, call_next):
        key = getattr(request.state, "client_ip", None) or "unknown"
        if not self._limiter.try_acquire(key):
            retry_after = max(1, int(self._limiter.retry_after(key) + 0.999))
            return PlainTextResponse(
                "Too Many Requests",
                status_code=429,
                headers={"Retry-After": str(retry_after)},
            )
        return await call_next(request)


class _RequestLogMiddleware(BaseHTTPMiddleware):
    """One structured log line per request."""

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        response = await call_next(request)
        log.info(
            "request_completed",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            client=getattr(request.state, "client_ip", None),
            duration_ms=int((time.perf_counter() - start_time) * 1000),
        )
        return response


# -----------------------------------------------------------------------------
# App factory
# -----------------------------------------------------------------------------


def build_dispatcher(settings: Settings) -> Dispatcher:
    """Wire the dispatch engine from settings."""
    return Dispatcher(
        registry=build_registry(feature_enabled=settings.feature_enabled),
        executor=ProcessExecutor(
            timeout=settings.executor.timeout,
            max_output_bytes=settings.executor.max_output_bytes,
        ),
        config_lookup=settings.lookup,
    )


def create_app(
    settings: Optional[Settings] = None,
    dispatcher: Optional[Dispatcher] = None,
) -> FastAPI:
    """Build the FastAPI application.

    Args:
        settings: Settings to use. Defaults to the global singleton.
        dispatcher: Pre-built dispatcher (tests inject stubbed executors).

    Returns:
        Configured FastAPI app.
    """
    if settings is None:
        settings = get_settings()
    if dispatcher is None:
        dispatcher = build_dispatcher(settings)

    app = FastAPI(
        title="smoked",
        description="Looking-glass network diagnostics API",
        version=__version__,
    )
    app.state.settings = settings
    app.state.dispatcher = dispatcher

    # add_middleware wraps, so the last one added runs first
    app.add_middleware(_RequestLogMiddleware)

    allowed_origins = [settings.cors.origin] if settings.cors.origin else ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=False,
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
        max_age=CORS_MAX_AGE,
    )

    limiter = RateLimiter(
        limit=settings.rate.limit,
        timeframe=settings.rate.timeframe.total_seconds(),
    )
    app.state.rate_limiter = limiter
    app.add_middleware(_RateLimitMiddleware, limiter=limiter)
    app.add_middleware(_RealIPMiddleware)

    if settings.feature.files.enabled:
        files_path = Path(settings.feature.files.path)
        if files_path.is_dir():
            log.info("file_server_enabled", path=str(files_path))
            app.mount("/files", StaticFiles(directory=str(files_path)), name="files")
        else:
            log.warning("file_server_path_missing", path=str(files_path))

    @app.get("/")
    def root() -> Dict[str, str]:
        return {"message": PROJECT_URL}

    @app.get("/lg")
    def list_operations() -> Dict[str, Any]:
        """Enabled operations; disabled ones are never advertised."""
        return {"operations": app.state.dispatcher.registry.names}

    @app.post("/lg")
    async def looking_glass(request: Request) -> JSONResponse:
        body = await request.body()
        response = await app.state.dispatcher.handle_payload(body)
        return JSONResponse(content=response.to_dict())

    log.info(
        "app_created",
        operations=dispatcher.registry.names,
        rate_limit=settings.rate.limit,
        rate_timeframe=settings.rate.timeframe.total_seconds(),
        cors_origins=allowed_origins,
    )
    return app
