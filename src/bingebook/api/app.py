from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Any

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from bingebook import __version__
from bingebook.api.routes import analytics, auth, debug, movies, series, user_stats
from bingebook.api.routes import tmdb as tmdb_routes
from bingebook.collection_service import CollectionService
from bingebook.config import Settings, load_settings
from bingebook.exceptions import BingeBookError
from bingebook.population import SeriesPopulator
from bingebook.stats_service import StatsService
from bingebook.supabase_client import SupabaseClient
from bingebook.tmdb_client import TmdbClient
from bingebook.token_cache import TokenCache


def create_app(
    settings: Settings | None = None,
    supabase: Any = None,
    tmdb: Any = None,
    token_cache: TokenCache | None = None,
    logger: logging.Logger | None = None,
    today_fn: Callable[[], date] | None = None,
) -> FastAPI:
    """Build the API. Collaborators default to real clients built from ``settings``."""
    settings = settings or load_settings()
    logger = logger or logging.getLogger("bingebook")
    supabase = supabase if supabase is not None else SupabaseClient(settings, logger)
    tmdb = tmdb if tmdb is not None else TmdbClient(settings, logger)
    today = today_fn or (lambda: datetime.now(settings.zone).date())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        for client in (supabase, tmdb):
            close = getattr(client, "close", None)
            if close is not None:
                close()
        logger.info("server_shutdown")

    app = FastAPI(title="BingeBook API", version=__version__, lifespan=lifespan)

    app.state.settings = settings
    app.state.logger = logger
    app.state.supabase = supabase
    app.state.tmdb = tmdb
    app.state.token_cache = token_cache or TokenCache(
        ttl_seconds=settings.token_cache_ttl_seconds,
        max_size=settings.token_cache_max_size,
    )
    app.state.collection = CollectionService(supabase, logger, today_fn=today)
    app.state.stats = StatsService(supabase, settings, logger, today_fn=today)
    app.state.populator = SeriesPopulator(supabase, tmdb, logger)

    app.add_middleware(GZipMiddleware, minimum_size=1024)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.allowed_origins),
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
    )

    @app.middleware("http")
    async def enforce_request_budget(request: Request, call_next):
        budget = settings.request_timeout_seconds
        try:
            return await asyncio.wait_for(call_next(request), timeout=budget)
        except asyncio.TimeoutError:
            logger.warning("request_timeout", extra={"path": request.url.path, "budget_s": budget})
            return JSONResponse(
                status_code=504,
                content={"error": "Gateway Timeout", "details": f"Request exceeded {budget}s budget"},
            )

    _register_error_handlers(app, logger)

    @app.get("/health", response_class=PlainTextResponse)
    def health() -> str:
        return "OK"

    app.include_router(auth.router)
    app.include_router(movies.router)
    app.include_router(series.router)
    app.include_router(tmdb_routes.router)
    app.include_router(analytics.router)
    app.include_router(user_stats.router)
    if not settings.is_production:
        app.include_router(debug.router)
        logger.info("debug_routes_enabled")

    return app


def _register_error_handlers(app: FastAPI, logger: logging.Logger) -> None:
    @app.exception_handler(BingeBookError)
    async def handle_app_error(request: Request, exc: BingeBookError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error(
                "request_failed",
                extra={"path": request.url.path, "code": exc.code, "error": exc.message},
            )
        return JSONResponse(status_code=exc.status_code, content=jsonable_encoder(exc.to_payload()))

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={
                "error": "Invalid request",
                "code": "VALIDATION_ERROR",
                "details": jsonable_encoder(exc.errors()),
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", extra={"path": request.url.path}, exc_info=exc)
        return JSONResponse(status_code=500, content={"error": "Internal Server Error"})
