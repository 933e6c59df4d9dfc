from __future__ import annotations

import logging
import time
from typing import Optional

from fastapi import Header, Request

from bingebook.collection_service import CollectionService
from bingebook.config import Settings
from bingebook.exceptions import AuthenticationError, AuthTimeoutError, UpstreamError, UpstreamTimeoutError
from bingebook.population import SeriesPopulator
from bingebook.stats_service import StatsService
from bingebook.supabase_client import AuthUser, SupabaseClient
from bingebook.tmdb_client import TmdbClient
from bingebook.token_cache import TokenCache


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_logger(request: Request) -> logging.Logger:
    return request.app.state.logger


def get_supabase(request: Request) -> SupabaseClient:
    return request.app.state.supabase


def get_tmdb(request: Request) -> TmdbClient:
    return request.app.state.tmdb


def get_collection(request: Request) -> CollectionService:
    return request.app.state.collection


def get_stats(request: Request) -> StatsService:
    return request.app.state.stats


def get_populator(request: Request) -> SeriesPopulator:
    return request.app.state.populator


def bearer_token(authorization: Optional[str]) -> str | None:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    token = authorization[len("Bearer "):].strip()
    return token or None


def get_current_user(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> AuthUser:
    """Resolve the bearer token to a user, consulting the token cache first."""
    started = time.monotonic()
    logger: logging.Logger = request.app.state.logger
    cache: TokenCache[AuthUser] = request.app.state.token_cache

    token = bearer_token(authorization)
    if token is None:
        raise AuthenticationError("Missing or invalid authorization header", code="MISSING_AUTH_HEADER")

    cached = cache.get(token)
    if cached is not None:
        logger.debug("auth_cache_hit", extra={"duration_ms": _elapsed_ms(started)})
        return cached

    settings: Settings = request.app.state.settings
    supabase: SupabaseClient = request.app.state.supabase
    try:
        user = supabase.get_user(token, timeout=settings.auth_timeout_seconds)
    except UpstreamTimeoutError as error:
        logger.warning("auth_failed", extra={"reason": "timeout", "duration_ms": _elapsed_ms(started)})
        raise AuthTimeoutError("Authentication timeout", details={"duration": _elapsed_ms(started)}) from error
    except UpstreamError as error:
        logger.warning("auth_failed", extra={"reason": str(error), "duration_ms": _elapsed_ms(started)})
        raise AuthenticationError("Authentication failed", details={"duration": _elapsed_ms(started)}) from error

    if user is None:
        logger.info("auth_failed", extra={"reason": "invalid token"})
        raise AuthenticationError("Invalid or expired token", code="INVALID_TOKEN")

    cache.set(token, user)
    logger.info("auth_completed", extra={"user_id": user.id, "duration_ms": _elapsed_ms(started)})
    return user


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
