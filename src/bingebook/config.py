from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from zoneinfo import ZoneInfo

import tomllib
from dotenv import load_dotenv

DEFAULT_SITE_URL = "https://thebingebook.netlify.app"
DEFAULT_TMDB_BASE_URL = "https://api.themoviedb.org/3"


@dataclass(frozen=True)
class Settings:
    supabase_url: str
    supabase_anon_key: str
    supabase_service_role_key: str | None
    tmdb_api_key: str | None
    tmdb_base_url: str
    tmdb_max_retries: int
    tmdb_retry_after_margin: float
    tmdb_season_delay_seconds: float
    host: str
    port: int
    allowed_origins: tuple[str, ...]
    app_env: str
    site_url: str
    request_timeout_seconds: float
    auth_timeout_seconds: float
    token_cache_ttl_seconds: float
    token_cache_max_size: int
    timezone: str
    log_level: str
    activity_window_days: int
    running_in_docker: bool
    config_path: str

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def supabase_data_key(self) -> str:
        return self.supabase_service_role_key or self.supabase_anon_key

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)


def load_settings() -> Settings:
    running_in_docker = _env_bool("RUNNING_IN_DOCKER", False)

    # Local development convenience: auto-load .env only outside Docker.
    if not running_in_docker:
        load_dotenv(override=False)

    config_path = os.getenv("CONFIG_PATH") or _default_config_path(running_in_docker)
    config_values = _load_config(Path(config_path))

    supabase_url = _pick_str("SUPABASE_URL", "supabase.url", config_values)
    supabase_anon_key = _pick_str("SUPABASE_ANON_KEY", "supabase.anon_key", config_values)

    missing = [
        name
        for name, value in (
            ("SUPABASE_URL", supabase_url),
            ("SUPABASE_ANON_KEY", supabase_anon_key),
        )
        if not value
    ]
    if missing:
        raise RuntimeError(f"Missing required Supabase configuration values: {', '.join(missing)}")

    timezone = _pick_str("TIMEZONE", "runtime.timezone", config_values, default="UTC")
    ZoneInfo(timezone)

    app_env = _pick_optional("APP_ENV", "server.env", config_values) or os.getenv("NODE_ENV") or "development"

    return Settings(
        supabase_url=supabase_url.rstrip("/"),
        supabase_anon_key=supabase_anon_key,
        supabase_service_role_key=_pick_optional(
            "SUPABASE_SERVICE_ROLE_KEY", "supabase.service_role_key", config_values
        ),
        tmdb_api_key=_pick_optional("TMDB_API_KEY", "tmdb.api_key", config_values),
        tmdb_base_url=_pick_str("TMDB_BASE_URL", "tmdb.base_url", config_values, default=DEFAULT_TMDB_BASE_URL),
        tmdb_max_retries=_pick_int("TMDB_MAX_RETRIES", "tmdb.max_retries", config_values, default=3),
        tmdb_retry_after_margin=_pick_float(
            "TMDB_RETRY_AFTER_MARGIN",
            "tmdb.retry_after_margin",
            config_values,
            default=0.5,
        ),
        tmdb_season_delay_seconds=_pick_float(
            "TMDB_SEASON_DELAY_SECONDS",
            "tmdb.season_delay_seconds",
            config_values,
            default=0.25,
        ),
        host=_pick_str("HOST", "server.host", config_values, default="0.0.0.0"),
        port=_pick_int("PORT", "server.port", config_values, default=3001),
        allowed_origins=_split_origins(_pick_str("ALLOWED_ORIGINS", "server.allowed_origins", config_values, default="*")),
        app_env=app_env,
        site_url=_pick_str("SITE_URL", "server.site_url", config_values, default=DEFAULT_SITE_URL).rstrip("/"),
        request_timeout_seconds=_pick_float(
            "REQUEST_TIMEOUT_SECONDS",
            "runtime.request_timeout_seconds",
            config_values,
            default=9.5,
        ),
        auth_timeout_seconds=_pick_float(
            "AUTH_TIMEOUT_SECONDS",
            "runtime.auth_timeout_seconds",
            config_values,
            default=10.0,
        ),
        token_cache_ttl_seconds=_pick_float(
            "TOKEN_CACHE_TTL_SECONDS",
            "runtime.token_cache_ttl_seconds",
            config_values,
            default=300.0,
        ),
        token_cache_max_size=_pick_int(
            "TOKEN_CACHE_MAX_SIZE",
            "runtime.token_cache_max_size",
            config_values,
            default=100,
        ),
        timezone=timezone,
        log_level=_pick_str("LOG_LEVEL", "runtime.log_level", config_values, default="INFO"),
        activity_window_days=_pick_int(
            "ACTIVITY_WINDOW_DAYS",
            "analytics.activity_window_days",
            config_values,
            default=90,
        ),
        running_in_docker=running_in_docker,
        config_path=config_path,
    )


def _default_config_path(running_in_docker: bool) -> str:
    if running_in_docker:
        return "/config/config.toml"
    return str(Path.cwd() / "config.toml")


def _load_config(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("rb") as handle:
        parsed = tomllib.load(handle)
    return _flatten(parsed)


def _flatten(payload: dict[str, Any], prefix: str = "") -> dict[str, Any]:
    out: dict[str, Any] = {}
    for key, value in payload.items():
        dotted = f"{prefix}.{key}" if prefix else key
        if isinstance(value, dict):
            out.update(_flatten(value, dotted))
        else:
            out[dotted] = value
    return out


def _split_origins(raw: str | list[str]) -> tuple[str, ...]:
    if isinstance(raw, list):
        parts = [str(item) for item in raw]
    else:
        parts = str(raw).split(",")
    origins = tuple(part.strip() for part in parts if part.strip())
    return origins or ("*",)


def _pick_optional(env_key: str, cfg_key: str, cfg: dict[str, Any]) -> str | None:
    env_val = os.getenv(env_key)
    if env_val:
        return env_val
    cfg_val = cfg.get(cfg_key)
    if cfg_val is None or cfg_val == "":
        return None
    if isinstance(cfg_val, list):
        return ",".join(str(item) for item in cfg_val)
    return str(cfg_val)


def _pick_str(env_key: str, cfg_key: str, cfg: dict[str, Any], default: str | None = None) -> str:
    picked = _pick_optional(env_key, cfg_key, cfg)
    if picked is None:
        return "" if default is None else default
    return picked


def _pick_int(env_key: str, cfg_key: str, cfg: dict[str, Any], default: int) -> int:
    env_val = os.getenv(env_key)
    if env_val:
        return int(env_val)
    cfg_val = cfg.get(cfg_key)
    if cfg_val is None:
        return default
    return int(cfg_val)


def _pick_float(env_key: str, cfg_key: str, cfg: dict[str, Any], default: float) -> float:
    env_val = os.getenv(env_key)
    if env_val:
        return float(env_val)
    cfg_val = cfg.get(cfg_key)
    if cfg_val is None:
        return default
    return float(cfg_val)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if not value:
        return default
    return _to_bool(value)


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    return lowered in {"1", "true", "yes", "on"}
