from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from bingebook.config import Settings, load_settings
from bingebook.exceptions import BingeBookError
from bingebook.supabase_client import SupabaseClient
from bingebook.tmdb_client import TmdbClient


def main() -> None:
    args = _parse_args()
    settings = load_settings()
    _configure_logging(settings.log_level)
    logger = logging.getLogger("bingebook")

    if settings.running_in_docker:
        logger.info("runtime_docker_mode", extra={"config_path": settings.config_path})
    if not settings.tmdb_api_key:
        logger.warning("tmdb_disabled")

    if args.check_config:
        sys.exit(_check_config(settings, logger))

    host = args.host or settings.host
    port = args.port or settings.port

    _print_header(settings)
    logger.info("server_starting", extra={"host": host, "port": port, "env": settings.app_env})

    if args.reload:
        # reload needs an import string so the worker can rebuild the app
        uvicorn.run(
            "bingebook.api.app:create_app",
            factory=True,
            host=host,
            port=port,
            reload=True,
            log_config=None,
        )
        return

    from bingebook.api.app import create_app

    app = create_app(settings=settings, logger=logger)
    uvicorn.run(app, host=host, port=port, log_config=None)


def _check_config(settings: Settings, logger: logging.Logger) -> int:
    supabase = SupabaseClient(settings, logger)
    tmdb = TmdbClient(settings, logger)
    try:
        logger.info(f"Checking Supabase at {settings.supabase_url}...")
        supabase.ping()
        logger.info("\033[92m✓\033[0m Supabase reachable.")

        if tmdb.enabled:
            logger.info("Checking TMDB API key...")
            genres = tmdb.get_tv_genres()
            logger.info(f"\033[92m✓\033[0m TMDB reachable ({len(genres)} TV genres).")
    except BingeBookError as e:
        logger.error(f"\033[91mX\033[0m Configuration check failed: {e}")
        return 1
    finally:
        supabase.close()
        tmdb.close()

    logger.info("config_check_passed")
    return 0


def _configure_logging(level: str) -> None:
    from bingebook.logging_setup import configure_logging
    configure_logging(level)


def _print_header(settings: Settings) -> None:
    from bingebook import __version__

    tmdb_status = "\033[92mEnabled\033[0m" if settings.tmdb_api_key else "\033[93mNot configured\033[0m"
    supabase_key = "service role" if settings.supabase_service_role_key else "anon"

    print()
    print("\033[94m" + "=" * 50 + "\033[0m")
    print(f"\033[1m   BingeBook API v{__version__}\033[0m")
    print("\033[94m" + "=" * 50 + "\033[0m")
    print()
    print(f"   \033[90mSupabase:\033[0m  {settings.supabase_url} ({supabase_key} key)")
    print(f"   \033[90mTMDB:\033[0m      {tmdb_status}")
    print(f"   \033[90mEnv:\033[0m       {settings.app_env}")
    print(f"   \033[90mTimezone:\033[0m  {settings.timezone}")
    print(f"   \033[90mOrigins:\033[0m   {', '.join(settings.allowed_origins)}")
    print()
    print("\033[94m" + "-" * 50 + "\033[0m")
    print()


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="BingeBook watch tracking API")
    parser.add_argument(
        "--host",
        help="Interface to bind. Defaults to the configured host.",
    )
    parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on. Defaults to the configured port.",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Restart the server when source files change (development only).",
    )
    parser.add_argument(
        "--check-config",
        action="store_true",
        help="Verify Supabase and TMDB connectivity and exit.",
    )
    return parser.parse_args()


if __name__ == "__main__":
    main()
