import logging
import sys

class ColorFormatter(logging.Formatter):
    """Custom formatter with colors for terminal output."""

    COLORS = {
        "DEBUG": "\033[90m",
        "INFO": "\033[97m",
        "WARNING": "\033[93m",
        "ERROR": "\033[91m",
        "CRITICAL": "\033[95m",
    }
    RESET = "\033[0m"

    ICONS = {
        "DEBUG": "   ",
        "INFO": " \033[94m>\033[0m ",
        "WARNING": " \033[93m!\033[0m ",
        "ERROR": " \033[91mX\033[0m ",
        "CRITICAL": " \033[95m!!\033[0m ",
    }

    IGNORE_LOGGERS = {"uvicorn.access"}

    def format(self, record):
        if hasattr(record, "name") and record.name in self.IGNORE_LOGGERS and record.levelname == "INFO":
            return None

        msg = record.getMessage()

        if msg == "auth_cache_hit":
            return None
        elif msg == "server_starting":
            host = getattr(record, "host", "0.0.0.0")
            port = getattr(record, "port", "?")
            return f"\033[92m●\033[0m Serving BingeBook API on \033[1m{host}:{port}\033[0m"
        elif msg == "server_shutdown":
            return f"\033[90m   Stopped gracefully.\033[0m\n"
        elif msg == "runtime_docker_mode":
            return f"\033[94m🐳\033[0m Running in Docker mode"
        elif msg == "tmdb_disabled":
            return f"\033[93m⚠\033[0m TMDB_API_KEY not set, metadata routes will fail"
        elif msg == "debug_routes_enabled":
            return f"\033[93m⚠\033[0m Debug routes mounted under /api/debug"
        elif msg == "auth_completed":
            duration = getattr(record, "duration_ms", 0)
            return f"\033[92m✓\033[0m Token validated ({duration}ms)"
        elif msg == "auth_failed":
            reason = getattr(record, "reason", "unknown")
            return f"\033[91mX\033[0m Authentication failed: {reason}"
        elif msg == "tmdb_season_fetch_failed":
            season = getattr(record, "season_number", "?")
            error = getattr(record, "error", "unknown error")
            return f"\033[93m⚠\033[0m TMDB season {season} failed, continuing with no episodes ({error})"
        elif msg == "series_populated":
            seasons = getattr(record, "seasons", 0)
            episodes = getattr(record, "episodes", 0)
            return f"\033[96m📥\033[0m Populated series with \033[1m{seasons}\033[0m seasons / \033[1m{episodes}\033[0m episodes"
        elif msg == "request_timeout":
            path = getattr(record, "path", "")
            return f"\033[91m⏱\033[0m Request exceeded budget: {path}"
        elif msg == "config_check_passed":
            return f"\033[92m★\033[0m Configuration check passed"

        icon = self.ICONS.get(record.levelname, "   ")
        line = f"{icon}{msg}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


class NoNoneFilter(logging.Filter):
    def filter(self, record):
        formatted = ColorFormatter().format(record)
        return formatted is not None

def configure_logging(level: str) -> None:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColorFormatter())
    console_handler.addFilter(NoNoneFilter())

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
    root.addHandler(console_handler)
    root.setLevel(level.upper())

    # uvicorn installs its own handlers; route everything through ours.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(name)
        uvicorn_logger.handlers = []
        uvicorn_logger.propagate = True
