from __future__ import annotations

from typing import Any


class BingeBookError(RuntimeError):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: str | None = None, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.details = details

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message, "code": self.code}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class AuthenticationError(BingeBookError):
    status_code = 401
    default_code = "AUTH_FAILED"


class AuthTimeoutError(BingeBookError):
    status_code = 408
    default_code = "AUTH_TIMEOUT"


class ValidationError(BingeBookError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFoundError(BingeBookError):
    status_code = 404
    default_code = "NOT_FOUND"


class UpstreamError(BingeBookError):
    """Raised when Supabase or TMDB fail in a way the caller cannot fix."""

    status_code = 500
    default_code = "UPSTREAM_ERROR"


class UpstreamTimeoutError(UpstreamError):
    status_code = 504
    default_code = "UPSTREAM_TIMEOUT"


class SupabaseError(UpstreamError):
    default_code = "SUPABASE_ERROR"

    def __init__(
        self,
        message: str,
        status: int | None = None,
        pg_code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message, details=details)
        self.status = status
        self.pg_code = pg_code

    @property
    def is_unique_violation(self) -> bool:
        return self.pg_code == "23505"


class TmdbError(UpstreamError):
    default_code = "TMDB_ERROR"
