from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx
from supabase import AuthApiError, AuthError, Client, ClientOptions, PostgrestAPIError, create_client

from bingebook.config import Settings
from bingebook.exceptions import SupabaseError, UpstreamError, UpstreamTimeoutError

# ids per `in.(...)` filter, which PostgREST reads from the query string
IN_FILTER_CHUNK_SIZE = 100


@dataclass(frozen=True)
class AuthUser:
    id: str
    email: str | None
    email_confirmed_at: str | None
    raw: dict[str, Any] = field(default_factory=dict, repr=False)


class SupabaseClient:
    """Adapter over supabase-py that maps its failures onto the BingeBook error taxonomy.

    Table reads and writes go through a client keyed with the service role key
    when one is configured. GoTrue calls go through a second, anon-keyed client
    so that a sign-in never changes the credentials used for data access.
    """

    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        data_client: Client | None = None,
        auth_client: Client | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._data = data_client or create_client(
            settings.supabase_url,
            settings.supabase_data_key,
            options=_client_options(settings),
        )
        self._auth = auth_client or create_client(
            settings.supabase_url,
            settings.supabase_anon_key,
            options=_client_options(settings),
        )
        self._auth_pool = ThreadPoolExecutor(max_workers=4, thread_name_prefix="supabase-auth")

    def close(self) -> None:
        self._auth_pool.shutdown(wait=False, cancel_futures=True)

    def table(self, name: str) -> TableQuery:
        return TableQuery(self._data.table(name), name, self._logger)

    def ping(self) -> None:
        self.table("movies").select("id").limit(1).execute()

    # -- auth -----------------------------------------------------------

    def get_user(self, access_token: str, timeout: float | None = None) -> AuthUser | None:
        """Resolve an access token to its user, None when the token is rejected."""
        try:
            response = self._call_auth("get_user", self._auth.auth.get_user, access_token, timeout=timeout)
        except SupabaseError as error:
            if error.status in {401, 403, 404}:
                return None
            raise
        if response is None or response.user is None:
            return None
        return _to_auth_user(response.user.model_dump(mode="json"))

    def sign_up(self, email: str, password: str, redirect_to: str | None = None) -> dict[str, Any]:
        credentials: dict[str, Any] = {"email": email, "password": password}
        if redirect_to:
            credentials["options"] = {"email_redirect_to": redirect_to}
        return _session_payload(self._call_auth("sign_up", self._auth.auth.sign_up, credentials))

    def sign_in_with_password(self, email: str, password: str) -> dict[str, Any]:
        response = self._call_auth(
            "sign_in_with_password",
            self._auth.auth.sign_in_with_password,
            {"email": email, "password": password},
        )
        return _session_payload(response)

    def sign_out(self, access_token: str) -> None:
        # revokes the caller's session rather than whatever the shared client holds
        self._call_auth("sign_out", self._auth.auth.admin.sign_out, access_token)

    def refresh_session(self, refresh_token: str) -> dict[str, Any]:
        return _session_payload(self._call_auth("refresh_session", self._auth.auth.refresh_session, refresh_token))

    def resend_signup(self, email: str, redirect_to: str | None = None) -> None:
        params: dict[str, Any] = {"type": "signup", "email": email}
        if redirect_to:
            params["options"] = {"email_redirect_to": redirect_to}
        self._call_auth("resend", self._auth.auth.resend, params)

    def build_oauth_url(
        self,
        provider: str,
        redirect_to: str,
        query_params: dict[str, str] | None = None,
        code_challenge: str | None = None,
    ) -> str:
        extra = dict(query_params or {})
        if code_challenge:
            extra["code_challenge"] = code_challenge
            extra["code_challenge_method"] = "s256"
        response = self._call_auth(
            "sign_in_with_oauth",
            self._auth.auth.sign_in_with_oauth,
            {"provider": provider, "options": {"redirect_to": redirect_to, "query_params": extra}},
        )
        return response.url

    def exchange_code_for_session(self, code: str, code_verifier: str | None = None) -> dict[str, Any]:
        params: dict[str, Any] = {"auth_code": code}
        if code_verifier:
            params["code_verifier"] = code_verifier
        return _session_payload(
            self._call_auth("exchange_code_for_session", self._auth.auth.exchange_code_for_session, params)
        )

    def _call_auth(self, operation: str, fn: Callable[..., Any], *args: Any, timeout: float | None = None) -> Any:
        budget = timeout if timeout is not None else self._settings.request_timeout_seconds
        future = self._auth_pool.submit(fn, *args)
        try:
            return future.result(timeout=budget)
        except TimeoutError as error:
            future.cancel()
            self._logger.warning("supabase_request_timeout", extra={"path": f"auth.{operation}", "timeout_s": budget})
            raise UpstreamTimeoutError("Supabase request timed out", details=f"auth.{operation}") from error
        except httpx.TimeoutException as error:
            self._logger.warning("supabase_request_timeout", extra={"path": f"auth.{operation}", "timeout_s": budget})
            raise UpstreamTimeoutError("Supabase request timed out", details=f"auth.{operation}") from error
        except AuthApiError as error:
            self._logger.debug(
                "supabase_request_failed",
                extra={"path": f"auth.{operation}", "status": error.status, "error": error.message},
            )
            raise SupabaseError(error.message, status=error.status) from error
        except (AuthError, httpx.RequestError) as error:
            self._logger.warning("supabase_request_network_error", extra={"path": f"auth.{operation}", "error": str(error)})
            raise UpstreamError(f"Supabase request failed: {error}") from error


class TableQuery:
    """Wraps a supabase-py request builder, executed by ``execute`` or ``first``."""

    def __init__(self, builder: Any, table: str, logger: logging.Logger) -> None:
        self._builder = builder
        self._table = table
        self._logger = logger
        self._reading = False

    def select(self, columns: str = "*") -> TableQuery:
        self._reading = True
        return self._chain(self._builder.select(columns))

    def insert(self, rows: dict[str, Any] | list[dict[str, Any]]) -> TableQuery:
        return self._chain(self._builder.insert(rows))

    def update(self, values: dict[str, Any]) -> TableQuery:
        return self._chain(self._builder.update(values))

    def delete(self) -> TableQuery:
        return self._chain(self._builder.delete())

    def eq(self, column: str, value: Any) -> TableQuery:
        return self._chain(self._builder.eq(column, value))

    def in_(self, column: str, values: list[Any]) -> TableQuery:
        return self._chain(self._builder.in_(column, values))

    def gte(self, column: str, value: Any) -> TableQuery:
        return self._chain(self._builder.gte(column, value))

    def lte(self, column: str, value: Any) -> TableQuery:
        return self._chain(self._builder.lte(column, value))

    def is_null(self, column: str) -> TableQuery:
        return self._chain(self._builder.is_(column, "null"))

    def not_null(self, column: str) -> TableQuery:
        return self._chain(self._builder.not_.is_(column, "null"))

    def order(self, column: str, desc: bool = False) -> TableQuery:
        return self._chain(self._builder.order(column, desc=desc))

    def limit(self, count: int) -> TableQuery:
        return self._chain(self._builder.limit(count))

    def execute(self) -> list[dict[str, Any]]:
        try:
            response = self._builder.execute()
        except PostgrestAPIError as error:
            self._logger.debug(
                "supabase_request_failed",
                extra={"path": self._table, "pg_code": error.code, "error": error.message},
            )
            raise SupabaseError(
                error.message or f"Supabase request on {self._table} failed",
                pg_code=str(error.code) if error.code is not None else None,
                details=error.details,
            ) from error
        except httpx.TimeoutException as error:
            self._logger.warning("supabase_request_timeout", extra={"path": self._table})
            raise UpstreamTimeoutError("Supabase request timed out", details=self._table) from error
        except httpx.RequestError as error:
            self._logger.warning("supabase_request_network_error", extra={"path": self._table, "error": str(error)})
            raise UpstreamError(f"Supabase request failed: {error}") from error

        data = response.data
        if data is None:
            return []
        if isinstance(data, dict):
            return [data]
        return list(data)

    def first(self) -> dict[str, Any] | None:
        if self._reading:
            self.limit(1)
        rows = self.execute()
        return rows[0] if rows else None

    def _chain(self, builder: Any) -> TableQuery:
        self._builder = builder
        return self


def _client_options(settings: Settings) -> ClientOptions:
    return ClientOptions(
        postgrest_client_timeout=settings.request_timeout_seconds,
        auto_refresh_token=False,
        persist_session=False,
    )


def _session_payload(response: Any) -> dict[str, Any]:
    user = response.user.model_dump(mode="json") if response.user is not None else None
    session = response.session.model_dump(mode="json") if response.session is not None else None
    return {"user": user, "session": session}


def _to_auth_user(payload: dict[str, Any]) -> AuthUser:
    return AuthUser(
        id=str(payload["id"]),
        email=payload.get("email"),
        email_confirmed_at=payload.get("email_confirmed_at") or payload.get("confirmed_at"),
        raw=payload,
    )


def select_in(
    store: Any,
    table: str,
    column: str,
    values: list[Any],
    chunk_size: int = IN_FILTER_CHUNK_SIZE,
) -> list[dict[str, Any]]:
    """Select every row of ``table`` whose ``column`` is in ``values``, one request per chunk."""
    rows: list[dict[str, Any]] = []
    for offset in range(0, len(values), chunk_size):
        chunk = values[offset : offset + chunk_size]
        rows.extend(store.table(table).select().in_(column, chunk).execute())
    return rows
