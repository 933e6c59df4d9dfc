from __future__ import annotations

import itertools
from dataclasses import replace
from typing import Any

from bingebook.config import Settings
from bingebook.exceptions import SupabaseError
from bingebook.supabase_client import AuthUser


def make_settings(**overrides: Any) -> Settings:
    settings = Settings(
        supabase_url="https://project.supabase.co",
        supabase_anon_key="anon-key",
        supabase_service_role_key=None,
        tmdb_api_key="tmdb-key",
        tmdb_base_url="https://api.themoviedb.org/3",
        tmdb_max_retries=0,
        tmdb_retry_after_margin=0.0,
        tmdb_season_delay_seconds=0.0,
        host="127.0.0.1",
        port=3001,
        allowed_origins=("*",),
        app_env="development",
        site_url="https://bingebook.test",
        request_timeout_seconds=5.0,
        auth_timeout_seconds=2.0,
        token_cache_ttl_seconds=300.0,
        token_cache_max_size=100,
        timezone="UTC",
        log_level="INFO",
        activity_window_days=90,
        running_in_docker=False,
        config_path="",
    )
    return replace(settings, **overrides)


class FakeQuery:
    def __init__(self, store: FakeSupabase, table: str) -> None:
        self._store = store
        self._table = table
        self._method = "GET"
        self._columns = "*"
        self._filters: list = []
        self._order: list[tuple[str, bool]] = []
        self._limit: int | None = None
        self._payload: Any = None

    def select(self, columns: str = "*") -> FakeQuery:
        self._columns = columns
        return self

    def eq(self, column: str, value: Any) -> FakeQuery:
        self._filters.append(lambda row: _same(row.get(column), value))
        return self

    def in_(self, column: str, values: list[Any]) -> FakeQuery:
        self._filters.append(lambda row: any(_same(row.get(column), value) for value in values))
        return self

    def gte(self, column: str, value: Any) -> FakeQuery:
        self._filters.append(lambda row: row.get(column) is not None and row[column] >= value)
        return self

    def lte(self, column: str, value: Any) -> FakeQuery:
        self._filters.append(lambda row: row.get(column) is not None and row[column] <= value)
        return self

    def is_null(self, column: str) -> FakeQuery:
        self._filters.append(lambda row: row.get(column) is None)
        return self

    def not_null(self, column: str) -> FakeQuery:
        self._filters.append(lambda row: row.get(column) is not None)
        return self

    def order(self, column: str, desc: bool = False) -> FakeQuery:
        self._order.append((column, desc))
        return self

    def limit(self, count: int) -> FakeQuery:
        self._limit = count
        return self

    def insert(self, rows: dict[str, Any] | list[dict[str, Any]]) -> FakeQuery:
        self._method = "POST"
        self._payload = rows
        return self

    def update(self, values: dict[str, Any]) -> FakeQuery:
        self._method = "PATCH"
        self._payload = values
        return self

    def delete(self) -> FakeQuery:
        self._method = "DELETE"
        return self

    def execute(self) -> list[dict[str, Any]]:
        self._store.calls.append((self._method, self._table))
        rows = self._store.rows(self._table)

        if self._method == "POST":
            batch = self._payload if isinstance(self._payload, list) else [self._payload]
            return [dict(self._store.insert_row(self._table, row)) for row in batch]

        matched = [row for row in rows if all(check(row) for check in self._filters)]
        if self._method == "PATCH":
            for row in matched:
                row.update(self._payload)
            return [dict(row) for row in matched]
        if self._method == "DELETE":
            for row in matched:
                rows.remove(row)
            return [dict(row) for row in matched]

        for column, desc in reversed(self._order):
            matched.sort(key=lambda row: (row.get(column) is None, row.get(column)), reverse=desc)
        if self._limit is not None:
            matched = matched[: self._limit]
        return [self._project(row) for row in matched]

    def first(self) -> dict[str, Any] | None:
        if self._method == "GET":
            self._limit = 1
        rows = self.execute()
        return rows[0] if rows else None

    def _project(self, row: dict[str, Any]) -> dict[str, Any]:
        if self._columns == "*":
            return dict(row)
        wanted = [column.strip() for column in self._columns.split(",")]
        return {column: row.get(column) for column in wanted}


class FakeSupabase:
    """In-memory stand-in for SupabaseClient with the same query builder surface."""

    def __init__(
        self,
        tables: dict[str, list[dict[str, Any]]] | None = None,
        tokens: dict[str, AuthUser] | None = None,
        unique: dict[str, tuple[str, ...]] | None = None,
    ) -> None:
        self.tables: dict[str, list[dict[str, Any]]] = {
            name: [dict(row) for row in rows] for name, rows in (tables or {}).items()
        }
        self.tokens = tokens or {}
        self.unique = unique or {}
        self.calls: list[tuple[str, str]] = []
        self.get_user_calls = 0
        self.signed_out: list[str] = []
        self.closed = False
        self._ids = itertools.count(1)

    def rows(self, table: str) -> list[dict[str, Any]]:
        return self.tables.setdefault(table, [])

    def insert_row(self, table: str, row: dict[str, Any]) -> dict[str, Any]:
        rows = self.rows(table)
        key = self.unique.get(table)
        if key and any(all(_same(existing.get(col), row.get(col)) for col in key) for existing in rows):
            raise SupabaseError("duplicate key value violates unique constraint", status=409, pg_code="23505")
        stored = {"id": f"{table}-{next(self._ids)}", "created_at": "2026-01-01T00:00:00+00:00", **row}
        rows.append(stored)
        return stored

    def table(self, name: str) -> FakeQuery:
        return FakeQuery(self, name)

    def get_user(self, access_token: str, timeout: float | None = None) -> AuthUser | None:
        del timeout
        self.get_user_calls += 1
        return self.tokens.get(access_token)

    def sign_out(self, access_token: str) -> None:
        self.signed_out.append(access_token)

    def close(self) -> None:
        self.closed = True


def _same(left: Any, right: Any) -> bool:
    return left == right or (left is not None and right is not None and str(left) == str(right))
