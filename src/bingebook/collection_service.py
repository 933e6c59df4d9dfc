from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import date, datetime, timezone
from typing import Any

from bingebook.exceptions import NotFoundError, SupabaseError, ValidationError
from bingebook.fields import (
    EPISODE_FIELDS,
    MOVIE_FIELDS,
    SEASON_FIELDS,
    SERIES_OVERVIEW_FIELDS,
    camelize,
    to_database,
    to_response,
    to_response_many,
)
from bingebook.models import CATEGORY_SERIES, SEASON_COMPLETED, parse_episode, parse_season
from bingebook.progress import summarize_season_episodes
from bingebook.supabase_client import select_in

MOVIE_REQUIRED_FIELDS = ("title", "genre", "category", "releaseYear", "platform", "rating", "status")
READ_ONLY_COLUMNS = ("id", "user_id", "created_at", "updated_at")


class CollectionService:
    """Per-user CRUD over movies, series seasons and episodes.

    Every operation is scoped to ``user_id``. Seasons and episodes carry no
    owner column, so they are resolved to their series before anything is
    read or written.
    """

    def __init__(
        self,
        store: Any,
        logger: logging.Logger,
        today_fn: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._logger = logger
        self._today = today_fn

    # -- movies -----------------------------------------------------------

    def list_movies(self, user_id: str) -> list[dict[str, Any]]:
        rows = self._store.table("movies").select().eq("user_id", user_id).order("created_at", desc=True).execute()
        return to_response_many(rows, MOVIE_FIELDS)

    def add_movie(self, user_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        missing = [
            name
            for name in MOVIE_REQUIRED_FIELDS
            if payload.get(name) is None or (name != "rating" and payload.get(name) == "")
        ]
        if missing:
            raise ValidationError("Missing required fields", details=missing)

        row = to_database(payload, MOVIE_FIELDS, exclude=READ_ONLY_COLUMNS)
        row["user_id"] = user_id
        try:
            created = self._store.table("movies").insert(row).first()
        except SupabaseError as error:
            if error.is_unique_violation:
                raise ValidationError("This movie already exists in your collection", code="DUPLICATE") from error
            raise
        self._logger.info("movie_added", extra={"user_id": user_id, "category": row.get("category")})
        return to_response(created, MOVIE_FIELDS)

    def update_movie(self, user_id: str, movie_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        updates = to_database(payload, MOVIE_FIELDS, exclude=READ_ONLY_COLUMNS)
        updates["updated_at"] = _now_iso()
        updated = (
            self._store.table("movies").update(updates).eq("id", movie_id).eq("user_id", user_id).first()
        )
        if updated is None:
            raise NotFoundError("Movie not found")
        return to_response(updated, MOVIE_FIELDS)

    def delete_movie(self, user_id: str, movie_id: str) -> None:
        self._store.table("movies").delete().eq("id", movie_id).eq("user_id", user_id).execute()

    # -- seasons ----------------------------------------------------------

    def list_all_seasons(self, user_id: str) -> list[dict[str, Any]]:
        series_ids = self._series_ids(user_id)
        if not series_ids:
            return []
        rows = select_in(self._store, "series_seasons", "series_id", series_ids)
        rows.sort(key=lambda row: row.get("season_number") or 0)
        return to_response_many(rows, SEASON_FIELDS)

    def list_seasons(self, user_id: str, series_id: str) -> list[dict[str, Any]]:
        self._require_series(user_id, series_id)
        rows = (
            self._store.table("series_seasons")
            .select()
            .eq("series_id", series_id)
            .order("season_number")
            .execute()
        )
        return to_response_many(rows, SEASON_FIELDS)

    def get_season(self, user_id: str, season_id: str) -> dict[str, Any]:
        return to_response(self._require_season(user_id, season_id), SEASON_FIELDS)

    def create_season(self, user_id: str, series_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._require_series(user_id, series_id)
        row = to_database(payload, SEASON_FIELDS, exclude=(*READ_ONLY_COLUMNS, "series_id"))
        row["series_id"] = series_id
        created = self._store.table("series_seasons").insert(row).first()
        return to_response(created, SEASON_FIELDS)

    def update_season(self, user_id: str, season_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._require_season(user_id, season_id)
        updates = to_database(payload, SEASON_FIELDS, exclude=(*READ_ONLY_COLUMNS, "series_id"))
        return self._update_season_row(season_id, updates)

    def delete_season(self, user_id: str, season_id: str) -> None:
        self._require_season(user_id, season_id)
        self._store.table("series_seasons").delete().eq("id", season_id).execute()

    def update_season_progress(self, user_id: str, season_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._require_season(user_id, season_id)
        updates: dict[str, Any] = {}
        if "episodesWatched" in payload:
            updates["episodes_watched"] = payload["episodesWatched"]
        if "status" in payload:
            updates["status"] = payload["status"]
        if "watchDate" in payload:
            updates["watch_date"] = payload["watchDate"]
        if payload.get("status") == SEASON_COMPLETED and not payload.get("watchDate"):
            updates["watch_date"] = self._today().isoformat()
        return self._update_season_row(season_id, updates)

    def series_overview(self, user_id: str, series_id: str) -> dict[str, Any]:
        row = (
            self._store.table("series_with_seasons")
            .select()
            .eq("series_id", series_id)
            .eq("user_id", user_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Series not found")
        return to_response(row, SERIES_OVERVIEW_FIELDS)

    # -- episodes ---------------------------------------------------------

    def list_episodes(self, user_id: str, season_id: str) -> list[dict[str, Any]]:
        self._require_season(user_id, season_id)
        return to_response_many(self._season_episode_rows(season_id), EPISODE_FIELDS)

    def get_episode(self, user_id: str, episode_id: str) -> dict[str, Any]:
        return to_response(self._require_episode(user_id, episode_id), EPISODE_FIELDS)

    def create_episode(self, user_id: str, season_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._require_season(user_id, season_id)
        row = to_database(payload, EPISODE_FIELDS, exclude=(*READ_ONLY_COLUMNS, "season_id"))
        row["season_id"] = season_id
        created = self._store.table("series_episodes").insert(row).first()
        return to_response(created, EPISODE_FIELDS)

    def update_episode(self, user_id: str, episode_id: str, payload: dict[str, Any]) -> dict[str, Any]:
        self._require_episode(user_id, episode_id)
        updates = to_database(payload, EPISODE_FIELDS, exclude=(*READ_ONLY_COLUMNS, "season_id"))
        if updates.get("watched") and not updates.get("watch_date"):
            updates["watch_date"] = self._today().isoformat()
        return self._update_episode_row(episode_id, updates)

    def delete_episode(self, user_id: str, episode_id: str) -> None:
        self._require_episode(user_id, episode_id)
        self._store.table("series_episodes").delete().eq("id", episode_id).execute()

    def toggle_watched(
        self,
        user_id: str,
        episode_id: str,
        watched: bool,
        watch_date: str | None = None,
        rating: float | None = None,
    ) -> dict[str, Any]:
        self._require_episode(user_id, episode_id)
        updates: dict[str, Any] = {"watched": watched, "watch_date": self._stamp(watched, watch_date)}
        if rating is not None:
            updates["rating"] = rating
        return self._update_episode_row(episode_id, updates)

    def bulk_update_episodes(
        self,
        user_id: str,
        season_id: str,
        episode_numbers: list[int],
        watched: bool,
        watch_date: str | None = None,
    ) -> list[dict[str, Any]]:
        self._require_season(user_id, season_id)
        if not episode_numbers:
            return []
        rows = (
            self._store.table("series_episodes")
            .update({"watched": watched, "watch_date": self._stamp(watched, watch_date)})
            .eq("season_id", season_id)
            .in_("episode_number", episode_numbers)
            .execute()
        )
        return to_response_many(rows, EPISODE_FIELDS)

    def mark_watched_up_to(
        self,
        user_id: str,
        season_id: str,
        episode_number: int,
        watch_date: str | None = None,
    ) -> list[dict[str, Any]]:
        self._require_season(user_id, season_id)
        rows = (
            self._store.table("series_episodes")
            .update({"watched": True, "watch_date": self._stamp(True, watch_date)})
            .eq("season_id", season_id)
            .lte("episode_number", episode_number)
            .execute()
        )
        return to_response_many(rows, EPISODE_FIELDS)

    def season_episode_stats(self, user_id: str, season_id: str) -> dict[str, Any]:
        season_row = self._require_season(user_id, season_id)
        series = self._require_series(user_id, season_row["series_id"])
        episodes = [parse_episode(row) for row in self._season_episode_rows(season_id)]
        stats = summarize_season_episodes(parse_season(season_row), series.get("title") or "Unknown", episodes)
        if stats is None:
            raise NotFoundError("Season not found or no episodes")
        return camelize(stats)

    # -- diagnostics ------------------------------------------------------

    def debug_all_series(self, user_id: str, email: str | None) -> dict[str, Any]:
        series_rows = (
            self._store.table("movies")
            .select("id,title,category,tmdb_id,created_at")
            .eq("user_id", user_id)
            .eq("category", CATEGORY_SERIES)
            .execute()
        )
        series = []
        for row in series_rows:
            seasons = self._store.table("series_seasons").select("id").eq("series_id", row["id"]).execute()
            series.append({**to_response(row, MOVIE_FIELDS), "seasonsCount": len(seasons)})
        return {"totalSeries": len(series), "series": series, "user": {"id": user_id, "email": email}}

    def debug_series(self, user_id: str, email: str | None, series_id: str) -> dict[str, Any]:
        series = self._store.table("movies").select().eq("id", series_id).eq("user_id", user_id).first()
        if series is None:
            raise NotFoundError("Series not found")

        seasons = self._store.table("series_seasons").select().eq("series_id", series_id).execute()
        episodes = [
            {
                "seasonId": season["id"],
                "seasonNumber": season.get("season_number"),
                "episodes": self._season_episode_rows(season["id"]),
            }
            for season in seasons
        ]
        return {
            "series": series,
            "seasons": seasons,
            "episodes": episodes,
            "counts": {
                "seasonsCount": len(seasons),
                "totalEpisodes": sum(len(entry["episodes"]) for entry in episodes),
            },
            "user": {"id": user_id, "email": email},
        }

    # -- helpers ----------------------------------------------------------

    def _series_ids(self, user_id: str) -> list[str]:
        rows = (
            self._store.table("movies")
            .select("id")
            .eq("user_id", user_id)
            .eq("category", CATEGORY_SERIES)
            .execute()
        )
        return [row["id"] for row in rows]

    def _require_series(self, user_id: str, series_id: str) -> dict[str, Any]:
        row = (
            self._store.table("movies")
            .select()
            .eq("id", series_id)
            .eq("user_id", user_id)
            .eq("category", CATEGORY_SERIES)
            .first()
        )
        if row is None:
            raise NotFoundError("Series not found")
        return row

    def _require_season(self, user_id: str, season_id: str) -> dict[str, Any]:
        season = self._store.table("series_seasons").select().eq("id", season_id).first()
        if season is None:
            raise NotFoundError("Season not found")
        try:
            self._require_series(user_id, season["series_id"])
        except NotFoundError:
            raise NotFoundError("Season not found") from None
        return season

    def _require_episode(self, user_id: str, episode_id: str) -> dict[str, Any]:
        episode = self._store.table("series_episodes").select().eq("id", episode_id).first()
        if episode is None:
            raise NotFoundError("Episode not found")
        try:
            self._require_season(user_id, episode["season_id"])
        except NotFoundError:
            raise NotFoundError("Episode not found") from None
        return episode

    def _season_episode_rows(self, season_id: str) -> list[dict[str, Any]]:
        return (
            self._store.table("series_episodes")
            .select()
            .eq("season_id", season_id)
            .order("episode_number")
            .execute()
        )

    def _update_season_row(self, season_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        if not updates:
            return to_response(self._store.table("series_seasons").select().eq("id", season_id).first(), SEASON_FIELDS)
        updated = self._store.table("series_seasons").update(updates).eq("id", season_id).first()
        if updated is None:
            raise NotFoundError("Season not found")
        return to_response(updated, SEASON_FIELDS)

    def _update_episode_row(self, episode_id: str, updates: dict[str, Any]) -> dict[str, Any]:
        if not updates:
            return to_response(self._store.table("series_episodes").select().eq("id", episode_id).first(), EPISODE_FIELDS)
        updated = self._store.table("series_episodes").update(updates).eq("id", episode_id).first()
        if updated is None:
            raise NotFoundError("Episode not found")
        return to_response(updated, EPISODE_FIELDS)

    def _stamp(self, watched: bool, watch_date: str | None) -> str | None:
        if not watched:
            return None
        return watch_date or self._today().isoformat()


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()
