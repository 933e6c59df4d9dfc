from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Any

CATEGORY_MOVIE = "Movie"
CATEGORY_SERIES = "Series"
CATEGORY_SHORT_FILM = "Short-Film"

STATUS_WANT_TO_WATCH = "want-to-watch"
STATUS_WATCHING = "watching"
STATUS_WATCHED = "watched"

SEASON_NOT_STARTED = "not-started"
SEASON_WATCHING = "watching"
SEASON_COMPLETED = "completed"


@dataclass(frozen=True)
class WatchableItem:
    id: str
    title: str
    category: str
    status: str
    rating: float
    release_year: int | None
    genre: str
    platform: str | None
    watch_date: date | None
    runtime: int | None
    poster: str | None
    tmdb_id: int | None
    total_seasons_available: int | None
    created_at: str | None
    updated_at: str | None

    @property
    def is_series(self) -> bool:
        return self.category == CATEGORY_SERIES

    @property
    def is_watched(self) -> bool:
        return self.status == STATUS_WATCHED

    @property
    def genres(self) -> list[str]:
        return [part.strip() for part in (self.genre or "").split(",") if part.strip()]


@dataclass(frozen=True)
class SeriesSeason:
    id: str
    series_id: str
    season_number: int
    season_name: str | None
    episode_count: int
    episodes_watched: int
    status: str
    watch_date: date | None
    rating: float | None

    @property
    def is_completed(self) -> bool:
        return self.status == SEASON_COMPLETED


@dataclass(frozen=True)
class SeriesEpisode:
    id: str
    season_id: str
    episode_number: int
    watched: bool
    watch_date: date | None
    rating: float | None
    duration_minutes: int | None


def parse_date(value: Any) -> date | None:
    """Read the calendar day from an ISO date or timestamp, None when unusable."""
    if value is None:
        return None
    if isinstance(value, date):
        return value
    raw = str(value).strip()
    if len(raw) < 10:
        return None
    try:
        return date.fromisoformat(raw[:10])
    except ValueError:
        return None


def parse_item(row: dict[str, Any]) -> WatchableItem:
    return WatchableItem(
        id=str(row.get("id", "")),
        title=str(row.get("title") or "Unknown"),
        category=str(row.get("category") or CATEGORY_MOVIE),
        status=str(row.get("status") or STATUS_WANT_TO_WATCH),
        rating=_as_float(row.get("rating")) or 0.0,
        release_year=_as_int(row.get("release_year")),
        genre=str(row.get("genre") or ""),
        platform=row.get("platform"),
        watch_date=parse_date(row.get("watch_date")),
        runtime=_as_int(row.get("runtime")),
        poster=row.get("poster"),
        tmdb_id=_as_int(row.get("tmdb_id")),
        total_seasons_available=_as_int(row.get("total_seasons_available")),
        created_at=row.get("created_at"),
        updated_at=row.get("updated_at"),
    )


def parse_season(row: dict[str, Any]) -> SeriesSeason:
    return SeriesSeason(
        id=str(row.get("id", "")),
        series_id=str(row.get("series_id", "")),
        season_number=_as_int(row.get("season_number")) or 0,
        season_name=row.get("season_name"),
        episode_count=max(0, _as_int(row.get("episode_count")) or 0),
        episodes_watched=max(0, _as_int(row.get("episodes_watched")) or 0),
        status=str(row.get("status") or SEASON_NOT_STARTED),
        watch_date=parse_date(row.get("watch_date")),
        rating=_as_float(row.get("rating")),
    )


def parse_episode(row: dict[str, Any]) -> SeriesEpisode:
    return SeriesEpisode(
        id=str(row.get("id", "")),
        season_id=str(row.get("season_id", "")),
        episode_number=_as_int(row.get("episode_number")) or 0,
        watched=bool(row.get("watched", False)),
        watch_date=parse_date(row.get("watch_date")),
        rating=_as_float(row.get("rating")),
        duration_minutes=_as_int(row.get("duration_minutes")),
    )


def _as_int(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _as_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
