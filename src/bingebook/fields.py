"""Static camelCase <-> snake_case field tables shared by every endpoint.

Each table is an ordered tuple of ``(external_name, storage_name)`` pairs.
``to_database`` whitelists request payloads against a table and
``to_response`` renames stored rows back; the same table drives both
directions so they cannot drift apart.
"""
from __future__ import annotations

import dataclasses
from datetime import date, datetime
from typing import Any, Iterable

FieldTable = tuple[tuple[str, str], ...]

MOVIE_FIELDS: FieldTable = (
    ("id", "id"),
    ("userId", "user_id"),
    ("title", "title"),
    ("genre", "genre"),
    ("category", "category"),
    ("releaseYear", "release_year"),
    ("platform", "platform"),
    ("rating", "rating"),
    ("status", "status"),
    ("poster", "poster"),
    ("notes", "notes"),
    ("watchDate", "watch_date"),
    ("runtime", "runtime"),
    ("tmdbId", "tmdb_id"),
    ("totalSeasonsAvailable", "total_seasons_available"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

SEASON_FIELDS: FieldTable = (
    ("id", "id"),
    ("seriesId", "series_id"),
    ("seasonNumber", "season_number"),
    ("seasonName", "season_name"),
    ("episodeCount", "episode_count"),
    ("episodesWatched", "episodes_watched"),
    ("status", "status"),
    ("rating", "rating"),
    ("notes", "notes"),
    ("watchDate", "watch_date"),
    ("startedDate", "started_date"),
    ("tmdbSeasonId", "tmdb_season_id"),
    ("tmdbRating", "tmdb_rating"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

EPISODE_FIELDS: FieldTable = (
    ("id", "id"),
    ("seasonId", "season_id"),
    ("episodeNumber", "episode_number"),
    ("episodeName", "episode_name"),
    ("watched", "watched"),
    ("rating", "rating"),
    ("notes", "notes"),
    ("watchDate", "watch_date"),
    ("durationMinutes", "duration_minutes"),
    ("tmdbEpisodeId", "tmdb_episode_id"),
    ("tmdbRating", "tmdb_rating"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

SERIES_OVERVIEW_FIELDS: FieldTable = (
    ("seriesId", "series_id"),
    ("latestSeasonWatched", "latest_season_watched"),
    ("totalSeasonsAvailable", "total_seasons_available"),
    ("totalSeasonsTracked", "total_seasons_tracked"),
    ("completedSeasons", "completed_seasons"),
    ("watchingSeasons", "watching_seasons"),
    ("wantToWatchSeasons", "want_to_watch_seasons"),
    ("totalEpisodesWatched", "total_episodes_watched"),
    ("totalEpisodesAvailable", "total_episodes_available"),
    ("latestSeasonCompletionDate", "latest_season_completion_date"),
    ("averageSeasonRating", "average_season_rating"),
    ("overallRating", "overall_rating"),
    ("overallNotes", "overall_notes"),
    ("userId", "user_id"),
    ("releaseYear", "release_year"),
    ("seriesStatus", "series_status"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
    ("tmdbId", "tmdb_id"),
)

USER_STATS_FIELDS: FieldTable = (
    ("userId", "user_id"),
    ("moviesWatchedCount", "movies_watched_count"),
    ("seriesWatchedCount", "series_watched_count"),
    ("createdAt", "created_at"),
    ("updatedAt", "updated_at"),
)

TMDB_SHOW_FIELDS: FieldTable = (
    ("id", "id"),
    ("name", "name"),
    ("overview", "overview"),
    ("firstAirDate", "first_air_date"),
    ("lastAirDate", "last_air_date"),
    ("numberOfSeasons", "number_of_seasons"),
    ("numberOfEpisodes", "number_of_episodes"),
    ("status", "status"),
    ("genres", "genres"),
    ("posterPath", "poster_path"),
    ("backdropPath", "backdrop_path"),
    ("voteAverage", "vote_average"),
)

TMDB_SEASON_SUMMARY_FIELDS: FieldTable = (
    ("id", "id"),
    ("name", "name"),
    ("seasonNumber", "season_number"),
    ("episodeCount", "episode_count"),
    ("airDate", "air_date"),
    ("overview", "overview"),
    ("posterPath", "poster_path"),
)

TMDB_SEASON_FIELDS: FieldTable = (
    ("id", "id"),
    ("name", "name"),
    ("overview", "overview"),
    ("seasonNumber", "season_number"),
    ("airDate", "air_date"),
    ("posterPath", "poster_path"),
    ("voteAverage", "vote_average"),
)

TMDB_EPISODE_FIELDS: FieldTable = (
    ("id", "id"),
    ("name", "name"),
    ("overview", "overview"),
    ("episodeNumber", "episode_number"),
    ("seasonNumber", "season_number"),
    ("airDate", "air_date"),
    ("runtime", "runtime"),
    ("stillPath", "still_path"),
    ("voteAverage", "vote_average"),
)

TMDB_SEARCH_RESULT_FIELDS: FieldTable = (
    ("id", "id"),
    ("name", "name"),
    ("overview", "overview"),
    ("firstAirDate", "first_air_date"),
    ("genreIds", "genre_ids"),
    ("originCountry", "origin_country"),
    ("originalLanguage", "original_language"),
    ("originalName", "original_name"),
    ("popularity", "popularity"),
    ("posterPath", "poster_path"),
    ("backdropPath", "backdrop_path"),
    ("voteAverage", "vote_average"),
    ("voteCount", "vote_count"),
)

TMDB_PAGE_FIELDS: FieldTable = (
    ("page", "page"),
    ("totalPages", "total_pages"),
    ("totalResults", "total_results"),
)


def to_database(
    payload: dict[str, Any],
    fields: FieldTable,
    exclude: Iterable[str] = (),
) -> dict[str, Any]:
    """Map an API payload to storage columns.

    Only keys listed in ``fields`` survive. A key that is present with a
    ``None`` value is kept, so clients can clear a column explicitly.
    """
    blocked = set(exclude)
    out: dict[str, Any] = {}
    for external, internal in fields:
        if external in payload and internal not in blocked:
            out[internal] = payload[external]
    return out


def to_response(
    row: dict[str, Any] | None,
    fields: FieldTable,
    project: bool = False,
) -> dict[str, Any] | None:
    """Map a storage row to the API contract.

    Columns outside the table are passed through under their own name unless
    ``project`` is set, in which case they are dropped.
    """
    if row is None:
        return None
    renames = {internal: external for external, internal in fields}
    out: dict[str, Any] = {}
    for key, value in row.items():
        if key in renames:
            out[renames[key]] = value
        elif not project:
            out[key] = value
    return out


def to_response_many(rows: Iterable[dict[str, Any]] | None, fields: FieldTable) -> list[dict[str, Any]]:
    return [to_response(row, fields) for row in rows or []]


def camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def camelize(value: Any) -> Any:
    """Recursively convert dataclasses and dict keys to camelCase JSON values."""
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {
            camel_case(field.name): camelize(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {camel_case(str(key)): camelize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [camelize(item) for item in value]
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value
