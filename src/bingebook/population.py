from __future__ import annotations

import logging
from typing import Any

from bingebook.exceptions import NotFoundError
from bingebook.models import CATEGORY_SERIES, SEASON_NOT_STARTED, STATUS_WANT_TO_WATCH, parse_date
from bingebook.tmdb_client import PopulatedSeries, TmdbClient


class SeriesPopulator:
    """Copies TMDB season and episode metadata into a user's series."""

    def __init__(self, store: Any, tmdb: TmdbClient, logger: logging.Logger) -> None:
        self._store = store
        self._tmdb = tmdb
        self._logger = logger

    def populate_existing(self, user_id: str, series_id: str) -> dict[str, Any]:
        series = (
            self._store.table("movies")
            .select("id,tmdb_id,title")
            .eq("id", series_id)
            .eq("user_id", user_id)
            .eq("category", CATEGORY_SERIES)
            .first()
        )
        if series is None or not series.get("tmdb_id"):
            raise NotFoundError("Series not found or missing TMDB ID")

        populated = self._tmdb.populate_series(int(series["tmdb_id"]))
        show = populated.show_details

        self._store.table("movies").update(
            {"total_seasons_available": show.get("numberOfSeasons")}
        ).eq("id", series_id).execute()

        seasons, episodes = self._upsert_seasons(series_id, populated)
        self._logger.info(
            "series_populated",
            extra={"series_id": series_id, "seasons": len(seasons), "episodes": episodes},
        )

        return {
            "message": "Series populated successfully with TMDB data",
            "seriesId": series_id,
            "showDetails": {
                "name": show.get("name"),
                "numberOfSeasons": show.get("numberOfSeasons"),
                "numberOfEpisodes": show.get("numberOfEpisodes"),
            },
            "seasonsCreated": len(seasons),
            "seasons": [
                {
                    "id": season.get("id"),
                    "seasonNumber": season.get("season_number"),
                    "seasonName": season.get("season_name"),
                    "episodeCount": season.get("episode_count"),
                }
                for season in seasons
            ],
        }

    def auto_create(self, user_id: str, tmdb_id: int) -> dict[str, Any]:
        populated = self._tmdb.populate_series(tmdb_id)
        show = populated.show_details

        first_aired = parse_date(show.get("firstAirDate"))
        series = (
            self._store.table("movies")
            .insert(
                {
                    "user_id": user_id,
                    "title": show.get("name") or "Unknown",
                    "category": CATEGORY_SERIES,
                    "tmdb_id": tmdb_id,
                    "genre": ", ".join(genre.get("name", "") for genre in show.get("genres") or []),
                    "release_year": first_aired.year if first_aired else None,
                    "status": STATUS_WANT_TO_WATCH,
                    "total_seasons_available": show.get("numberOfSeasons"),
                }
            )
            .first()
        )

        seasons, episodes = self._upsert_seasons(series["id"], populated)
        self._logger.info(
            "series_populated",
            extra={"series_id": series["id"], "seasons": len(seasons), "episodes": episodes},
        )

        return {
            "message": "Series created and populated successfully",
            "series": {
                "id": series["id"],
                "title": series.get("title"),
                "tmdbId": series.get("tmdb_id"),
                "totalSeasons": show.get("numberOfSeasons"),
                "totalEpisodes": show.get("numberOfEpisodes"),
            },
        }

    def _upsert_seasons(self, series_id: str, populated: PopulatedSeries) -> tuple[list[dict[str, Any]], int]:
        """Create or refresh every fetched season and its episodes.

        Returns the stored season rows and the number of episodes written.
        """
        stored: list[dict[str, Any]] = []
        episode_total = 0

        for season in populated.seasons:
            episodes = season.get("episodes") or []
            metadata = {
                "season_name": season.get("name"),
                "episode_count": len(episodes),
                "tmdb_season_id": season.get("id"),
                "tmdb_rating": season.get("voteAverage"),
            }
            existing = (
                self._store.table("series_seasons")
                .select("id")
                .eq("series_id", series_id)
                .eq("season_number", season.get("seasonNumber"))
                .first()
            )
            if existing is not None:
                row = self._store.table("series_seasons").update(metadata).eq("id", existing["id"]).first()
            else:
                row = (
                    self._store.table("series_seasons")
                    .insert(
                        {
                            "series_id": series_id,
                            "season_number": season.get("seasonNumber"),
                            "status": SEASON_NOT_STARTED,
                            **metadata,
                        }
                    )
                    .first()
                )
            if row is None:
                continue
            stored.append(row)
            episode_total += self._upsert_episodes(row["id"], episodes)

        return stored, episode_total

    def _upsert_episodes(self, season_id: str, episodes: list[dict[str, Any]]) -> int:
        existing_rows = (
            self._store.table("series_episodes").select("id,episode_number").eq("season_id", season_id).execute()
        )
        existing = {row.get("episode_number"): row["id"] for row in existing_rows}

        inserts: list[dict[str, Any]] = []
        for episode in episodes:
            metadata = {
                "episode_name": episode.get("name"),
                "duration_minutes": episode.get("runtime"),
                "tmdb_episode_id": episode.get("id"),
                "tmdb_rating": episode.get("voteAverage"),
            }
            number = episode.get("episodeNumber")
            if number in existing:
                self._store.table("series_episodes").update(metadata).eq("id", existing[number]).execute()
            else:
                inserts.append({"season_id": season_id, "episode_number": number, "watched": False, **metadata})

        if inserts:
            self._store.table("series_episodes").insert(inserts).execute()
        return len(episodes)
