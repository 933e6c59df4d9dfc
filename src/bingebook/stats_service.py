from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any

from bingebook import aggregator, progress, watch_time
from bingebook.config import Settings
from bingebook.exceptions import ValidationError
from bingebook.fields import USER_STATS_FIELDS, camelize, to_response
from bingebook.models import (
    CATEGORY_MOVIE,
    CATEGORY_SERIES,
    STATUS_WATCHED,
    SeriesEpisode,
    SeriesSeason,
    WatchableItem,
    parse_episode,
    parse_item,
    parse_season,
)
from bingebook.supabase_client import select_in

MOVIES_REQUIRED = 5
SERIES_REQUIRED = 3
MAX_RANGE_DAYS = 366 * 2


@dataclass(frozen=True)
class Library:
    items: list[WatchableItem]
    seasons: list[SeriesSeason]
    episodes: list[SeriesEpisode]

    def episodes_by_season(self) -> dict[str, list[SeriesEpisode]]:
        grouped: dict[str, list[SeriesEpisode]] = {}
        for episode in self.episodes:
            grouped.setdefault(episode.season_id, []).append(episode)
        return grouped

    def series_titles(self) -> dict[str, str]:
        return {item.id: item.title for item in self.items if item.is_series}

    def season_series_titles(self) -> dict[str, str]:
        titles = self.series_titles()
        return {season.id: titles[season.series_id] for season in self.seasons if season.series_id in titles}


class StatsService:
    """Loads a user's library and runs the viewing aggregators over it."""

    def __init__(
        self,
        store: Any,
        settings: Settings,
        logger: logging.Logger,
        today_fn: Callable[[], date] | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._logger = logger
        self._today = today_fn or (lambda: datetime.now(settings.zone).date())

    def load_library(self, user_id: str) -> Library:
        item_rows = self._store.table("movies").select().eq("user_id", user_id).execute()
        items = [parse_item(row) for row in item_rows]

        series_ids = [item.id for item in items if item.is_series]
        season_rows = select_in(self._store, "series_seasons", "series_id", series_ids)
        seasons = [parse_season(row) for row in season_rows]

        season_ids = [season.id for season in seasons]
        episode_rows = select_in(self._store, "series_episodes", "season_id", season_ids)
        episodes = [parse_episode(row) for row in episode_rows]

        self._logger.debug(
            "library_loaded",
            extra={"items": len(items), "seasons": len(seasons), "episodes": len(episodes)},
        )
        return Library(items=items, seasons=seasons, episodes=episodes)

    def episode_range(self, user_id: str, start: date, end: date) -> list[dict[str, Any]]:
        _check_range(start, end)
        library = self.load_library(user_id)
        series_by_season = {season.id: season.series_id for season in library.seasons}
        watches = [
            aggregator.EpisodeWatch(
                watch_date=episode.watch_date,
                season_id=episode.season_id,
                series_id=series_by_season.get(episode.season_id, episode.season_id),
            )
            for episode in library.episodes
            if episode.watched and episode.watch_date is not None
        ]
        return camelize(aggregator.build_episode_range_analytics(watches, start, end))

    def season_range(self, user_id: str, start: date, end: date) -> list[dict[str, Any]]:
        _check_range(start, end)
        library = self.load_library(user_id)
        return camelize(aggregator.build_season_range_analytics(library.seasons, start, end))

    def activity(self, user_id: str, days: int | None = None) -> dict[str, Any]:
        window = days or self._settings.activity_window_days
        library = self.load_library(user_id)
        return camelize(aggregator.build_activity_report(library.episodes, self._today(), window))

    def watch_time(self, user_id: str, timeframe: str | None = None) -> dict[str, Any]:
        library = self.load_library(user_id)
        today = self._today()
        if timeframe is None:
            stats = watch_time.calculate_watch_time_with_fallback(library.items, library.episodes, today)
        else:
            if timeframe not in watch_time.TIMEFRAMES:
                raise ValidationError(
                    f"timeframe must be one of {', '.join(watch_time.TIMEFRAMES)}",
                    details=timeframe,
                )
            stats = watch_time.calculate_watch_time(library.items, library.episodes, timeframe, today)
        return camelize(stats)

    def progress(self, user_id: str) -> list[dict[str, Any]]:
        library = self.load_library(user_id)
        report = progress.build_progress_report(library.items, library.seasons, library.episodes_by_season())
        return camelize(report)

    def genres(self, user_id: str) -> list[dict[str, Any]]:
        library = self.load_library(user_id)
        return camelize(aggregator.build_genre_breakdown(library.items))

    def binge(self, user_id: str) -> dict[str, Any]:
        library = self.load_library(user_id)
        stats = aggregator.build_binge_stats(library.episodes, self._today(), library.season_series_titles())
        return camelize(stats)

    def forecast(self, user_id: str) -> dict[str, Any]:
        library = self.load_library(user_id)
        result = progress.build_completion_forecast(
            library.seasons,
            library.episodes_by_season(),
            library.series_titles(),
            self._today(),
        )
        return camelize(result)

    def user_stats(self, user_id: str) -> dict[str, Any]:
        row = self._store.table("user_stats").select().eq("user_id", user_id).first()
        if row is None:
            watched = (
                self._store.table("movies")
                .select("category,status")
                .eq("user_id", user_id)
                .eq("status", STATUS_WATCHED)
                .execute()
            )
            row = self._store.table("user_stats").insert(
                {
                    "user_id": user_id,
                    "movies_watched_count": sum(1 for item in watched if item.get("category") == CATEGORY_MOVIE),
                    "series_watched_count": sum(1 for item in watched if item.get("category") == CATEGORY_SERIES),
                }
            ).first()
            self._logger.info("user_stats_created", extra={"user_id": user_id})

        stored = to_response(row, USER_STATS_FIELDS)
        movies = int(stored.get("moviesWatchedCount") or 0)
        series = int(stored.get("seriesWatchedCount") or 0)
        total_required = MOVIES_REQUIRED + SERIES_REQUIRED

        return {
            "moviesWatchedCount": movies,
            "seriesWatchedCount": series,
            "moviesRequired": MOVIES_REQUIRED,
            "seriesRequired": SERIES_REQUIRED,
            "moviesRemaining": max(0, MOVIES_REQUIRED - movies),
            "seriesRemaining": max(0, SERIES_REQUIRED - series),
            "isUnlocked": movies >= MOVIES_REQUIRED and series >= SERIES_REQUIRED,
            "progressPercentage": min(100, round((movies + series) / total_required * 100)),
            "updatedAt": stored.get("updatedAt"),
        }


def _check_range(start: date, end: date) -> None:
    if end < start:
        raise ValidationError("endDate must not be before startDate")
    if (end - start).days > MAX_RANGE_DAYS:
        raise ValidationError(f"Date range may span at most {MAX_RANGE_DAYS} days")
