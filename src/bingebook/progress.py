from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, timedelta

from bingebook.models import (
    SEASON_COMPLETED,
    SEASON_NOT_STARTED,
    SEASON_WATCHING,
    STATUS_WATCHING,
    SeriesEpisode,
    SeriesSeason,
    WatchableItem,
)
from bingebook.watch_time import EPISODE_FALLBACK_MINUTES


@dataclass(frozen=True)
class SeriesProgress:
    series_id: str
    series_title: str
    poster_path: str | None
    current_season: SeriesSeason
    total_seasons: int
    season_progress: int
    episodes_watched: int
    total_episodes: int
    overall_progress: int


@dataclass(frozen=True)
class SeasonEpisodeStats:
    season_id: str
    series_title: str
    season_number: int
    total_episodes: int
    watched_episodes: int
    unwatched_episodes: int
    watched_percentage: int
    average_rating: float | None
    first_watch_date: date | None
    last_watch_date: date | None
    is_completed: bool
    next_episode_to_watch: int | None


@dataclass(frozen=True)
class SeasonForecast:
    series_id: str
    series_title: str
    season_number: int
    season_name: str | None
    total_episodes: int
    watched_episodes: int
    remaining_episodes: int
    progress_percentage: int
    episodes_per_week: float
    weeks_remaining: float
    estimated_finish_date: date
    remaining_minutes: int
    status: str


@dataclass(frozen=True)
class CompletionForecast:
    currently_watching: list[SeasonForecast]
    total_series_watching: int
    total_weeks_to_finish_all: float
    total_remaining_minutes: int
    fastest_to_finish: SeasonForecast | None


EMPTY_FORECAST = CompletionForecast(
    currently_watching=[],
    total_series_watching=0,
    total_weeks_to_finish_all=0.0,
    total_remaining_minutes=0,
    fastest_to_finish=None,
)


def placeholder_season(series_id: str) -> SeriesSeason:
    return SeriesSeason(
        id="placeholder",
        series_id=series_id,
        season_number=1,
        season_name="Season 1",
        episode_count=0,
        episodes_watched=0,
        status=SEASON_WATCHING,
        watch_date=None,
        rating=None,
    )


def select_current_season(seasons: list[SeriesSeason]) -> SeriesSeason | None:
    """Pick the season a viewer is most likely in the middle of."""
    for season in seasons:
        if season.status == SEASON_WATCHING:
            return season

    in_progress = [
        season for season in seasons if season.status != SEASON_COMPLETED and season.episodes_watched > 0
    ]
    if in_progress:
        return max(in_progress, key=lambda season: season.season_number)

    for season in seasons:
        if season.status == SEASON_NOT_STARTED or season.episodes_watched == 0:
            return season

    return seasons[0] if seasons else None


def compute_series_progress(
    series: WatchableItem,
    seasons: list[SeriesSeason],
    episodes: list[SeriesEpisode],
) -> SeriesProgress:
    """Progress of ``series``; ``episodes`` are those of the current season."""
    ordered = sorted(seasons, key=lambda season: season.season_number)
    current = select_current_season(ordered)

    if current is None:
        return SeriesProgress(
            series_id=series.id,
            series_title=series.title,
            poster_path=series.poster,
            current_season=placeholder_season(series.id),
            total_seasons=series.total_seasons_available or 1,
            season_progress=0,
            episodes_watched=0,
            total_episodes=0,
            overall_progress=0,
        )

    season_episodes = [ep for ep in episodes if ep.season_id == current.id]
    if season_episodes:
        watched = sum(1 for ep in season_episodes if ep.watched)
    else:
        watched = current.episodes_watched
    total = current.episode_count or len(season_episodes)

    completed = sum(1 for season in ordered if season.is_completed)
    total_seasons = series.total_seasons_available or len(ordered) or 1
    # a completed current season is already counted in ``completed``
    current_fraction = 0.0 if current.is_completed else watched / (total or 1)
    overall = min(100, round((completed + current_fraction) / total_seasons * 100))

    return SeriesProgress(
        series_id=series.id,
        series_title=series.title,
        poster_path=series.poster,
        current_season=current,
        total_seasons=total_seasons,
        season_progress=round(watched / total * 100) if total > 0 else 0,
        episodes_watched=watched,
        total_episodes=total,
        overall_progress=overall,
    )


def build_progress_report(
    items: Iterable[WatchableItem],
    seasons: Iterable[SeriesSeason],
    episodes_by_season: Mapping[str, list[SeriesEpisode]],
) -> list[SeriesProgress]:
    seasons_by_series: dict[str, list[SeriesSeason]] = {}
    for season in seasons:
        seasons_by_series.setdefault(season.series_id, []).append(season)

    report: list[SeriesProgress] = []
    for item in items:
        if not item.is_series or item.status != STATUS_WATCHING:
            continue
        series_seasons = seasons_by_series.get(item.id, [])
        current = select_current_season(sorted(series_seasons, key=lambda season: season.season_number))
        episodes = episodes_by_season.get(current.id, []) if current else []
        report.append(compute_series_progress(item, series_seasons, episodes))
    return report


def summarize_season_episodes(
    season: SeriesSeason,
    series_title: str,
    episodes: list[SeriesEpisode],
) -> SeasonEpisodeStats | None:
    if not episodes:
        return None

    total = len(episodes)
    watched = [ep for ep in episodes if ep.watched]
    rated = [ep.rating for ep in watched if ep.rating]
    watch_dates = sorted(ep.watch_date for ep in watched if ep.watch_date is not None)
    unwatched_numbers = sorted(ep.episode_number for ep in episodes if not ep.watched)

    return SeasonEpisodeStats(
        season_id=season.id,
        series_title=series_title,
        season_number=season.season_number,
        total_episodes=total,
        watched_episodes=len(watched),
        unwatched_episodes=total - len(watched),
        watched_percentage=round(len(watched) / total * 100),
        average_rating=round(sum(rated) / len(rated), 1) if rated else None,
        first_watch_date=watch_dates[0] if watch_dates else None,
        last_watch_date=watch_dates[-1] if watch_dates else None,
        is_completed=len(watched) == total,
        next_episode_to_watch=unwatched_numbers[0] if unwatched_numbers else None,
    )


def build_completion_forecast(
    seasons: Iterable[SeriesSeason],
    episodes_by_season: Mapping[str, list[SeriesEpisode]],
    series_titles: Mapping[str, str],
    today: date,
) -> CompletionForecast:
    """Estimate when each season in progress will be finished at the current pace.

    A season needs at least two dated watched episodes to have a pace.
    """
    forecasts: list[SeasonForecast] = []

    for season in seasons:
        if season.status != SEASON_WATCHING:
            continue
        episodes = episodes_by_season.get(season.id, [])
        watched = [ep for ep in episodes if ep.watched]
        total = season.episode_count
        remaining = total - len(watched)
        if remaining <= 0:
            continue

        watch_dates = sorted(ep.watch_date for ep in watched if ep.watch_date is not None)
        if len(watch_dates) < 2:
            continue

        weeks_elapsed = (watch_dates[-1] - watch_dates[0]).days / 7
        per_week = len(watched) / weeks_elapsed if weeks_elapsed > 0 else float(len(watched))
        weeks_remaining = remaining / per_week if per_week > 0 else 0.0

        forecasts.append(
            SeasonForecast(
                series_id=season.series_id,
                series_title=series_titles.get(season.series_id, "Unknown Series"),
                season_number=season.season_number,
                season_name=season.season_name,
                total_episodes=total,
                watched_episodes=len(watched),
                remaining_episodes=remaining,
                progress_percentage=round(len(watched) / total * 100),
                episodes_per_week=round(per_week, 1),
                weeks_remaining=round(weeks_remaining, 1),
                estimated_finish_date=today + timedelta(days=round(weeks_remaining * 7)),
                remaining_minutes=sum(
                    ep.duration_minutes or EPISODE_FALLBACK_MINUTES for ep in episodes if not ep.watched
                ),
                status=season.status,
            )
        )

    if not forecasts:
        return EMPTY_FORECAST

    forecasts.sort(key=lambda forecast: forecast.weeks_remaining)
    return CompletionForecast(
        currently_watching=forecasts,
        total_series_watching=len(forecasts),
        total_weeks_to_finish_all=round(max(forecast.weeks_remaining for forecast in forecasts), 1),
        total_remaining_minutes=sum(forecast.remaining_minutes for forecast in forecasts),
        fastest_to_finish=forecasts[0],
    )
