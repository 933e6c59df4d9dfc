from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, timedelta

from bingebook.models import SeriesEpisode, WatchableItem

MOVIE_FALLBACK_MINUTES = 120
EPISODE_FALLBACK_MINUTES = 45
ALL_TIME_FALLBACK_DAYS = 365

TIMEFRAME_THIS_YEAR = "thisYear"
TIMEFRAME_ALL_TIME = "allTime"
TIMEFRAME_LAST_30_DAYS = "last30Days"
TIMEFRAMES = (TIMEFRAME_THIS_YEAR, TIMEFRAME_ALL_TIME, TIMEFRAME_LAST_30_DAYS)


@dataclass(frozen=True)
class TimeBreakdown:
    hours: int
    minutes: int
    percentage: int


@dataclass(frozen=True)
class WatchTimeStats:
    timeframe: str
    total_minutes: int
    total_hours: float
    total_days: float
    movie_minutes: int
    series_minutes: int
    movie_count: int
    episode_count: int
    daily_average: float
    weekly_average: float
    monthly_average: float
    breakdown: dict[str, TimeBreakdown]


def calculate_watch_time(
    items: Iterable[WatchableItem],
    episodes: Iterable[SeriesEpisode],
    timeframe: str,
    today: date,
) -> WatchTimeStats:
    if timeframe not in TIMEFRAMES:
        raise ValueError(f"Unknown timeframe: {timeframe}")

    start = _timeframe_start(timeframe, today)

    movies = [item for item in items if item.is_watched and not item.is_series]
    if start is not None:
        movies = [item for item in movies if item.watch_date is not None and start <= item.watch_date <= today]

    watched_episodes = [ep for ep in episodes if ep.watched and ep.watch_date is not None]
    if start is not None:
        watched_episodes = [ep for ep in watched_episodes if start <= ep.watch_date <= today]

    movie_minutes = sum(item.runtime or MOVIE_FALLBACK_MINUTES for item in movies)
    series_minutes = sum(ep.duration_minutes or EPISODE_FALLBACK_MINUTES for ep in watched_episodes)
    total_minutes = movie_minutes + series_minutes

    days = _days_in_period(timeframe, today, movies, watched_episodes)
    daily_average = total_minutes / days

    return WatchTimeStats(
        timeframe=timeframe,
        total_minutes=total_minutes,
        total_hours=round(total_minutes / 60, 2),
        total_days=round(total_minutes / 60 / 24, 2),
        movie_minutes=movie_minutes,
        series_minutes=series_minutes,
        movie_count=len(movies),
        episode_count=len(watched_episodes),
        daily_average=round(daily_average, 2),
        weekly_average=round(daily_average * 7, 2),
        monthly_average=round(daily_average * 30, 2),
        breakdown={
            "movies": _breakdown(movie_minutes, total_minutes),
            "series": _breakdown(series_minutes, total_minutes),
        },
    )


def calculate_watch_time_with_fallback(
    items: Iterable[WatchableItem],
    episodes: Iterable[SeriesEpisode],
    today: date,
) -> WatchTimeStats:
    items = list(items)
    episodes = list(episodes)
    stats = calculate_watch_time(items, episodes, TIMEFRAME_THIS_YEAR, today)
    if stats.total_minutes > 0:
        return stats
    return calculate_watch_time(items, episodes, TIMEFRAME_ALL_TIME, today)


def split_minutes(total_minutes: int) -> tuple[int, int]:
    return total_minutes // 60, round(total_minutes % 60)


def _breakdown(minutes: int, total_minutes: int) -> TimeBreakdown:
    hours, rest = split_minutes(minutes)
    percentage = round(minutes / total_minutes * 100) if total_minutes > 0 else 0
    return TimeBreakdown(hours=hours, minutes=rest, percentage=percentage)


def _timeframe_start(timeframe: str, today: date) -> date | None:
    if timeframe == TIMEFRAME_THIS_YEAR:
        return date(today.year, 1, 1)
    if timeframe == TIMEFRAME_LAST_30_DAYS:
        return today - timedelta(days=30)
    return None


def _days_in_period(
    timeframe: str,
    today: date,
    movies: list[WatchableItem],
    episodes: list[SeriesEpisode],
) -> int:
    if timeframe == TIMEFRAME_LAST_30_DAYS:
        return 30
    if timeframe == TIMEFRAME_THIS_YEAR:
        return max(1, (today - date(today.year, 1, 1)).days)

    dated = [item.watch_date for item in movies if item.watch_date is not None]
    dated.extend(ep.watch_date for ep in episodes if ep.watch_date is not None)
    if not dated:
        return ALL_TIME_FALLBACK_DAYS
    return max(1, (today - min(dated)).days + 1)
