from datetime import date

import pytest

from bingebook.models import SeriesEpisode, WatchableItem
from bingebook.watch_time import (
    calculate_watch_time,
    calculate_watch_time_with_fallback,
    split_minutes,
)

TODAY = date(2026, 3, 11)


def _movie(watch_date: date | None, runtime: int | None = None, category: str = "Movie", status: str = "watched") -> WatchableItem:
    return WatchableItem(
        id=f"m-{watch_date}-{runtime}",
        title="Movie",
        category=category,
        status=status,
        rating=0.0,
        release_year=None,
        genre="",
        platform=None,
        watch_date=watch_date,
        runtime=runtime,
        poster=None,
        tmdb_id=None,
        total_seasons_available=None,
        created_at=None,
        updated_at=None,
    )


def _episode(watch_date: date | None, duration: int | None = None, watched: bool = True) -> SeriesEpisode:
    return SeriesEpisode(
        id=f"e-{watch_date}",
        season_id="s1",
        episode_number=1,
        watched=watched,
        watch_date=watch_date,
        rating=None,
        duration_minutes=duration,
    )


def test_this_year_uses_runtime_and_fallbacks() -> None:
    items = [
        _movie(date(2026, 2, 1), runtime=100),
        _movie(date(2026, 3, 1)),
        _movie(date(2025, 12, 31), runtime=90),
        _movie(date(2026, 3, 1), status="want-to-watch"),
        _movie(date(2026, 3, 1), category="Series"),
    ]
    episodes = [
        _episode(date(2026, 3, 2), duration=50),
        _episode(date(2026, 3, 3)),
        _episode(date(2026, 3, 4), watched=False),
        _episode(None),
    ]

    stats = calculate_watch_time(items, episodes, "thisYear", TODAY)

    assert stats.movie_minutes == 220
    assert stats.series_minutes == 95
    assert stats.total_minutes == 315
    assert stats.movie_count == 2
    assert stats.episode_count == 2
    assert stats.total_hours == 5.25
    # 69 days since 1 January
    assert stats.daily_average == round(315 / 69, 2)
    assert stats.weekly_average == round(315 / 69 * 7, 2)
    assert stats.breakdown["movies"].hours == 3
    assert stats.breakdown["movies"].minutes == 40
    assert stats.breakdown["movies"].percentage == 70
    assert stats.breakdown["series"].percentage == 30


def test_last_30_days_window() -> None:
    items = [_movie(date(2026, 2, 9), runtime=60), _movie(date(2026, 2, 8), runtime=60)]

    stats = calculate_watch_time(items, [], "last30Days", TODAY)

    assert stats.movie_count == 1
    assert stats.daily_average == 2.0
    assert stats.monthly_average == 60.0


def test_all_time_averages_from_first_watch() -> None:
    items = [_movie(date(2026, 3, 2), runtime=100)]
    episodes = [_episode(date(2026, 3, 6), duration=40)]

    stats = calculate_watch_time(items, episodes, "allTime", TODAY)

    assert stats.total_minutes == 140
    assert stats.daily_average == 14.0


def test_all_time_counts_undated_movies() -> None:
    stats = calculate_watch_time([_movie(None, runtime=120)], [], "allTime", TODAY)

    assert stats.total_minutes == 120
    assert stats.daily_average == round(120 / 365, 2)


def test_empty_library_has_zero_percentages() -> None:
    stats = calculate_watch_time([], [], "thisYear", TODAY)

    assert stats.total_minutes == 0
    assert stats.breakdown["movies"].percentage == 0
    assert stats.breakdown["series"].percentage == 0


def test_fallback_switches_to_all_time_when_year_is_empty() -> None:
    items = [_movie(date(2025, 6, 1), runtime=100)]

    stats = calculate_watch_time_with_fallback(items, [], TODAY)

    assert stats.timeframe == "allTime"
    assert stats.total_minutes == 100


def test_fallback_keeps_this_year_when_it_has_data() -> None:
    stats = calculate_watch_time_with_fallback([_movie(date(2026, 1, 2), runtime=10)], [], TODAY)

    assert stats.timeframe == "thisYear"


def test_unknown_timeframe_is_rejected() -> None:
    with pytest.raises(ValueError):
        calculate_watch_time([], [], "lastWeek", TODAY)


def test_split_minutes() -> None:
    assert split_minutes(125) == (2, 5)
    assert split_minutes(0) == (0, 0)


def test_unwatched_movie_leaves_totals_unchanged() -> None:
    items = [_movie(date(2026, 3, 1), runtime=100)]
    episodes = [_episode(date(2026, 3, 2))]
    before = calculate_watch_time(items, episodes, "thisYear", TODAY)

    after = calculate_watch_time(items + [_movie(date(2026, 3, 5), status="want-to-watch")], episodes, "thisYear", TODAY)

    assert after == before
    assert before.breakdown["movies"].percentage + before.breakdown["series"].percentage == 100
