from __future__ import annotations

from collections import Counter
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import date, timedelta

from bingebook.models import SeriesEpisode, SeriesSeason, WatchableItem

DEFAULT_WINDOW_DAYS = 90
RANGE_MINUTES_PER_EPISODE = 30
BINGE_MINUTES_PER_EPISODE = 45
BINGE_SCORE_SCALE = 1.4
TOP_BINGE_DAYS = 5

# (minimum episodes, intensity), highest first
INTENSITY_THRESHOLDS: tuple[tuple[int, int], ...] = ((10, 4), (7, 3), (4, 2), (1, 1))


@dataclass(frozen=True)
class DailyActivity:
    date: date
    episode_count: int
    intensity: int


@dataclass(frozen=True)
class ActivityStats:
    current_streak: int
    longest_streak: int
    total_days: int
    average_per_day: float
    last_7_days: int
    last_30_days: int


EMPTY_ACTIVITY_STATS = ActivityStats(
    current_streak=0,
    longest_streak=0,
    total_days=0,
    average_per_day=0.0,
    last_7_days=0,
    last_30_days=0,
)


@dataclass(frozen=True)
class ActivityReport:
    days: list[DailyActivity]
    stats: ActivityStats


@dataclass(frozen=True)
class EpisodeWatch:
    """One watched episode tagged with the season and series it belongs to."""

    watch_date: date
    season_id: str
    series_id: str


@dataclass(frozen=True)
class EpisodeDayAnalytics:
    date: date
    episodes: int
    seasons: int
    series: int
    total_watch_time: int


@dataclass(frozen=True)
class SeasonDayAnalytics:
    date: date
    seasons_completed: int
    series_completed: int
    average_completion_rate: float


@dataclass(frozen=True)
class BingeSession:
    date: date
    episode_count: int
    total_minutes: int
    series_titles: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class BingeStats:
    longest_binge: BingeSession | None
    top_binge_days: list[BingeSession]
    binge_score: float
    binge_level: str
    average_episodes_per_session: float
    last_30_days_episodes: int
    last_30_days_average: float
    trend_percentage: int


EMPTY_BINGE_STATS = BingeStats(
    longest_binge=None,
    top_binge_days=[],
    binge_score=0.0,
    binge_level="New Watcher",
    average_episodes_per_session=0.0,
    last_30_days_episodes=0,
    last_30_days_average=0.0,
    trend_percentage=0,
)


@dataclass(frozen=True)
class GenreSlice:
    name: str
    count: int
    percentage: float
    last_watched: date | None


def intensity_for_count(count: int) -> int:
    for minimum, intensity in INTENSITY_THRESHOLDS:
        if count >= minimum:
            return intensity
    return 0


def count_by_day(episodes: Iterable[SeriesEpisode]) -> dict[date, int]:
    counts: Counter[date] = Counter()
    for episode in episodes:
        if episode.watched and episode.watch_date is not None:
            counts[episode.watch_date] += 1
    return dict(counts)


def build_activity_window(
    counts: Mapping[date, int],
    today: date,
    days: int = DEFAULT_WINDOW_DAYS,
) -> list[DailyActivity]:
    """Return ``days`` entries, oldest first, ending at ``today``."""
    window: list[DailyActivity] = []
    for offset in range(max(0, days) - 1, -1, -1):
        day = today - timedelta(days=offset)
        count = counts.get(day, 0)
        window.append(DailyActivity(date=day, episode_count=count, intensity=intensity_for_count(count)))
    return window


def current_streak(days: list[DailyActivity]) -> int:
    streak = 0
    for activity in reversed(days):
        if activity.episode_count <= 0:
            break
        streak += 1
    return streak


def longest_streak(days: list[DailyActivity]) -> int:
    longest = 0
    running = 0
    for activity in days:
        if activity.episode_count > 0:
            running += 1
            longest = max(longest, running)
        else:
            running = 0
    return longest


def summarize_activity(days: list[DailyActivity]) -> ActivityStats:
    if not days:
        return EMPTY_ACTIVITY_STATS

    active_days = sum(1 for activity in days if activity.episode_count > 0)
    if active_days == 0:
        return EMPTY_ACTIVITY_STATS

    total_episodes = sum(activity.episode_count for activity in days)
    return ActivityStats(
        current_streak=current_streak(days),
        longest_streak=longest_streak(days),
        total_days=active_days,
        average_per_day=round(total_episodes / active_days, 2),
        last_7_days=sum(activity.episode_count for activity in days[-7:]),
        last_30_days=sum(activity.episode_count for activity in days[-30:]),
    )


def build_activity_report(
    episodes: Iterable[SeriesEpisode],
    today: date,
    days: int = DEFAULT_WINDOW_DAYS,
) -> ActivityReport:
    window = build_activity_window(count_by_day(episodes), today, days)
    return ActivityReport(days=window, stats=summarize_activity(window))


def build_episode_range_analytics(
    watches: Iterable[EpisodeWatch],
    start: date,
    end: date,
) -> list[EpisodeDayAnalytics]:
    episodes_per_day: Counter[date] = Counter()
    seasons_per_day: dict[date, set[str]] = {}
    series_per_day: dict[date, set[str]] = {}

    for watch in watches:
        if not start <= watch.watch_date <= end:
            continue
        episodes_per_day[watch.watch_date] += 1
        seasons_per_day.setdefault(watch.watch_date, set()).add(watch.season_id)
        series_per_day.setdefault(watch.watch_date, set()).add(watch.series_id)

    outputs: list[EpisodeDayAnalytics] = []
    for day in _date_range(start, end):
        count = episodes_per_day.get(day, 0)
        outputs.append(
            EpisodeDayAnalytics(
                date=day,
                episodes=count,
                seasons=len(seasons_per_day.get(day, ())),
                series=len(series_per_day.get(day, ())),
                total_watch_time=count * RANGE_MINUTES_PER_EPISODE,
            )
        )
    return outputs


def build_season_range_analytics(
    seasons: Iterable[SeriesSeason],
    start: date,
    end: date,
) -> list[SeasonDayAnalytics]:
    """Per-day season and series completions over ``[start, end]``.

    ``seasons`` is every tracked season of the user. A series is completed on
    the day its last remaining season was completed, and only when all of its
    tracked seasons are completed.
    """
    seasons = list(seasons)
    completed_per_day: dict[date, list[SeriesSeason]] = {}
    by_series: dict[str, list[SeriesSeason]] = {}

    for season in seasons:
        by_series.setdefault(season.series_id, []).append(season)
        if season.is_completed and season.watch_date is not None and start <= season.watch_date <= end:
            completed_per_day.setdefault(season.watch_date, []).append(season)

    series_completed_per_day: Counter[date] = Counter()
    for series_seasons in by_series.values():
        if not all(season.is_completed for season in series_seasons):
            continue
        dates = [season.watch_date for season in series_seasons if season.watch_date is not None]
        if not dates:
            continue
        finished_on = max(dates)
        if start <= finished_on <= end:
            series_completed_per_day[finished_on] += 1

    outputs: list[SeasonDayAnalytics] = []
    for day in _date_range(start, end):
        completed = completed_per_day.get(day, [])
        outputs.append(
            SeasonDayAnalytics(
                date=day,
                seasons_completed=len(completed),
                series_completed=series_completed_per_day.get(day, 0),
                average_completion_rate=_average_completion_rate(completed),
            )
        )
    return outputs


def build_binge_stats(
    episodes: Iterable[SeriesEpisode],
    today: date,
    series_titles: Mapping[str, str] | None = None,
) -> BingeStats:
    """Binge sessions are calendar days with at least one watched episode.

    ``series_titles`` maps season ids to the owning series title so sessions
    can name what was watched.
    """
    titles = series_titles or {}
    by_day: dict[date, list[SeriesEpisode]] = {}
    for episode in episodes:
        if episode.watched and episode.watch_date is not None:
            by_day.setdefault(episode.watch_date, []).append(episode)

    if not by_day:
        return EMPTY_BINGE_STATS

    sessions = [
        BingeSession(
            date=day,
            episode_count=len(day_episodes),
            total_minutes=sum(ep.duration_minutes or BINGE_MINUTES_PER_EPISODE for ep in day_episodes),
            series_titles=sorted({titles[ep.season_id] for ep in day_episodes if ep.season_id in titles}),
        )
        for day, day_episodes in by_day.items()
    ]
    # most episodes first, most recent first on ties
    ranked = sorted(sessions, key=lambda session: (-session.episode_count, -session.date.toordinal()))

    total_episodes = sum(session.episode_count for session in sessions)
    average = total_episodes / len(sessions)
    score = min(10.0, average * BINGE_SCORE_SCALE)

    last_30_start = today - timedelta(days=30)
    previous_30_start = today - timedelta(days=60)
    last_30 = sum(len(eps) for day, eps in by_day.items() if last_30_start <= day <= today)
    previous_30 = sum(len(eps) for day, eps in by_day.items() if previous_30_start <= day < last_30_start)
    trend = round((last_30 - previous_30) / previous_30 * 100) if previous_30 > 0 else 0

    return BingeStats(
        longest_binge=ranked[0],
        top_binge_days=ranked[:TOP_BINGE_DAYS],
        binge_score=round(score, 1),
        binge_level=binge_level(score),
        average_episodes_per_session=round(average, 1),
        last_30_days_episodes=last_30,
        last_30_days_average=round(last_30 / 30, 1),
        trend_percentage=trend,
    )


def binge_level(score: float) -> str:
    if score >= 8:
        return "Power Binger"
    if score >= 6:
        return "Dedicated Watcher"
    if score >= 4:
        return "Regular Viewer"
    return "Casual Viewer"


def build_genre_breakdown(items: Iterable[WatchableItem]) -> list[GenreSlice]:
    items = list(items)
    if not items:
        return []

    counts: Counter[str] = Counter()
    last_watched: dict[str, date | None] = {}
    for item in items:
        for genre in item.genres:
            counts[genre] += 1
            previous = last_watched.get(genre)
            if item.watch_date is not None and (previous is None or item.watch_date > previous):
                last_watched[genre] = item.watch_date
            else:
                last_watched.setdefault(genre, previous)

    slices = [
        GenreSlice(
            name=name,
            count=count,
            percentage=round(count / len(items) * 100, 1),
            last_watched=last_watched.get(name),
        )
        for name, count in counts.items()
    ]
    return sorted(slices, key=lambda genre: (-genre.count, genre.name))


def _average_completion_rate(seasons: list[SeriesSeason]) -> float:
    rates = [
        min(season.episodes_watched, season.episode_count) / season.episode_count * 100
        for season in seasons
        if season.episode_count > 0
    ]
    if not rates:
        return 0.0
    return round(sum(rates) / len(rates), 1)


def _date_range(start: date, end: date) -> Iterable[date]:
    day = start
    while day <= end:
        yield day
        day += timedelta(days=1)
