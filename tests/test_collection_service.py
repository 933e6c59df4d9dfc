from __future__ import annotations

import logging
from datetime import date

import pytest

from bingebook.collection_service import CollectionService
from bingebook.exceptions import NotFoundError, ValidationError
from bingebook.population import SeriesPopulator
from bingebook.tmdb_client import PopulatedSeries
from conftest import FakeSupabase

TODAY = date(2026, 3, 15)
LOGGER = logging.getLogger("test_collection")


def _library() -> FakeSupabase:
    return FakeSupabase(
        tables={
            "movies": [
                {"id": "show", "user_id": "u1", "title": "Dark", "category": "Series", "status": "watching", "tmdb_id": 70523},
                {"id": "other-show", "user_id": "u2", "title": "Lost", "category": "Series", "status": "watching"},
                {"id": "film", "user_id": "u1", "title": "Heat", "category": "Movie", "status": "watched"},
            ],
            "series_seasons": [
                {"id": "s1", "series_id": "show", "season_number": 1, "episode_count": 3, "status": "watching"},
                {"id": "x1", "series_id": "other-show", "season_number": 1, "episode_count": 3, "status": "watching"},
            ],
            "series_episodes": [
                {"id": f"e{n}", "season_id": "s1", "episode_number": n, "watched": False, "watch_date": None}
                for n in (1, 2, 3)
            ]
            + [{"id": "xe1", "season_id": "x1", "episode_number": 1, "watched": False}],
        },
        unique={"movies": ("user_id", "title")},
    )


def _service(store: FakeSupabase) -> CollectionService:
    return CollectionService(store, LOGGER, today_fn=lambda: TODAY)


MOVIE = {
    "title": "Arrival",
    "genre": "Sci-Fi",
    "category": "Movie",
    "releaseYear": 2016,
    "platform": "Netflix",
    "rating": 0,
    "status": "want-to-watch",
}


def test_add_movie_maps_fields_and_scopes_user() -> None:
    store = _library()

    created = _service(store).add_movie("u1", {**MOVIE, "userId": "someone-else", "unknown": 1})

    assert created["title"] == "Arrival"
    assert created["releaseYear"] == 2016
    assert created["userId"] == "u1"
    assert "unknown" not in store.tables["movies"][-1]


def test_add_movie_reports_missing_fields() -> None:
    with pytest.raises(ValidationError) as excinfo:
        _service(_library()).add_movie("u1", {"title": "Arrival", "genre": ""})

    assert excinfo.value.details == ["genre", "category", "releaseYear", "platform", "rating", "status"]


def test_add_movie_rejects_duplicates() -> None:
    service = _service(_library())
    service.add_movie("u1", MOVIE)

    with pytest.raises(ValidationError) as excinfo:
        service.add_movie("u1", MOVIE)

    assert excinfo.value.code == "DUPLICATE"


def test_update_movie_of_other_user_is_not_found() -> None:
    with pytest.raises(NotFoundError):
        _service(_library()).update_movie("u1", "other-show", {"title": "Mine now"})


def test_update_movie_stamps_updated_at() -> None:
    updated = _service(_library()).update_movie("u1", "film", {"rating": 9, "userId": "u2"})

    assert updated["rating"] == 9
    assert updated["userId"] == "u1"
    assert updated["updatedAt"]


def test_seasons_are_scoped_through_their_series() -> None:
    service = _service(_library())

    assert [season["id"] for season in service.list_all_seasons("u1")] == ["s1"]
    assert service.get_season("u1", "s1")["seriesId"] == "show"
    with pytest.raises(NotFoundError):
        service.get_season("u1", "x1")
    with pytest.raises(NotFoundError):
        service.list_seasons("u1", "other-show")
    with pytest.raises(NotFoundError):
        service.get_episode("u1", "xe1")


def test_create_season_ignores_series_in_payload() -> None:
    store = _library()

    created = _service(store).create_season("u1", "show", {"seasonNumber": 2, "seriesId": "other-show"})

    assert created["seriesId"] == "show"
    assert created["seasonNumber"] == 2


def test_completed_progress_defaults_watch_date_to_today() -> None:
    updated = _service(_library()).update_season_progress("u1", "s1", {"status": "completed", "episodesWatched": 3})

    assert updated["status"] == "completed"
    assert updated["episodesWatched"] == 3
    assert updated["watchDate"] == "2026-03-15"


def test_toggle_watched_sets_and_clears_date() -> None:
    service = _service(_library())

    watched = service.toggle_watched("u1", "e1", True, rating=8.5)
    assert watched["watched"] is True
    assert watched["watchDate"] == "2026-03-15"
    assert watched["rating"] == 8.5

    cleared = service.toggle_watched("u1", "e1", False)
    assert cleared["watchDate"] is None


def test_bulk_update_and_watch_up_to() -> None:
    store = _library()
    service = _service(store)

    bulk = service.bulk_update_episodes("u1", "s1", [1, 3], True, "2026-03-01")
    assert sorted(row["episodeNumber"] for row in bulk) == [1, 3]
    assert service.bulk_update_episodes("u1", "s1", [], True) == []

    upto = service.mark_watched_up_to("u1", "s1", 2)
    assert sorted(row["episodeNumber"] for row in upto) == [1, 2]

    episodes = {row["episode_number"]: row for row in store.tables["series_episodes"] if row["season_id"] == "s1"}
    assert episodes[1]["watch_date"] == "2026-03-15"
    assert episodes[3]["watch_date"] == "2026-03-01"
    assert all(row["watched"] for row in episodes.values())


def test_season_episode_stats() -> None:
    service = _service(_library())
    service.toggle_watched("u1", "e1", True, "2026-03-10")

    stats = service.season_episode_stats("u1", "s1")

    assert stats["seriesTitle"] == "Dark"
    assert stats["watchedEpisodes"] == 1
    assert stats["watchedPercentage"] == 33
    assert stats["nextEpisodeToWatch"] == 2
    assert stats["firstWatchDate"] == "2026-03-10"


def test_season_episode_stats_without_episodes() -> None:
    store = _library()
    store.tables["series_episodes"] = []

    with pytest.raises(NotFoundError, match="no episodes"):
        _service(store).season_episode_stats("u1", "s1")


def test_delete_episode_requires_ownership() -> None:
    store = _library()
    service = _service(store)

    with pytest.raises(NotFoundError):
        service.delete_episode("u1", "xe1")
    service.delete_episode("u1", "e3")

    assert [row["id"] for row in store.tables["series_episodes"]] == ["e1", "e2", "xe1"]


def test_debug_series_lists_counts() -> None:
    result = _service(_library()).debug_series("u1", "a@b.c", "show")

    assert result["counts"] == {"seasonsCount": 1, "totalEpisodes": 3}
    assert result["user"] == {"id": "u1", "email": "a@b.c"}


class FakeTmdb:
    def __init__(self) -> None:
        self.populated: list[int] = []

    def populate_series(self, tmdb_id: int) -> PopulatedSeries:
        self.populated.append(tmdb_id)
        return PopulatedSeries(
            show_details={
                "name": "Dark",
                "firstAirDate": "2017-12-01",
                "numberOfSeasons": 2,
                "numberOfEpisodes": 5,
                "genres": [{"id": 18, "name": "Drama"}, {"id": 9648, "name": "Mystery"}],
            },
            seasons=[
                {
                    "id": 501,
                    "name": "Season 1",
                    "seasonNumber": 1,
                    "voteAverage": 8.1,
                    "episodes": [
                        {"id": 9001, "name": "Secrets", "episodeNumber": 1, "runtime": 51},
                        {"id": 9002, "name": "Lies", "episodeNumber": 2, "runtime": 44},
                        {"id": 9003, "name": "Past and Present", "episodeNumber": 3, "runtime": 45},
                        {"id": 9004, "name": "Double Lives", "episodeNumber": 4, "runtime": 47},
                    ],
                },
                {"id": 502, "name": "Season 2", "seasonNumber": 2, "episodes": []},
            ],
        )


def test_populate_existing_refreshes_seasons_and_adds_missing_episodes() -> None:
    store = _library()
    tmdb = FakeTmdb()

    result = SeriesPopulator(store, tmdb, LOGGER).populate_existing("u1", "show")

    assert tmdb.populated == [70523]
    assert result["seasonsCreated"] == 2
    assert result["showDetails"]["numberOfSeasons"] == 2
    season_one = next(row for row in store.tables["series_seasons"] if row["id"] == "s1")
    assert season_one["episode_count"] == 4
    assert season_one["tmdb_season_id"] == 501
    episodes = sorted(
        (row for row in store.tables["series_episodes"] if row["season_id"] == "s1"),
        key=lambda row: row["episode_number"],
    )
    assert [row["episode_number"] for row in episodes] == [1, 2, 3, 4]
    assert episodes[0]["id"] == "e1"
    assert episodes[0]["duration_minutes"] == 51
    assert store.tables["movies"][0]["total_seasons_available"] == 2


def test_populate_existing_requires_tmdb_id() -> None:
    store = _library()
    with pytest.raises(NotFoundError, match="missing TMDB ID"):
        SeriesPopulator(store, FakeTmdb(), LOGGER).populate_existing("u1", "other-show")


def test_auto_create_inserts_series_with_metadata() -> None:
    store = FakeSupabase()

    result = SeriesPopulator(store, FakeTmdb(), LOGGER).auto_create("u1", 70523)

    series = store.tables["movies"][0]
    assert series["genre"] == "Drama, Mystery"
    assert series["release_year"] == 2017
    assert series["status"] == "want-to-watch"
    assert result["series"]["tmdbId"] == 70523
    assert result["series"]["totalEpisodes"] == 5
    assert len(store.tables["series_seasons"]) == 2
    assert len(store.tables["series_episodes"]) == 4
