from __future__ import annotations

import logging

import httpx
import pytest

from bingebook import tmdb_client as tmdb_module
from bingebook.exceptions import TmdbError
from bingebook.tmdb_client import TmdbClient
from conftest import make_settings

SHOW = {
    "id": 1399,
    "name": "Game of Thrones",
    "first_air_date": "2011-04-17",
    "number_of_seasons": 2,
    "number_of_episodes": 20,
    "genres": [{"id": 18, "name": "Drama"}],
    "production_companies": [{"id": 1}],
    "seasons": [
        {"id": 10, "name": "Specials", "season_number": 0, "episode_count": 3},
        {"id": 11, "name": "Season 1", "season_number": 1, "episode_count": 10},
        {"id": 12, "name": "Season 2", "season_number": 2, "episode_count": 10},
    ],
}


def _season(number: int) -> dict:
    return {
        "id": 10 + number,
        "name": f"Season {number}",
        "season_number": number,
        "episodes": [
            {"id": 100 * number + n, "name": f"Episode {n}", "episode_number": n, "runtime": 55, "crew": []}
            for n in (1, 2)
        ],
    }


def _client(handler, **overrides) -> TmdbClient:
    settings = make_settings(**overrides)
    http = httpx.Client(base_url=settings.tmdb_base_url, transport=httpx.MockTransport(handler))
    return TmdbClient(settings, logging.getLogger("test_tmdb"), http=http)


def test_show_details_are_camelcased_and_projected() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=SHOW)

    show = _client(handler).get_show_details(1399)

    assert seen[0].url.params["api_key"] == "tmdb-key"
    assert show["numberOfSeasons"] == 2
    assert show["firstAirDate"] == "2011-04-17"
    assert "production_companies" not in show
    assert show["seasons"][1] == {"id": 11, "name": "Season 1", "seasonNumber": 1, "episodeCount": 10}


def test_populate_skips_specials_and_tolerates_failed_seasons(caplog) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/tv/1399"):
            return httpx.Response(200, json=SHOW)
        if path.endswith("/season/1"):
            return httpx.Response(200, json=_season(1))
        if path.endswith("/season/2"):
            return httpx.Response(404, json={"status_message": "not found"})
        raise AssertionError(f"unexpected request {path}")

    with caplog.at_level(logging.WARNING):
        populated = _client(handler).populate_series(1399)

    assert populated.show_details["name"] == "Game of Thrones"
    assert [season["seasonNumber"] for season in populated.seasons] == [1, 2]
    assert [ep["episodeNumber"] for ep in populated.seasons[0]["episodes"]] == [1, 2]
    assert "crew" not in populated.seasons[0]["episodes"][0]
    assert populated.seasons[1]["episodes"] == []
    assert any(record.getMessage() == "tmdb_season_fetch_failed" for record in caplog.records)


def test_rate_limit_is_retried_after_header(monkeypatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr(tmdb_module.time, "sleep", sleeps.append)
    responses = iter(
        [
            httpx.Response(429, headers={"Retry-After": "2"}),
            httpx.Response(200, json={"genres": [{"id": 18, "name": "Drama"}]}),
        ]
    )

    client = _client(lambda request: next(responses), tmdb_max_retries=2, tmdb_retry_after_margin=0.5)

    assert client.get_tv_genres() == [{"id": 18, "name": "Drama"}]
    assert sleeps == [2.5]


def test_server_errors_give_up_after_retries(monkeypatch) -> None:
    sleeps: list[float] = []
    monkeypatch.setattr(tmdb_module.time, "sleep", sleeps.append)
    calls: list[int] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(1)
        return httpx.Response(502, text="bad gateway")

    client = _client(handler, tmdb_max_retries=2)
    with pytest.raises(TmdbError, match="502"):
        client.get_tv_genres()

    assert len(calls) == 3
    assert len(sleeps) == 2


def test_search_wraps_results_page() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["query"] == "dark"
        return httpx.Response(
            200,
            json={"page": 1, "total_pages": 1, "total_results": 1, "results": [{"id": 70523, "name": "Dark", "poster_path": "/p.jpg"}]},
        )

    page = _client(handler).search_shows("dark")

    assert page == {
        "page": 1,
        "totalPages": 1,
        "totalResults": 1,
        "results": [{"id": 70523, "name": "Dark", "posterPath": "/p.jpg"}],
    }


def test_trending_normalizes_time_window() -> None:
    seen: list[str] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        return httpx.Response(200, json={"page": 1, "results": []})

    client = _client(handler)
    client.get_trending_shows("day")
    client.get_trending_shows("month")

    assert seen == ["/3/trending/tv/day", "/3/trending/tv/week"]


def test_missing_api_key_fails_without_request() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    client = _client(handler, tmdb_api_key=None)

    assert client.enabled is False
    with pytest.raises(TmdbError, match="not configured"):
        client.get_show_details(1)
