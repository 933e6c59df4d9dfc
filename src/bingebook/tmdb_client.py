from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Any

import httpx

from bingebook.config import Settings
from bingebook.exceptions import TmdbError, UpstreamError, UpstreamTimeoutError
from bingebook.fields import (
    TMDB_EPISODE_FIELDS,
    TMDB_PAGE_FIELDS,
    TMDB_SEARCH_RESULT_FIELDS,
    TMDB_SEASON_FIELDS,
    TMDB_SEASON_SUMMARY_FIELDS,
    TMDB_SHOW_FIELDS,
    to_response,
)

TRENDING_WINDOWS = {"day", "week"}


@dataclass(frozen=True)
class PopulatedSeries:
    show_details: dict[str, Any]
    seasons: list[dict[str, Any]]


class TmdbClient:
    def __init__(
        self,
        settings: Settings,
        logger: logging.Logger,
        http: httpx.Client | None = None,
    ) -> None:
        self._settings = settings
        self._logger = logger
        self._http = http or httpx.Client(base_url=settings.tmdb_base_url, timeout=settings.request_timeout_seconds)

    @property
    def enabled(self) -> bool:
        return bool(self._settings.tmdb_api_key)

    def close(self) -> None:
        self._http.close()

    def get_show_details(self, tmdb_id: int) -> dict[str, Any]:
        data = self._request(f"/tv/{tmdb_id}")
        show = to_response(data, TMDB_SHOW_FIELDS, project=True)
        show["seasons"] = [
            to_response(season, TMDB_SEASON_SUMMARY_FIELDS, project=True) for season in data.get("seasons") or []
        ]
        return show

    def get_season_details(self, tmdb_id: int, season_number: int) -> dict[str, Any]:
        data = self._request(f"/tv/{tmdb_id}/season/{season_number}")
        season = to_response(data, TMDB_SEASON_FIELDS, project=True)
        season["episodes"] = [
            to_response(episode, TMDB_EPISODE_FIELDS, project=True) for episode in data.get("episodes") or []
        ]
        return season

    def get_episode_details(self, tmdb_id: int, season_number: int, episode_number: int) -> dict[str, Any]:
        data = self._request(f"/tv/{tmdb_id}/season/{season_number}/episode/{episode_number}")
        return to_response(data, TMDB_EPISODE_FIELDS, project=True)

    def search_shows(self, query: str) -> dict[str, Any]:
        return self._page(self._request("/search/tv", params={"query": query}))

    def get_trending_shows(self, time_window: str = "week") -> dict[str, Any]:
        if time_window not in TRENDING_WINDOWS:
            time_window = "week"
        return self._page(self._request(f"/trending/tv/{time_window}"))

    def get_tv_genres(self) -> list[dict[str, Any]]:
        return list(self._request("/genre/tv/list").get("genres") or [])

    def populate_series(self, tmdb_id: int) -> PopulatedSeries:
        """Fetch a show with every regular season and its episodes.

        Specials (season 0) are skipped. A season that fails to load is kept
        with an empty episode list so the rest of the show still populates.
        """
        show = self.get_show_details(tmdb_id)
        seasons: list[dict[str, Any]] = []

        for summary in show["seasons"]:
            season_number = summary.get("seasonNumber")
            if season_number in (None, 0):
                continue
            try:
                seasons.append(self.get_season_details(tmdb_id, season_number))
            except UpstreamError as error:
                self._logger.warning(
                    "tmdb_season_fetch_failed",
                    extra={"tmdb_id": tmdb_id, "season_number": season_number, "error": str(error)},
                )
                seasons.append({**summary, "episodes": []})
                continue

            if self._settings.tmdb_season_delay_seconds > 0:
                time.sleep(self._settings.tmdb_season_delay_seconds)

        return PopulatedSeries(show_details=show, seasons=seasons)

    def _page(self, data: dict[str, Any]) -> dict[str, Any]:
        page = to_response(data, TMDB_PAGE_FIELDS, project=True)
        page["results"] = [
            to_response(result, TMDB_SEARCH_RESULT_FIELDS, project=True) for result in data.get("results") or []
        ]
        return page

    def _request(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        if not self._settings.tmdb_api_key:
            raise TmdbError("TMDB API key not configured")

        query = {"api_key": self._settings.tmdb_api_key, **(params or {})}
        retry_count = max(0, self._settings.tmdb_max_retries)

        for attempt in range(retry_count + 1):
            try:
                response = self._http.get(path, params=query)
            except httpx.TimeoutException as error:
                if attempt >= retry_count:
                    raise UpstreamTimeoutError("TMDB request timed out", details=path) from error
                sleep_s = _backoff_seconds(attempt)
                self._logger.warning(
                    "tmdb_request_network_retry",
                    extra={"attempt": attempt + 1, "sleep_s": sleep_s, "error": str(error)},
                )
                time.sleep(sleep_s)
                continue
            except httpx.RequestError as error:
                if attempt >= retry_count:
                    raise TmdbError(f"TMDB request failed after retries: {error}") from error
                sleep_s = _backoff_seconds(attempt)
                self._logger.warning(
                    "tmdb_request_network_retry",
                    extra={"attempt": attempt + 1, "sleep_s": sleep_s, "error": str(error)},
                )
                time.sleep(sleep_s)
                continue

            if response.status_code == 429 and attempt < retry_count:
                retry_after = _parse_retry_after(response.headers.get("Retry-After"))
                sleep_s = max(1.0, retry_after + self._settings.tmdb_retry_after_margin)
                self._logger.warning("tmdb_rate_limited", extra={"attempt": attempt + 1, "sleep_s": sleep_s})
                time.sleep(sleep_s)
                continue

            if response.status_code >= 500 and attempt < retry_count:
                sleep_s = _backoff_seconds(attempt)
                self._logger.warning(
                    "tmdb_server_retry",
                    extra={"attempt": attempt + 1, "sleep_s": sleep_s, "status": response.status_code},
                )
                time.sleep(sleep_s)
                continue

            if response.status_code >= 400:
                raise TmdbError(
                    f"TMDB API error: {response.status_code} {response.reason_phrase}",
                    details=_response_detail(response),
                )

            payload = response.json()
            if not isinstance(payload, dict):
                raise TmdbError(f"Unexpected TMDB response format for {path}")
            return payload

        raise TmdbError("Unreachable request retry state")


def _parse_retry_after(value: str | None) -> float:
    if value is None:
        return 1.0
    try:
        retry_after = float(value)
    except ValueError:
        return 1.0
    return max(1.0, retry_after)


def _response_detail(response: httpx.Response) -> str:
    text = response.text.strip()
    if not text:
        return "<empty>"
    return text[:512]


def _backoff_seconds(attempt: int) -> float:
    # capped exponential backoff with jitter
    base = min(2**attempt, 30)
    return base + random.uniform(0.0, 0.25)
