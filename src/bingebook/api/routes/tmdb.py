from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from bingebook.api.dependencies import get_current_user, get_populator, get_tmdb
from bingebook.exceptions import ValidationError
from bingebook.population import SeriesPopulator
from bingebook.supabase_client import AuthUser
from bingebook.tmdb_client import TmdbClient

router = APIRouter(prefix="/api/tmdb", tags=["tmdb"])


class AutoCreateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tmdb_id: int = Field(alias="tmdbId", gt=0)


@router.get("/tv/search")
def search_shows(
    query: Optional[str] = None,
    tmdb: TmdbClient = Depends(get_tmdb),
) -> dict[str, Any]:
    if not query or not query.strip():
        raise ValidationError("Query parameter is required")
    return tmdb.search_shows(query.strip())


@router.get("/tv/trending")
def trending_shows(
    time_window: str = Query(default="week", alias="timeWindow"),
    tmdb: TmdbClient = Depends(get_tmdb),
) -> dict[str, Any]:
    return tmdb.get_trending_shows(time_window)


@router.get("/tv/genres")
def tv_genres(tmdb: TmdbClient = Depends(get_tmdb)) -> dict[str, Any]:
    return {"genres": tmdb.get_tv_genres()}


@router.get("/tv/{tmdb_id}")
def show_details(tmdb_id: int, tmdb: TmdbClient = Depends(get_tmdb)) -> dict[str, Any]:
    return tmdb.get_show_details(tmdb_id)


@router.get("/tv/{tmdb_id}/season/{season_number}")
def season_details(
    tmdb_id: int,
    season_number: int,
    tmdb: TmdbClient = Depends(get_tmdb),
) -> dict[str, Any]:
    return tmdb.get_season_details(tmdb_id, season_number)


@router.put("/series/{series_id}/populate")
def populate_series(
    series_id: str,
    user: AuthUser = Depends(get_current_user),
    populator: SeriesPopulator = Depends(get_populator),
) -> dict[str, Any]:
    return populator.populate_existing(user.id, series_id)


@router.post("/series/auto-create", status_code=201)
def auto_create_series(
    body: AutoCreateRequest,
    user: AuthUser = Depends(get_current_user),
    populator: SeriesPopulator = Depends(get_populator),
) -> dict[str, Any]:
    return populator.auto_create(user.id, body.tmdb_id)
