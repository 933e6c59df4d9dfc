from __future__ import annotations

from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, Response
from pydantic import BaseModel, ConfigDict, Field

from bingebook.api.dependencies import get_collection, get_current_user
from bingebook.collection_service import CollectionService
from bingebook.supabase_client import AuthUser

router = APIRouter(prefix="/api/series", tags=["series"])


class ToggleWatchedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    watched: bool
    watch_date: Optional[str] = Field(default=None, alias="watchDate")
    rating: Optional[float] = Field(default=None, ge=0, le=10)


class BulkEpisodesRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    episode_numbers: list[int] = Field(alias="episodeNumbers")
    watched: bool
    watch_date: Optional[str] = Field(default=None, alias="watchDate")


class WatchUpToRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    episode_number: int = Field(alias="episodeNumber", ge=1)
    watch_date: Optional[str] = Field(default=None, alias="watchDate")


# -- seasons --------------------------------------------------------------


@router.get("/seasons")
def list_all_seasons(
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> list[dict[str, Any]]:
    return collection.list_all_seasons(user.id)


@router.get("/seasons/{season_id}")
def get_season(
    season_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.get_season(user.id, season_id)


@router.put("/seasons/{season_id}")
def update_season(
    season_id: str,
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.update_season(user.id, season_id, payload)


@router.delete("/seasons/{season_id}", status_code=204)
def delete_season(
    season_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> Response:
    collection.delete_season(user.id, season_id)
    return Response(status_code=204)


@router.put("/seasons/{season_id}/progress")
def update_season_progress(
    season_id: str,
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.update_season_progress(user.id, season_id, payload)


# -- episodes -------------------------------------------------------------


@router.get("/seasons/{season_id}/episodes")
def list_episodes(
    season_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> list[dict[str, Any]]:
    return collection.list_episodes(user.id, season_id)


@router.post("/seasons/{season_id}/episodes", status_code=201)
def create_episode(
    season_id: str,
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.create_episode(user.id, season_id, payload)


@router.get("/seasons/{season_id}/episodes/stats")
def season_episode_stats(
    season_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.season_episode_stats(user.id, season_id)


@router.put("/seasons/{season_id}/episodes/bulk")
def bulk_update_episodes(
    season_id: str,
    body: BulkEpisodesRequest,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> list[dict[str, Any]]:
    return collection.bulk_update_episodes(
        user.id,
        season_id,
        episode_numbers=body.episode_numbers,
        watched=body.watched,
        watch_date=body.watch_date,
    )


@router.put("/seasons/{season_id}/episodes/watch-up-to")
def mark_watched_up_to(
    season_id: str,
    body: WatchUpToRequest,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> list[dict[str, Any]]:
    return collection.mark_watched_up_to(user.id, season_id, body.episode_number, body.watch_date)


@router.get("/episodes/{episode_id}")
def get_episode(
    episode_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.get_episode(user.id, episode_id)


@router.put("/episodes/{episode_id}")
def update_episode(
    episode_id: str,
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.update_episode(user.id, episode_id, payload)


@router.delete("/episodes/{episode_id}", status_code=204)
def delete_episode(
    episode_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> Response:
    collection.delete_episode(user.id, episode_id)
    return Response(status_code=204)


@router.put("/episodes/{episode_id}/watched")
def toggle_episode_watched(
    episode_id: str,
    body: ToggleWatchedRequest,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.toggle_watched(user.id, episode_id, body.watched, body.watch_date, body.rating)


# -- series ---------------------------------------------------------------


@router.get("/{series_id}/overview")
def series_overview(
    series_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.series_overview(user.id, series_id)


@router.get("/{series_id}/seasons")
def list_seasons(
    series_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> list[dict[str, Any]]:
    return collection.list_seasons(user.id, series_id)


@router.post("/{series_id}/seasons", status_code=201)
def create_season(
    series_id: str,
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.create_season(user.id, series_id, payload)
