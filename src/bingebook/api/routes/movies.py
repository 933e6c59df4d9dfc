from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Depends, Response

from bingebook.api.dependencies import get_collection, get_current_user
from bingebook.collection_service import CollectionService
from bingebook.supabase_client import AuthUser

router = APIRouter(prefix="/api/movies", tags=["movies"])


@router.get("")
@router.get("/", include_in_schema=False)
def list_movies(
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> list[dict[str, Any]]:
    return collection.list_movies(user.id)


@router.post("", status_code=201)
@router.post("/", status_code=201, include_in_schema=False)
def add_movie(
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.add_movie(user.id, payload)


@router.put("/{movie_id}")
def update_movie(
    movie_id: str,
    payload: dict[str, Any] = Body(...),
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.update_movie(user.id, movie_id, payload)


@router.delete("/{movie_id}", status_code=204)
def delete_movie(
    movie_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> Response:
    collection.delete_movie(user.id, movie_id)
    return Response(status_code=204)
