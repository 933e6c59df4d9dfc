"""Raw views of a user's series data. Only mounted outside production."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from bingebook.api.dependencies import get_collection, get_current_user
from bingebook.collection_service import CollectionService
from bingebook.supabase_client import AuthUser

router = APIRouter(prefix="/api/debug", tags=["debug"])


@router.get("/series")
def all_series(
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.debug_all_series(user.id, user.email)


@router.get("/series/{series_id}")
def one_series(
    series_id: str,
    user: AuthUser = Depends(get_current_user),
    collection: CollectionService = Depends(get_collection),
) -> dict[str, Any]:
    return collection.debug_series(user.id, user.email, series_id)
