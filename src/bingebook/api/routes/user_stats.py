from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from bingebook.api.dependencies import get_current_user, get_stats
from bingebook.stats_service import StatsService
from bingebook.supabase_client import AuthUser

router = APIRouter(prefix="/api/user-stats", tags=["user-stats"])


@router.get("")
@router.get("/", include_in_schema=False)
def user_stats(
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> dict[str, Any]:
    return stats.user_stats(user.id)
