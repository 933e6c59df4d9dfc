from __future__ import annotations

from datetime import date
from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, Field

from bingebook.api.dependencies import get_current_user, get_stats
from bingebook.stats_service import StatsService
from bingebook.supabase_client import AuthUser

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


class DateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start_date: date = Field(alias="startDate")
    end_date: date = Field(alias="endDate")


@router.post("/episodes")
def episode_analytics(
    body: DateRange,
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> list[dict[str, Any]]:
    return stats.episode_range(user.id, body.start_date, body.end_date)


@router.post("/seasons")
def season_analytics(
    body: DateRange,
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> list[dict[str, Any]]:
    return stats.season_range(user.id, body.start_date, body.end_date)


@router.get("/activity")
def activity(
    days: Optional[int] = Query(default=None, ge=1, le=366),
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> dict[str, Any]:
    return stats.activity(user.id, days)


@router.get("/watch-time")
def watch_time(
    timeframe: Optional[str] = None,
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> dict[str, Any]:
    return stats.watch_time(user.id, timeframe)


@router.get("/progress")
def series_progress(
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> list[dict[str, Any]]:
    return stats.progress(user.id)


@router.get("/genres")
def genres(
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> list[dict[str, Any]]:
    return stats.genres(user.id)


@router.get("/binge")
def binge(
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> dict[str, Any]:
    return stats.binge(user.id)


@router.get("/forecast")
def forecast(
    user: AuthUser = Depends(get_current_user),
    stats: StatsService = Depends(get_stats),
) -> dict[str, Any]:
    return stats.forecast(user.id)
