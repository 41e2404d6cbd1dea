from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.deps import get_current_user, get_db, page_query
from app.cores.api_response import send_response
from app.models import User
from app.services.dashboard.dashboard_service import (
    DASHBOARD_VIDEO_SORTS,
    get_channel_stats,
    get_channel_videos,
    get_dashboard_summary,
    get_video_analytics,
)

router = APIRouter()


@router.get("/stats")
async def channel_stats_route(
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    stats = await get_channel_stats(db, current_user, start_date, end_date)
    return send_response(stats, "Channel statistics fetched successfully")


@router.get("/videos")
async def channel_videos_route(
    page_request=Depends(page_query(allowed_sort=DASHBOARD_VIDEO_SORTS, max_limit=100, sort_order_alias="order")),
    is_published: Optional[bool] = Query(None, alias="isPublished"),
    search: Optional[str] = Query(None),
    duration: Optional[str] = Query(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_channel_videos(db, current_user, page_request, is_published, search, duration)
    total = result["pagination"]["totalVideos"]
    message = "No videos found matching the criteria" if total == 0 else f"{len(result['items'])} video(s) fetched successfully"
    return send_response(result, message)


@router.get("/videos/{video_id}/analytics")
async def video_analytics_route(
    video_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    analytics = await get_video_analytics(db, video_id, current_user)
    return send_response(analytics, "Video analytics fetched successfully")


@router.get("/summary")
async def dashboard_summary_route(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    summary = await get_dashboard_summary(db, current_user.id)
    return send_response(summary, "Dashboard summary fetched successfully")
