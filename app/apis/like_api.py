from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.deps import get_current_user, get_db, page_query
from app.cores.api_response import send_response
from app.models import User
from app.services.likes.like_service import (
    get_like_status,
    get_like_target,
    get_liked_videos,
    get_user_like_stats,
    toggle_like,
)

router = APIRouter()


@router.post("/toggle/{kind}/{target_id}")
async def toggle_like_route(
    kind: str,
    target_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await toggle_like(db, current_user.id, get_like_target(kind, target_id))
    message = "Liked successfully" if result["isLiked"] else "Unliked successfully"
    return send_response(result, message)


@router.get("/videos")
async def liked_videos_route(
    page_request=Depends(page_query(max_limit=100)),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_liked_videos(db, current_user.id, page_request)
    return send_response(result, "Liked videos fetched successfully")


@router.get("/status/{kind}/{target_id}")
async def like_status_route(
    kind: str,
    target_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_like_status(db, current_user.id, get_like_target(kind, target_id))
    return send_response(result, "Like status fetched successfully")


@router.get("/stats")
async def like_stats_route(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    result = await get_user_like_stats(db, current_user.id)
    return send_response(result, "Like stats fetched successfully")
