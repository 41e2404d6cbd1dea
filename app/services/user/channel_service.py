from typing import Any, Dict, Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import NotFoundError
from app.models import Subscription, User, Video, WatchHistory
from app.schemas.users.user_schema import ChannelProfile
from app.schemas.videos.video_schema import WatchHistoryItem
from app.services.utils.pagination_service import PageRequest, PaginationService, get_pagination
from app.services.utils.view_service import (
    get_is_subscribed_expression,
    get_subscriber_count_subquery,
    get_video_item,
)


async def get_user_channel_profile(db: AsyncSession, username: str, viewer_id: Optional[int] = None) -> ChannelProfile:
    """
    Perfil público de un canal con sus contadores de suscripción.

    Args:
        username: Nombre de usuario (sin distinguir mayúsculas)
        viewer_id: Usuario que consulta; define isSubscribed

    Returns:
        ChannelProfile con subscribersCount, channelsSubscribedToCount e isSubscribed
    """
    normalized = (username or "").strip().lower()
    if not normalized:
        raise NotFoundError("Channel not found")

    subscribed_to_count = (
        select(func.count(Subscription.id))
        .where(Subscription.subscriber_id == User.id)
        .correlate_except(Subscription)
        .scalar_subquery()
    )
    query = select(
        User,
        get_subscriber_count_subquery(User.id).label("subscribers_count"),
        subscribed_to_count.label("channels_subscribed_to_count"),
        get_is_subscribed_expression(User.id, viewer_id).label("is_subscribed"),
    ).where(func.lower(User.username) == normalized)

    row = (await db.execute(query)).first()
    if row is None:
        raise NotFoundError("Channel not found")

    user = row[0]
    return ChannelProfile(
        id=user.id,
        username=user.username,
        fullname=user.fullname,
        email=user.email,
        avatar=user.avatar,
        cover_image=user.cover_image,
        subscribers_count=row.subscribers_count,
        channels_subscribed_to_count=row.channels_subscribed_to_count,
        is_subscribed=bool(row.is_subscribed),
        created_at=user.created_at,
    )


async def get_watch_history(db: AsyncSession, user_id: int, page_request: PageRequest) -> Dict[str, Any]:
    query = (
        select(Video, User, WatchHistory.watched_at)
        .join(WatchHistory, WatchHistory.video_id == Video.id)
        .join(User, Video.owner_id == User.id)
        .where(WatchHistory.user_id == user_id)
        .order_by(WatchHistory.watched_at.desc(), WatchHistory.id.desc())
    )
    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)

    items = [
        WatchHistoryItem(**get_video_item(video, video_owner).model_dump(), watched_at=watched_at)
        for video, video_owner, watched_at in rows
    ]
    return {
        "items": items,
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalVideos"),
    }
