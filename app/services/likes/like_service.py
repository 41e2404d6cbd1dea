from typing import Any, Dict

from sqlalchemy import and_, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import BadRequestError, NotFoundError
from app.models import Comment, Like, LikeTarget, LikeTargetKind, Tweet, User, Video
from app.schemas.videos.video_schema import LikedVideoItem
from app.services.toggles.toggle_service import TargetKind, ToggleState, toggle_relation
from app.services.utils.pagination_service import PageRequest, PaginationService, get_pagination
from app.services.utils.view_service import get_published_video_filter, get_video_item
from app.services.validation.exception import handle_db_errors

KIND_ALIASES = {
    "video": LikeTargetKind.VIDEO,
    "v": LikeTargetKind.VIDEO,
    "comment": LikeTargetKind.COMMENT,
    "c": LikeTargetKind.COMMENT,
    "tweet": LikeTargetKind.TWEET,
    "t": LikeTargetKind.TWEET,
}

TARGET_MODELS = {
    LikeTargetKind.VIDEO: Video,
    LikeTargetKind.COMMENT: Comment,
    LikeTargetKind.TWEET: Tweet,
}


def get_like_target(kind: str, target_id: int) -> LikeTarget:
    like_kind = KIND_ALIASES.get((kind or "").lower())
    if like_kind is None:
        raise BadRequestError("Invalid resource type. Use video, comment or tweet")
    return LikeTarget(like_kind, target_id)


@handle_db_errors
async def toggle_like(db: AsyncSession, user_id: int, target: LikeTarget) -> Dict[str, Any]:
    state = await toggle_relation(db, user_id, TargetKind(target.kind.value), target.target_id)
    return {
        "isLiked": state == ToggleState.ON,
        "targetKind": target.kind.value,
        "targetId": target.target_id,
    }


@handle_db_errors
async def get_liked_videos(db: AsyncSession, user_id: int, page_request: PageRequest) -> Dict[str, Any]:
    # inner joins: likes de videos borrados o sin dueño no aparecen
    query = (
        select(Video, User, Like.created_at)
        .join(Like, and_(Like.target_kind == LikeTargetKind.VIDEO.value, Like.target_id == Video.id))
        .join(User, Video.owner_id == User.id)
        .where(Like.liked_by_id == user_id, get_published_video_filter())
        .order_by(Like.created_at.desc(), Like.id.desc())
    )
    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)

    items = [
        LikedVideoItem(**get_video_item(video, owner).model_dump(), liked_at=liked_at)
        for video, owner, liked_at in rows
    ]
    return {
        "items": items,
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalLikes"),
    }


@handle_db_errors
async def get_like_status(db: AsyncSession, user_id: int, target: LikeTarget) -> Dict[str, Any]:
    if await db.get(TARGET_MODELS[target.kind], target.target_id) is None:
        raise NotFoundError(f"{target.kind.value.capitalize()} not found")

    target_filter = and_(Like.target_kind == target.kind.value, Like.target_id == target.target_id)
    total_likes = (await db.execute(select(func.count(Like.id)).where(target_filter))).scalar() or 0
    is_liked = (
        await db.execute(select(Like.id).where(target_filter, Like.liked_by_id == user_id))
    ).first() is not None

    return {
        "isLiked": is_liked,
        "totalLikes": total_likes,
        "resourceType": target.kind.value,
        "resourceId": target.target_id,
    }


@handle_db_errors
async def get_user_like_stats(db: AsyncSession, user_id: int) -> Dict[str, int]:
    result = await db.execute(
        select(Like.target_kind, func.count(Like.id))
        .where(Like.liked_by_id == user_id)
        .group_by(Like.target_kind)
    )
    counts = {kind: count for kind, count in result.all()}
    return {
        "totalLikes": sum(counts.values()),
        "videoLikes": counts.get(LikeTargetKind.VIDEO.value, 0),
        "commentLikes": counts.get(LikeTargetKind.COMMENT.value, 0),
        "tweetLikes": counts.get(LikeTargetKind.TWEET.value, 0),
    }
