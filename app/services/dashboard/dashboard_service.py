"""
Vistas del panel de creador: estadísticas del canal, listado de videos
propios con métricas, analítica por video y resumen del perfil.
"""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import BadRequestError
from app.cores.db import atomic, utc_now
from app.models import Comment, Like, LikeTargetKind, Subscription, User, Video
from app.schemas.dashboard.dashboard_schema import (
    ChannelAnalytics,
    ChannelGrowth,
    ChannelOverview,
    ChannelStats,
    DashboardSummary,
    MonthlyVideoStat,
    RecentComment,
    RecentLike,
    VideoAnalytics,
    VideoPerformance,
)
from app.services.utils.pagination_service import PageRequest, PaginationService, get_order_clause, get_pagination
from app.services.utils.view_service import (
    get_comment_count_subquery,
    get_engagement_rate,
    get_like_count_subquery,
    get_owner_summary,
    get_published_video_filter,
    get_visible_comment_filter,
)
from app.services.validation.exception import handle_db_errors, user_not_found_exception
from app.services.videos.video_service import get_owned_video

logger = logging.getLogger(__name__)

RECENT_DAYS = 30
MONTHS_TRACKED = 12

DURATION_FILTERS = {
    "short": lambda column: column < 240,
    "medium": lambda column: and_(column >= 240, column <= 1200),
    "long": lambda column: column > 1200,
}


DASHBOARD_VIDEO_SORTS = {
    "createdAt": Video.created_at,
    "updatedAt": Video.updated_at,
    "views": Video.views,
    "duration": Video.duration,
    "title": Video.title,
    "likes": get_like_count_subquery(LikeTargetKind.VIDEO, Video.id),
}


# -------- Piezas comunes --------

def _get_owned_video_filters(user_id: int, start_date: Optional[datetime], end_date: Optional[datetime]) -> List[Any]:
    filters = [Video.owner_id == user_id]
    if start_date is not None:
        filters.append(Video.created_at >= start_date)
    if end_date is not None:
        filters.append(Video.created_at <= end_date)
    return filters


def _build_performance_query(*filters):
    return select(
        Video,
        get_like_count_subquery(LikeTargetKind.VIDEO, Video.id).label("likes_count"),
        get_comment_count_subquery(Video.id).label("comments_count"),
    ).where(*filters)


def _to_performance(video: Video, likes_count: int, comments_count: int) -> VideoPerformance:
    return VideoPerformance(
        id=video.id,
        title=video.title,
        thumbnail=video.thumbnail,
        duration=video.duration,
        views=video.views,
        is_published=video.is_published,
        created_at=video.created_at,
        likes_count=likes_count or 0,
        comments_count=comments_count or 0,
        engagement_rate=get_engagement_rate(likes_count or 0, comments_count or 0, video.views),
    )


async def _get_performance_list(db: AsyncSession, query, limit: int) -> List[VideoPerformance]:
    rows = (await db.execute(query.limit(limit))).all()
    return [_to_performance(*row) for row in rows]


def _build_recent_comment_query(*filters):
    return (
        select(Comment, User, Video.title)
        .join(Video, Comment.video_id == Video.id)
        .join(User, Comment.owner_id == User.id)
        .where(get_visible_comment_filter(), *filters)
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )


def _to_recent_comment(comment: Comment, commenter: User, video_title: str) -> RecentComment:
    return RecentComment(
        id=comment.id,
        content=comment.content,
        created_at=comment.created_at,
        video_id=comment.video_id,
        video_title=video_title,
        commenter=get_owner_summary(commenter),
    )


async def _count_subscribers(db: AsyncSession, channel_id: int, since: Optional[datetime] = None) -> int:
    query = select(func.count(Subscription.id)).where(Subscription.channel_id == channel_id)
    if since is not None:
        query = query.where(Subscription.created_at >= since)
    return (await db.execute(query)).scalar() or 0


async def _get_monthly_stats(db: AsyncSession, filters: List[Any]) -> List[MonthlyVideoStat]:
    """Meses con subidas, del más reciente al más antiguo (máximo MONTHS_TRACKED)."""
    rows = (await db.execute(select(Video.created_at, Video.views).where(*filters))).all()

    buckets: Dict[tuple, Dict[str, int]] = {}
    for created_at, views in rows:
        bucket = buckets.setdefault((created_at.year, created_at.month), {"video_count": 0, "total_views": 0})
        bucket["video_count"] += 1
        bucket["total_views"] += views or 0

    ordered = sorted(buckets.items(), key=lambda item: item[0], reverse=True)[:MONTHS_TRACKED]
    return [
        MonthlyVideoStat(year=year, month=month, **values)
        for (year, month), values in ordered
    ]


# -------- Estadísticas del canal --------

async def _get_overview(db: AsyncSession, user_id: int, filters: List[Any]) -> ChannelOverview:
    totals = (
        await db.execute(
            select(
                func.count(Video.id),
                func.coalesce(func.sum(case((Video.is_published.is_(True), 1), else_=0)), 0),
                func.coalesce(func.sum(Video.views), 0),
                func.coalesce(func.sum(Video.duration), 0),
                func.max(Video.created_at),
                func.min(Video.created_at),
            ).where(*filters)
        )
    ).one()
    total_videos, published_videos, total_views, total_duration, latest_upload, oldest_upload = totals

    total_likes = (
        await db.execute(
            select(func.count(Like.id))
            .join(Video, and_(Like.target_kind == LikeTargetKind.VIDEO.value, Like.target_id == Video.id))
            .where(*filters)
        )
    ).scalar() or 0
    total_comments = (
        await db.execute(
            select(func.count(Comment.id))
            .join(Video, Comment.video_id == Video.id)
            .where(get_visible_comment_filter(), *filters)
        )
    ).scalar() or 0

    return ChannelOverview(
        total_videos=total_videos,
        published_videos=published_videos,
        unpublished_videos=total_videos - published_videos,
        total_views=total_views,
        total_duration=total_duration,
        average_duration=round(total_duration / total_videos, 2) if total_videos else 0.0,
        average_views=round(total_views / total_videos, 2) if total_videos else 0.0,
        latest_upload=latest_upload,
        oldest_upload=oldest_upload,
        subscriber_count=await _count_subscribers(db, user_id),
        total_likes=total_likes,
        total_comments=total_comments,
        engagement_rate=get_engagement_rate(total_likes, total_comments, total_views),
    )


async def _get_analytics(db: AsyncSession, filters: List[Any]) -> ChannelAnalytics:
    top_performing = await _get_performance_list(
        db,
        _build_performance_query(get_published_video_filter(), *filters).order_by(Video.views.desc(), Video.id.desc()),
        5,
    )
    top_liked = await _get_performance_list(
        db,
        _build_performance_query(*filters).order_by(
            get_like_count_subquery(LikeTargetKind.VIDEO, Video.id).desc(), Video.id.desc()
        ),
        5,
    )
    recent_videos = await _get_performance_list(
        db,
        _build_performance_query(*filters).order_by(Video.created_at.desc(), Video.id.desc()),
        10,
    )
    recent_comment_rows = (await db.execute(_build_recent_comment_query(*filters).limit(5))).all()

    return ChannelAnalytics(
        top_performing_videos=top_performing,
        top_liked_videos=top_liked,
        monthly_video_stats=await _get_monthly_stats(db, filters),
        recent_comments=[_to_recent_comment(*row) for row in recent_comment_rows],
        recent_videos=recent_videos,
    )


@handle_db_errors
async def get_channel_stats(
    db: AsyncSession,
    user: User,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
) -> ChannelStats:
    """
    Estadísticas completas del canal del usuario autenticado.

    Todas las lecturas se hacen dentro de una misma transacción para que
    overview, analytics y performance salgan del mismo estado de la base.

    Args:
        start_date: Limita los videos propios a los creados desde esta fecha
        end_date: Limita los videos propios a los creados hasta esta fecha

    Returns:
        ChannelStats con overview, analytics y performance
    """
    if start_date is not None and end_date is not None and start_date > end_date:
        raise BadRequestError("startDate must be before endDate")

    filters = _get_owned_video_filters(user.id, start_date, end_date)
    async with atomic(db, snapshot=True):
        overview = await _get_overview(db, user.id, filters)
        analytics = await _get_analytics(db, filters)
        subscribers_growth = await _count_subscribers(db, user.id, since=utc_now() - timedelta(days=RECENT_DAYS))

    monthly = analytics.monthly_video_stats
    if len(monthly) >= 2:
        views_growth = monthly[0].total_views - monthly[1].total_views
        videos_growth = monthly[0].video_count - monthly[1].video_count
    else:
        views_growth = videos_growth = 0

    return ChannelStats(
        overview=overview,
        analytics=analytics,
        performance=ChannelGrowth(
            views_growth=views_growth,
            videos_growth=videos_growth,
            subscribers_growth=subscribers_growth,
        ),
    )


# -------- Videos del canal --------

@handle_db_errors
async def get_channel_videos(
    db: AsyncSession,
    user: User,
    page_request: PageRequest,
    is_published: Optional[bool] = None,
    search: Optional[str] = None,
    duration: Optional[str] = None,
) -> Dict[str, Any]:
    filters = [Video.owner_id == user.id]
    if is_published is not None:
        filters.append(Video.is_published.is_(is_published))
    if search:
        pattern = f"%{search.strip()}%"
        filters.append(or_(Video.title.ilike(pattern), Video.description.ilike(pattern)))
    if duration:
        duration_filter = DURATION_FILTERS.get(duration)
        if duration_filter is None:
            raise BadRequestError("Invalid duration filter. Use short, medium or long")
        filters.append(duration_filter(Video.duration))

    sort_column = DASHBOARD_VIDEO_SORTS[page_request.sort_by]
    query = _build_performance_query(*filters).order_by(
        get_order_clause(sort_column, page_request.sort_order),
        get_order_clause(Video.id, page_request.sort_order),
    )
    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)
    videos = [_to_performance(*row) for row in rows]

    stats = {
        "published": sum(1 for video in videos if video.is_published),
        "unpublished": sum(1 for video in videos if not video.is_published),
        "totalViews": sum(video.views for video in videos),
        "totalLikes": sum(video.likes_count for video in videos),
        "totalComments": sum(video.comments_count for video in videos),
        "averageEngagement": round(sum(video.engagement_rate for video in videos) / len(videos), 2) if videos else 0.0,
    }
    return {
        "items": videos,
        "stats": stats,
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalVideos"),
        "filters": {
            "search": search or None,
            "duration": duration or None,
            "isPublished": is_published,
            "sortBy": page_request.sort_by,
            "order": page_request.sort_order.value,
        },
    }


# -------- Analítica por video --------

@handle_db_errors
async def get_video_analytics(db: AsyncSession, video_id: int, user: User) -> VideoAnalytics:
    video = await get_owned_video(db, video_id, user.id)

    row = (await db.execute(_build_performance_query(Video.id == video.id))).one()
    performance = _to_performance(*row)

    like_rows = (
        await db.execute(
            select(Like, User)
            .join(User, Like.liked_by_id == User.id)
            .where(Like.target_kind == LikeTargetKind.VIDEO.value, Like.target_id == video.id)
            .order_by(Like.created_at.desc(), Like.id.desc())
            .limit(10)
        )
    ).all()
    comment_rows = (await db.execute(_build_recent_comment_query(Video.id == video.id).limit(10))).all()

    return VideoAnalytics(
        **performance.model_dump(),
        description=video.description or "",
        recent_likes=[
            RecentLike(id=like.id, liked_at=like.created_at, user=get_owner_summary(liker))
            for like, liker in like_rows
        ],
        recent_comments=[_to_recent_comment(*comment_row) for comment_row in comment_rows],
    )


# -------- Resumen --------

@handle_db_errors
async def get_dashboard_summary(db: AsyncSession, user_id: int) -> DashboardSummary:
    user = await db.get(User, user_id)
    if user is None:
        await user_not_found_exception()

    since = utc_now() - timedelta(days=RECENT_DAYS)
    total_videos, published_videos, total_views, recent_videos_count = (
        await db.execute(
            select(
                func.count(Video.id),
                func.coalesce(func.sum(case((Video.is_published.is_(True), 1), else_=0)), 0),
                func.coalesce(func.sum(Video.views), 0),
                func.coalesce(func.sum(case((Video.created_at >= since, 1), else_=0)), 0),
            ).where(Video.owner_id == user_id)
        )
    ).one()

    return DashboardSummary(
        username=user.username,
        fullname=user.fullname,
        email=user.email,
        avatar=user.avatar,
        cover_image=user.cover_image,
        created_at=user.created_at,
        total_videos=total_videos,
        published_videos=published_videos,
        total_views=total_views,
        recent_videos_count=recent_videos_count,
        total_subscribers=await _count_subscribers(db, user_id),
        recent_subscribers_count=await _count_subscribers(db, user_id, since=since),
    )
