"""
Piezas compartidas por las vistas compuestas: subconsultas de conteo,
flags por usuario (isLiked, isSubscribed) y armado de los schemas de salida.
"""

from typing import Optional

from sqlalchemy import and_, exists, func, literal, select
from sqlalchemy.orm import aliased

from app.models import Comment, Like, LikeTargetKind, ModerationStatus, Subscription, User, Video
from app.schemas.users.user_schema import OwnerSummary
from app.schemas.videos.video_schema import VideoItem, VideoRecord


# -------- Filtros explícitos --------

def get_visible_comment_filter(model=Comment):
    """Comentarios que se muestran: no borrados y aprobados."""
    return and_(
        model.is_deleted.is_(False),
        model.moderation_status == ModerationStatus.APPROVED.value,
    )


def get_published_video_filter():
    return Video.is_published.is_(True)


# -------- Subconsultas correlacionadas --------

def get_like_count_subquery(kind: LikeTargetKind, id_column):
    return (
        select(func.count(Like.id))
        .where(Like.target_kind == kind.value, Like.target_id == id_column)
        .correlate_except(Like)
        .scalar_subquery()
    )


def get_is_liked_expression(kind: LikeTargetKind, id_column, viewer_id: Optional[int]):
    if viewer_id is None:
        return literal(False)
    return (
        exists()
        .where(
            Like.target_kind == kind.value,
            Like.target_id == id_column,
            Like.liked_by_id == viewer_id,
        )
        .correlate_except(Like)
    )


def get_comment_count_subquery(video_id_column):
    return (
        select(func.count(Comment.id))
        .where(Comment.video_id == video_id_column, get_visible_comment_filter())
        .correlate_except(Comment)
        .scalar_subquery()
    )


def get_reply_count_subquery(comment_id_column):
    """Respuestas visibles de un comentario."""
    reply = aliased(Comment)
    return (
        select(func.count(reply.id))
        .where(reply.parent_comment_id == comment_id_column, get_visible_comment_filter(reply))
        .correlate_except(reply)
        .scalar_subquery()
    )


def get_subscriber_count_subquery(user_id_column):
    return (
        select(func.count(Subscription.id))
        .where(Subscription.channel_id == user_id_column)
        .correlate_except(Subscription)
        .scalar_subquery()
    )


def get_is_subscribed_expression(channel_id_column, viewer_id: Optional[int]):
    if viewer_id is None:
        return literal(False)
    return (
        exists()
        .where(Subscription.channel_id == channel_id_column, Subscription.subscriber_id == viewer_id)
        .correlate_except(Subscription)
    )


# -------- Armado de schemas --------

def get_owner_summary(user: User) -> OwnerSummary:
    return OwnerSummary.model_validate(user)


def get_video_item(video: Video, owner: User) -> VideoItem:
    record = VideoRecord.model_validate(video)
    return VideoItem(**record.model_dump(), owner=get_owner_summary(owner))


def get_engagement_rate(likes: int, comments: int, views: int) -> float:
    """(likes + comments) / views * 100 con 2 decimales; 0 si no hay vistas."""
    if not views:
        return 0.0
    return round((likes + comments) / views * 100, 2)
