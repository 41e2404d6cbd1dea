import logging
from typing import Any, Dict, Optional

from sqlalchemy import case, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.configs.settings import settings
from app.cores.api_error import BadRequestError, ForbiddenError, NotFoundError
from app.cores.db import atomic, utc_now
from app.models import Comment, Like, LikeTargetKind, ModerationStatus, User, Video
from app.schemas.comments.comment_schema import (
    CommentCreateRequest,
    CommentDetail,
    CommentUpdateRequest,
    CommentView,
)
from app.schemas.videos.video_schema import VideoBrief
from app.services.utils.pagination_service import PageRequest, PaginationService, get_pagination
from app.services.utils.view_service import (
    get_is_liked_expression,
    get_like_count_subquery,
    get_owner_summary,
    get_published_video_filter,
    get_reply_count_subquery,
    get_visible_comment_filter,
)
from app.services.validation.exception import handle_db_errors

logger = logging.getLogger(__name__)

COMMENT_SORTS = ("newest", "oldest", "popular")


# -----------------------------
# Validaciones
# -----------------------------
async def _validate_video_exists(db: AsyncSession, video_id: int) -> Video:
    video = await db.get(Video, video_id)
    if video is None:
        raise NotFoundError("Video not found")
    return video


async def _get_visible_comment(db: AsyncSession, comment_id: int) -> Comment:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id, get_visible_comment_filter())
    )
    comment = result.scalar_one_or_none()
    if comment is None:
        raise NotFoundError("Comment not found")
    return comment


def _validate_comment_owner(comment: Comment, user_id: int) -> None:
    if comment.owner_id != user_id:
        raise ForbiddenError("You can only modify your own comments")


# -----------------------------
# Vistas
# -----------------------------
def _build_comment_query(viewer_id: Optional[int]):
    likes_count = get_like_count_subquery(LikeTargetKind.COMMENT, Comment.id).label("likes_count")
    is_liked = get_is_liked_expression(LikeTargetKind.COMMENT, Comment.id, viewer_id).label("is_liked")
    replies_count = get_reply_count_subquery(Comment.id).label("replies_count")
    query = (
        select(Comment, User, likes_count, is_liked, replies_count)
        .join(User, Comment.owner_id == User.id)
        .where(get_visible_comment_filter())
    )
    return query, likes_count


def _to_comment_view(
    comment: Comment,
    owner: User,
    likes_count: int,
    is_liked: Any,
    viewer_id: Optional[int],
    replies_count: int = 0,
) -> CommentView:
    return CommentView(
        id=comment.id,
        content=comment.content,
        video_id=comment.video_id,
        parent_comment_id=comment.parent_comment_id,
        is_edited=comment.is_edited,
        edited_at=comment.edited_at,
        created_at=comment.created_at,
        updated_at=comment.updated_at,
        owner=get_owner_summary(owner),
        likes_count=likes_count or 0,
        replies_count=replies_count or 0,
        is_liked_by_user=bool(is_liked),
        is_owner=viewer_id is not None and comment.owner_id == viewer_id,
    )


async def _get_comment_view(db: AsyncSession, comment_id: int, viewer_id: Optional[int]) -> CommentView:
    query = _build_comment_query(viewer_id)[0]
    row = (await db.execute(query.where(Comment.id == comment_id))).first()
    if row is None:
        raise NotFoundError("Comment not found")
    return _to_comment_view(row[0], row[1], row.likes_count, row.is_liked, viewer_id, row.replies_count)


# -----------------------------
# List comments of a video
# -----------------------------
@handle_db_errors
async def get_video_comments(
    db: AsyncSession,
    video_id: int,
    page_request: PageRequest,
    viewer_id: Optional[int] = None,
) -> Dict[str, Any]:
    await _validate_video_exists(db, video_id)

    query, likes_count = _build_comment_query(viewer_id)
    query = query.where(Comment.video_id == video_id)
    if page_request.sort_by == "oldest":
        query = query.order_by(Comment.created_at.asc(), Comment.id.asc())
    elif page_request.sort_by == "popular":
        query = query.order_by(likes_count.desc(), Comment.created_at.desc(), Comment.id.desc())
    else:
        query = query.order_by(Comment.created_at.desc(), Comment.id.desc())

    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)
    items = [
        _to_comment_view(row[0], row[1], row.likes_count, row.is_liked, viewer_id, row.replies_count)
        for row in rows
    ]
    return {
        "items": items,
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalComments"),
    }


# -----------------------------
# Create Comment
# -----------------------------
@handle_db_errors
async def add_comment(db: AsyncSession, video_id: int, user: User, request: CommentCreateRequest) -> CommentView:
    video = await _validate_video_exists(db, video_id)
    if not video.is_published:
        raise BadRequestError("Cannot comment on unpublished video")

    if request.parent_comment_id is not None:
        parent = await _get_visible_comment(db, request.parent_comment_id)
        if parent.video_id != video_id:
            raise BadRequestError("Parent comment belongs to another video")

    comment = Comment(
        content=request.content,
        video_id=video_id,
        owner_id=user.id,
        parent_comment_id=request.parent_comment_id,
    )
    db.add(comment)
    await db.commit()
    await db.refresh(comment)

    logger.info(f"Comment {comment.id} created on video {video_id}")
    return _to_comment_view(comment, user, 0, False, user.id)


# -----------------------------
# Update Comment
# -----------------------------
@handle_db_errors
async def update_comment(db: AsyncSession, comment_id: int, user: User, request: CommentUpdateRequest) -> CommentView:
    comment = await _get_visible_comment(db, comment_id)
    _validate_comment_owner(comment, user.id)

    comment.content = request.content
    comment.is_edited = True
    comment.edited_at = utc_now()
    await db.commit()

    return await _get_comment_view(db, comment_id, user.id)


# -----------------------------
# Delete Comment
# -----------------------------
@handle_db_errors
async def delete_comment(db: AsyncSession, comment_id: int, user: User) -> Dict[str, Any]:
    """Soft delete del comentario y borrado de sus likes en una sola transacción."""
    async with atomic(db):
        comment = await _get_visible_comment(db, comment_id)
        _validate_comment_owner(comment, user.id)

        comment.is_deleted = True
        comment.deleted_at = utc_now()
        result = await db.execute(
            delete(Like)
            .where(Like.target_kind == LikeTargetKind.COMMENT.value, Like.target_id == comment.id)
            .execution_options(synchronize_session=False)
        )

    logger.info(f"Comment {comment_id} deleted with {result.rowcount} likes")
    return {"commentId": comment_id, "deletedLikes": result.rowcount}


# -----------------------------
# Get Comment
# -----------------------------
@handle_db_errors
async def get_comment_by_id(db: AsyncSession, comment_id: int, viewer_id: Optional[int] = None) -> CommentDetail:
    query = _build_comment_query(viewer_id)[0]
    row = (
        await db.execute(
            query.add_columns(Video.title, Video.thumbnail)
            .join(Video, Comment.video_id == Video.id)
            .where(Comment.id == comment_id)
        )
    ).first()
    if row is None:
        raise NotFoundError("Comment not found")

    comment = row[0]
    view = _to_comment_view(comment, row[1], row.likes_count, row.is_liked, viewer_id, row.replies_count)
    return CommentDetail(
        **view.model_dump(),
        video=VideoBrief(id=comment.video_id, title=row.title, thumbnail=row.thumbnail),
        moderation_status=comment.moderation_status,
    )


@handle_db_errors
async def get_user_comments(
    db: AsyncSession,
    user_id: int,
    page_request: PageRequest,
    viewer_id: Optional[int] = None,
) -> Dict[str, Any]:
    query = _build_comment_query(viewer_id)[0]
    query = (
        query.add_columns(Video.title, Video.thumbnail)
        .join(Video, Comment.video_id == Video.id)
        .where(Comment.owner_id == user_id, get_published_video_filter())
        .order_by(Comment.created_at.desc(), Comment.id.desc())
    )
    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)

    items = []
    for row in rows:
        view = _to_comment_view(row[0], row[1], row.likes_count, row.is_liked, viewer_id, row.replies_count)
        items.append(CommentDetail(
            **view.model_dump(),
            video=VideoBrief(id=row[0].video_id, title=row.title, thumbnail=row.thumbnail),
            moderation_status=row[0].moderation_status,
        ))
    return {
        "items": items,
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalComments"),
    }


# -----------------------------
# Flag Comment
# -----------------------------
@handle_db_errors
async def flag_comment(db: AsyncSession, comment_id: int) -> Dict[str, Any]:
    """
    Suma un reporte de forma atómica. El UPDATE evalúa el umbral con el valor previo,
    así sólo la petición que cruza COMMENT_FLAG_THRESHOLD cambia el estado a "flagged".
    """
    await _get_visible_comment(db, comment_id)
    threshold = settings.COMMENT_FLAG_THRESHOLD
    await db.execute(
        update(Comment)
        .where(Comment.id == comment_id)
        .values(
            flag_count=Comment.flag_count + 1,
            moderation_status=case(
                (threshold == Comment.flag_count + 1, ModerationStatus.FLAGGED.value),
                else_=Comment.moderation_status,
            ),
        )
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    result = await db.execute(
        select(Comment.flag_count, Comment.moderation_status).where(Comment.id == comment_id)
    )
    flag_count, moderation_status = result.one()
    return {"commentId": comment_id, "flagCount": flag_count, "moderationStatus": moderation_status}
