import logging
from typing import Any, Dict, Optional

from fastapi import UploadFile
from sqlalchemy import delete, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.configs.settings import settings
from app.cores.api_error import BadRequestError, ForbiddenError, NotFoundError
from app.cores.db import atomic, utc_now
from app.cores.input_validator import validate_field
from app.external.blob_store import BlobStore
from app.models import Comment, Like, LikeTargetKind, PlaylistVideo, User, Video, WatchHistory
from app.schemas.videos.video_schema import (
    ChannelOwnerSummary,
    PublishVideoForm,
    UpdateVideoForm,
    VideoDetail,
    VideoRecord,
)
from app.services.utils.pagination_service import PageRequest, PaginationService, get_order_clause, get_pagination
from app.services.utils.upload_service import (
    IMAGE_POLICY,
    VIDEO_POLICY,
    delete_stored_file,
    handle_file_upload,
)
from app.services.utils.view_service import (
    get_comment_count_subquery,
    get_is_liked_expression,
    get_is_subscribed_expression,
    get_like_count_subquery,
    get_published_video_filter,
    get_subscriber_count_subquery,
    get_video_item,
)
from app.services.validation.exception import handle_db_errors, video_not_found_exception

logger = logging.getLogger(__name__)

VIDEO_SORTS = {
    "createdAt": Video.created_at,
    "updatedAt": Video.updated_at,
    "views": Video.views,
    "title": Video.title,
    "duration": Video.duration,
}


# -------- Validaciones --------

async def _get_video_or_404(db: AsyncSession, video_id: int) -> Video:
    video = await db.get(Video, video_id)
    if video is None:
        await video_not_found_exception()
    return video


async def get_owned_video(db: AsyncSession, video_id: int, user_id: int) -> Video:
    """Video del usuario; 404 si no existe y 403 si pertenece a otro."""
    video = await _get_video_or_404(db, video_id)
    if video.owner_id != user_id:
        raise ForbiddenError("You are not the owner of this video")
    return video


def _check_search_query(search: Optional[str]) -> Optional[str]:
    if not search:
        return None
    try:
        return validate_field("search_query", search) or None
    except ValueError as e:
        raise BadRequestError(str(e))


# -------- Listado público --------

@handle_db_errors
async def get_all_videos(
    db: AsyncSession,
    page_request: PageRequest,
    search: Optional[str] = None,
    user_id: Optional[int] = None,
) -> Dict[str, Any]:
    search = _check_search_query(search)

    query = (
        select(Video, User)
        .join(User, Video.owner_id == User.id)
        .where(get_published_video_filter())
    )
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(Video.title.ilike(pattern), Video.description.ilike(pattern)))
    if user_id is not None:
        query = query.where(Video.owner_id == user_id)

    sort_column = VIDEO_SORTS[page_request.sort_by]
    query = query.order_by(
        get_order_clause(sort_column, page_request.sort_order),
        get_order_clause(Video.id, page_request.sort_order),
    )

    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)
    return {
        "items": [get_video_item(video, owner) for video, owner in rows],
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalVideos"),
    }


# -------- Publicar --------

@handle_db_errors
async def publish_video(
    db: AsyncSession,
    user: User,
    form: PublishVideoForm,
    video_file: Optional[UploadFile],
    thumbnail: Optional[UploadFile],
    blob_store: BlobStore,
) -> VideoRecord:
    stored_video = await handle_file_upload(video_file, blob_store, VIDEO_POLICY, "videoFile", required=True)
    stored_thumbnail = await handle_file_upload(
        thumbnail, blob_store, IMAGE_POLICY, "thumbnail", default_url=settings.DEFAULT_THUMBNAIL_URL
    )

    video = Video(
        title=form.title,
        description=form.description,
        duration=form.duration,
        video_file=stored_video.url,
        video_file_id=stored_video.storage_id,
        thumbnail=stored_thumbnail.url,
        thumbnail_id=stored_thumbnail.storage_id,
        owner_id=user.id,
    )
    db.add(video)
    try:
        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        await delete_stored_file(blob_store, stored_video.storage_id)
        await delete_stored_file(blob_store, stored_thumbnail.storage_id)
        raise

    await db.refresh(video)
    logger.info(f"Video {video.id} published by user {user.id}")
    return VideoRecord.model_validate(video)


# -------- Detalle --------

async def _record_watch(db: AsyncSession, user_id: int, video_id: int) -> None:
    """Mueve el video al frente del historial del usuario."""
    result = await db.execute(
        update(WatchHistory)
        .where(WatchHistory.user_id == user_id, WatchHistory.video_id == video_id)
        .values(watched_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        db.add(WatchHistory(user_id=user_id, video_id=video_id))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Concurrent history insert for user {user_id} and video {video_id}")


@handle_db_errors
async def get_video_by_id(db: AsyncSession, video_id: int, viewer_id: Optional[int] = None) -> VideoDetail:
    video = await _get_video_or_404(db, video_id)
    if not video.is_published and video.owner_id != viewer_id:
        await video_not_found_exception()

    await db.execute(
        update(Video)
        .where(Video.id == video_id)
        .values(views=Video.views + 1)
        .execution_options(synchronize_session=False)
    )
    await db.commit()
    if viewer_id is not None:
        await _record_watch(db, viewer_id, video_id)

    query = (
        select(
            Video,
            User,
            get_like_count_subquery(LikeTargetKind.VIDEO, Video.id).label("likes_count"),
            get_comment_count_subquery(Video.id).label("comments_count"),
            get_is_liked_expression(LikeTargetKind.VIDEO, Video.id, viewer_id).label("is_liked"),
            get_subscriber_count_subquery(User.id).label("subscribers_count"),
            get_is_subscribed_expression(User.id, viewer_id).label("is_subscribed"),
        )
        .join(User, Video.owner_id == User.id)
        .where(Video.id == video_id)
        .execution_options(populate_existing=True)
    )
    row = (await db.execute(query)).first()
    if row is None:
        await video_not_found_exception()

    video, owner = row[0], row[1]
    record = VideoRecord.model_validate(video)
    return VideoDetail(
        **record.model_dump(),
        owner=ChannelOwnerSummary(
            id=owner.id,
            username=owner.username,
            fullname=owner.fullname,
            avatar=owner.avatar,
            subscribers_count=row.subscribers_count,
            is_subscribed=bool(row.is_subscribed),
        ),
        likes_count=row.likes_count,
        comments_count=row.comments_count,
        is_liked=bool(row.is_liked),
    )


# -------- Actualizar --------

@handle_db_errors
async def update_video(
    db: AsyncSession,
    video_id: int,
    user: User,
    form: UpdateVideoForm,
    thumbnail: Optional[UploadFile],
    blob_store: BlobStore,
) -> VideoRecord:
    video = await get_owned_video(db, video_id, user.id)
    has_thumbnail = thumbnail is not None and bool(thumbnail.filename)
    if form.title is None and form.description is None and not has_thumbnail:
        raise BadRequestError("Provide a title, description or thumbnail to update")

    previous_thumbnail_id = None
    if has_thumbnail:
        stored = await handle_file_upload(thumbnail, blob_store, IMAGE_POLICY, "thumbnail", default_url=video.thumbnail)
        if stored.storage_id:
            previous_thumbnail_id = video.thumbnail_id
            video.thumbnail = stored.url
            video.thumbnail_id = stored.storage_id

    if form.title is not None:
        video.title = form.title
    if form.description is not None:
        video.description = form.description

    await db.commit()
    await db.refresh(video)
    await delete_stored_file(blob_store, previous_thumbnail_id)
    return VideoRecord.model_validate(video)


# -------- Borrar --------

@handle_db_errors
async def delete_video(db: AsyncSession, video_id: int, user: User, blob_store: BlobStore) -> Dict[str, Any]:
    """Borra el video y todo lo que depende de él en una transacción; luego sus archivos."""
    video = await get_owned_video(db, video_id, user.id)
    storage_ids = [video.video_file_id, video.thumbnail_id]

    async with atomic(db):
        comment_ids = select(Comment.id).where(Comment.video_id == video_id)
        await db.execute(
            delete(Like)
            .where(Like.target_kind == LikeTargetKind.COMMENT.value, Like.target_id.in_(comment_ids))
            .execution_options(synchronize_session=False)
        )
        await db.execute(
            delete(Like)
            .where(Like.target_kind == LikeTargetKind.VIDEO.value, Like.target_id == video_id)
            .execution_options(synchronize_session=False)
        )
        for model, column in (
            (Comment, Comment.video_id),
            (PlaylistVideo, PlaylistVideo.video_id),
            (WatchHistory, WatchHistory.video_id),
            (Video, Video.id),
        ):
            await db.execute(delete(model).where(column == video_id).execution_options(synchronize_session=False))

    for storage_id in storage_ids:
        await delete_stored_file(blob_store, storage_id)

    logger.info(f"Video {video_id} deleted by user {user.id}")
    return {"videoId": video_id}


@handle_db_errors
async def toggle_publish_status(db: AsyncSession, video_id: int, user: User) -> VideoRecord:
    video = await get_owned_video(db, video_id, user.id)
    video.is_published = not video.is_published
    await db.commit()
    await db.refresh(video)
    return VideoRecord.model_validate(video)
