import logging
from typing import Any, Dict, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import BadRequestError, ConflictError, ForbiddenError, NotFoundError, field_error
from app.cores.db import atomic, utc_now
from app.models import Playlist, PlaylistVideo, User, Video
from app.schemas.playlists.playlist_schema import (
    PlaylistCreateRequest,
    PlaylistDetail,
    PlaylistItem,
    PlaylistUpdateRequest,
)
from app.services.utils.pagination_service import PageRequest, PaginationService, get_pagination
from app.services.utils.view_service import get_owner_summary, get_published_video_filter, get_video_item
from app.services.validation.exception import handle_db_errors, user_not_found_exception

logger = logging.getLogger(__name__)

DUPLICATE_NAME_MESSAGE = "You already have a playlist with this name"


# -------- Validaciones --------

async def _get_playlist_or_404(db: AsyncSession, playlist_id: int) -> Playlist:
    playlist = await db.get(Playlist, playlist_id)
    if playlist is None:
        raise NotFoundError("Playlist not found")
    return playlist


async def _get_owned_playlist(db: AsyncSession, playlist_id: int, user_id: int) -> Playlist:
    playlist = await _get_playlist_or_404(db, playlist_id)
    if playlist.owner_id != user_id:
        raise ForbiddenError("You can only modify your own playlists")
    return playlist


async def _validate_unique_name(db: AsyncSession, owner_id: int, name: str, exclude_id: Optional[int] = None) -> None:
    query = select(Playlist.id).where(Playlist.owner_id == owner_id, Playlist.name_key == name.lower())
    if exclude_id is not None:
        query = query.where(Playlist.id != exclude_id)
    if (await db.execute(query)).first():
        raise ConflictError(DUPLICATE_NAME_MESSAGE, [field_error("name", DUPLICATE_NAME_MESSAGE)])


def _video_count_subquery():
    return (
        select(func.count(PlaylistVideo.id))
        .join(Video, PlaylistVideo.video_id == Video.id)
        .where(PlaylistVideo.playlist_id == Playlist.id, get_published_video_filter())
        .correlate_except(PlaylistVideo, Video)
        .scalar_subquery()
    )


async def _get_playlist_item(db: AsyncSession, playlist: Playlist) -> PlaylistItem:
    video_count = (await db.execute(select(_video_count_subquery()).where(Playlist.id == playlist.id))).scalar() or 0
    return PlaylistItem(
        id=playlist.id,
        name=playlist.name,
        description=playlist.description,
        is_public=playlist.is_public,
        owner_id=playlist.owner_id,
        video_count=video_count,
        created_at=playlist.created_at,
        updated_at=playlist.updated_at,
    )


async def _commit_playlist(db: AsyncSession, playlist: Playlist) -> PlaylistItem:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError(DUPLICATE_NAME_MESSAGE, [field_error("name", DUPLICATE_NAME_MESSAGE)])
    await db.refresh(playlist)
    return await _get_playlist_item(db, playlist)


# -------- Crear / listar --------

@handle_db_errors
async def create_playlist(db: AsyncSession, user: User, request: PlaylistCreateRequest) -> PlaylistItem:
    await _validate_unique_name(db, user.id, request.name)
    playlist = Playlist(
        name=request.name,
        name_key=request.name.lower(),
        description=request.description,
        owner_id=user.id,
        is_public=False,
    )
    db.add(playlist)
    item = await _commit_playlist(db, playlist)
    logger.info(f"Playlist {playlist.id} created by user {user.id}")
    return item


@handle_db_errors
async def get_user_playlists(
    db: AsyncSession,
    user_id: int,
    page_request: PageRequest,
    viewer_id: Optional[int] = None,
) -> Dict[str, Any]:
    if await db.get(User, user_id) is None:
        await user_not_found_exception()

    query = select(Playlist, _video_count_subquery().label("video_count")).where(Playlist.owner_id == user_id)
    if viewer_id != user_id:
        query = query.where(Playlist.is_public.is_(True))
    query = query.order_by(Playlist.updated_at.desc(), Playlist.id.desc())

    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)
    items = [
        PlaylistItem(
            id=playlist.id,
            name=playlist.name,
            description=playlist.description,
            is_public=playlist.is_public,
            owner_id=playlist.owner_id,
            video_count=video_count,
            created_at=playlist.created_at,
            updated_at=playlist.updated_at,
        )
        for playlist, video_count in rows
    ]
    return {
        "items": items,
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalPlaylists"),
    }


@handle_db_errors
async def get_playlist_by_id(
    db: AsyncSession,
    playlist_id: int,
    page_request: PageRequest,
    viewer_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Playlist con sus videos paginados en el orden en que se agregaron.
    Sólo se listan videos publicados; una playlist privada sólo la ve su dueño.
    """
    playlist = await _get_playlist_or_404(db, playlist_id)
    if not playlist.is_public and playlist.owner_id != viewer_id:
        raise ForbiddenError("This playlist is private")

    owner = await db.get(User, playlist.owner_id)
    item = await _get_playlist_item(db, playlist)

    query = (
        select(Video, User)
        .join(PlaylistVideo, PlaylistVideo.video_id == Video.id)
        .join(User, Video.owner_id == User.id)
        .where(PlaylistVideo.playlist_id == playlist_id, get_published_video_filter())
        .order_by(PlaylistVideo.position.asc(), PlaylistVideo.id.asc())
    )
    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)

    return {
        "playlist": PlaylistDetail(**item.model_dump(), owner=get_owner_summary(owner)),
        "items": [get_video_item(video, video_owner) for video, video_owner in rows],
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalVideos"),
    }


# -------- Videos de la playlist --------

@handle_db_errors
async def add_video_to_playlist(db: AsyncSession, playlist_id: int, video_id: int, user: User) -> PlaylistItem:
    playlist = await _get_owned_playlist(db, playlist_id, user.id)

    video = await db.get(Video, video_id)
    if video is None:
        raise NotFoundError("Video not found")
    if not video.is_published:
        raise BadRequestError("Only published videos can be added to a playlist")

    existing = await db.execute(
        select(PlaylistVideo.id).where(PlaylistVideo.playlist_id == playlist_id, PlaylistVideo.video_id == video_id)
    )
    if existing.first():
        raise ConflictError("Video already exists in playlist")

    last_position = (
        await db.execute(select(func.max(PlaylistVideo.position)).where(PlaylistVideo.playlist_id == playlist_id))
    ).scalar()
    db.add(PlaylistVideo(
        playlist_id=playlist_id,
        video_id=video_id,
        position=(last_position or 0) + 1,
    ))
    playlist.updated_at = utc_now()
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Video already exists in playlist")

    await db.refresh(playlist)
    return await _get_playlist_item(db, playlist)


@handle_db_errors
async def remove_video_from_playlist(db: AsyncSession, playlist_id: int, video_id: int, user: User) -> PlaylistItem:
    playlist = await _get_owned_playlist(db, playlist_id, user.id)

    result = await db.execute(
        delete(PlaylistVideo)
        .where(PlaylistVideo.playlist_id == playlist_id, PlaylistVideo.video_id == video_id)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        await db.rollback()
        raise NotFoundError("Video not found in playlist")

    playlist.updated_at = utc_now()
    await db.commit()
    await db.refresh(playlist)
    return await _get_playlist_item(db, playlist)


# -------- Actualizar / borrar --------

@handle_db_errors
async def update_playlist(db: AsyncSession, playlist_id: int, user: User, request: PlaylistUpdateRequest) -> PlaylistItem:
    playlist = await _get_owned_playlist(db, playlist_id, user.id)

    if request.name is not None:
        await _validate_unique_name(db, user.id, request.name, exclude_id=playlist.id)
        playlist.name = request.name
        playlist.name_key = request.name.lower()
    if request.description is not None:
        playlist.description = request.description

    return await _commit_playlist(db, playlist)


@handle_db_errors
async def toggle_playlist_visibility(db: AsyncSession, playlist_id: int, user: User) -> PlaylistItem:
    playlist = await _get_owned_playlist(db, playlist_id, user.id)
    playlist.is_public = not playlist.is_public
    return await _commit_playlist(db, playlist)


@handle_db_errors
async def delete_playlist(db: AsyncSession, playlist_id: int, user: User) -> Dict[str, Any]:
    await _get_owned_playlist(db, playlist_id, user.id)
    async with atomic(db):
        await db.execute(
            delete(PlaylistVideo).where(PlaylistVideo.playlist_id == playlist_id).execution_options(synchronize_session=False)
        )
        await db.execute(delete(Playlist).where(Playlist.id == playlist_id).execution_options(synchronize_session=False))
    return {"playlistId": playlist_id}
