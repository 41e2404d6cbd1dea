from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.deps import get_current_user, get_db, get_optional_user, page_query
from app.cores.api_response import send_response
from app.models import User
from app.schemas.playlists.playlist_schema import PlaylistCreateRequest, PlaylistUpdateRequest
from app.services.playlists.playlist_service import (
    add_video_to_playlist,
    create_playlist,
    delete_playlist,
    get_playlist_by_id,
    get_user_playlists,
    remove_video_from_playlist,
    toggle_playlist_visibility,
    update_playlist,
)

router = APIRouter()


# -----------------------------
# Create / list
# -----------------------------
@router.post("", status_code=201)
async def create_playlist_route(
    body: PlaylistCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await create_playlist(db, current_user, body)
    return send_response(playlist, "Playlist created successfully", 201)


@router.get("/user/{user_id}")
async def user_playlists_route(
    user_id: int,
    page_request=Depends(page_query(default_sort="updatedAt")),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_user_playlists(db, user_id, page_request, viewer.id if viewer else None)
    return send_response(result, "User playlists fetched successfully")


@router.get("/{playlist_id}")
async def get_playlist_route(
    playlist_id: int,
    page_request=Depends(page_query()),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_playlist_by_id(db, playlist_id, page_request, viewer.id if viewer else None)
    return send_response(result, "Playlist fetched successfully")


# -----------------------------
# Playlist videos
# -----------------------------
@router.patch("/add/{video_id}/{playlist_id}")
async def add_video_route(
    video_id: int,
    playlist_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await add_video_to_playlist(db, playlist_id, video_id, current_user)
    return send_response(playlist, "Video added to playlist successfully")


@router.patch("/remove/{video_id}/{playlist_id}")
async def remove_video_route(
    video_id: int,
    playlist_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await remove_video_from_playlist(db, playlist_id, video_id, current_user)
    return send_response(playlist, "Video removed from playlist successfully")


# -----------------------------
# Update / delete
# -----------------------------
@router.patch("/toggle/visibility/{playlist_id}")
async def toggle_visibility_route(
    playlist_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await toggle_playlist_visibility(db, playlist_id, current_user)
    message = "Playlist is now public" if playlist.is_public else "Playlist is now private"
    return send_response(playlist, message)


@router.patch("/{playlist_id}")
async def update_playlist_route(
    playlist_id: int,
    body: PlaylistUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    playlist = await update_playlist(db, playlist_id, current_user, body)
    return send_response(playlist, "Playlist updated successfully")


@router.delete("/{playlist_id}")
async def delete_playlist_route(
    playlist_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await delete_playlist(db, playlist_id, current_user)
    return send_response(result, "Playlist deleted successfully")
