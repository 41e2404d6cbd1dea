from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.deps import get_current_user, get_db, get_optional_user, page_query
from app.cores.api_response import send_response
from app.cores.rate_limiter import UPLOAD_LIMIT, limiter
from app.external.blob_store import BlobStore, get_blob_store
from app.models import User
from app.schemas.videos.video_schema import PublishVideoForm, UpdateVideoForm
from app.services.videos.video_service import (
    VIDEO_SORTS,
    delete_video,
    get_all_videos,
    get_video_by_id,
    publish_video,
    toggle_publish_status,
    update_video,
)

router = APIRouter()


def _parse_form(schema, **values):
    try:
        return schema(**values)
    except ValidationError as e:
        raise RequestValidationError(e.errors())


# -----------------------------
# List / publish
# -----------------------------
@router.get("")
async def list_videos_route(
    page_request=Depends(page_query(allowed_sort=VIDEO_SORTS, max_limit=50, sort_order_alias="sortType")),
    query: Optional[str] = Query(None),
    user_id: Optional[int] = Query(None, alias="userId"),
    db: AsyncSession = Depends(get_db),
):
    result = await get_all_videos(db, page_request, search=query, user_id=user_id)
    return send_response(result, "Videos fetched successfully")


@router.post("", status_code=201)
@limiter.limit(UPLOAD_LIMIT)
async def publish_video_route(
    request: Request,
    title: str = Form(...),
    description: str = Form(""),
    duration: float = Form(0),
    video_file: Optional[UploadFile] = File(None, alias="videoFile"),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    form = _parse_form(PublishVideoForm, title=title, description=description, duration=duration)
    video = await publish_video(db, current_user, form, video_file, thumbnail, blob_store)
    return send_response(video, "Video published successfully", 201)


# -----------------------------
# Single video
# -----------------------------
@router.get("/{video_id}")
async def get_video_route(
    video_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    video = await get_video_by_id(db, video_id, viewer.id if viewer else None)
    return send_response(video, "Video fetched successfully")


@router.patch("/{video_id}")
async def update_video_route(
    video_id: int,
    title: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    thumbnail: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    form = _parse_form(UpdateVideoForm, title=title, description=description)
    video = await update_video(db, video_id, current_user, form, thumbnail, blob_store)
    return send_response(video, "Video updated successfully")


@router.delete("/{video_id}")
async def delete_video_route(
    video_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    result = await delete_video(db, video_id, current_user, blob_store)
    return send_response(result, "Video deleted successfully")


@router.patch("/toggle/publish/{video_id}")
async def toggle_publish_route(
    video_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    video = await toggle_publish_status(db, video_id, current_user)
    message = "Video published" if video.is_published else "Video unpublished"
    return send_response(video, message)
