from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.deps import get_current_user, get_db, get_optional_user, page_query
from app.cores.api_response import send_response
from app.models import User
from app.schemas.comments.comment_schema import CommentCreateRequest, CommentUpdateRequest
from app.services.comments.comment_service import (
    COMMENT_SORTS,
    add_comment,
    delete_comment,
    flag_comment,
    get_comment_by_id,
    get_user_comments,
    get_video_comments,
    update_comment,
)

router = APIRouter()


def _viewer_id(viewer: Optional[User]) -> Optional[int]:
    return viewer.id if viewer else None


# -----------------------------
# Single comment
# -----------------------------
@router.get("/c/{comment_id}")
async def get_comment_route(
    comment_id: int,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await get_comment_by_id(db, comment_id, _viewer_id(viewer))
    return send_response(comment, "Comment fetched successfully")


@router.patch("/c/{comment_id}")
async def update_comment_route(
    comment_id: int,
    body: CommentUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await update_comment(db, comment_id, current_user, body)
    return send_response(comment, "Comment updated successfully")


@router.delete("/c/{comment_id}")
async def delete_comment_route(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await delete_comment(db, comment_id, current_user)
    return send_response(result, "Comment deleted successfully")


@router.post("/c/{comment_id}/flag")
async def flag_comment_route(
    comment_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await flag_comment(db, comment_id)
    return send_response(result, "Comment flagged for review")


# -----------------------------
# Comments by user / video
# -----------------------------
@router.get("/user/{user_id}")
async def user_comments_route(
    user_id: int,
    page_request=Depends(page_query(max_limit=50)),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_user_comments(db, user_id, page_request, _viewer_id(viewer))
    return send_response(result, "User comments fetched successfully")


@router.get("/{video_id}")
async def video_comments_route(
    video_id: int,
    page_request=Depends(page_query(allowed_sort=COMMENT_SORTS, default_sort="newest", max_limit=50)),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_video_comments(db, video_id, page_request, _viewer_id(viewer))
    return send_response(result, "Comments fetched successfully")


@router.post("/{video_id}", status_code=201)
async def add_comment_route(
    video_id: int,
    body: CommentCreateRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    comment = await add_comment(db, video_id, current_user, body)
    return send_response(comment, "Comment added successfully", 201)
