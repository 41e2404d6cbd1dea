from datetime import datetime
from typing import Optional

from pydantic import field_validator

from app.cores.input_validator import validate_field
from app.schemas.common.base_schema import CamelModel
from app.schemas.users.user_schema import OwnerSummary
from app.schemas.videos.video_schema import VideoBrief


class CommentCreateRequest(CamelModel):
    content: str
    parent_comment_id: Optional[int] = None

    @field_validator("content")
    @classmethod
    def check_content(cls, value):
        return validate_field("comment", value)


class CommentUpdateRequest(CamelModel):
    content: str

    @field_validator("content")
    @classmethod
    def check_content(cls, value):
        return validate_field("comment", value)


class CommentView(CamelModel):
    id: int
    content: str
    video_id: int
    parent_comment_id: Optional[int] = None
    is_edited: bool
    edited_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    owner: OwnerSummary
    likes_count: int
    replies_count: int = 0
    is_liked_by_user: bool
    is_owner: bool


class CommentDetail(CommentView):
    video: VideoBrief
    moderation_status: str
