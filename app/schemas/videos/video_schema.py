from datetime import datetime
from typing import Optional

from pydantic import Field, field_validator

from app.cores.input_validator import validate_field
from app.schemas.common.base_schema import CamelModel
from app.schemas.users.user_schema import OwnerSummary


class PublishVideoForm(CamelModel):
    title: str
    description: str = ""
    duration: float = Field(default=0, ge=0)

    @field_validator("title")
    @classmethod
    def check_title(cls, value):
        return validate_field("video_title", value)

    @field_validator("description")
    @classmethod
    def check_description(cls, value):
        return validate_field("video_description", value)


class UpdateVideoForm(CamelModel):
    title: Optional[str] = None
    description: Optional[str] = None

    @field_validator("title")
    @classmethod
    def check_title(cls, value):
        return validate_field("video_title", value)

    @field_validator("description")
    @classmethod
    def check_description(cls, value):
        return validate_field("video_description", value)


class VideoRecord(CamelModel):
    id: int
    title: str
    description: str
    duration: float
    video_file: str
    thumbnail: str
    owner_id: int
    is_published: bool
    views: int
    created_at: datetime
    updated_at: datetime


class VideoItem(VideoRecord):
    owner: OwnerSummary


class ChannelOwnerSummary(OwnerSummary):
    subscribers_count: int
    is_subscribed: bool


class VideoDetail(VideoRecord):
    owner: ChannelOwnerSummary
    likes_count: int
    comments_count: int
    is_liked: bool


class VideoBrief(CamelModel):
    id: int
    title: str
    thumbnail: str


class WatchHistoryItem(VideoItem):
    watched_at: datetime


class LikedVideoItem(VideoItem):
    liked_at: datetime
