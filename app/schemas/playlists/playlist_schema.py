from datetime import datetime
from typing import Optional

from pydantic import field_validator, model_validator

from app.cores.input_validator import validate_field
from app.schemas.common.base_schema import CamelModel
from app.schemas.users.user_schema import OwnerSummary


class PlaylistCreateRequest(CamelModel):
    name: str
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value):
        return validate_field("playlist_name", value)

    @field_validator("description")
    @classmethod
    def check_description(cls, value):
        return validate_field("playlist_description", value)


class PlaylistUpdateRequest(PlaylistCreateRequest):
    name: Optional[str] = None

    @model_validator(mode="after")
    def check_has_changes(self):
        if self.name is None and self.description is None:
            raise ValueError("At least one of name or description is required")
        return self


class PlaylistItem(CamelModel):
    id: int
    name: str
    description: Optional[str] = None
    is_public: bool
    owner_id: int
    video_count: int
    created_at: datetime
    updated_at: datetime


class PlaylistDetail(PlaylistItem):
    owner: OwnerSummary
