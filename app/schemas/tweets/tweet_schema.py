from datetime import datetime

from pydantic import field_validator

from app.cores.input_validator import validate_field
from app.schemas.common.base_schema import CamelModel
from app.schemas.users.user_schema import OwnerSummary


class TweetContentRequest(CamelModel):
    content: str

    @field_validator("content")
    @classmethod
    def check_content(cls, value):
        return validate_field("tweet", value)


class TweetView(CamelModel):
    id: int
    content: str
    created_at: datetime
    updated_at: datetime
    owner: OwnerSummary
    likes_count: int
    is_liked: bool
    is_owner: bool
