from datetime import datetime
from typing import Optional

from pydantic import EmailStr, field_validator, model_validator

from app.cores.input_validator import validate_field
from app.schemas.common.base_schema import CamelModel


class OwnerSummary(CamelModel):
    id: int
    username: str
    fullname: str
    avatar: str


class UserPublic(CamelModel):
    id: int
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class RegisterUserRequest(CamelModel):
    fullname: str
    email: EmailStr
    username: str
    password: str

    @field_validator("fullname")
    @classmethod
    def check_fullname(cls, value):
        return validate_field("fullname", value)

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return validate_field("email", value)

    @field_validator("username")
    @classmethod
    def check_username(cls, value):
        return validate_field("username", value)

    @field_validator("password")
    @classmethod
    def check_password(cls, value):
        return validate_field("password", value)


class LoginRequest(CamelModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def normalize_email(cls, value):
        return value.strip().lower()


class RefreshTokenRequest(CamelModel):
    refresh_token: Optional[str] = None


class ChangePasswordRequest(CamelModel):
    old_password: str
    new_password: str

    @field_validator("new_password")
    @classmethod
    def check_new_password(cls, value):
        return validate_field("password", value)


class UpdateAccountRequest(CamelModel):
    fullname: Optional[str] = None
    email: Optional[EmailStr] = None

    @field_validator("fullname")
    @classmethod
    def check_fullname(cls, value):
        return validate_field("fullname", value)

    @field_validator("email")
    @classmethod
    def check_email(cls, value):
        return validate_field("email", value)

    @model_validator(mode="after")
    def check_has_changes(self):
        if self.fullname is None and self.email is None:
            raise ValueError("At least one of fullname or email is required")
        return self


class LoginData(CamelModel):
    user: UserPublic
    access_token: str
    refresh_token: str


class TokenPair(CamelModel):
    access_token: str
    refresh_token: str


class ChannelProfile(CamelModel):
    id: int
    username: str
    fullname: str
    email: str
    avatar: str
    cover_image: Optional[str] = None
    subscribers_count: int
    channels_subscribed_to_count: int
    is_subscribed: bool
    created_at: datetime
