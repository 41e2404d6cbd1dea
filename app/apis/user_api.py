from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.deps import get_current_user, get_db, get_optional_user, page_query
from app.configs.settings import settings
from app.cores.api_response import send_response
from app.cores.rate_limiter import AUTH_LIMIT, UPLOAD_LIMIT, limiter
from app.external.blob_store import BlobStore, get_blob_store
from app.models import User
from app.schemas.users.user_schema import (
    ChangePasswordRequest,
    LoginRequest,
    RefreshTokenRequest,
    RegisterUserRequest,
    TokenPair,
    UpdateAccountRequest,
    UserPublic,
)
from app.services.auths.login_service import login_user
from app.services.auths.register_service import register_user
from app.services.auths.session_service import end_session, rotate_session
from app.services.user.account_service import (
    change_password,
    update_account_details,
    update_user_avatar,
    update_user_cover_image,
)
from app.services.user.channel_service import get_user_channel_profile, get_watch_history

router = APIRouter()


def _set_auth_cookies(response: JSONResponse, tokens: TokenPair) -> JSONResponse:
    cookie_options = {
        "httponly": True,
        "secure": settings.is_production,
        "samesite": "strict",
        "max_age": settings.COOKIE_MAX_AGE_SECONDS,
    }
    response.set_cookie("accessToken", tokens.access_token, **cookie_options)
    response.set_cookie("refreshToken", tokens.refresh_token, **cookie_options)
    return response


# -----------------------------
# Register
# -----------------------------
@router.post("/register", status_code=201)
@limiter.limit(AUTH_LIMIT)
async def register_route(
    request: Request,
    fullname: str = Form(...),
    email: str = Form(...),
    username: str = Form(...),
    password: str = Form(...),
    avatar: Optional[UploadFile] = File(None),
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    # los campos llegan como multipart, se validan con el mismo schema que el JSON
    try:
        payload = RegisterUserRequest(fullname=fullname, email=email, username=username, password=password)
    except ValidationError as e:
        raise RequestValidationError(e.errors())

    user = await register_user(db, payload, blob_store, avatar=avatar, cover_image=cover_image)
    return send_response(user, "User registered successfully", 201)


# -----------------------------
# Session
# -----------------------------
@router.post("/login")
@limiter.limit(AUTH_LIMIT)
async def login_route(request: Request, credentials: LoginRequest, db: AsyncSession = Depends(get_db)):
    data = await login_user(db, credentials.email, credentials.password)
    response = send_response(data, "User logged in successfully")
    return _set_auth_cookies(response, TokenPair(access_token=data.access_token, refresh_token=data.refresh_token))


@router.post("/refreshTokens")
async def refresh_tokens_route(
    request: Request,
    body: Optional[RefreshTokenRequest] = None,
    db: AsyncSession = Depends(get_db),
):
    presented = request.cookies.get("refreshToken") or (body.refresh_token if body else None)
    tokens = await rotate_session(db, presented)
    response = send_response(tokens, "Access token refreshed")
    return _set_auth_cookies(response, tokens)


@router.post("/logout")
async def logout_route(current_user: User = Depends(get_current_user), db: AsyncSession = Depends(get_db)):
    await end_session(db, current_user.id)
    response = send_response({}, "User logged out successfully")
    response.delete_cookie("accessToken")
    response.delete_cookie("refreshToken")
    return response


# -----------------------------
# Account
# -----------------------------
@router.post("/change-password")
async def change_password_route(
    body: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    await change_password(db, current_user, body)
    return send_response({}, "Password changed successfully")


@router.get("/current-user")
async def current_user_route(current_user: User = Depends(get_current_user)):
    return send_response(UserPublic.model_validate(current_user), "Current user fetched successfully")


@router.patch("/update-account")
async def update_account_route(
    body: UpdateAccountRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    user = await update_account_details(db, current_user, body)
    return send_response(user, "Account details updated successfully")


@router.patch("/avatar")
@limiter.limit(UPLOAD_LIMIT)
async def update_avatar_route(
    request: Request,
    avatar: Optional[UploadFile] = File(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    user = await update_user_avatar(db, current_user, avatar, blob_store)
    return send_response(user, "Avatar updated successfully")


@router.patch("/cover-image")
@limiter.limit(UPLOAD_LIMIT)
async def update_cover_image_route(
    request: Request,
    cover_image: Optional[UploadFile] = File(None, alias="coverImage"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store),
):
    user = await update_user_cover_image(db, current_user, cover_image, blob_store)
    return send_response(user, "Cover image updated successfully")


# -----------------------------
# Channel
# -----------------------------
@router.get("/c/{username}")
async def channel_profile_route(
    username: str,
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    profile = await get_user_channel_profile(db, username, viewer.id if viewer else None)
    return send_response(profile, "User channel fetched successfully")


@router.get("/history")
async def watch_history_route(
    page_request=Depends(page_query(max_limit=100)),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_watch_history(db, current_user.id, page_request)
    return send_response(result, "Watch history fetched successfully")
