import logging
from typing import Optional

from fastapi import UploadFile
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.cores.api_error import ConflictError, UnauthenticatedError, UnprocessableEntityError, field_error
from app.cores.security import get_password_hash, verify_password
from app.external.blob_store import BlobStore
from app.models import User
from app.schemas.users.user_schema import ChangePasswordRequest, UpdateAccountRequest, UserPublic
from app.services.utils.upload_service import IMAGE_POLICY, delete_stored_file, handle_file_upload
from app.services.validation.exception import handle_db_errors

logger = logging.getLogger(__name__)


@handle_db_errors
async def change_password(db: AsyncSession, user: User, request: ChangePasswordRequest) -> None:
    if request.old_password == request.new_password:
        raise UnprocessableEntityError(
            "New password must be different from the old password",
            [field_error("newPassword", "New password must be different from the old password")],
        )
    if not verify_password(request.old_password, user.password):
        raise UnauthenticatedError("Old password is incorrect")

    user.password = get_password_hash(request.new_password)
    await db.commit()
    logger.info(f"Password changed for user {user.id}")


@handle_db_errors
async def update_account_details(db: AsyncSession, user: User, request: UpdateAccountRequest) -> UserPublic:
    if request.email is not None and request.email != user.email:
        result = await db.execute(select(User.id).where(User.email == request.email, User.id != user.id))
        if result.first():
            raise ConflictError("Email already in use", [field_error("email", "Email already in use")])
        user.email = request.email
    if request.fullname is not None:
        user.fullname = request.fullname

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Email already in use", [field_error("email", "Email already in use")])

    await db.refresh(user)
    return UserPublic.model_validate(user)


async def _replace_user_image(
    db: AsyncSession,
    user: User,
    file: Optional[UploadFile],
    blob_store: BlobStore,
    url_attr: str,
    id_attr: str,
    field_name: str,
) -> UserPublic:
    stored = await handle_file_upload(file, blob_store, IMAGE_POLICY, field_name, required=True)
    previous_id = getattr(user, id_attr)

    setattr(user, url_attr, stored.url)
    setattr(user, id_attr, stored.storage_id)
    await db.commit()
    await db.refresh(user)

    await delete_stored_file(blob_store, previous_id)
    return UserPublic.model_validate(user)


@handle_db_errors
async def update_user_avatar(db: AsyncSession, user: User, file: Optional[UploadFile], blob_store: BlobStore) -> UserPublic:
    return await _replace_user_image(db, user, file, blob_store, "avatar", "avatar_id", "avatar")


@handle_db_errors
async def update_user_cover_image(db: AsyncSession, user: User, file: Optional[UploadFile], blob_store: BlobStore) -> UserPublic:
    return await _replace_user_image(db, user, file, blob_store, "cover_image", "cover_image_id", "coverImage")
