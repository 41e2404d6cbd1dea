import logging
from typing import List, Optional

from fastapi import UploadFile
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from app.configs.settings import settings
from app.cores.security import get_password_hash
from app.external.blob_store import BlobStore
from app.models import User
from app.schemas.users.user_schema import RegisterUserRequest, UserPublic
from app.services.utils.upload_service import IMAGE_POLICY, delete_stored_file, handle_file_upload
from app.services.validation.exception import handle_db_errors, user_conflict_exception

logger = logging.getLogger(__name__)


async def _get_user_conflicts(db: AsyncSession, email: str, username: str, exclude_id: Optional[int] = None) -> List[str]:
    query = select(User.email, User.username).where(or_(User.email == email, User.username == username))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    rows = (await db.execute(query)).all()

    conflicts = []
    if any(row.email == email for row in rows):
        conflicts.append("email")
    if any(row.username == username for row in rows):
        conflicts.append("username")
    return conflicts


@handle_db_errors
async def register_user(
    db: AsyncSession,
    request: RegisterUserRequest,
    blob_store: BlobStore,
    avatar: Optional[UploadFile] = None,
    cover_image: Optional[UploadFile] = None,
) -> UserPublic:
    conflicts = await _get_user_conflicts(db, request.email, request.username)
    if conflicts:
        await user_conflict_exception(conflicts)

    avatar_blob = await handle_file_upload(
        avatar, blob_store, IMAGE_POLICY, "avatar", default_url=settings.DEFAULT_AVATAR_URL
    )
    cover_blob = await handle_file_upload(
        cover_image, blob_store, IMAGE_POLICY, "coverImage", default_url=settings.DEFAULT_COVER_URL
    )

    new_user = User(
        fullname=request.fullname,
        email=request.email,
        username=request.username,
        password=get_password_hash(request.password),
        avatar=avatar_blob.url,
        avatar_id=avatar_blob.storage_id,
        cover_image=cover_blob.url,
        cover_image_id=cover_blob.storage_id,
    )
    db.add(new_user)
    try:
        await db.commit()
    except IntegrityError:
        # otro registro con el mismo email/username ganó la carrera
        await db.rollback()
        await delete_stored_file(blob_store, avatar_blob.storage_id)
        await delete_stored_file(blob_store, cover_blob.storage_id)
        conflicts = await _get_user_conflicts(db, request.email, request.username)
        await user_conflict_exception(conflicts or ["email", "username"])

    await db.refresh(new_user)
    logger.info(f"Registered user {new_user.id} ({new_user.username})")
    return UserPublic.model_validate(new_user)
