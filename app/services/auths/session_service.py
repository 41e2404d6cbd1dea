"""
Ciclo de vida de la sesión: emitir, verificar, rotar y cerrar.

Cada usuario tiene un único refresh token activo guardado en `users.refresh_token`.
La rotación es un UPDATE condicional (sólo si el token guardado es el presentado),
así un token viejo o ya rotado nunca vuelve a servir aunque su firma siga vigente.
"""

import logging
from typing import Optional

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import UnauthenticatedError
from app.cores.token import (
    create_access_token,
    create_refresh_token,
    verify_access_token,
    verify_refresh_token,
)
from app.models import User
from app.schemas.users.user_schema import TokenPair

logger = logging.getLogger(__name__)


def _create_token_pair(user: User) -> TokenPair:
    access_token = create_access_token(data={
        "user_id": user.id,
        "email": user.email,
        "username": user.username,
    })
    refresh_token = create_refresh_token(data={"user_id": user.id})
    return TokenPair(access_token=access_token, refresh_token=refresh_token)


async def issue_session(db: AsyncSession, user: User) -> TokenPair:
    tokens = _create_token_pair(user)
    await db.execute(
        update(User).where(User.id == user.id).values(refresh_token=tokens.refresh_token)
    )
    await db.commit()
    return tokens


async def verify_access(db: AsyncSession, token: Optional[str]) -> User:
    if not token:
        raise UnauthenticatedError("Access token is required")

    payload = verify_access_token(token)
    user = await db.get(User, payload["user_id"])
    if user is None:
        raise UnauthenticatedError("Invalid access token")
    return user


async def rotate_session(db: AsyncSession, presented_token: Optional[str]) -> TokenPair:
    if not presented_token:
        raise UnauthenticatedError("Refresh token is required")

    payload = verify_refresh_token(presented_token)
    user = await db.get(User, payload["user_id"])
    if user is None:
        raise UnauthenticatedError("Invalid refresh token")

    tokens = _create_token_pair(user)
    result = await db.execute(
        update(User)
        .where(User.id == user.id, User.refresh_token == presented_token)
        .values(refresh_token=tokens.refresh_token)
        .execution_options(synchronize_session=False)
    )
    await db.commit()

    if result.rowcount != 1:
        logger.warning(f"Rejected stale refresh token for user {user.id}")
        raise UnauthenticatedError("Refresh token is expired or used")
    return tokens


async def end_session(db: AsyncSession, user_id: int) -> None:
    await db.execute(
        update(User).where(User.id == user_id).values(refresh_token=None)
    )
    await db.commit()
