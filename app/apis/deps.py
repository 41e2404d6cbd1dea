from typing import AsyncGenerator, Iterable, Optional

from fastapi import Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import UnauthenticatedError
from app.cores.db import async_session
from app.models import User
from app.services.auths.session_service import verify_access
from app.services.utils.pagination_service import PageRequest, get_page_request

"""
Este archivo define la función `get_db`, que proporciona una sesión de base de datos asincrónica.
Se usa como dependencia en rutas de FastAPI para interactuar con la base de datos sin preocuparse
por abrir o cerrar la conexión manualmente.
"""
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    session = async_session()
    try:
        yield session
    finally:
        await session.close()


def get_access_token(request: Request) -> Optional[str]:
    """Token de acceso desde la cookie `accessToken` o el header `Authorization: Bearer`."""
    token = request.cookies.get("accessToken")
    if token:
        return token

    authorization = request.headers.get("Authorization")
    if not authorization:
        return None
    try:
        scheme, credentials = authorization.split()
    except ValueError:
        raise UnauthenticatedError("Invalid token format")
    if scheme.lower() != "bearer":
        raise UnauthenticatedError("Invalid token format")
    return credentials


async def get_current_user(
    token: Optional[str] = Depends(get_access_token),
    db: AsyncSession = Depends(get_db),
) -> User:
    return await verify_access(db, token)


async def get_optional_user(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Usuario autenticado si hay un token válido; None en rutas públicas sin sesión."""
    try:
        token = get_access_token(request)
        if not token:
            return None
        return await verify_access(db, token)
    except UnauthenticatedError:
        return None


def page_query(
    allowed_sort: Iterable[str] = (),
    default_sort: str = "createdAt",
    default_limit: int = 10,
    max_limit: int = 100,
    sort_order_alias: str = "sortOrder",
):
    """
    Dependencia de paginación para un listado.

    Los valores inválidos nunca producen 422: page y limit caen a sus defaults
    y un sortBy fuera de la lista permitida cae a `default_sort`.
    """
    allowed = tuple(allowed_sort)

    def dependency(
        page: Optional[str] = Query(None),
        limit: Optional[str] = Query(None),
        sort_by: Optional[str] = Query(None, alias="sortBy"),
        sort_order: Optional[str] = Query(None, alias=sort_order_alias),
    ) -> PageRequest:
        return get_page_request(
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
            allowed_sort=allowed,
            default_sort=default_sort,
            default_limit=default_limit,
            max_limit=max_limit,
        )

    return dependency
