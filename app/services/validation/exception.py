import functools
import logging
from typing import Dict, List

from sqlalchemy.exc import SQLAlchemyError

from app.cores.api_error import ApiError, ConflictError, InternalError, NotFoundError, field_error


def handle_db_errors(func):
    """Decorador: deja pasar los ApiError y convierte fallos de base de datos en InternalError."""
    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except ApiError:
            raise
        except SQLAlchemyError as e:
            logging.exception(f"Database error in {func.__name__}: {str(e)}")
            raise InternalError()
    return wrapper


async def user_conflict_exception(conflicts: List[str]) -> None:
    messages: Dict[str, str] = {
        "email": "Email already in use",
        "username": "Username already in use",
    }
    raise ConflictError(
        "User with this email or username already exists",
        [field_error(field, messages[field]) for field in conflicts],
    )


async def user_not_found_exception() -> None:
    raise NotFoundError("User not found")


async def video_not_found_exception() -> None:
    raise NotFoundError("Video not found")
