"""
Motor genérico de toggles (like/unlike, subscribe/unsubscribe).

Flujo: borrar la relación (actor, objetivo) si existe -> "off".
Si no existía: validar el objetivo y que no sea uno mismo donde aplica,
insertar la relación -> "on". La restricción UNIQUE de la tabla es el respaldo
ante dos toggles concurrentes: el INSERT que pierde la carrera se toma como "on".
"""

import enum
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import BadRequestError, InvalidOperationError, NotFoundError
from app.models import Comment, Like, LikeTargetKind, Subscription, Tweet, User, Video
from app.services.utils.view_service import get_visible_comment_filter

logger = logging.getLogger(__name__)


class ToggleState(str, enum.Enum):
    ON = "on"
    OFF = "off"


class TargetKind(str, enum.Enum):
    VIDEO = "video"
    COMMENT = "comment"
    TWEET = "tweet"
    CHANNEL = "channel"


@dataclass(frozen=True)
class ToggleRelation:
    model: Any
    get_criteria: Callable[[int, int], Dict[str, Any]]
    check_target: Callable[[AsyncSession, int, int], Awaitable[None]]


# -------- Validaciones de objetivo --------

async def _check_video_target(db: AsyncSession, actor_id: int, target_id: int) -> None:
    video = await db.get(Video, target_id)
    if video is None:
        raise NotFoundError("Video not found")
    if not video.is_published:
        raise BadRequestError("Cannot like unpublished video")


async def _check_comment_target(db: AsyncSession, actor_id: int, target_id: int) -> None:
    result = await db.execute(select(Comment.id).where(Comment.id == target_id, get_visible_comment_filter()))
    if result.scalar_one_or_none() is None:
        raise NotFoundError("Comment not found")


async def _check_tweet_target(db: AsyncSession, actor_id: int, target_id: int) -> None:
    if await db.get(Tweet, target_id) is None:
        raise NotFoundError("Tweet not found")


async def _check_channel_target(db: AsyncSession, actor_id: int, target_id: int) -> None:
    if actor_id == target_id:
        raise InvalidOperationError("You cannot subscribe to your own channel")
    if await db.get(User, target_id) is None:
        raise NotFoundError("Channel not found")


def _like_criteria(kind: LikeTargetKind) -> Callable[[int, int], Dict[str, Any]]:
    return lambda actor_id, target_id: {
        "liked_by_id": actor_id,
        "target_kind": kind.value,
        "target_id": target_id,
    }


RELATIONS: Dict[TargetKind, ToggleRelation] = {
    TargetKind.VIDEO: ToggleRelation(Like, _like_criteria(LikeTargetKind.VIDEO), _check_video_target),
    TargetKind.COMMENT: ToggleRelation(Like, _like_criteria(LikeTargetKind.COMMENT), _check_comment_target),
    TargetKind.TWEET: ToggleRelation(Like, _like_criteria(LikeTargetKind.TWEET), _check_tweet_target),
    TargetKind.CHANNEL: ToggleRelation(
        Subscription,
        lambda actor_id, target_id: {"subscriber_id": actor_id, "channel_id": target_id},
        _check_channel_target,
    ),
}


# -------- Operaciones atómicas --------

async def _remove_relation(db: AsyncSession, model: Any, criteria: Dict[str, Any]) -> bool:
    result = await db.execute(
        delete(model).filter_by(**criteria).execution_options(synchronize_session=False)
    )
    await db.commit()
    return result.rowcount > 0


async def _insert_relation(db: AsyncSession, model: Any, criteria: Dict[str, Any]) -> None:
    db.add(model(**criteria))
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        logger.warning(f"Concurrent toggle already created {model.__name__} {criteria}; keeping it on")


async def toggle_relation(db: AsyncSession, actor_id: int, kind: TargetKind, target_id: int) -> ToggleState:
    """
    Invierte la pertenencia (actor, objetivo).

    Returns:
        ToggleState.ON si la relación existe al terminar, ToggleState.OFF si no.

    Raises:
        NotFoundError si el objetivo no existe, InvalidOperationError si el actor
        intenta aplicarse el toggle a sí mismo donde no está permitido.
    """
    relation = RELATIONS[kind]
    criteria = relation.get_criteria(actor_id, target_id)

    if await _remove_relation(db, relation.model, criteria):
        return ToggleState.OFF

    await relation.check_target(db, actor_id, target_id)
    await _insert_relation(db, relation.model, criteria)
    return ToggleState.ON
