import logging
from datetime import timedelta
from typing import Any, Dict, Optional

from sqlalchemy import and_, delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.configs.settings import settings
from app.cores.api_error import ForbiddenError, NotFoundError, TooManyRequestsError
from app.cores.db import atomic, utc_now
from app.models import Like, LikeTargetKind, Tweet, User
from app.schemas.tweets.tweet_schema import TweetContentRequest, TweetView
from app.services.utils.pagination_service import PageRequest, PaginationService, get_order_clause, get_pagination
from app.services.utils.view_service import get_is_liked_expression, get_like_count_subquery, get_owner_summary
from app.services.validation.exception import handle_db_errors, user_not_found_exception

logger = logging.getLogger(__name__)

SORT_COLUMNS = {
    "createdAt": Tweet.created_at,
    "updatedAt": Tweet.updated_at,
    "content": Tweet.content,
}


def _build_tweet_query(viewer_id: Optional[int], page_request: PageRequest):
    return (
        select(
            Tweet,
            User,
            get_like_count_subquery(LikeTargetKind.TWEET, Tweet.id).label("likes_count"),
            get_is_liked_expression(LikeTargetKind.TWEET, Tweet.id, viewer_id).label("is_liked"),
        )
        .join(User, Tweet.owner_id == User.id)
        .order_by(
            get_order_clause(SORT_COLUMNS[page_request.sort_by], page_request.sort_order),
            get_order_clause(Tweet.id, page_request.sort_order),
        )
    )


def _to_tweet_view(tweet: Tweet, owner: User, likes_count: int, is_liked: bool, viewer_id: Optional[int]) -> TweetView:
    return TweetView(
        id=tweet.id,
        content=tweet.content,
        created_at=tweet.created_at,
        updated_at=tweet.updated_at,
        owner=get_owner_summary(owner),
        likes_count=likes_count or 0,
        is_liked=bool(is_liked),
        is_owner=viewer_id is not None and tweet.owner_id == viewer_id,
    )


async def _get_tweet_page(db: AsyncSession, query, page_request: PageRequest, viewer_id: Optional[int]) -> Dict[str, Any]:
    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)
    return {
        "items": [_to_tweet_view(*row, viewer_id=viewer_id) for row in rows],
        "pagination": get_pagination(page_request.page, page_request.limit, total, "totalTweets"),
    }


async def _get_owned_tweet(db: AsyncSession, tweet_id: int, user_id: int) -> Tweet:
    tweet = await db.get(Tweet, tweet_id)
    if tweet is None:
        raise NotFoundError("Tweet not found")
    if tweet.owner_id != user_id:
        raise ForbiddenError("You can only modify your own tweets")
    return tweet


# -------- Consultas --------

@handle_db_errors
async def get_all_tweets(db: AsyncSession, page_request: PageRequest, viewer_id: Optional[int] = None) -> Dict[str, Any]:
    return await _get_tweet_page(db, _build_tweet_query(viewer_id, page_request), page_request, viewer_id)


@handle_db_errors
async def get_user_tweets(
    db: AsyncSession,
    user_id: int,
    page_request: PageRequest,
    viewer_id: Optional[int] = None,
) -> Dict[str, Any]:
    if await db.get(User, user_id) is None:
        await user_not_found_exception()
    query = _build_tweet_query(viewer_id, page_request).where(Tweet.owner_id == user_id)
    return await _get_tweet_page(db, query, page_request, viewer_id)


# -------- Mutaciones --------

@handle_db_errors
async def create_tweet(db: AsyncSession, user: User, request: TweetContentRequest) -> TweetView:
    """
    Publica un tweet. Un mismo dueño no puede superar TWEET_BURST_LIMIT
    publicaciones dentro de la ventana de TWEET_BURST_WINDOW_SECONDS.
    """
    window_start = utc_now() - timedelta(seconds=settings.TWEET_BURST_WINDOW_SECONDS)
    recent = (
        await db.execute(
            select(func.count(Tweet.id)).where(and_(Tweet.owner_id == user.id, Tweet.created_at >= window_start))
        )
    ).scalar() or 0
    if recent >= settings.TWEET_BURST_LIMIT:
        logger.warning(f"Tweet burst limit reached for user {user.id}")
        raise TooManyRequestsError("You are posting too fast. Please wait a moment")

    tweet = Tweet(content=request.content, owner_id=user.id)
    db.add(tweet)
    await db.commit()
    await db.refresh(tweet)
    return _to_tweet_view(tweet, user, 0, False, user.id)


@handle_db_errors
async def update_tweet(db: AsyncSession, tweet_id: int, user: User, request: TweetContentRequest) -> TweetView:
    tweet = await _get_owned_tweet(db, tweet_id, user.id)

    edit_deadline = tweet.created_at + timedelta(minutes=settings.TWEET_EDIT_WINDOW_MINUTES)
    if utc_now() > edit_deadline:
        raise ForbiddenError(
            f"Tweet can only be edited within {settings.TWEET_EDIT_WINDOW_MINUTES} minutes of posting"
        )

    tweet.content = request.content
    await db.commit()
    await db.refresh(tweet)

    likes_count = (
        await db.execute(select(get_like_count_subquery(LikeTargetKind.TWEET, Tweet.id)).where(Tweet.id == tweet.id))
    ).scalar()
    is_liked = (
        await db.execute(
            select(Like.id).where(
                Like.target_kind == LikeTargetKind.TWEET.value,
                Like.target_id == tweet.id,
                Like.liked_by_id == user.id,
            )
        )
    ).first() is not None
    return _to_tweet_view(tweet, user, likes_count, is_liked, user.id)


@handle_db_errors
async def delete_tweet(db: AsyncSession, tweet_id: int, user: User) -> Dict[str, Any]:
    await _get_owned_tweet(db, tweet_id, user.id)
    async with atomic(db):
        await db.execute(
            delete(Like)
            .where(Like.target_kind == LikeTargetKind.TWEET.value, Like.target_id == tweet_id)
            .execution_options(synchronize_session=False)
        )
        await db.execute(delete(Tweet).where(Tweet.id == tweet_id).execution_options(synchronize_session=False))
    logger.info(f"Tweet {tweet_id} deleted by user {user.id}")
    return {"tweetId": tweet_id}
