from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.deps import get_current_user, get_db, get_optional_user, page_query
from app.cores.api_response import send_response
from app.models import User
from app.schemas.tweets.tweet_schema import TweetContentRequest
from app.services.tweets.tweet_service import (
    SORT_COLUMNS,
    create_tweet,
    delete_tweet,
    get_all_tweets,
    get_user_tweets,
    update_tweet,
)

router = APIRouter()

tweet_page = page_query(allowed_sort=SORT_COLUMNS, default_limit=20, max_limit=100)


@router.get("")
async def list_tweets_route(
    page_request=Depends(tweet_page),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_all_tweets(db, page_request, viewer.id if viewer else None)
    return send_response(result, "Tweets fetched successfully")


@router.get("/user/{user_id}")
async def user_tweets_route(
    user_id: int,
    page_request=Depends(tweet_page),
    viewer: Optional[User] = Depends(get_optional_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_user_tweets(db, user_id, page_request, viewer.id if viewer else None)
    return send_response(result, "User tweets fetched successfully")


@router.post("", status_code=201)
async def create_tweet_route(
    body: TweetContentRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tweet = await create_tweet(db, current_user, body)
    return send_response(tweet, "Tweet created successfully", 201)


@router.patch("/{tweet_id}")
async def update_tweet_route(
    tweet_id: int,
    body: TweetContentRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    tweet = await update_tweet(db, tweet_id, current_user, body)
    return send_response(tweet, "Tweet updated successfully")


@router.delete("/{tweet_id}")
async def delete_tweet_route(
    tweet_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await delete_tweet(db, tweet_id, current_user)
    return send_response(result, "Tweet deleted successfully")
