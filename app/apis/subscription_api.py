from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.apis.deps import get_current_user, get_db, page_query
from app.cores.api_response import send_response
from app.models import User
from app.services.subscriptions.subscription_service import (
    SORT_COLUMNS,
    get_channel_subscribers,
    get_subscribed_channels,
    get_subscription_status,
    toggle_subscription,
)

router = APIRouter()

subscription_page = page_query(allowed_sort=SORT_COLUMNS, default_limit=20, max_limit=100)


@router.post("/toggle/{channel_id}")
async def toggle_subscription_route(
    channel_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await toggle_subscription(db, current_user.id, channel_id)
    message = "Subscribed successfully" if result["isSubscribed"] else "Unsubscribed successfully"
    return send_response(result, message)


@router.get("/channel/{channel_id}/subscribers")
async def channel_subscribers_route(
    channel_id: int,
    page_request=Depends(subscription_page),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_channel_subscribers(db, channel_id, page_request)
    return send_response(result, "Subscribers fetched successfully")


@router.get("/user/{subscriber_id}/channels")
async def subscribed_channels_route(
    subscriber_id: int,
    page_request=Depends(subscription_page),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_subscribed_channels(db, subscriber_id, page_request)
    return send_response(result, "Subscribed channels fetched successfully")


@router.get("/status/{channel_id}")
async def subscription_status_route(
    channel_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await get_subscription_status(db, current_user.id, channel_id)
    return send_response(result, "Subscription status fetched successfully")
