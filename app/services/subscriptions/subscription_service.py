from typing import Any, Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.cores.api_error import NotFoundError
from app.models import Subscription, User
from app.schemas.subscriptions.subscription_schema import SubscriptionUserItem
from app.services.toggles.toggle_service import TargetKind, ToggleState, toggle_relation
from app.services.utils.pagination_service import PageRequest, PaginationService, get_order_clause, get_pagination
from app.services.utils.view_service import get_subscriber_count_subquery
from app.services.validation.exception import handle_db_errors

SORT_COLUMNS = {
    "createdAt": Subscription.created_at,
    "updatedAt": Subscription.updated_at,
}


async def _validate_user_exists(db: AsyncSession, user_id: int, message: str) -> None:
    if await db.get(User, user_id) is None:
        raise NotFoundError(message)


@handle_db_errors
async def toggle_subscription(db: AsyncSession, subscriber_id: int, channel_id: int) -> Dict[str, Any]:
    state = await toggle_relation(db, subscriber_id, TargetKind.CHANNEL, channel_id)
    subscribed = state == ToggleState.ON
    return {
        "action": "subscribed" if subscribed else "unsubscribed",
        "isSubscribed": subscribed,
        "channelId": channel_id,
    }


async def _get_subscription_page(
    db: AsyncSession,
    user_column,
    filter_column,
    filter_id: int,
    page_request: PageRequest,
    total_key: str,
) -> Dict[str, Any]:
    sort_column = SORT_COLUMNS[page_request.sort_by]
    query = (
        select(User, Subscription.created_at, get_subscriber_count_subquery(User.id).label("subscribers_count"))
        .join(Subscription, user_column == User.id)
        .where(filter_column == filter_id)
        .order_by(get_order_clause(sort_column, page_request.sort_order), get_order_clause(Subscription.id, page_request.sort_order))
    )
    rows, total = await PaginationService.get_paginated_rows(db, query, page_request)

    items = [
        SubscriptionUserItem(
            id=user.id,
            username=user.username,
            fullname=user.fullname,
            avatar=user.avatar,
            subscribers_count=subscribers_count,
            subscribed_at=subscribed_at,
        )
        for user, subscribed_at, subscribers_count in rows
    ]
    return {
        "items": items,
        "pagination": get_pagination(page_request.page, page_request.limit, total, total_key),
    }


@handle_db_errors
async def get_channel_subscribers(db: AsyncSession, channel_id: int, page_request: PageRequest) -> Dict[str, Any]:
    await _validate_user_exists(db, channel_id, "Channel not found")
    return await _get_subscription_page(
        db, Subscription.subscriber_id, Subscription.channel_id, channel_id, page_request, "totalSubscribers"
    )


@handle_db_errors
async def get_subscribed_channels(db: AsyncSession, subscriber_id: int, page_request: PageRequest) -> Dict[str, Any]:
    await _validate_user_exists(db, subscriber_id, "User not found")
    return await _get_subscription_page(
        db, Subscription.channel_id, Subscription.subscriber_id, subscriber_id, page_request, "totalChannels"
    )


@handle_db_errors
async def get_subscription_status(db: AsyncSession, subscriber_id: int, channel_id: int) -> Dict[str, Any]:
    await _validate_user_exists(db, channel_id, "Channel not found")
    result = await db.execute(
        select(Subscription.created_at).where(
            Subscription.subscriber_id == subscriber_id,
            Subscription.channel_id == channel_id,
        )
    )
    subscribed_at = result.scalar_one_or_none()
    return {"isSubscribed": subscribed_at is not None, "subscribedAt": subscribed_at}
