from datetime import datetime

from app.schemas.common.base_schema import CamelModel


class SubscriptionUserItem(CamelModel):
    id: int
    username: str
    fullname: str
    avatar: str
    subscribers_count: int
    subscribed_at: datetime
