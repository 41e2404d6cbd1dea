from datetime import datetime
from typing import List, Optional

from app.schemas.common.base_schema import CamelModel
from app.schemas.users.user_schema import OwnerSummary


class VideoPerformance(CamelModel):
    id: int
    title: str
    thumbnail: str
    duration: float
    views: int
    is_published: bool
    created_at: datetime
    likes_count: int
    comments_count: int
    engagement_rate: float


class ChannelOverview(CamelModel):
    total_videos: int
    published_videos: int
    unpublished_videos: int
    total_views: int
    total_duration: float
    average_duration: float
    average_views: float
    latest_upload: Optional[datetime] = None
    oldest_upload: Optional[datetime] = None
    subscriber_count: int
    total_likes: int
    total_comments: int
    engagement_rate: float


class MonthlyVideoStat(CamelModel):
    year: int
    month: int
    video_count: int
    total_views: int


class RecentComment(CamelModel):
    id: int
    content: str
    created_at: datetime
    video_id: int
    video_title: str
    commenter: OwnerSummary


class RecentLike(CamelModel):
    id: int
    liked_at: datetime
    user: OwnerSummary


class ChannelAnalytics(CamelModel):
    top_performing_videos: List[VideoPerformance]
    top_liked_videos: List[VideoPerformance]
    monthly_video_stats: List[MonthlyVideoStat]
    recent_comments: List[RecentComment]
    recent_videos: List[VideoPerformance]


class ChannelGrowth(CamelModel):
    views_growth: int
    videos_growth: int
    subscribers_growth: int


class ChannelStats(CamelModel):
    overview: ChannelOverview
    analytics: ChannelAnalytics
    performance: ChannelGrowth


class VideoAnalytics(VideoPerformance):
    description: str
    recent_likes: List[RecentLike]
    recent_comments: List[RecentComment]


class DashboardSummary(CamelModel):
    username: str
    fullname: str
    email: str
    avatar: str
    cover_image: Optional[str] = None
    created_at: datetime
    total_videos: int
    published_videos: int
    total_views: int
    recent_videos_count: int
    total_subscribers: int
    recent_subscribers_count: int
