"""
Pydantic schemas for analytics endpoints
"""
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Dict, Any, List
from datetime import date, datetime


class UTMParams(BaseModel):
    source: Optional[str] = None
    medium: Optional[str] = None
    campaign: Optional[str] = None
    term: Optional[str] = None
    content: Optional[str] = None


class EventMetadata(BaseModel):
    """Client supplied event details; unknown keys are kept"""
    referrer: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    device: Optional[str] = None
    scroll_depth: Optional[float] = Field(None, ge=0, le=100, description="Percentage")
    time_spent: Optional[float] = Field(None, ge=0, description="Seconds")
    platform: Optional[str] = Field(None, description="Share target: twitter, facebook, ...")
    url: Optional[str] = None
    utm: Optional[UTMParams] = None

    model_config = ConfigDict(extra="allow")


class TrackEventRequest(BaseModel):
    post_id: Optional[int] = None
    event: Optional[str] = None
    session_id: Optional[str] = None
    metadata: EventMetadata = Field(default_factory=EventMetadata)


class DateRange(BaseModel):
    start: datetime
    end: datetime


class EventOverview(BaseModel):
    event: str
    count: int
    unique_users: int
    unique_sessions: int


class EventCount(BaseModel):
    event: str
    count: int


class DailyStat(BaseModel):
    date: str
    events: List[EventCount]
    total_events: int


class TopPost(BaseModel):
    post_id: int
    views: int
    unique_views: int
    title: Optional[str]
    slug: Optional[str]
    created_at: Optional[datetime]


class TrafficSource(BaseModel):
    source: str
    visits: int


class DeviceCount(BaseModel):
    device: Optional[str]
    count: int


class DashboardData(BaseModel):
    overview: List[EventOverview]
    daily_stats: List[DailyStat]
    top_posts: List[TopPost]
    traffic_sources: List[TrafficSource]
    device_breakdown: List[DeviceCount]
    date_range: DateRange


class PostEventStat(BaseModel):
    event: str
    count: int
    unique_users: int


class PostInfo(BaseModel):
    id: int
    title: str
    slug: str
    created_at: datetime
    published_at: Optional[datetime]

    model_config = ConfigDict(from_attributes=True)


class PostAnalyticsData(BaseModel):
    post: PostInfo
    analytics: List[PostEventStat]
    date_range: DateRange


class ExportRecord(BaseModel):
    id: int
    post: Optional[Dict[str, Any]]
    user: Optional[Dict[str, Any]]
    session_id: str
    event: str
    metadata: Optional[Dict[str, Any]]
    created_at: datetime


class ExportResponse(BaseModel):
    success: bool = True
    data: List[ExportRecord]
    count: int
    date_range: DateRange


class DailyAnalyticsResponse(BaseModel):
    date: date
    total_views: int
    unique_visitors: int
    total_likes: int
    total_shares: int
    total_comments: int
    average_time_spent: float
    top_posts: Optional[List[Dict[str, Any]]]
    traffic_sources: Optional[List[Dict[str, Any]]]
    device_breakdown: Optional[Dict[str, int]]
    geographic_data: Optional[List[Dict[str, Any]]]

    model_config = ConfigDict(from_attributes=True)


class RollupRequest(BaseModel):
    date: date


class UserEngagementResponse(BaseModel):
    date: date
    posts_viewed: Optional[List[Dict[str, Any]]]
    total_time_spent: float
    actions_performed: Optional[Dict[str, int]]
    engagement_score: float

    model_config = ConfigDict(from_attributes=True)
