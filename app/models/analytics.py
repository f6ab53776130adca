from sqlalchemy import (
    Column, Integer, BigInteger, Float, String, Date, DateTime, Enum, ForeignKey, Index, JSON,
    UniqueConstraint
)
from sqlalchemy.orm import relationship
import enum
from database import Base, utcnow


class EventType(str, enum.Enum):
    """Trackable reader interactions"""
    VIEW = "view"
    LIKE = "like"
    SHARE = "share"
    COMMENT = "comment"
    SCROLL = "scroll"
    TIME_SPENT = "time_spent"


class DeviceType(str, enum.Enum):
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"


class AnalyticsEvent(Base):
    """
    A single tracked reader event. Free-form details live in the metadata
    JSON column; referrer/device/country are copied out for grouping.
    """
    __tablename__ = "analytics_events"

    id = Column(Integer, primary_key=True, index=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True)  # null for anonymous readers
    session_id = Column(String, nullable=False)
    event = Column(Enum(EventType), nullable=False)

    # "metadata" is reserved on declarative classes
    event_metadata = Column("metadata", JSON, nullable=True)
    referrer = Column(String, nullable=True)
    device = Column(Enum(DeviceType), nullable=True)
    country = Column(String, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)

    # Relationships
    post = relationship("Post", back_populates="events")
    user = relationship("User")

    def __repr__(self):
        return f"<AnalyticsEvent(post_id={self.post_id}, event='{self.event}')>"


class DailyAnalytics(Base):
    """
    Site-wide rollup of one UTC day of events
    """
    __tablename__ = "daily_analytics"

    id = Column(Integer, primary_key=True, index=True)
    date = Column(Date, unique=True, nullable=False)
    total_views = Column(BigInteger, default=0, nullable=False)
    unique_visitors = Column(BigInteger, default=0, nullable=False)
    total_likes = Column(BigInteger, default=0, nullable=False)
    total_shares = Column(BigInteger, default=0, nullable=False)
    total_comments = Column(BigInteger, default=0, nullable=False)
    average_time_spent = Column(Float, default=0.0, nullable=False)

    # [{post_id, views, likes, shares}]
    top_posts = Column(JSON, nullable=True)
    # [{source, visits, percentage}]
    traffic_sources = Column(JSON, nullable=True)
    # {desktop, mobile, tablet}
    device_breakdown = Column(JSON, nullable=True)
    # [{country, visits, percentage}]
    geographic_data = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    def __repr__(self):
        return f"<DailyAnalytics(date={self.date}, total_views={self.total_views})>"


class UserEngagement(Base):
    """
    Per-user, per-day reading activity
    """
    __tablename__ = "user_engagement"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    # [{post_id, view_count, time_spent, last_viewed}]
    posts_viewed = Column(JSON, nullable=True)
    total_time_spent = Column(Float, default=0.0, nullable=False)
    # {likes, shares, comments}
    actions_performed = Column(JSON, nullable=True)
    engagement_score = Column(Float, default=0.0, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    user = relationship("User")

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_user_engagement_day"),)


# Database indexes for analytics queries
Index("idx_events_post_event_created", AnalyticsEvent.post_id, AnalyticsEvent.event, AnalyticsEvent.created_at)
Index("idx_events_user_created", AnalyticsEvent.user_id, AnalyticsEvent.created_at)
Index("idx_events_session", AnalyticsEvent.session_id)
Index("idx_events_created_at", AnalyticsEvent.created_at)
Index("idx_events_country", AnalyticsEvent.country)
Index("idx_events_device", AnalyticsEvent.device)
Index("idx_user_engagement_date", UserEngagement.date)
