# Import all models to ensure they're registered with SQLAlchemy
from .user import User, UserRole
from .post import Post, PostStatus, PostTag, PostCollaborator, CollaboratorRole, PostVersion
from .analytics import AnalyticsEvent, EventType, DeviceType, DailyAnalytics, UserEngagement

# Make models available for import
__all__ = [
    "User",
    "UserRole",
    "Post",
    "PostStatus",
    "PostTag",
    "PostCollaborator",
    "CollaboratorRole",
    "PostVersion",
    "AnalyticsEvent",
    "EventType",
    "DeviceType",
    "DailyAnalytics",
    "UserEngagement"
]
