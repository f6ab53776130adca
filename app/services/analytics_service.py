"""
Analytics aggregation: dashboard queries, per-post stats, exports,
daily rollups and per-user engagement
"""
import csv
import io
import json
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import distinct, func, select
from sqlalchemy.orm import Session, joinedload

from database import utcnow
from models import (
    AnalyticsEvent, DailyAnalytics, DeviceType, EventType, Post, User, UserEngagement
)

logger = logging.getLogger(__name__)

DEFAULT_RANGE_DAYS = 30
TOP_LIMIT = 10

# Weights for the per-user engagement score
ENGAGEMENT_WEIGHTS = {"views": 1, "likes": 2, "comments": 3, "shares": 4}

CSV_HEADER = ["Date", "Post Title", "Event", "User", "Session ID", "Metadata"]

COUNTER_EVENTS = {
    EventType.LIKE: "likes",
    EventType.SHARE: "shares",
    EventType.COMMENT: "comments",
}


def resolve_date_range(
    start: Optional[datetime], end: Optional[datetime], default_days: int = DEFAULT_RANGE_DAYS
) -> Tuple[datetime, datetime]:
    end = end or utcnow()
    start = start or (end - timedelta(days=default_days))
    return start, end


def event_filters(
    user: User, start: datetime, end: datetime, post_id: Optional[int] = None
) -> list:
    """WHERE clauses for events in range, scoped to the user's own posts unless admin"""
    filters = [AnalyticsEvent.created_at >= start, AnalyticsEvent.created_at <= end]

    if not user.is_admin:
        own_posts = select(Post.id).where(Post.author_id == user.id)
        filters.append(AnalyticsEvent.post_id.in_(own_posts))

    if post_id is not None:
        filters.append(AnalyticsEvent.post_id == post_id)

    return filters


def _event_value(event) -> str:
    return event.value if isinstance(event, EventType) else str(event)


def overview_stats(db: Session, filters: list) -> List[Dict[str, Any]]:
    rows = db.query(
        AnalyticsEvent.event,
        func.count(AnalyticsEvent.id),
        func.count(distinct(AnalyticsEvent.user_id)),
        func.count(distinct(AnalyticsEvent.session_id))
    ).filter(*filters).group_by(AnalyticsEvent.event).all()

    return [
        {
            "event": _event_value(event),
            "count": count,
            "unique_users": unique_users,
            "unique_sessions": unique_sessions
        }
        for event, count, unique_users, unique_sessions in rows
    ]


def daily_stats(db: Session, filters: list) -> List[Dict[str, Any]]:
    day = func.date(AnalyticsEvent.created_at)
    rows = db.query(day, AnalyticsEvent.event, func.count(AnalyticsEvent.id)) \
        .filter(*filters) \
        .group_by(day, AnalyticsEvent.event) \
        .order_by(day) \
        .all()

    days: Dict[str, Dict[str, Any]] = {}
    for event_day, event, count in rows:
        key = str(event_day)
        entry = days.setdefault(key, {"date": key, "events": [], "total_events": 0})
        entry["events"].append({"event": _event_value(event), "count": count})
        entry["total_events"] += count

    return [days[key] for key in sorted(days)]


def top_posts(db: Session, filters: list, limit: int = TOP_LIMIT) -> List[Dict[str, Any]]:
    views = func.count(AnalyticsEvent.id).label("views")
    rows = db.query(
        Post.id, Post.title, Post.slug, Post.created_at,
        views,
        func.count(distinct(AnalyticsEvent.session_id))
    ).select_from(AnalyticsEvent) \
        .join(Post, Post.id == AnalyticsEvent.post_id) \
        .filter(*filters, AnalyticsEvent.event == EventType.VIEW) \
        .group_by(Post.id, Post.title, Post.slug, Post.created_at) \
        .order_by(views.desc()) \
        .limit(limit) \
        .all()

    return [
        {
            "post_id": post_id,
            "views": view_count,
            "unique_views": unique_views,
            "title": title,
            "slug": slug,
            "created_at": created_at
        }
        for post_id, title, slug, created_at, view_count, unique_views in rows
    ]


def traffic_sources(db: Session, filters: list, limit: int = TOP_LIMIT) -> List[Dict[str, Any]]:
    visits = func.count(AnalyticsEvent.id).label("visits")
    rows = db.query(AnalyticsEvent.referrer, visits) \
        .filter(
            *filters,
            AnalyticsEvent.event == EventType.VIEW,
            AnalyticsEvent.referrer.isnot(None),
            AnalyticsEvent.referrer != ""
        ) \
        .group_by(AnalyticsEvent.referrer) \
        .order_by(visits.desc()) \
        .limit(limit) \
        .all()

    return [{"source": source, "visits": count} for source, count in rows]


def device_breakdown(db: Session, filters: list) -> List[Dict[str, Any]]:
    rows = db.query(AnalyticsEvent.device, func.count(AnalyticsEvent.id)) \
        .filter(*filters, AnalyticsEvent.event == EventType.VIEW) \
        .group_by(AnalyticsEvent.device) \
        .all()

    return [
        {"device": device.value if device else None, "count": count}
        for device, count in rows
    ]


def dashboard(
    db: Session, user: User, start: datetime, end: datetime, post_id: Optional[int] = None
) -> Dict[str, Any]:
    filters = event_filters(user, start, end, post_id)
    return {
        "overview": overview_stats(db, filters),
        "daily_stats": daily_stats(db, filters),
        "top_posts": top_posts(db, filters),
        "traffic_sources": traffic_sources(db, filters),
        "device_breakdown": device_breakdown(db, filters),
        "date_range": {"start": start, "end": end}
    }


def post_event_stats(db: Session, post_id: int, start: datetime, end: datetime) -> List[Dict[str, Any]]:
    rows = db.query(
        AnalyticsEvent.event,
        func.count(AnalyticsEvent.id),
        func.count(distinct(AnalyticsEvent.user_id))
    ).filter(
        AnalyticsEvent.post_id == post_id,
        AnalyticsEvent.created_at >= start,
        AnalyticsEvent.created_at <= end
    ).group_by(AnalyticsEvent.event).all()

    return [
        {"event": _event_value(event), "count": count, "unique_users": unique_users}
        for event, count, unique_users in rows
    ]


def record_event(
    db: Session,
    post: Post,
    event: EventType,
    session_id: str,
    metadata: Dict[str, Any],
    user: Optional[User] = None
) -> AnalyticsEvent:
    """Store an event, bump the post's counter and the reader's engagement"""
    device = metadata.get("device")

    analytics_event = AnalyticsEvent(
        post_id=post.id,
        user_id=user.id if user else None,
        session_id=session_id,
        event=event,
        event_metadata=metadata,
        referrer=metadata.get("referrer"),
        device=DeviceType(device) if device else None,
        country=metadata.get("country")
    )
    db.add(analytics_event)

    counter = COUNTER_EVENTS.get(event)
    if counter:
        setattr(post, counter, (getattr(post, counter) or 0) + 1)

    if event == EventType.TIME_SPENT and metadata.get("time_spent"):
        post.reading_time_total = (post.reading_time_total or 0) + int(metadata["time_spent"])

    if user is not None:
        update_user_engagement(db, user.id, post.id, event, metadata)

    db.commit()
    db.refresh(analytics_event)
    return analytics_event


def engagement_score(views: int, actions: Dict[str, int], total_time_spent: float) -> float:
    score = views * ENGAGEMENT_WEIGHTS["views"]
    for action in ("likes", "comments", "shares"):
        score += actions.get(action, 0) * ENGAGEMENT_WEIGHTS[action]
    score += total_time_spent / 60
    return round(score, 2)


def update_user_engagement(
    db: Session, user_id: int, post_id: int, event: EventType, metadata: Dict[str, Any]
) -> UserEngagement:
    today = utcnow().date()
    engagement = db.query(UserEngagement).filter(
        UserEngagement.user_id == user_id,
        UserEngagement.date == today
    ).first()

    if engagement is None:
        engagement = UserEngagement(
            user_id=user_id,
            date=today,
            posts_viewed=[],
            total_time_spent=0.0,
            actions_performed={"likes": 0, "shares": 0, "comments": 0}
        )
        db.add(engagement)

    # JSON columns only persist on reassignment
    posts_viewed = [dict(entry) for entry in (engagement.posts_viewed or [])]
    actions = dict(engagement.actions_performed or {"likes": 0, "shares": 0, "comments": 0})
    time_spent = float(metadata.get("time_spent") or 0)

    entry = next((e for e in posts_viewed if e["post_id"] == post_id), None)
    if entry is None:
        entry = {"post_id": post_id, "view_count": 0, "time_spent": 0.0, "last_viewed": None}
        posts_viewed.append(entry)

    if event == EventType.VIEW:
        entry["view_count"] += 1
        entry["last_viewed"] = utcnow().isoformat()
    elif event == EventType.TIME_SPENT:
        entry["time_spent"] += time_spent
        engagement.total_time_spent = (engagement.total_time_spent or 0.0) + time_spent
    elif event in COUNTER_EVENTS:
        key = COUNTER_EVENTS[event]
        actions[key] = actions.get(key, 0) + 1

    engagement.posts_viewed = posts_viewed
    engagement.actions_performed = actions
    engagement.engagement_score = engagement_score(
        sum(e["view_count"] for e in posts_viewed), actions, engagement.total_time_spent or 0.0
    )
    return engagement


def export_events(db: Session, user: User, start: datetime, end: datetime) -> List[AnalyticsEvent]:
    return db.query(AnalyticsEvent) \
        .options(joinedload(AnalyticsEvent.post), joinedload(AnalyticsEvent.user)) \
        .filter(*event_filters(user, start, end)) \
        .order_by(AnalyticsEvent.created_at.desc()) \
        .all()


def serialize_event(record: AnalyticsEvent) -> Dict[str, Any]:
    return {
        "id": record.id,
        "post": {"id": record.post.id, "title": record.post.title, "slug": record.post.slug}
        if record.post else None,
        "user": {"id": record.user.id, "username": record.user.username, "email": record.user.email}
        if record.user else None,
        "session_id": record.session_id,
        "event": _event_value(record.event),
        "metadata": record.event_metadata,
        "created_at": record.created_at
    }


def events_to_csv(records: List[AnalyticsEvent]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)
    for record in records:
        writer.writerow([
            record.created_at.isoformat(),
            record.post.title if record.post else "Unknown",
            _event_value(record.event),
            record.user.username if record.user else "Anonymous",
            record.session_id,
            json.dumps(record.event_metadata or {})
        ])
    return buffer.getvalue()


def _percentages(counts: List[Tuple[str, int]], total: int, label: str) -> List[Dict[str, Any]]:
    return [
        {label: name, "visits": visits, "percentage": round(visits / total * 100, 2) if total else 0.0}
        for name, visits in counts
    ]


def rollup_day(db: Session, day: date) -> DailyAnalytics:
    """Recompute the site-wide DailyAnalytics row for one UTC day"""
    start = datetime.combine(day, time.min)
    end = start + timedelta(days=1)
    in_day = [AnalyticsEvent.created_at >= start, AnalyticsEvent.created_at < end]
    views_filter = in_day + [AnalyticsEvent.event == EventType.VIEW]

    counts = dict(
        db.query(AnalyticsEvent.event, func.count(AnalyticsEvent.id))
        .filter(*in_day)
        .group_by(AnalyticsEvent.event)
        .all()
    )
    total_views = counts.get(EventType.VIEW, 0)

    unique_visitors = db.query(func.count(distinct(AnalyticsEvent.session_id))) \
        .filter(*views_filter).scalar() or 0

    time_spent_values = [
        float((metadata or {}).get("time_spent") or 0)
        for (metadata,) in db.query(AnalyticsEvent.event_metadata)
        .filter(*in_day, AnalyticsEvent.event == EventType.TIME_SPENT)
        .all()
    ]
    average_time_spent = round(sum(time_spent_values) / len(time_spent_values), 2) if time_spent_values else 0.0

    per_post = db.query(AnalyticsEvent.post_id, AnalyticsEvent.event, func.count(AnalyticsEvent.id)) \
        .filter(*in_day) \
        .group_by(AnalyticsEvent.post_id, AnalyticsEvent.event) \
        .all()
    post_totals: Dict[int, Dict[str, int]] = {}
    for post_id, event, count in per_post:
        totals = post_totals.setdefault(post_id, {"post_id": post_id, "views": 0, "likes": 0, "shares": 0})
        if event == EventType.VIEW:
            totals["views"] = count
        elif event == EventType.LIKE:
            totals["likes"] = count
        elif event == EventType.SHARE:
            totals["shares"] = count
    top = sorted(post_totals.values(), key=lambda p: p["views"], reverse=True)[:TOP_LIMIT]

    sources = db.query(AnalyticsEvent.referrer, func.count(AnalyticsEvent.id)) \
        .filter(*views_filter, AnalyticsEvent.referrer.isnot(None), AnalyticsEvent.referrer != "") \
        .group_by(AnalyticsEvent.referrer) \
        .order_by(func.count(AnalyticsEvent.id).desc()) \
        .limit(TOP_LIMIT) \
        .all()

    devices = {device.value: 0 for device in DeviceType}
    for device, count in db.query(AnalyticsEvent.device, func.count(AnalyticsEvent.id)) \
            .filter(*views_filter, AnalyticsEvent.device.isnot(None)) \
            .group_by(AnalyticsEvent.device).all():
        devices[device.value] = count

    countries = db.query(AnalyticsEvent.country, func.count(AnalyticsEvent.id)) \
        .filter(*views_filter, AnalyticsEvent.country.isnot(None)) \
        .group_by(AnalyticsEvent.country) \
        .order_by(func.count(AnalyticsEvent.id).desc()) \
        .all()

    daily = db.query(DailyAnalytics).filter(DailyAnalytics.date == day).first()
    if daily is None:
        daily = DailyAnalytics(date=day)
        db.add(daily)

    daily.total_views = total_views
    daily.unique_visitors = unique_visitors
    daily.total_likes = counts.get(EventType.LIKE, 0)
    daily.total_shares = counts.get(EventType.SHARE, 0)
    daily.total_comments = counts.get(EventType.COMMENT, 0)
    daily.average_time_spent = average_time_spent
    daily.top_posts = top
    daily.traffic_sources = _percentages(sources, total_views, "source")
    daily.device_breakdown = devices
    daily.geographic_data = _percentages(countries, total_views, "country")

    db.commit()
    db.refresh(daily)
    logger.info(f"Rolled up analytics for {day}: {total_views} views, {unique_visitors} visitors")
    return daily
