"""
Analytics router for BlogCraft AI
Event tracking, dashboard aggregation, exports and daily rollups
"""
import logging
from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Request, status, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session
from database import get_db, utcnow, as_utc_naive
from models import Post, EventType, DeviceType, DailyAnalytics, UserEngagement
from schemas.common import ApiResponse, MessageResponse
from schemas.analytics import (
    TrackEventRequest,
    DashboardData,
    PostAnalyticsData,
    PostInfo,
    ExportResponse,
    DailyAnalyticsResponse,
    RollupRequest,
    UserEngagementResponse
)
from services import analytics_service
from utils.auth import CurrentUser, CurrentAdmin, OptionalUser

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analytics", tags=["analytics"])


def _date_range(start_date: Optional[datetime], end_date: Optional[datetime], default_start=None):
    start = as_utc_naive(start_date) if start_date else default_start
    end = as_utc_naive(end_date) if end_date else None
    return analytics_service.resolve_date_range(start, end)


@router.post("/track", response_model=MessageResponse)
def track_event(
    event_data: TrackEventRequest,
    request: Request,
    current_user: OptionalUser,
    db: Session = Depends(get_db)
):
    """Record a reader event; anonymous readers are tracked by session"""
    if not event_data.post_id or not event_data.event or not event_data.session_id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Post ID, event, and session ID are required"
        )

    try:
        event = EventType(event_data.event)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid event type"
        )

    metadata = event_data.metadata.model_dump(exclude_none=True)
    if metadata.get("device") and metadata["device"] not in {d.value for d in DeviceType}:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid device type"
        )

    post = db.query(Post).filter(Post.id == event_data.post_id).first()
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

    metadata.update({
        "timestamp": utcnow().isoformat(),
        "user_agent": request.headers.get("user-agent"),
        "ip_address": request.client.host if request.client else None
    })

    analytics_service.record_event(
        db, post, event, event_data.session_id, metadata, user=current_user
    )

    return MessageResponse(message="Event tracked successfully")


@router.get("/dashboard", response_model=ApiResponse[DashboardData])
def get_dashboard(
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    post_id: Optional[int] = Query(None, alias="postId")
):
    """Aggregated stats, last 30 days by default; non-admins see only their own posts"""
    start, end = _date_range(start_date, end_date)
    data = analytics_service.dashboard(db, current_user, start, end, post_id)
    return ApiResponse(data=DashboardData(**data))


@router.get("/post/{post_id}", response_model=ApiResponse[PostAnalyticsData])
def get_post_analytics(
    post_id: int,
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate")
):
    """Per-event counts for one post since it was created"""
    post = db.query(Post).filter(Post.id == post_id).first()
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

    if not current_user.is_admin and post.author_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )

    start, end = _date_range(start_date, end_date, default_start=post.created_at)
    stats = analytics_service.post_event_stats(db, post.id, start, end)

    return ApiResponse(data=PostAnalyticsData(
        post=PostInfo.model_validate(post),
        analytics=stats,
        date_range={"start": start, "end": end}
    ))


@router.get("/export")
def export_analytics(
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    export_format: str = Query("json", alias="format", pattern="^(json|csv)$"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate")
):
    """Raw events as JSON or a CSV attachment"""
    start, end = _date_range(start_date, end_date)
    records = analytics_service.export_events(db, current_user, start, end)
    logger.info(f"Exporting {len(records)} analytics events as {export_format} for {current_user.username}")

    if export_format == "csv":
        return Response(
            content=analytics_service.events_to_csv(records),
            media_type="text/csv",
            headers={"Content-Disposition": "attachment; filename=analytics-export.csv"}
        )

    return ExportResponse(
        data=[analytics_service.serialize_event(record) for record in records],
        count=len(records),
        date_range={"start": start, "end": end}
    )


@router.get("/daily", response_model=ApiResponse[List[DailyAnalyticsResponse]])
def get_daily_analytics(
    current_admin: CurrentAdmin,
    db: Session = Depends(get_db),
    limit: int = Query(30, ge=1, le=365)
):
    """Admin only: most recent daily rollups"""
    rows = db.query(DailyAnalytics).order_by(DailyAnalytics.date.desc()).limit(limit).all()
    return ApiResponse(data=[DailyAnalyticsResponse.model_validate(row) for row in rows])


@router.post("/daily/rollup", response_model=ApiResponse[DailyAnalyticsResponse])
def rollup_daily_analytics(
    rollup: RollupRequest,
    current_admin: CurrentAdmin,
    db: Session = Depends(get_db)
):
    """Admin only: recompute the rollup for one day"""
    daily = analytics_service.rollup_day(db, rollup.date)
    return ApiResponse(
        message=f"Analytics rolled up for {rollup.date}",
        data=DailyAnalyticsResponse.model_validate(daily)
    )


@router.get("/engagement/me", response_model=ApiResponse[List[UserEngagementResponse]])
def get_my_engagement(
    current_user: CurrentUser,
    db: Session = Depends(get_db),
    limit: int = Query(30, ge=1, le=365)
):
    rows = db.query(UserEngagement) \
        .filter(UserEngagement.user_id == current_user.id) \
        .order_by(UserEngagement.date.desc()) \
        .limit(limit) \
        .all()
    return ApiResponse(data=[UserEngagementResponse.model_validate(row) for row in rows])
