import asyncio
import logging
import time
from datetime import date, datetime, timedelta
from typing import Optional
from sqlalchemy.orm import Session
from sqlalchemy import and_

from database import SessionLocal, utcnow
from models import Post, PostStatus
from services.analytics_service import rollup_day

logger = logging.getLogger(__name__)


class PostSchedulerService:
    """Publishes scheduled drafts and rolls up daily analytics"""

    def __init__(self, session_factory=SessionLocal):
        self.session_factory = session_factory
        self.running = False
        self.last_rollup_date: Optional[date] = None
        self._last_no_posts_log = 0.0

    def publish_due_posts(self, db: Session) -> int:
        """Publish every draft whose scheduled time has passed"""
        current_time = utcnow()
        due_posts = db.query(Post).filter(
            and_(
                Post.status == PostStatus.DRAFT,
                Post.scheduled_for.isnot(None),
                Post.scheduled_for <= current_time
            )
        ).all()

        if not due_posts:
            return 0

        logger.info(f"Publishing {len(due_posts)} due posts...")
        for post in due_posts:
            post.status = PostStatus.PUBLISHED
            post.published_at = current_time
            post.scheduled_for = None
            logger.info(f"Post {post.id} ({post.slug}) published")

        db.commit()
        return len(due_posts)

    async def process_due_posts(self) -> int:
        """Process all posts that are due for publishing"""
        db = self.session_factory()

        try:
            return self.publish_due_posts(db)
        except Exception as e:
            logger.error(f"Error in process_due_posts: {str(e)}")
            db.rollback()
            return 0
        finally:
            db.close()

    async def run_daily_rollup(self) -> bool:
        """Roll up yesterday's analytics once per UTC day"""
        yesterday = utcnow().date() - timedelta(days=1)
        if self.last_rollup_date == yesterday:
            return False

        db = self.session_factory()
        try:
            rollup_day(db, yesterday)
            self.last_rollup_date = yesterday
            return True
        except Exception as e:
            logger.error(f"Error rolling up analytics for {yesterday}: {str(e)}")
            db.rollback()
            return False
        finally:
            db.close()

    async def run_scheduler(self, interval_seconds: int = 30):
        """Run the scheduler continuously"""
        self.running = True
        logger.info(f"Scheduler started (checking every {interval_seconds}s)")

        while self.running:
            try:
                processed = await self.process_due_posts()
                if processed > 0:
                    logger.info(f"Batch complete: {processed} posts published")
                else:
                    # Only log this every 5 minutes
                    current_time = time.time()
                    if current_time - self._last_no_posts_log > 300:
                        logger.info("No posts to publish")
                        self._last_no_posts_log = current_time

                await self.run_daily_rollup()
                await asyncio.sleep(interval_seconds)

            except Exception as e:
                logger.error(f"Scheduler error: {str(e)}")
                await asyncio.sleep(interval_seconds)

    def stop_scheduler(self):
        """Stop the scheduler"""
        self.running = False
        logger.info("Scheduler stopped")


# Global scheduler instance
scheduler = PostSchedulerService()


def validate_schedule_time(scheduled_for: datetime) -> bool:
    """Validate that scheduled time is in the future"""
    return scheduled_for > utcnow()


def schedule_post(db: Session, post: Post, date: str, hour: int, minute: int) -> dict:
    """
    Schedule a draft for a specific date/time (UTC)
    """
    if post.status != PostStatus.DRAFT:
        return {"success": False, "message": f"Cannot schedule post with status: {post.status.value}"}

    if not (0 <= hour <= 23):
        return {"success": False, "message": "Hour must be between 0-23"}
    if not (0 <= minute <= 59):
        return {"success": False, "message": "Minute must be between 0-59"}

    try:
        scheduled_datetime = datetime.strptime(date, '%Y-%m-%d')
        scheduled_datetime = scheduled_datetime.replace(hour=hour, minute=minute, second=0, microsecond=0)
    except ValueError:
        return {"success": False, "message": "Invalid date format. Use YYYY-MM-DD"}

    if not validate_schedule_time(scheduled_datetime):
        return {"success": False, "message": "Cannot schedule post in the past"}

    post.scheduled_for = scheduled_datetime
    db.commit()
    db.refresh(post)

    return {
        "success": True,
        "message": f"Post scheduled for {scheduled_datetime.strftime('%Y-%m-%d %H:%M')}",
        "post": post
    }


def unschedule_post(db: Session, post: Post) -> dict:
    """Clear a draft's scheduled time"""
    if post.scheduled_for is None:
        return {"success": False, "message": "Post is not scheduled"}

    post.scheduled_for = None
    db.commit()
    db.refresh(post)

    return {"success": True, "message": "Post unscheduled successfully", "post": post}


def get_scheduled_posts_count(db: Session) -> dict:
    """Counts of scheduled drafts: total, overdue and due within 24 hours"""
    current_time = utcnow()
    scheduled = db.query(Post).filter(
        Post.status == PostStatus.DRAFT,
        Post.scheduled_for.isnot(None)
    )

    total_scheduled = scheduled.count()
    overdue = scheduled.filter(Post.scheduled_for <= current_time).count()
    upcoming = scheduled.filter(
        Post.scheduled_for > current_time,
        Post.scheduled_for <= current_time + timedelta(days=1)
    ).count()

    return {
        "total_scheduled": total_scheduled,
        "overdue": overdue,
        "upcoming_24h": upcoming,
        "last_rollup_date": scheduler.last_rollup_date
    }


async def manual_process_now() -> dict:
    """Manually trigger post processing"""
    processed = await scheduler.process_due_posts()
    return {"success": True, "processed_count": processed}
