# routers/post.py
import logging
import math
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Query
from sqlalchemy.orm import Session, joinedload, selectinload
from sqlalchemy import and_, or_
from database import get_db, utcnow, as_utc_naive
from models import Post, PostStatus, PostTag, PostCollaborator, PostVersion, User
from utils.auth import CurrentUser, CurrentAdmin, OptionalUser
from utils.text import unique_slug, normalize_tags
from utils.content import validate_content_size, format_content_size, optimize_content, extract_images, chunk_content
from schemas.common import ApiResponse, MessageResponse
from schemas.post import (
    PostCreate, PostUpdate, PostResponse, PostSummary, PostListResponse, Pagination,
    PostVersionResponse, CollaboratorAdd, ContentAnalysisRequest, ContentAnalysisResponse,
    ScheduleRequest
)
from utils.scheduler_service import schedule_post, unschedule_post, get_scheduled_posts_count, manual_process_now

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])

SORTABLE_FIELDS = {
    "createdAt": Post.created_at,
    "created_at": Post.created_at,
    "updatedAt": Post.updated_at,
    "updated_at": Post.updated_at,
    "publishedAt": Post.published_at,
    "published_at": Post.published_at,
    "title": Post.title,
    "views": Post.views,
    "likes": Post.likes,
}

UPDATABLE_FIELDS = ("title", "content", "excerpt", "tags", "status", "featured_image", "seo", "scheduled_for")


def _load_post(db: Session, post_id: int) -> Post:
    post = db.query(Post).options(
        joinedload(Post.author),
        selectinload(Post.tag_entries),
        selectinload(Post.collaborators).joinedload(PostCollaborator.user)
    ).filter(Post.id == post_id).first()

    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )
    return post


def _can_edit(post: Post, user: Optional[User]) -> bool:
    return user is not None and (user.is_admin or post.author_id == user.id)


def _require_editor(post: Post, user: User):
    if not _can_edit(post, user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )


def _check_content_size(content: str):
    report = validate_content_size(content)
    if not report["valid"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Content is too large ({format_content_size(report['size'])}). "
                   "Consider splitting into multiple posts."
        )
    for recommendation in report["recommendations"]:
        logger.warning(f"Content check: {recommendation}")


def _future_schedule(scheduled_for):
    if scheduled_for is None:
        return None
    scheduled_for = as_utc_naive(scheduled_for)
    if scheduled_for <= utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot schedule post in the past"
        )
    return scheduled_for


def _increment_views(db: Session, post: Post):
    post.views = (post.views or 0) + 1
    db.commit()
    db.refresh(post)


@router.get("/", response_model=ApiResponse[PostListResponse])
async def get_posts(
    current_user: OptionalUser,
    db: Session = Depends(get_db),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    post_status: str = Query("published", alias="status", description="draft, published, archived or all"),
    author: Optional[int] = Query(None, description="Filter by author ID"),
    tags: Optional[str] = Query(None, description="Comma separated; matches any"),
    search: Optional[str] = Query(None, description="Case-insensitive match on title, content or excerpt"),
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: str = Query("desc", alias="sortOrder")
):
    """
    Published posts for everyone; authenticated callers also see their own
    posts in other states
    """
    valid_statuses = {s.value for s in PostStatus} | {"all"}
    if post_status not in valid_statuses:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid status. Use one of: {', '.join(sorted(valid_statuses))}"
        )

    query = db.query(Post).options(joinedload(Post.author), selectinload(Post.tag_entries))

    if current_user is None or post_status == PostStatus.PUBLISHED.value:
        query = query.filter(Post.status == PostStatus.PUBLISHED)
    elif post_status == "all":
        query = query.filter(Post.author_id == current_user.id)
    else:
        query = query.filter(or_(
            and_(Post.author_id == current_user.id, Post.status == PostStatus(post_status)),
            Post.status == PostStatus.PUBLISHED
        ))

    if author:
        query = query.filter(Post.author_id == author)

    tag_list = normalize_tags(tags)
    if tag_list:
        query = query.filter(Post.tag_entries.any(PostTag.name.in_(tag_list)))

    if search:
        pattern = f"%{search}%"
        query = query.filter(or_(
            Post.title.ilike(pattern),
            Post.content.ilike(pattern),
            Post.excerpt.ilike(pattern)
        ))

    total = query.count()

    sort_column = SORTABLE_FIELDS.get(sort_by, Post.created_at)
    query = query.order_by(sort_column.asc() if sort_order == "asc" else sort_column.desc())

    posts = query.offset((page - 1) * limit).limit(limit).all()
    pages = math.ceil(total / limit)

    return ApiResponse(data=PostListResponse(
        posts=[PostSummary.model_validate(post) for post in posts],
        pagination=Pagination(
            current=page,
            pages=pages,
            total=total,
            has_next=page < pages,
            has_prev=page > 1
        )
    ))


@router.post("/", response_model=ApiResponse[PostResponse], status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUser,
    db: Session = Depends(get_db)
):
    """Create a post with a unique slug and normalized tags"""
    _check_content_size(post_data.content)
    scheduled_for = _future_schedule(post_data.scheduled_for)

    db_post = Post(
        title=post_data.title,
        slug=unique_slug(db, post_data.title),
        content=post_data.content,
        excerpt=post_data.excerpt,
        author_id=current_user.id,
        status=post_data.status,
        featured_image=post_data.featured_image.model_dump() if post_data.featured_image else None,
        seo=post_data.seo.model_dump() if post_data.seo else None,
        scheduled_for=scheduled_for,
        is_ai_assisted=post_data.is_ai_assisted,
        ai_model=post_data.ai_model,
        ai_prompt=post_data.ai_prompt,
        ai_confidence=post_data.ai_confidence
    )
    db_post.tags = normalize_tags(post_data.tags)

    db.add(db_post)
    db.commit()
    logger.info(f"Post {db_post.id} created by {current_user.username} with slug {db_post.slug}")

    return ApiResponse(
        message="Post created successfully",
        data=PostResponse.model_validate(_load_post(db, db_post.id))
    )


@router.post("/content/analyze", response_model=ApiResponse[ContentAnalysisResponse])
async def analyze_post_content(request: ContentAnalysisRequest, current_user: CurrentUser):
    """Size validation and optimization report for editor content"""
    report = validate_content_size(request.content)
    optimized = optimize_content(request.content)

    return ApiResponse(data=ContentAnalysisResponse(
        valid=report["valid"],
        size=report["size"],
        formatted_size=format_content_size(report["size"]),
        recommendations=report["recommendations"],
        optimized_size=optimized["optimized_size"],
        savings=optimized["savings"],
        image_count=len(extract_images(request.content)["images"]),
        chunk_count=len(chunk_content(request.content))
    ))


@router.get("/slug/{slug}", response_model=ApiResponse[PostResponse])
async def get_post_by_slug(
    slug: str,
    current_user: OptionalUser,
    db: Session = Depends(get_db)
):
    """Published posts only"""
    post = db.query(Post).filter(Post.slug == slug, Post.status == PostStatus.PUBLISHED).first()
    if not post:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post not found"
        )

    _increment_views(db, post)
    return ApiResponse(data=PostResponse.model_validate(_load_post(db, post.id)))


# ADMIN ENDPOINTS

@router.get("/admin/scheduler-stats")
async def get_scheduler_stats(
    current_admin: CurrentAdmin,
    db: Session = Depends(get_db)
):
    """
    Admin only: Get scheduler statistics
    Example: GET /posts/admin/scheduler-stats
    """
    return ApiResponse(data={
        "timestamp": utcnow(),
        "stats": get_scheduled_posts_count(db)
    })


@router.post("/admin/process-now")
async def process_scheduled_now(current_admin: CurrentAdmin):
    """
    Admin only: Manually publish due drafts
    Example: POST /posts/admin/process-now
    """
    result = await manual_process_now()
    return ApiResponse(
        message=f"Successfully processed {result['processed_count']} posts",
        data={"processed_count": result["processed_count"]}
    )


@router.get("/{post_id}", response_model=ApiResponse[PostResponse])
async def get_post(
    post_id: int,
    current_user: OptionalUser,
    db: Session = Depends(get_db)
):
    """Get a specific post by ID"""
    post = _load_post(db, post_id)

    if post.status != PostStatus.PUBLISHED:
        if not _can_edit(post, current_user):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied"
            )
    else:
        _increment_views(db, post)

    return ApiResponse(data=PostResponse.model_validate(post))


@router.put("/{post_id}", response_model=ApiResponse[PostResponse])
async def update_post(
    post_id: int,
    post_data: PostUpdate,
    current_user: CurrentUser,
    db: Session = Depends(get_db)
):
    """Update a post, snapshotting the previous version when the content changes"""
    post = _load_post(db, post_id)
    _require_editor(post, current_user)

    update_data = post_data.model_dump(exclude_unset=True)
    change_note = update_data.pop("change_note", None)

    new_content = update_data.get("content")
    if new_content is not None:
        _check_content_size(new_content)
        if new_content != post.content:
            post.versions.append(PostVersion(
                title=post.title,
                content=post.content,
                created_by=current_user.id,
                change_note=change_note or "Content updated"
            ))

    if "scheduled_for" in update_data:
        update_data["scheduled_for"] = _future_schedule(update_data["scheduled_for"])

    for field in UPDATABLE_FIELDS:
        if field not in update_data:
            continue
        value = update_data[field]
        if field == "tags":
            post.tags = normalize_tags(value)
        elif field in ("title", "content", "status") and value is None:
            continue
        else:
            setattr(post, field, value)

    db.commit()
    logger.info(f"Post {post.id} updated by {current_user.username}")

    return ApiResponse(
        message="Post updated successfully",
        data=PostResponse.model_validate(_load_post(db, post.id))
    )


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: int,
    current_user: CurrentUser,
    db: Session = Depends(get_db)
):
    """Delete a post"""
    post = _load_post(db, post_id)
    _require_editor(post, current_user)

    db.delete(post)
    db.commit()
    logger.info(f"Post {post_id} deleted by {current_user.username}")

    return MessageResponse(message="Post deleted successfully")


@router.post("/{post_id}/collaborate", response_model=ApiResponse[PostResponse])
async def add_collaborator(
    post_id: int,
    collaborator: CollaboratorAdd,
    current_user: CurrentUser,
    db: Session = Depends(get_db)
):
    """Add a collaborator to a post (author or admin)"""
    post = _load_post(db, post_id)
    _require_editor(post, current_user)

    if not db.query(User).filter(User.id == collaborator.user_id).first():
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="User not found"
        )

    if post.add_collaborator(collaborator.user_id, collaborator.role):
        db.commit()
        logger.info(f"User {collaborator.user_id} added to post {post.id} as {collaborator.role.value}")

    return ApiResponse(
        message="Collaborator added successfully",
        data=PostResponse.model_validate(_load_post(db, post.id))
    )


@router.get("/{post_id}/versions", response_model=ApiResponse[List[PostVersionResponse]])
async def get_post_versions(
    post_id: int,
    current_user: CurrentUser,
    db: Session = Depends(get_db)
):
    """Version history for the author, collaborators and admins"""
    post = _load_post(db, post_id)
    is_collaborator = any(c.user_id == current_user.id for c in post.collaborators)
    if not (_can_edit(post, current_user) or is_collaborator):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Access denied"
        )

    return ApiResponse(data=[PostVersionResponse.model_validate(v) for v in post.versions])


# SCHEDULING ENDPOINTS

@router.post("/{post_id}/schedule", response_model=ApiResponse[PostResponse])
async def schedule_post_endpoint(
    post_id: int,
    schedule_data: ScheduleRequest,
    current_user: CurrentUser,
    db: Session = Depends(get_db)
):
    """
    Schedule a draft for specific date, hour, and minute (UTC)
    Example: POST /posts/1/schedule
    Body: {"date": "2025-01-20", "hour": 14, "minute": 30}
    """
    post = _load_post(db, post_id)
    _require_editor(post, current_user)

    result = schedule_post(
        db=db,
        post=post,
        date=schedule_data.date,
        hour=schedule_data.hour,
        minute=schedule_data.minute
    )

    if not result["success"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result["message"]
        )

    return ApiResponse(message=result["message"], data=PostResponse.model_validate(post))


@router.post("/{post_id}/unschedule", response_model=ApiResponse[PostResponse])
async def unschedule_post_endpoint(
    post_id: int,
    current_user: CurrentUser,
    db: Session = Depends(get_db)
):
    """
    Clear a draft's scheduled time
    Example: POST /posts/1/unschedule
    """
    post = _load_post(db, post_id)
    _require_editor(post, current_user)

    result = unschedule_post(db=db, post=post)

    if not result["success"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=result["message"]
        )

    return ApiResponse(message=result["message"], data=PostResponse.model_validate(post))
