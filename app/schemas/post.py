# schemas/post.py
from typing import Optional, List, Union
from datetime import datetime
from pydantic import BaseModel, Field, ConfigDict, field_validator

from models import PostStatus, CollaboratorRole


class FeaturedImage(BaseModel):
    url: Optional[str] = None
    alt: Optional[str] = None
    caption: Optional[str] = None


class SEOData(BaseModel):
    meta_title: Optional[str] = Field(None, max_length=60, description="Meta title")
    meta_description: Optional[str] = Field(None, max_length=160, description="Meta description")
    keywords: List[str] = Field(default_factory=list)
    canonical_url: Optional[str] = None


class PostCreate(BaseModel):
    title: str = Field(..., max_length=200, description="Post title")
    content: str = Field(..., description="Post content (HTML or markdown)")
    excerpt: Optional[str] = Field(None, max_length=500)
    tags: Union[List[str], str, None] = Field(None, description="List or comma separated string")
    status: PostStatus = PostStatus.DRAFT
    featured_image: Optional[FeaturedImage] = None
    seo: Optional[SEOData] = None
    scheduled_for: Optional[datetime] = None
    is_ai_assisted: bool = False
    ai_model: Optional[str] = None
    ai_prompt: Optional[str] = None
    ai_confidence: Optional[float] = Field(None, ge=0, le=1)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Title is required")
        return v.strip()

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v):
        if not v or not v.strip():
            raise ValueError("Content is required")
        return v


class PostUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=200)
    content: Optional[str] = None
    excerpt: Optional[str] = Field(None, max_length=500)
    tags: Union[List[str], str, None] = None
    status: Optional[PostStatus] = None
    featured_image: Optional[FeaturedImage] = None
    seo: Optional[SEOData] = None
    scheduled_for: Optional[datetime] = None
    change_note: Optional[str] = None

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Title is required")
        return v.strip() if v is not None else v

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Content is required")
        return v


class AuthorSummary(BaseModel):
    id: int
    username: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    avatar: Optional[str] = None
    bio: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class CollaboratorResponse(BaseModel):
    user: AuthorSummary
    role: CollaboratorRole
    added_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostSummary(BaseModel):
    """List view of a post: everything but the body"""
    id: int
    title: str
    slug: str
    url: str
    excerpt: Optional[str]
    status: PostStatus
    author: AuthorSummary
    tags: List[str]
    featured_image: Optional[FeaturedImage]
    seo: Optional[SEOData]
    reading_time: int
    word_count: int
    published_at: Optional[datetime]
    scheduled_for: Optional[datetime]
    views: int
    likes: int
    shares: int
    comments: int
    is_ai_assisted: bool
    is_collaborative: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostResponse(PostSummary):
    content: str
    ai_model: Optional[str]
    ai_confidence: Optional[float]
    collaborators: List[CollaboratorResponse] = []


class Pagination(BaseModel):
    current: int
    pages: int
    total: int
    has_next: bool
    has_prev: bool


class PostListResponse(BaseModel):
    posts: List[PostSummary]
    pagination: Pagination


class PostVersionResponse(BaseModel):
    id: int
    title: str
    content: str
    created_by: Optional[int]
    change_note: Optional[str]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CollaboratorAdd(BaseModel):
    user_id: int
    role: CollaboratorRole = CollaboratorRole.VIEWER


class ContentAnalysisRequest(BaseModel):
    content: str


class ContentAnalysisResponse(BaseModel):
    valid: bool
    size: int
    formatted_size: str
    recommendations: List[str]
    optimized_size: int
    savings: int
    image_count: int
    chunk_count: int


class ScheduleRequest(BaseModel):
    date: str = Field(..., description="YYYY-MM-DD")
    hour: int = Field(..., ge=0, le=23)
    minute: int = Field(..., ge=0, le=59)
