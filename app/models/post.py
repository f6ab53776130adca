from sqlalchemy import (
    Column, Integer, BigInteger, Float, String, Text, DateTime, Boolean, Enum,
    ForeignKey, Index, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship, validates
import enum
from database import Base, utcnow
from utils.text import count_words, reading_time


class PostStatus(str, enum.Enum):
    """Post status for managing post lifecycle"""
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CollaboratorRole(str, enum.Enum):
    EDITOR = "editor"
    REVIEWER = "reviewer"
    VIEWER = "viewer"


class Post(Base):
    """
    Blog post with SEO metadata, engagement counters and AI/collaboration flags
    """
    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    slug = Column(String(120), unique=True, index=True, nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(String(500), nullable=True)
    status = Column(Enum(PostStatus), default=PostStatus.DRAFT, nullable=False)

    # Author relationship
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False)

    # Sub-documents: {url, alt, caption} and {meta_title, meta_description, keywords, canonical_url}
    featured_image = Column(JSON, nullable=True)
    seo = Column(JSON, nullable=True)

    # Derived from content on assignment
    reading_time = Column(Integer, default=0, nullable=False)
    word_count = Column(Integer, default=0, nullable=False)

    # Publishing
    published_at = Column(DateTime, nullable=True)
    scheduled_for = Column(DateTime, nullable=True)

    # Engagement counters
    views = Column(BigInteger, default=0, nullable=False)
    likes = Column(BigInteger, default=0, nullable=False)
    shares = Column(BigInteger, default=0, nullable=False)
    comments = Column(BigInteger, default=0, nullable=False)
    reading_time_total = Column(BigInteger, default=0, nullable=False)

    # AI provenance
    is_ai_assisted = Column(Boolean, default=False, nullable=False)
    ai_model = Column(String, nullable=True)
    ai_prompt = Column(Text, nullable=True)
    ai_confidence = Column(Float, nullable=True)

    is_collaborative = Column(Boolean, default=False, nullable=False)

    # Metadata
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Relationships
    author = relationship("User", back_populates="posts")
    tag_entries = relationship(
        "PostTag", back_populates="post", cascade="all, delete-orphan", order_by="PostTag.id"
    )
    collaborators = relationship(
        "PostCollaborator", back_populates="post", cascade="all, delete-orphan"
    )
    versions = relationship(
        "PostVersion", back_populates="post", cascade="all, delete-orphan",
        order_by="PostVersion.created_at"
    )
    events = relationship("AnalyticsEvent", back_populates="post", cascade="all, delete-orphan")

    @property
    def tags(self):
        return [entry.name for entry in self.tag_entries]

    @tags.setter
    def tags(self, names):
        # Reuse rows for kept names so (post_id, name) never collides on flush
        existing = {entry.name: entry for entry in self.tag_entries}
        self.tag_entries = [existing.get(name) or PostTag(name=name) for name in names]

    @property
    def url(self) -> str:
        return f"/posts/{self.slug}"

    @validates("content")
    def _update_counts(self, key, content):
        words = count_words(content)
        self.word_count = words
        self.reading_time = reading_time(words)
        return content

    @validates("status")
    def _stamp_published_at(self, key, status):
        if status == PostStatus.PUBLISHED and self.published_at is None:
            self.published_at = utcnow()
        return status

    def add_collaborator(self, user_id: int, role: CollaboratorRole = CollaboratorRole.VIEWER) -> bool:
        """Add a collaborator unless already present; returns True when added"""
        if any(c.user_id == user_id for c in self.collaborators):
            return False
        self.collaborators.append(PostCollaborator(user_id=user_id, role=role))
        self.is_collaborative = True
        return True

    def __repr__(self):
        return f"<Post(id={self.id}, slug='{self.slug}', status='{self.status}')>"


class PostTag(Base):
    __tablename__ = "post_tags"

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)

    post = relationship("Post", back_populates="tag_entries")

    __table_args__ = (UniqueConstraint("post_id", "name", name="uq_post_tag"),)


class PostCollaborator(Base):
    __tablename__ = "post_collaborators"

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    role = Column(Enum(CollaboratorRole), default=CollaboratorRole.VIEWER, nullable=False)
    added_at = Column(DateTime, default=utcnow, nullable=False)

    post = relationship("Post", back_populates="collaborators")
    user = relationship("User")

    __table_args__ = (UniqueConstraint("post_id", "user_id", name="uq_post_collaborator"),)


class PostVersion(Base):
    """Snapshot of a post's title/content taken before a content change"""
    __tablename__ = "post_versions"

    id = Column(Integer, primary_key=True)
    post_id = Column(Integer, ForeignKey("posts.id", ondelete="CASCADE"), nullable=False)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    change_note = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    post = relationship("Post", back_populates="versions")


# Database indexes for performance
Index("idx_posts_author_status", Post.author_id, Post.status)
Index("idx_posts_status_published_at", Post.status, Post.published_at)
Index("idx_posts_views", Post.views)
Index("idx_posts_created_at", Post.created_at)
Index("idx_post_tags_name", PostTag.name)
