"""Shared fixtures: in-memory SQLite, a TestClient and authenticated users."""

import os

# Must be set before the app modules read their configuration
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"
os.environ["GROQ_API_KEY"] = ""
os.environ["HUGGINGFACE_API_KEY"] = ""
os.environ["AI_RATE_LIMIT"] = "20"
os.environ["AI_RATE_WINDOW_SECONDS"] = "900"

import pytest
from fastapi.testclient import TestClient

from database import Base, SessionLocal, engine
from main import app
from models import Post, PostStatus, User, UserRole
from routers.ai import ai_rate_limiter
from utils.auth import create_access_token, get_password_hash
from utils.text import normalize_tags, unique_slug


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    return TestClient(app)


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    ai_rate_limiter.reset()
    yield
    ai_rate_limiter.reset()


def make_user(db, username, role=UserRole.USER, password="secret123"):
    user = User(
        username=username,
        email=f"{username}@example.com",
        first_name=username.title(),
        hashed_password=get_password_hash(password),
        role=role
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_post(db, author, title="A Post Title", content="Some post content here.",
              status=PostStatus.PUBLISHED, tags=None, **fields):
    post = Post(
        title=title,
        slug=unique_slug(db, title),
        content=content,
        author_id=author.id,
        status=status,
        **fields
    )
    post.tags = normalize_tags(tags)
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def headers_for(user):
    token = create_access_token({"sub": user.username})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def user(db):
    return make_user(db, "writer")


@pytest.fixture
def other_user(db):
    return make_user(db, "reader")


@pytest.fixture
def admin(db):
    return make_user(db, "boss", role=UserRole.ADMIN)


@pytest.fixture
def auth_headers(user):
    return headers_for(user)


@pytest.fixture
def admin_headers(admin):
    return headers_for(admin)
