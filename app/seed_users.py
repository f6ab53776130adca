# seed_users.py
from sqlalchemy import or_

from database import SessionLocal, create_tables
from models import User, UserRole
from utils.auth import get_password_hash

DEFAULT_USERS = [
    {
        "username": "admin",
        "email": "admin@blogcraft.ai",
        "password": "admin123",
        "first_name": "Admin",
        "last_name": "User",
        "role": UserRole.ADMIN,
        "bio": "System administrator with full access to BlogCraft AI platform."
    },
    {
        "username": "demo",
        "email": "demo@blogcraft.ai",
        "password": "demo123",
        "first_name": "Demo",
        "last_name": "User",
        "role": UserRole.USER,
        "bio": "Demo account for testing BlogCraft AI features."
    },
    {
        "username": "testuser",
        "email": "test@blogcraft.ai",
        "password": "test123",
        "first_name": "Test",
        "last_name": "Writer",
        "role": UserRole.USER,
        "bio": "Content creator exploring AI-powered blogging tools."
    },
]


def seed_users(db) -> list:
    """Create the default users, skipping any that already exist; returns the created ones"""
    created = []
    for data in DEFAULT_USERS:
        existing = db.query(User).filter(
            or_(User.username == data["username"], User.email == data["email"])
        ).first()
        if existing:
            print(f" Skipping {data['username']} (already exists)")
            continue

        fields = {key: value for key, value in data.items() if key != "password"}
        user = User(hashed_password=get_password_hash(data["password"]), **fields)
        db.add(user)
        created.append(user)
        print(f" Created {data['username']} ({data['email']})")

    db.commit()
    return created


if __name__ == "__main__":
    create_tables()
    session = SessionLocal()
    try:
        users = seed_users(session)
        print(f" Seeding complete: {len(users)} users created")
    finally:
        session.close()
