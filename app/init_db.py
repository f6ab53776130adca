# init_db.py
from database import create_tables
import models


def init_database(seed: bool = False):
    """Initialize database"""
    print(" Creating database tables...")
    create_tables()
    print(" Database initialized!")

    if seed:
        from database import SessionLocal
        from seed_users import seed_users

        db = SessionLocal()
        try:
            seed_users(db)
        finally:
            db.close()


if __name__ == "__main__":
    import sys
    init_database(seed="--seed" in sys.argv)
