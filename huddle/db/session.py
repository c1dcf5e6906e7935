"""
Database session management - SQLAlchemy engine and session factory.
This module provides the database connection and session dependency for FastAPI.
"""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from huddle.core.config import settings

# ---------------------------------------------------------------------------
# DATABASE ENGINE
# ---------------------------------------------------------------------------
# The engine owns the connection pool, the only storage state shared between
# concurrent requests.
#
# - pool_pre_ping=True: check a pooled connection with "SELECT 1" before use,
#   so a database restart doesn't surface as errors on the next requests.
engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
)

# ---------------------------------------------------------------------------
# SESSION FACTORY
# ---------------------------------------------------------------------------
# - autocommit=False: changes are written only on db.commit()
# - autoflush=False: objects are synced to the DB only on explicit flush/commit
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """
    FastAPI dependency that provides a database session.

    Usage in a route:
        @router.get("/me")
        def read_me(db: Session = Depends(get_db)):
            ...

    One session per request; close() always runs, returning the
    connection to the pool even if the route raises.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
