"""
Declarative base - every ORM model inherits from Base so that
Base.metadata knows about all tables (used by Alembic and the tests).
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """SQLAlchemy 2.0 declarative base class."""
    pass
