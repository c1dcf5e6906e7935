"""
User schemas - Pydantic models for user-related API responses.
These control what account data is exposed (never the password hash).
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class UserOut(BaseModel):
    """
    Schema for account data in API responses (GET /users/me).

    Intentionally EXCLUDES password_hash and updated_at.

    Example response:
    {
        "id": 42,
        "username": "Ada Lovelace",
        "email": "ada@example.com",
        "provider": "google",
        "avatar_url": "https://lh3.googleusercontent.com/a/...",
        "status": "online",
        "created_at": "2025-12-02T10:30:00Z"
    }
    """

    # from_attributes: build directly from the SQLAlchemy User object
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    provider: str
    avatar_url: str | None
    status: str
    created_at: datetime
