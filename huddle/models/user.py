"""
User model - a local Huddle account.

An account can be reached two ways:
- Local credential: email + password_hash (accounts created outside this service)
- External identity: google_id, set when the account was created by Google login

At least one of password_hash / google_id is present on an account in
steady use; both may be.
"""

from datetime import datetime, timezone

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from huddle.db.base import Base

# Provider marker for accounts created with a local password
LOCAL_PROVIDER = "local"

# Presence status values
STATUS_ONLINE = "online"
STATUS_OFFLINE = "offline"


class User(Base):
    """
    SQLAlchemy ORM model for the 'users' table.
    """

    __tablename__ = "users"

    # ---------------------------------------------------------------------------
    # PRIMARY KEY
    # ---------------------------------------------------------------------------
    # id: Opaque numeric identifier (SERIAL in PostgreSQL)
    # - Encoded as the "sub" claim of session credentials
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ---------------------------------------------------------------------------
    # IDENTITY
    # ---------------------------------------------------------------------------
    # username: Display name shown in the chat UI
    # - Taken verbatim from the provider profile for Google accounts
    # - Not unique: two people can share a display name
    username: Mapped[str] = mapped_column(String(100), nullable=False)

    # email: Unique across all accounts (local and Google)
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)

    # password_hash: Only set for accounts with a local password
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)

    # ---------------------------------------------------------------------------
    # EXTERNAL IDENTITY
    # ---------------------------------------------------------------------------
    # google_id: Google's stable user id
    # - unique=True: the authoritative guard against duplicate accounts when
    #   two first logins for the same Google user race each other
    # - NULL for local-only accounts (NULLs never collide)
    google_id: Mapped[str | None] = mapped_column(
        String(255), unique=True, index=True, nullable=True
    )

    # provider: "local" or "google"
    provider: Mapped[str] = mapped_column(
        String(50), default=LOCAL_PROVIDER, nullable=False, index=True
    )

    # ---------------------------------------------------------------------------
    # PROFILE
    # ---------------------------------------------------------------------------
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    # status: Presence shown to other members ("online" / "offline")
    status: Mapped[str] = mapped_column(String(20), default=STATUS_OFFLINE, nullable=False)

    # ---------------------------------------------------------------------------
    # TIMESTAMPS
    # ---------------------------------------------------------------------------
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=lambda: datetime.now(timezone.utc)
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, provider='{self.provider}')>"
