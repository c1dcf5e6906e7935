"""
Identity resolution - maps a Google profile to a local Huddle account.

The resolver is the only code that creates accounts from external logins.
It talks to storage through AccountRepository, a narrow contract over the
users table:

    find_by_google_id(id)  -> User | None
    find_by_email(email)   -> User | None
    create_oauth_account(email, username, google_id, avatar_url) -> User

Concurrent first logins:
========================
Two callbacks for the same Google user can both miss the lookup and both try
to insert. The unique index on users.google_id lets exactly one insert win;
the loser gets an IntegrityError, rolls back and re-reads the winner's row.
No in-process locking is involved.

Email collisions:
=================
If the Google email already belongs to an account that is not linked to this
Google id (typically a local-password account), resolution is rejected with
EmailAlreadyRegistered. Accounts are never merged implicitly.
"""

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from huddle.environments.base import UserInfo
from huddle.models.user import STATUS_ONLINE, User

logger = logging.getLogger("huddle.services.identity")

GOOGLE_PROVIDER = "google"


class AccountPersistenceFailed(Exception):
    """Raised when the account store fails while resolving an identity."""
    pass


class EmailAlreadyRegistered(Exception):
    """Raised when the provider email belongs to a different account."""
    pass


class EmailNotVerified(Exception):
    """Raised when the provider reports the profile email as unverified."""
    pass


# ---------------------------------------------------------------------------
# STORAGE CONTRACT
# ---------------------------------------------------------------------------

class AccountRepository:
    """SQLAlchemy-backed account lookups and inserts."""

    def __init__(self, db: Session):
        self.db = db

    def find_by_google_id(self, google_id: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(User.google_id == google_id)
        ).scalar_one_or_none()

    def find_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(
            select(User).where(User.email == email)
        ).scalar_one_or_none()

    def create_oauth_account(
        self,
        email: str,
        username: str,
        google_id: str,
        avatar_url: Optional[str],
    ) -> User:
        """
        Insert a Google-backed account and commit.

        Raises:
            IntegrityError: If google_id (or email) is already taken
        """
        user = User(
            username=username,
            email=email,
            google_id=google_id,
            provider=GOOGLE_PROVIDER,
            avatar_url=avatar_url,
            status=STATUS_ONLINE,
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)
        return user

    def save(self, user: User) -> User:
        self.db.commit()
        self.db.refresh(user)
        return user

    def rollback(self) -> None:
        self.db.rollback()


# ---------------------------------------------------------------------------
# RESOLVER
# ---------------------------------------------------------------------------

class IdentityResolver:
    """
    Finds or creates the local account for an external profile.

    Usage:
        resolver = IdentityResolver(AccountRepository(db))
        user = resolver.resolve(user_info)
    """

    def __init__(self, accounts: AccountRepository):
        self.accounts = accounts

    def find_by_external_id(self, external_id: str) -> Optional[User]:
        """Look up an account by Google id. None is the normal NotFound branch."""
        try:
            return self.accounts.find_by_google_id(external_id)
        except SQLAlchemyError as e:
            raise AccountPersistenceFailed(f"Account lookup failed: {e}") from e

    def create_from_external_profile(self, profile: UserInfo) -> User:
        """
        Create the account for a first-time Google login.

        If another request created it first (duplicate google_id), the
        existing account is returned instead of an error.

        Raises:
            EmailAlreadyRegistered: The email is taken by another account
            EmailNotVerified: Google says the email is unverified
            AccountPersistenceFailed: Any other storage failure
        """
        email = profile.email or ""
        if not email:
            raise AccountPersistenceFailed("Provider profile has no email address")
        if profile.email_verified is False:
            raise EmailNotVerified(
                f"Provider email for Google ID {profile.provider_user_id} is not verified"
            )

        # Email and display name are taken verbatim from the provider;
        # username is NOT NULL, so fall back to the email local part.
        username = profile.name or email.split("@", 1)[0]

        try:
            existing = self.accounts.find_by_email(email)
        except SQLAlchemyError as e:
            raise AccountPersistenceFailed(f"Account lookup failed: {e}") from e
        if existing is not None and existing.google_id != profile.provider_user_id:
            raise EmailAlreadyRegistered(
                f"Email is already registered to account {existing.id}"
            )

        try:
            user = self.accounts.create_oauth_account(
                email=email,
                username=username,
                google_id=profile.provider_user_id,
                avatar_url=profile.picture_url,
            )
        except IntegrityError as e:
            self.accounts.rollback()
            logger.info(
                f"Duplicate insert for Google ID {profile.provider_user_id}, "
                "re-reading existing account"
            )
            user = self.find_by_external_id(profile.provider_user_id)
            if user is None:
                # Lost the race on email, not on google_id
                raise EmailAlreadyRegistered(
                    "Email is already registered to another account"
                ) from e
            return user
        except SQLAlchemyError as e:
            self.accounts.rollback()
            raise AccountPersistenceFailed(f"Account insert failed: {e}") from e

        logger.info(f"Created account {user.id} for Google ID {profile.provider_user_id}")
        return user

    def resolve(self, profile: UserInfo) -> User:
        """
        Return the account for a profile, creating it on first login.

        Returning users get their avatar refreshed and are marked online.
        """
        user = self.find_by_external_id(profile.provider_user_id)
        if user is None:
            logger.info(f"Creating new user for Google ID: {profile.provider_user_id}")
            return self.create_from_external_profile(profile)

        logger.info(f"Found existing user (ID: {user.id})")

        changed = False
        if profile.picture_url and profile.picture_url != user.avatar_url:
            user.avatar_url = profile.picture_url
            changed = True
        if user.status != STATUS_ONLINE:
            user.status = STATUS_ONLINE
            changed = True

        if changed:
            try:
                user = self.accounts.save(user)
            except SQLAlchemyError as e:
                self.accounts.rollback()
                raise AccountPersistenceFailed(f"Profile refresh failed: {e}") from e
        return user
