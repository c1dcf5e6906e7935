"""
Test configuration and fixtures for pytest.

This module provides shared fixtures used across all tests:
- Test database (SQLite in-memory for speed)
- Test client (FastAPI TestClient) with a fake Google provider
- Account and credential helpers
"""

import os

# Provider settings must exist before huddle.core.config is imported:
# the app refuses to start without them.
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", "test-secret-key-do-not-use-in-production")
os.environ.setdefault("GOOGLE_CLIENT_ID", "test-client-id.apps.googleusercontent.com")
os.environ.setdefault("GOOGLE_CLIENT_SECRET", "test-client-secret")
os.environ.setdefault("GOOGLE_REDIRECT_URI", "http://testserver/auth/google/callback")
os.environ.setdefault("CLIENT_ORIGIN", "http://localhost:5173")

from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, func, select
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from huddle.core.security import CredentialIssuer
from huddle.db.base import Base
from huddle.db.session import get_db
from huddle.deps import get_auth_client, get_credential_issuer
from huddle.environments.base import AuthenticationError, OAuthTokens, UserInfo
from huddle.environments.google import GoogleAuthClient
from huddle.main import app
from huddle.models.user import STATUS_OFFLINE, User


# ---------------------------------------------------------------------------
# TEST DATABASE SETUP
# ---------------------------------------------------------------------------
# StaticPool keeps the same in-memory connection across all operations

SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},  # Required for SQLite
    poolclass=StaticPool,
)

TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# ---------------------------------------------------------------------------
# FAKE GOOGLE
# ---------------------------------------------------------------------------

class FakeGoogleAuthClient(GoogleAuthClient):
    """
    GoogleAuthClient with the two network calls replaced.

    The authorization URL is still built by the real client, so redirects
    carry the configured client id.
    """

    def __init__(self):
        super().__init__()
        self.profile = UserInfo(
            provider_user_id="google-108364029475520938475",
            email="ada@example.com",
            name="Ada Lovelace",
            picture_url="https://lh3.googleusercontent.com/a/ada",
        )
        self.exchange_error: Optional[Exception] = None
        self.profile_error: Optional[Exception] = None
        self.exchanged_codes: List[str] = []
        self.profile_requests: List[str] = []

    @property
    def network_calls(self) -> int:
        return len(self.exchanged_codes) + len(self.profile_requests)

    async def exchange_code_for_tokens(self, code: str) -> OAuthTokens:
        self.exchanged_codes.append(code)
        if self.exchange_error is not None:
            raise self.exchange_error
        return OAuthTokens(access_token="fake-google-access-token", expires_at=None)

    async def get_user_info(self, access_token: str) -> UserInfo:
        self.profile_requests.append(access_token)
        if self.profile_error is not None:
            raise self.profile_error
        return self.profile


# ---------------------------------------------------------------------------
# DATABASE FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """
    Create a fresh database for each test function.

    - Creates all tables
    - Yields a session for the test
    - Drops all tables after test (clean slate)
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def count_users(db: Session):
    """Number of rows in the users table."""
    def _count() -> int:
        return db.execute(select(func.count()).select_from(User)).scalar_one()
    return _count


# ---------------------------------------------------------------------------
# CLIENT FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def fake_google() -> FakeGoogleAuthClient:
    return FakeGoogleAuthClient()


@pytest.fixture(scope="function")
def client(db: Session, fake_google: FakeGoogleAuthClient) -> Generator[TestClient, None, None]:
    """
    Create a test client with the test database and fake Google.

    Overrides get_db and get_auth_client.
    """
    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_auth_client] = lambda: fake_google

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ---------------------------------------------------------------------------
# ACCOUNT FIXTURES
# ---------------------------------------------------------------------------

@pytest.fixture
def google_user(db: Session, fake_google: FakeGoogleAuthClient) -> User:
    """Account previously created by Google login for fake_google's profile."""
    user = User(
        username="Ada Lovelace",
        email=fake_google.profile.email,
        google_id=fake_google.profile.provider_user_id,
        provider="google",
        avatar_url="https://lh3.googleusercontent.com/a/old-ada",
        status=STATUS_OFFLINE,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def local_user(db: Session) -> User:
    """Password account using the same email as fake_google's profile."""
    user = User(
        username="ada",
        email="ada@example.com",
        password_hash="$2b$12$KIXQJfZ0dYj3bLwHhT3Yle0Gm7lS9oEo7C8q1nWcL0t2nYlFh3m6a",
        provider="local",
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def issuer() -> CredentialIssuer:
    return get_credential_issuer()


@pytest.fixture
def auth_headers(issuer: CredentialIssuer, google_user: User) -> dict:
    """Authorization header carrying a credential for google_user."""
    return {"Authorization": f"Bearer {issuer.issue(google_user)}"}


@pytest.fixture
def provider_unavailable() -> AuthenticationError:
    return AuthenticationError("Token exchange failed: invalid_grant", status_code=400)
