"""
Dependencies module - reusable FastAPI dependencies for route handlers.

Identity:
    get_optional_identity → SessionIdentity | None (mixed/public endpoints)
    get_current_identity  → SessionIdentity or 401 (protected endpoints)

Login flow wiring:
    get_auth_client, get_credential_issuer, get_state_guard, get_login_flow
    Tests override get_auth_client to fake Google.
"""

from datetime import timedelta
from functools import lru_cache
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from huddle.core.config import settings
from huddle.core.security import CredentialIssuer, CredentialVerifier
from huddle.core.state import StateTokenGuard
from huddle.db.session import get_db
from huddle.environments.base import IdentityProvider
from huddle.environments.google import GoogleAuthClient
from huddle.schemas.auth import SessionIdentity
from huddle.services.identity import AccountRepository, IdentityResolver
from huddle.services.login_flow import LoginFlow


# ---------------------------------------------------------------------------
# IDENTITY
# ---------------------------------------------------------------------------

def get_optional_identity(request: Request) -> Optional[SessionIdentity]:
    """
    Identity attached by CredentialMiddleware, or None for anonymous requests.

    Invalid or missing credentials are never an error here.
    """
    return getattr(request.state, "identity", None)


def get_current_identity(
    identity: Optional[SessionIdentity] = Depends(get_optional_identity),
) -> SessionIdentity:
    """
    Require a signed-in user.

    Raises:
        401 Unauthorized: If the request carried no valid credential
    """
    if identity is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},  # Standard header per RFC 6750
        )
    return identity


# ---------------------------------------------------------------------------
# CREDENTIALS
# ---------------------------------------------------------------------------
# Built once from settings; the secret is read-only after startup.

@lru_cache
def get_credential_issuer() -> CredentialIssuer:
    return CredentialIssuer(
        secret=settings.SECRET_KEY,
        algorithm=settings.ALGORITHM,
        lifetime=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


@lru_cache
def get_credential_verifier() -> CredentialVerifier:
    return CredentialVerifier(secret=settings.SECRET_KEY, algorithm=settings.ALGORITHM)


# ---------------------------------------------------------------------------
# LOGIN FLOW
# ---------------------------------------------------------------------------

def get_auth_client() -> IdentityProvider:
    return GoogleAuthClient()


def get_state_guard() -> StateTokenGuard:
    return StateTokenGuard(secure_cookie=settings.STATE_COOKIE_SECURE)


def get_login_flow(
    db: Session = Depends(get_db),
    provider: IdentityProvider = Depends(get_auth_client),
    issuer: CredentialIssuer = Depends(get_credential_issuer),
    guard: StateTokenGuard = Depends(get_state_guard),
) -> LoginFlow:
    """Assemble the login flow for one request (resolver uses this request's session)."""
    return LoginFlow(
        provider=provider,
        resolver=IdentityResolver(AccountRepository(db)),
        issuer=issuer,
        guard=guard,
        client_origin=settings.CLIENT_ORIGIN,
    )
