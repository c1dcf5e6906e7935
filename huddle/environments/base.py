"""
Base classes and interfaces for external identity providers.

This module defines the contract an OAuth2 identity provider client must
implement, and the provider-agnostic data it hands back to the login flow.
Google is the only provider wired today (environments/google/).
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional


# ---------------------------------------------------------------------------
# CUSTOM EXCEPTIONS
# ---------------------------------------------------------------------------

class ProviderError(Exception):
    """Base exception for all identity-provider errors."""
    pass


class AuthenticationError(ProviderError):
    """
    Raised when a call to the provider fails.

    status_code is the provider's HTTP status when it answered, None for
    network-level failures (DNS, timeout, connection reset).
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


# ---------------------------------------------------------------------------
# DATA STRUCTURES
# ---------------------------------------------------------------------------

@dataclass
class OAuthTokens:
    """
    Token data returned by a provider's token endpoint.

    Only access_token is used by the login flow; the rest is kept for
    logging and future use.
    """
    access_token: str
    token_type: str = "Bearer"
    refresh_token: Optional[str] = None
    expires_at: Optional[datetime] = None
    scopes: Optional[List[str]] = None


@dataclass
class UserInfo:
    """
    External profile fetched from the provider once per login.

    Transient: consumed by the identity resolver, never stored as-is.
    """
    provider_user_id: str  # Unique ID from the provider (e.g. Google's "id")
    email: Optional[str] = None
    name: Optional[str] = None
    picture_url: Optional[str] = None
    # False only when the provider says the email is unverified; None if unknown
    email_verified: Optional[bool] = None


# ---------------------------------------------------------------------------
# ABSTRACT BASE CLASS
# ---------------------------------------------------------------------------

class IdentityProvider(ABC):
    """
    Abstract base class for OAuth2 identity providers.

    A provider is responsible for:
    - Generating authorization URLs
    - Exchanging authorization codes for tokens
    - Fetching the user's profile with an access token
    """

    # Unique identifier stored on accounts (users.provider)
    provider_name: str = ""

    # Public client id, embedded in the authorization URL
    client_id: str = ""

    @abstractmethod
    def get_authorization_url(self, state: str) -> str:
        """
        Build the URL the browser is redirected to for consent.

        Args:
            state: CSRF protection state parameter

        Returns:
            Provider authorization URL
        """
        pass

    @abstractmethod
    async def exchange_code_for_tokens(self, code: str) -> OAuthTokens:
        """
        Exchange an authorization code for tokens (server to server).

        Raises:
            AuthenticationError: If the exchange fails
        """
        pass

    @abstractmethod
    async def get_user_info(self, access_token: str) -> UserInfo:
        """
        Fetch the authenticated user's profile.

        Raises:
            AuthenticationError: If the request fails
        """
        pass
