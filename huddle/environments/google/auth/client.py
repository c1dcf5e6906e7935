"""
Google OAuth Client - Handles the OAuth 2.0 login flow with Google.

Implements the server-side authorization code flow:
1. get_authorization_url() → User redirected to Google
2. exchange_code_for_tokens() → Called in callback, gets an access token
3. get_user_info() → Fetch the Google profile for account resolution

Access tokens are only used for the single profile fetch and are never
logged or stored.

References:
===========
- OAuth 2.0: https://developers.google.com/identity/protocols/oauth2
- Token endpoint: https://oauth2.googleapis.com/token
- Userinfo: https://www.googleapis.com/oauth2/v2/userinfo
"""

import logging
from typing import Optional
from urllib.parse import urlencode

import httpx

from huddle.core.config import settings
from huddle.environments.base import (
    AuthenticationError,
    IdentityProvider,
    OAuthTokens,
    UserInfo,
)
from huddle.environments.google.auth.schemas import (
    PROFILE_SCOPES,
    GoogleTokenResponse,
    GoogleUserInfo,
)


logger = logging.getLogger("huddle.environments.google.auth")


class GoogleAuthClient(IdentityProvider):
    """
    Google OAuth 2.0 Client implementation.

    Example Usage:
        client = GoogleAuthClient()

        # Step 1: Generate auth URL
        auth_url = client.get_authorization_url(state="random-csrf-token")
        # Redirect user to auth_url

        # Step 2: Handle callback
        tokens = await client.exchange_code_for_tokens(code="abc123")

        # Step 3: Get user info
        user_info = await client.get_user_info(tokens.access_token)
    """

    provider_name = "google"

    # Google OAuth endpoints
    AUTHORIZATION_URL = "https://accounts.google.com/o/oauth2/v2/auth"
    TOKEN_URL = "https://oauth2.googleapis.com/token"
    USERINFO_URL = "https://www.googleapis.com/oauth2/v2/userinfo"

    def __init__(
        self,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        redirect_uri: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the Google OAuth client.

        Args:
            client_id: Google OAuth Client ID (defaults to settings)
            client_secret: Google OAuth Client Secret (defaults to settings)
            redirect_uri: OAuth callback URL (defaults to settings)
            timeout: Per-request timeout in seconds for Google calls
            transport: Optional httpx transport (tests pass httpx.MockTransport)
        """
        self.client_id = client_id or settings.GOOGLE_CLIENT_ID
        self.client_secret = client_secret or settings.GOOGLE_CLIENT_SECRET
        self.redirect_uri = redirect_uri or settings.GOOGLE_REDIRECT_URI
        self.timeout = timeout
        self._transport = transport

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    # -------------------------------------------------------------------------
    # AUTHORIZATION URL
    # -------------------------------------------------------------------------

    def get_authorization_url(self, state: str) -> str:
        """
        Generate the Google OAuth authorization URL.

        Args:
            state: CSRF protection token (also stored in the state cookie)

        Returns:
            Full authorization URL to redirect the user to

        access_type=offline asks Google for a refresh token as well; the
        login flow never uses it.
        """
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": " ".join(PROFILE_SCOPES),
            "state": state,
            "access_type": "offline",
        }
        return f"{self.AUTHORIZATION_URL}?{urlencode(params)}"

    # -------------------------------------------------------------------------
    # TOKEN EXCHANGE
    # -------------------------------------------------------------------------

    async def exchange_code_for_tokens(self, code: str) -> OAuthTokens:
        """
        Exchange authorization code for an access token.

        Args:
            code: Authorization code from the Google callback

        Returns:
            OAuthTokens with access_token and metadata

        Raises:
            AuthenticationError: If Google rejects the code or is unreachable
        """
        token_data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "code": code,
            "grant_type": "authorization_code",
            "redirect_uri": self.redirect_uri,
        }

        logger.info("Exchanging authorization code for tokens")

        async with self._http_client() as client:
            try:
                response = await client.post(self.TOKEN_URL, data=token_data)
            except httpx.RequestError as e:
                logger.error(f"Network error during token exchange: {e}")
                raise AuthenticationError(f"Network error: {e}") from e

        if response.status_code != 200:
            error_msg = _error_description(response)
            logger.error(
                f"Token exchange failed with status {response.status_code}: {error_msg}"
            )
            raise AuthenticationError(
                f"Token exchange failed: {error_msg}",
                status_code=response.status_code,
            )

        try:
            token_response = GoogleTokenResponse.model_validate(response.json())
        except ValueError as e:
            raise AuthenticationError(
                f"Malformed token response: {e}", status_code=response.status_code
            ) from e

        logger.info(
            "Successfully obtained Google tokens",
            extra={
                "expires_in": token_response.expires_in,
                "scopes": token_response.get_scopes_list(),
            },
        )

        return OAuthTokens(
            access_token=token_response.access_token,
            token_type=token_response.token_type,
            refresh_token=token_response.refresh_token,
            expires_at=token_response.get_expires_at(),
            scopes=token_response.get_scopes_list(),
        )

    # -------------------------------------------------------------------------
    # USER INFO
    # -------------------------------------------------------------------------

    async def get_user_info(self, access_token: str) -> UserInfo:
        """
        Get the user's Google profile.

        Args:
            access_token: Access token from the code exchange

        Returns:
            UserInfo with the Google id, email, name and picture

        Raises:
            AuthenticationError: If the request fails or the body is invalid
        """
        logger.info("Fetching user info from Google")

        async with self._http_client() as client:
            try:
                response = await client.get(
                    self.USERINFO_URL,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.RequestError as e:
                logger.error(f"Network error fetching user info: {e}")
                raise AuthenticationError(f"Network error: {e}") from e

        if response.status_code != 200:
            logger.error(f"Failed to fetch user info: status {response.status_code}")
            raise AuthenticationError(
                f"Google API returned status: {response.status_code}",
                status_code=response.status_code,
            )

        try:
            google_user = GoogleUserInfo.model_validate(response.json())
        except ValueError as e:
            raise AuthenticationError(
                f"Malformed user info: {e}", status_code=response.status_code
            ) from e

        return UserInfo(
            provider_user_id=google_user.id,
            email=google_user.email,
            name=google_user.name,
            picture_url=google_user.picture,
            email_verified=google_user.verified_email,
        )


def _error_description(response: httpx.Response) -> str:
    """Best-effort error text from a Google error response."""
    try:
        data = response.json()
    except ValueError:
        return response.text
    if isinstance(data, dict):
        return data.get("error_description") or data.get("error") or response.text
    return response.text
