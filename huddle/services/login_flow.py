"""
Login Flow - orchestrates Google sign-in from redirect to session credential.

OAuth Flow:
===========
1. Browser hits GET /auth/google/login
   → state issued, stored in the oauth_state cookie, 307 to Google
2. User consents on Google
3. Google redirects to GET /auth/google/callback?code=...&state=...
4. State checked against the cookie (cookie expired on every callback response)
5. Code exchanged for an access token (server to server)
6. Google profile fetched with the access token
7. Profile resolved to a local account (created on first login)
8. Session credential issued
9. 307 to <CLIENT_ORIGIN>/auth/callback?token=<credential>

Nothing is kept in memory between step 1 and step 3: the two requests are
correlated only by the cookie the browser carries. Each failure ends the
request with a plain-text 4xx/5xx; nothing is retried, the user restarts
the login.

Security:
=========
- The credential transits the browser URL once; the web client must strip it
  from the address bar after reading it.
- Access tokens and credentials never appear in logs.
"""

import logging
from typing import Optional
from urllib.parse import urlencode

from starlette.responses import PlainTextResponse, RedirectResponse, Response

from huddle.core.security import CredentialIssuer, CredentialSigningFailed
from huddle.core.state import CsrfMismatch, StateTokenGuard
from huddle.environments.base import AuthenticationError, IdentityProvider
from huddle.services.identity import (
    AccountPersistenceFailed,
    EmailAlreadyRegistered,
    EmailNotVerified,
    IdentityResolver,
)

logger = logging.getLogger("huddle.services.login_flow")

# Path on the web client that receives the credential
CLIENT_CALLBACK_PATH = "/auth/callback"


# ---------------------------------------------------------------------------
# FLOW ERRORS
# ---------------------------------------------------------------------------

class LoginFlowError(Exception):
    """Base class for failures raised by the flow itself."""
    pass


class AuthorizationDenied(LoginFlowError):
    """Google redirected back with ?error= (user declined, bad client...)."""
    pass


class MissingAuthorizationCode(LoginFlowError):
    """Callback arrived without ?code=."""
    pass


class ProviderExchangeFailed(LoginFlowError):
    """The token endpoint rejected the code or was unreachable."""
    pass


class ProviderProfileFetchFailed(LoginFlowError):
    """The userinfo endpoint failed."""
    pass


# exception type → (HTTP status, plain-text reason sent to the browser)
FAILURE_RESPONSES: dict[type[Exception], tuple[int, str]] = {
    CsrfMismatch: (400, "Invalid state"),
    AuthorizationDenied: (400, "Authorization denied"),
    MissingAuthorizationCode: (400, "No authorization code"),
    ProviderExchangeFailed: (502, "Failed to exchange token"),
    ProviderProfileFetchFailed: (502, "Failed to get user info"),
    EmailAlreadyRegistered: (409, "Email already registered"),
    EmailNotVerified: (403, "Email not verified"),
    AccountPersistenceFailed: (500, "Failed to resolve account"),
    CredentialSigningFailed: (500, "Failed to generate token"),
}


# Anything not listed above is a bug, still answered so the cookie gets cleared
UNEXPECTED_FAILURE = (500, "Login failed")


def failure_response_for(error: Exception) -> tuple[int, str]:
    for error_type, outcome in FAILURE_RESPONSES.items():
        if isinstance(error, error_type):
            return outcome
    return UNEXPECTED_FAILURE


# ---------------------------------------------------------------------------
# COORDINATOR
# ---------------------------------------------------------------------------

class LoginFlow:
    """
    Wires the state guard, provider client, identity resolver and
    credential issuer into the two login endpoints.

    Built per request (see huddle.deps.get_login_flow) because the resolver
    holds that request's database session.
    """

    def __init__(
        self,
        provider: IdentityProvider,
        resolver: IdentityResolver,
        issuer: CredentialIssuer,
        guard: StateTokenGuard,
        client_origin: str,
    ):
        self.provider = provider
        self.resolver = resolver
        self.issuer = issuer
        self.guard = guard
        self.client_origin = client_origin.rstrip("/")

    # -------------------------------------------------------------------------
    # STEP 1: START
    # -------------------------------------------------------------------------

    def start_login(self) -> RedirectResponse:
        """
        Redirect the browser to Google's consent screen.

        Returns:
            307 RedirectResponse carrying the oauth_state cookie
        """
        state = self.guard.issue()
        auth_url = self.provider.get_authorization_url(state=state)

        response = RedirectResponse(url=auth_url, status_code=307)
        self.guard.set_cookie(response, state)

        logger.info(f"Redirecting user to {self.provider.provider_name} OAuth")
        return response

    # -------------------------------------------------------------------------
    # STEP 2: CALLBACK
    # -------------------------------------------------------------------------

    async def handle_callback(
        self,
        code: Optional[str],
        state: Optional[str],
        cookie_state: Optional[str],
        error: Optional[str] = None,
        path: str = "/auth/google/callback",
    ) -> Response:
        """
        Complete the login and redirect to the web client with a credential.

        Args:
            code: ?code= from Google
            state: ?state= from Google
            cookie_state: Value of the oauth_state cookie
            error: ?error= from Google, if the user declined
            path: Request path, for log context

        Returns:
            307 to the client callback on success, plain-text 4xx/5xx otherwise.
            The state cookie is expired on every outcome.
        """
        logger.info(f"OAuth callback received on {path}")

        try:
            response: Response = await self._complete_login(code, state, cookie_state, error)
        except Exception as e:
            status_code, reason = failure_response_for(e)
            self._log_failure(path, status_code, e)
            response = PlainTextResponse(reason, status_code=status_code)

        self.guard.clear_cookie(response)
        return response

    async def _complete_login(
        self,
        code: Optional[str],
        state: Optional[str],
        cookie_state: Optional[str],
        error: Optional[str],
    ) -> Response:
        # CSRF check comes first: no network call on a bad state
        self.guard.verify(cookie_state, state)

        if error:
            raise AuthorizationDenied(f"Provider returned error: {error}")
        if not code:
            raise MissingAuthorizationCode("No authorization code received")

        try:
            tokens = await self.provider.exchange_code_for_tokens(code=code)
        except AuthenticationError as e:
            raise ProviderExchangeFailed(str(e)) from e

        try:
            profile = await self.provider.get_user_info(tokens.access_token)
        except AuthenticationError as e:
            raise ProviderProfileFetchFailed(str(e)) from e

        user = self.resolver.resolve(profile)
        credential = self.issuer.issue(user)

        redirect_url = (
            f"{self.client_origin}{CLIENT_CALLBACK_PATH}?{urlencode({'token': credential})}"
        )
        logger.info(f"Redirecting account {user.id} to client with token")
        return RedirectResponse(url=redirect_url, status_code=307)

    @staticmethod
    def _log_failure(path: str, status_code: int, error: Exception) -> None:
        cause = error.__cause__
        provider_status = getattr(cause, "status_code", None)
        message = f"Login failed on {path}: {type(error).__name__}: {error}"
        if provider_status is not None:
            message += f" (provider status {provider_status})"

        if status_code >= 500:
            # Traceback only for errors the flow does not expect
            logger.error(message, exc_info=not isinstance(error, tuple(FAILURE_RESPONSES)))
        else:
            logger.warning(message)
