"""
OAuth state guard - anti-CSRF value for the Google login round trip.

The state value is generated on /auth/google/login, sent to Google in the
authorization URL, and also stored in an HttpOnly cookie. Google echoes it
back on /auth/google/callback, where both copies must match.

There is no server-side store: the cookie itself is the state, so the login
flow works across any number of workers. The cookie is single-use and is
expired on the callback response whatever the outcome.
"""

import secrets
from typing import Optional

from starlette.responses import Response

# Cookie name shared by the login and callback endpoints
STATE_COOKIE_NAME = "oauth_state"

# Cookie lifetime: the user has 10 minutes to complete the Google consent
STATE_COOKIE_MAX_AGE = 10 * 60

# Cookie is only sent back to the OAuth endpoints
STATE_COOKIE_PATH = "/auth/google"


class CsrfMismatch(Exception):
    """Raised when the callback state does not match the state cookie."""
    pass


class StateTokenGuard:
    """
    Mints and verifies the one-time OAuth state value.

    Usage:
        guard = StateTokenGuard()

        # Login: generate and remember in a cookie
        state = guard.issue()
        guard.set_cookie(response, state)

        # Callback: compare cookie with query, then always clear
        guard.verify(request.cookies.get(STATE_COOKIE_NAME), query_state)
        guard.clear_cookie(response)
    """

    def __init__(self, secure_cookie: bool = False):
        self.secure_cookie = secure_cookie

    @staticmethod
    def issue() -> str:
        """
        Generate a cryptographically secure state value.

        Returns:
            URL-safe string encoding 32 random bytes (256 bits)
        """
        return secrets.token_urlsafe(32)

    @staticmethod
    def verify(cookie_value: Optional[str], callback_value: Optional[str]) -> None:
        """
        Check the callback state against the cookie.

        Args:
            cookie_value: Value of the oauth_state cookie (None if absent)
            callback_value: The ?state= query parameter (None if absent)

        Raises:
            CsrfMismatch: If either side is missing or they differ
        """
        if not cookie_value or not callback_value:
            raise CsrfMismatch("Missing state cookie or state parameter")

        # compare_digest: timing-safe equality
        if not secrets.compare_digest(
            cookie_value.encode("utf-8"), callback_value.encode("utf-8")
        ):
            raise CsrfMismatch("State parameter does not match cookie")

    def set_cookie(self, response: Response, state: str) -> None:
        """Store the state on the response as a short-lived HttpOnly cookie."""
        response.set_cookie(
            key=STATE_COOKIE_NAME,
            value=state,
            max_age=STATE_COOKIE_MAX_AGE,
            path=STATE_COOKIE_PATH,
            httponly=True,
            secure=self.secure_cookie,
            samesite="lax",
        )

    def clear_cookie(self, response: Response) -> None:
        """Expire the state cookie (empty value, expiry in the past)."""
        response.delete_cookie(
            key=STATE_COOKIE_NAME,
            path=STATE_COOKIE_PATH,
            httponly=True,
            secure=self.secure_cookie,
            samesite="lax",
        )
