"""
Google Auth Router - sign in to Huddle with a Google account.

Endpoints:
==========
- GET /auth/google/login    → 307 to Google consent screen, sets oauth_state cookie
- GET /auth/google/callback → 307 to the web client with a session credential

The flow itself lives in huddle.services.login_flow; this router only
extracts the query parameters and cookie.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse, Response

from huddle.core.state import STATE_COOKIE_NAME
from huddle.deps import get_login_flow
from huddle.services.login_flow import LoginFlow


router = APIRouter(prefix="/auth/google", tags=["google-auth"])


@router.get("/login")
def google_login(flow: LoginFlow = Depends(get_login_flow)) -> RedirectResponse:
    """
    Initiate Google OAuth login.

    Public endpoint: the browser navigates here from the "Sign in with
    Google" button.
    """
    return flow.start_login()


@router.get("/callback")
async def google_callback(
    request: Request,
    code: Optional[str] = Query(None, description="Authorization code from Google"),
    state: Optional[str] = Query(None, description="CSRF state token"),
    error: Optional[str] = Query(None, description="Error from Google"),
    flow: LoginFlow = Depends(get_login_flow),
) -> Response:
    """
    Handle the Google OAuth callback.

    Returns:
        307 to <CLIENT_ORIGIN>/auth/callback?token=... on success,
        plain-text 400/409/500/502 with the reason otherwise
    """
    return await flow.handle_callback(
        code=code,
        state=state,
        cookie_state=request.cookies.get(STATE_COOKIE_NAME),
        error=error,
        path=request.url.path,
    )
