"""
Credential middleware - optional bearer authentication for every request.

For each request:
1. No Authorization header → continue anonymously
2. Header not "Bearer <token>" → continue anonymously
3. Token fails verification → log the reason, continue anonymously
4. Token verifies → request.state.identity = SessionIdentity

The middleware never rejects a request. Endpoints that require a signed-in
user depend on huddle.deps.get_current_identity, which answers 401 itself.
Public and mixed endpoints read huddle.deps.get_optional_identity.

request.state lives in the ASGI scope of one request, so the identity is
gone when the request ends.
"""

import logging
from typing import Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from huddle.core.security import CredentialError, CredentialVerifier
from huddle.schemas.auth import SessionIdentity

logger = logging.getLogger("huddle.middleware.auth")

BEARER_PREFIX = "Bearer "


def extract_bearer_token(header_value: Optional[str]) -> Optional[str]:
    """Token from an Authorization header, or None if absent/not Bearer."""
    if not header_value or not header_value.startswith(BEARER_PREFIX):
        return None
    token = header_value[len(BEARER_PREFIX):].strip()
    return token or None


class CredentialMiddleware(BaseHTTPMiddleware):
    """
    Attaches the verified session identity to request.state.

    Usage:
        app.add_middleware(CredentialMiddleware, verifier=CredentialVerifier(secret))
    """

    def __init__(self, app: ASGIApp, verifier: CredentialVerifier):
        super().__init__(app)
        self.verifier = verifier

    def authenticate(self, request: Request) -> Optional[SessionIdentity]:
        path = request.url.path
        header = request.headers.get("Authorization")

        if header is None:
            logger.debug(f"No Authorization header found for {path}")
            return None

        token = extract_bearer_token(header)
        if token is None:
            logger.info(f"Invalid Authorization header format for {path}")
            return None

        try:
            identity = self.verifier.verify(token)
        except CredentialError as e:
            logger.info(f"Invalid token for {path}: {type(e).__name__}")
            return None

        logger.debug(f"User authenticated for {path}: ID {identity.user_id}")
        return identity

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request.state.identity = self.authenticate(request)
        return await call_next(request)
