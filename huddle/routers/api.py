"""
API router - health check and a mixed-auth demo endpoint.

/api/hello works for everyone and personalizes the reply when the request
carries a valid credential. It is the reference for endpoints that are
public but richer for signed-in users.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from huddle.deps import get_optional_identity
from huddle.schemas.auth import SessionIdentity

logger = logging.getLogger("huddle.routers.api")

router = APIRouter(prefix="/api", tags=["api"])


class StatusResponse(BaseModel):
    message: str
    status: str


class HelloResponse(StatusResponse):
    # Populated only for authenticated requests
    user: Optional[SessionIdentity] = None


@router.get("/health", response_model=StatusResponse)
def api_health():
    return StatusResponse(message="Server is healthy", status="ok")


@router.get("/hello", response_model=HelloResponse, response_model_exclude_none=True)
def hello(identity: Optional[SessionIdentity] = Depends(get_optional_identity)):
    """Greet the caller, by name when signed in."""
    if identity is None:
        logger.info("Unauthenticated request to /api/hello")
        return HelloResponse(message="Hello from Huddle!", status="success")

    logger.info(f"Authenticated request from user ID {identity.user_id}")
    return HelloResponse(
        message=f"Hello {identity.username}! You are authenticated.",
        status="success",
        user=identity,
    )
