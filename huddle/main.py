"""
Main application entry point - FastAPI app instance and configuration.
This is where the ASGI application is created and configured.
Run with: uvicorn huddle.main:app --reload --port 8080
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from huddle.core.config import settings
from huddle.core.logging import configure_logging
from huddle.deps import get_credential_verifier
from huddle.middleware.auth import CredentialMiddleware
from huddle.routers import api, google_auth, users

logger = logging.getLogger("huddle.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Startup checks.

    Missing provider configuration is fatal here rather than a per-request
    error on /auth/google/login.
    """
    configure_logging(settings.LOG_LEVEL)

    missing = settings.missing_oauth_settings()
    if missing:
        logger.error(f"OAuth not configured - missing {', '.join(missing)}")
        raise RuntimeError(f"Missing required settings: {', '.join(missing)}")

    logger.info(f"Starting {settings.APP_NAME}")
    yield


# ---------------------------------------------------------------------------
# CREATE FASTAPI APPLICATION
# ---------------------------------------------------------------------------
app = FastAPI(
    title=settings.APP_NAME,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# ---------------------------------------------------------------------------
# MIDDLEWARE
# ---------------------------------------------------------------------------
# Starlette runs the last-added middleware first, so CORS wraps the
# credential middleware and preflight OPTIONS requests never reach it.
#
# CredentialMiddleware: attaches request.state.identity when a valid
# "Authorization: Bearer <token>" is present; never rejects a request.
app.add_middleware(CredentialMiddleware, verifier=get_credential_verifier())

# CORS: the web client runs on a different origin (CLIENT_ORIGIN) and sends
# the Authorization header on API calls.
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)

# ---------------------------------------------------------------------------
# REGISTER ROUTERS
# ---------------------------------------------------------------------------
# google_auth.router: /auth/google/login, /auth/google/callback
# users.router: /users/me
# api.router: /api/health, /api/hello
app.include_router(google_auth.router)
app.include_router(users.router)
app.include_router(api.router)


@app.get("/health", tags=["health"])
def health_check():
    """
    Liveness probe for load balancers and container health checks.

    Does NOT check database connectivity.
    """
    return {"status": "ok"}
