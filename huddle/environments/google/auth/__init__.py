"""
Google Auth Module - OAuth 2.0 login with Google.

Login only requests the profile scopes (openid, profile, email); the access
token is used once to read the profile and then discarded.
"""

from huddle.environments.google.auth.client import GoogleAuthClient
from huddle.environments.google.auth.schemas import (
    GoogleTokenResponse,
    GoogleUserInfo,
    PROFILE_SCOPES,
)

__all__ = [
    "GoogleAuthClient",
    "GoogleTokenResponse",
    "GoogleUserInfo",
    "PROFILE_SCOPES",
]
