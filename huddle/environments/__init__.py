"""
Environments Module - External identity providers.

environments/
├── __init__.py           # Module exports
├── base.py               # Provider base class, shared data, errors
└── google/               # Google OAuth login
"""

from huddle.environments.base import (
    AuthenticationError,
    IdentityProvider,
    OAuthTokens,
    ProviderError,
    UserInfo,
)

__all__ = [
    "AuthenticationError",
    "IdentityProvider",
    "OAuthTokens",
    "ProviderError",
    "UserInfo",
]
