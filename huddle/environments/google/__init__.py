"""
Google Environment Module - Google identity integration.

google/
├── __init__.py           # Module exports
└── auth/                 # OAuth login
    ├── __init__.py
    ├── client.py         # Google OAuth implementation
    └── schemas.py        # Auth data structures
"""

from huddle.environments.google.auth import GoogleAuthClient, PROFILE_SCOPES

__all__ = [
    "GoogleAuthClient",
    "PROFILE_SCOPES",
]
