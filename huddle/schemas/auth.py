"""
Auth schemas - Pydantic models for session credentials.
Pydantic models define the shape of data and validate decoded token payloads.
"""

from datetime import datetime

from pydantic import BaseModel


class SessionClaims(BaseModel):
    """
    Claim set carried by a session credential (JWT payload).

    Example payload:
    {
        "sub": "42",
        "email": "ada@example.com",
        "username": "Ada Lovelace",
        "iat": 1701500000,
        "exp": 1701586400
    }
    """
    # sub: Subject claim - the account id as a string (JWT requires a string)
    sub: str

    email: str
    username: str

    # iat / exp: Unix timestamps (seconds)
    iat: int
    exp: int


class SessionIdentity(BaseModel):
    """
    Decoded identity attached to a request by the credential middleware.

    Handlers receive this (or None) through get_optional_identity.
    It is built from the signed token only; no database lookup is involved.
    """
    user_id: int
    email: str
    username: str
    issued_at: datetime
    expires_at: datetime
