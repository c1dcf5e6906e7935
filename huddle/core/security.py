"""
Security utilities - session credential issuing and verification.

A session credential is a JWT signed with HMAC-SHA256 (HS256) using the
service SECRET_KEY. It is self-contained: verifying it needs only the
secret and the clock, never the database.

JWT Structure (3 parts separated by dots):
    1. Header: {"alg": "HS256", "typ": "JWT"}
    2. Payload: {"sub": "42", "email": ..., "username": ..., "iat": ..., "exp": ...}
    3. Signature: HMAC-SHA256(header + payload, SECRET_KEY)

The secret, algorithm and lifetime are injected when the issuer/verifier is
built; nothing here reads settings at call time.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Protocol

from jose import jwt  # python-jose library for JWT encoding/decoding
from jose.exceptions import ExpiredSignatureError, JOSEError, JWTClaimsError, JWTError
from pydantic import ValidationError

from huddle.schemas.auth import SessionClaims, SessionIdentity


# ---------------------------------------------------------------------------
# ERRORS
# ---------------------------------------------------------------------------

class CredentialSigningFailed(Exception):
    """Raised when a credential cannot be signed (configuration fault)."""
    pass


class CredentialError(Exception):
    """Base class for every reason a presented credential is rejected."""
    pass


class MalformedToken(CredentialError):
    """Token is not a parseable JWT or its claims are incomplete."""
    pass


class BadSignature(CredentialError):
    """Signature does not verify against the service secret."""
    pass


class Expired(CredentialError):
    """Token lifetime is over (now >= exp)."""
    pass


class UnsupportedAlgorithm(CredentialError):
    """Token header names an algorithm other than the configured one."""
    pass


class AccountLike(Protocol):
    """Anything carrying the fields a credential encodes (e.g. User)."""
    id: int
    email: str
    username: str


# ---------------------------------------------------------------------------
# ISSUER
# ---------------------------------------------------------------------------

class CredentialIssuer:
    """
    Builds and signs session credentials for resolved accounts.

    Example:
        issuer = CredentialIssuer(secret="...", lifetime=timedelta(hours=24))
        token = issuer.issue(user)
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        lifetime: timedelta = timedelta(hours=24),
    ):
        if not secret:
            raise ValueError("Credential signing secret is not configured")
        self._secret = secret
        self.algorithm = algorithm
        self.lifetime = lifetime

    def build_claims(self, account: AccountLike, now: datetime | None = None) -> dict[str, Any]:
        """Claim set for an account, timestamps as Unix seconds."""
        issued_at = now or datetime.now(timezone.utc)
        expires_at = issued_at + self.lifetime
        return {
            "sub": str(account.id),
            "email": account.email,
            "username": account.username,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }

    def issue(self, account: AccountLike) -> str:
        """
        Sign a credential for the account.

        Args:
            account: The resolved local account

        Returns:
            Signed JWT string (e.g. "eyJhbGciOiJIUzI1NiIs...")

        Raises:
            CredentialSigningFailed: If the JOSE library refuses to sign
                (unknown algorithm, unusable key)
        """
        claims = self.build_claims(account)
        try:
            return jwt.encode(claims, self._secret, algorithm=self.algorithm)
        except JOSEError as e:
            raise CredentialSigningFailed(f"Failed to sign credential: {e}") from e


# ---------------------------------------------------------------------------
# VERIFIER
# ---------------------------------------------------------------------------

class CredentialVerifier:
    """
    Validates presented session credentials.

    Checks, in order:
        1. The token parses and its header names the configured algorithm
           (blocks "none" / RS256-vs-HS256 substitution)
        2. The signature verifies against the secret
        3. The claim set is complete and now < exp
    """

    def __init__(self, secret: str, algorithm: str = "HS256"):
        if not secret:
            raise ValueError("Credential signing secret is not configured")
        self._secret = secret
        self.algorithm = algorithm

    def verify(self, token: str) -> SessionIdentity:
        """
        Decode a credential into the identity it carries.

        Raises:
            MalformedToken, UnsupportedAlgorithm, BadSignature, Expired
        """
        try:
            header = jwt.get_unverified_header(token)
        except JWTError as e:
            raise MalformedToken(str(e)) from e

        alg = header.get("alg")
        if alg != self.algorithm:
            raise UnsupportedAlgorithm(f"Unexpected signing algorithm: {alg}")

        try:
            payload = jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except ExpiredSignatureError as e:
            raise Expired(str(e)) from e
        except JWTClaimsError as e:
            raise MalformedToken(str(e)) from e
        except JWTError as e:
            if "signature" in str(e).lower():
                raise BadSignature(str(e)) from e
            raise MalformedToken(str(e)) from e

        try:
            claims = SessionClaims.model_validate(payload)
            user_id = int(claims.sub)
        except (ValidationError, ValueError) as e:
            raise MalformedToken(f"Invalid credential claims: {e}") from e

        # jose accepts exp == now; a credential is only valid strictly before exp
        now = datetime.now(timezone.utc)
        expires_at = datetime.fromtimestamp(claims.exp, tz=timezone.utc)
        if now >= expires_at:
            raise Expired("Signature has expired.")

        return SessionIdentity(
            user_id=user_id,
            email=claims.email,
            username=claims.username,
            issued_at=datetime.fromtimestamp(claims.iat, tz=timezone.utc),
            expires_at=expires_at,
        )
