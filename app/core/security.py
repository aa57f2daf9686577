"""Password hashing and JWT creation/verification for authentication."""

import base64
import hashlib
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any, Protocol

import bcrypt
import jwt

# Tokens are valid for exactly this long after issuance; there is no refresh.
TOKEN_LIFETIME = timedelta(hours=24)

# Min length for passwords set through the API or CLI.
PASSWORD_MIN_LEN = 4
USERNAME_MAX_LEN = 255


class TokenError(Exception):
    """Base class for token verification failures."""


class TokenInvalid(TokenError):
    """Signature mismatch, malformed structure, or missing/mistyped claims."""


class TokenExpired(TokenError):
    """The token's exp claim is in the past."""


class _TokenSubject(Protocol):
    id: Any
    username: Any
    is_admin: Any


class PasswordHasher:
    """One-way bcrypt hashing with a per-hash random salt."""

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    @staticmethod
    def _prepare(plain_password: str) -> bytes:
        # bcrypt only reads the first 72 bytes; pre-hash so longer passwords cannot collide.
        digest = hashlib.sha256(plain_password.encode("utf-8")).digest()
        return base64.b64encode(digest)

    def hash(self, plain_password: str) -> str:
        """Hash a plain-text password for storage. Do not store plain passwords."""
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(self._prepare(plain_password), salt).decode("utf-8")

    def verify(self, plain_password: str, hashed: str) -> bool:
        """Verify a plain password against a stored hash; False for malformed hashes."""
        try:
            return bcrypt.checkpw(self._prepare(plain_password), hashed.encode("utf-8"))
        except (ValueError, TypeError, AttributeError):
            return False


@dataclass(frozen=True)
class Claims:
    """Verified token payload."""

    subject_id: str
    username: str
    is_admin: bool
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """Issues and verifies HMAC-signed bearer tokens with a fixed 24h lifetime."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if not secret or not secret.strip():
            raise ValueError("JWT secret must be set and non-empty")
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock or (lambda: datetime.now(UTC))

    def issue(self, user: _TokenSubject) -> str:
        """Create a JWT carrying sub (user id), username, is_admin, iat and exp."""
        issued_at = int(self._clock().timestamp())
        payload: dict[str, Any] = {
            "sub": str(user.id),
            "username": user.username,
            "is_admin": bool(user.is_admin),
            "iat": issued_at,
            "exp": issued_at + int(TOKEN_LIFETIME.total_seconds()),
        }
        return jwt.encode(payload, self._secret, algorithm=self._algorithm)

    def verify(self, token: str) -> Claims:
        """
        Decode and validate a JWT; return its claims.
        Raises TokenExpired when the service clock is past exp, TokenInvalid for anything else.
        """
        try:
            # Time claims are checked below against self._clock, not the wall clock.
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "require": ["sub", "iat", "exp"],
                    "verify_exp": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as e:
            raise TokenInvalid(str(e)) from e

        sub = payload.get("sub")
        username = payload.get("username")
        is_admin = payload.get("is_admin")
        iat = payload.get("iat")
        exp = payload.get("exp")
        if not isinstance(sub, str) or not sub:
            raise TokenInvalid("invalid sub claim")
        if not isinstance(username, str) or not isinstance(is_admin, bool):
            raise TokenInvalid("invalid identity claims")
        if not isinstance(iat, int) or not isinstance(exp, int):
            raise TokenInvalid("invalid time claims")
        expires_at = datetime.fromtimestamp(exp, UTC)
        if self._clock() > expires_at:
            raise TokenExpired("token expired")
        return Claims(
            subject_id=sub,
            username=username,
            is_admin=is_admin,
            issued_at=datetime.fromtimestamp(iat, UTC),
            expires_at=expires_at,
        )
