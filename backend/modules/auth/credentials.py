"""
Password hashing and bearer-token utilities.

Neither class touches persistence: PasswordHasher is a thin bcrypt wrapper
and TokenIssuer signs and checks HS256 JWTs with a fixed 24 hour lifetime.

Example:
    >>> hasher = PasswordHasher(rounds=4)
    >>> hashed = hasher.hash("secret1")
    >>> hasher.verify(hashed, "secret1")
    True
    >>> issuer = TokenIssuer(secret="...")
    >>> claims = issuer.parse(issuer.issue("user-123", "admin"))
    >>> claims.role
    'admin'
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import bcrypt
import jwt

from .exceptions import (
    ExpiredTokenError,
    InvalidTokenError,
    PasswordHashingError,
    TokenSigningError,
)
from .models import TokenClaims

TOKEN_LIFETIME = timedelta(hours=24)
REQUIRED_CLAIMS = ["exp", "iat", "user_id", "role"]


class PasswordHasher:
    """
    Salted one-way password hashing using bcrypt.

    Every call to hash() generates a fresh salt, so two hashes of the same
    password differ while both verify against it.
    """

    def __init__(self, rounds: int = 12, logger: Optional[logging.Logger] = None) -> None:
        """
        Args:
            rounds: bcrypt work factor. 12 takes roughly 250ms; tests use 4.
            logger: Logger for verification anomalies.
        """
        self._rounds = rounds
        self._logger = logger or logging.getLogger(__name__)

    def hash(self, password: str) -> str:
        """
        Hash a plaintext password.

        Raises:
            PasswordHashingError: If the password is empty or bcrypt rejects
                it (for example, input longer than 72 bytes).
        """
        if not password:
            raise PasswordHashingError("Password cannot be empty")
        try:
            hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=self._rounds))
        except (ValueError, TypeError) as exc:
            raise PasswordHashingError(cause=exc) from exc
        return hashed.decode("utf-8")

    def verify(self, password_hash: str, password: str) -> bool:
        """Return True when ``password`` matches ``password_hash``."""
        if not password or not password_hash:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
        except (ValueError, TypeError) as exc:
            self._logger.warning("Password verification failed: %s", exc.__class__.__name__)
            return False


class TokenIssuer:
    """Issues and parses signed, time-bounded bearer tokens."""

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        """
        Args:
            secret: HMAC signing key
            algorithm: JWT algorithm
            clock: Returns the issuance time; defaults to UTC now
        """
        self._secret = secret
        self._algorithm = algorithm
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def issue(self, user_id: str, role: str) -> str:
        """
        Sign a token for ``user_id`` that expires 24 hours from now.

        Raises:
            TokenSigningError: If the signing primitive fails.
        """
        issued_at = self._clock()
        payload = {
            "sub": user_id,
            "user_id": user_id,
            "role": role,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + TOKEN_LIFETIME).timestamp()),
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, TypeError, ValueError, NotImplementedError) as exc:
            raise TokenSigningError(cause=exc) from exc

    def parse(self, token: str) -> TokenClaims:
        """
        Validate a token's signature, expiry and shape.

        Raises:
            ExpiredTokenError: If the token is past its expiry.
            InvalidTokenError: For any other signature or structure problem.
        """
        if not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={"require": REQUIRED_CLAIMS},
            )
        except jwt.ExpiredSignatureError as exc:
            raise ExpiredTokenError(cause=exc) from exc
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(cause=exc) from exc

        user_id = payload["user_id"]
        if not isinstance(user_id, str) or not user_id:
            raise InvalidTokenError()

        return TokenClaims(
            user_id=user_id,
            role=str(payload["role"]),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
