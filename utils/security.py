"""
security helpers:
- Argon2 password hashing via argon2-cffi (the credential verifier)
- JWT creation/verification via PyJWT (the token codec)
- JTI generation for token identifiers
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, VerifyMismatchError, InvalidHashError

TOKEN_TYPE_ACCESS = "access"
TOKEN_TYPE_REFRESH = "refresh"
TOKEN_TYPES = (TOKEN_TYPE_ACCESS, TOKEN_TYPE_REFRESH)

DEFAULT_ISSUER = "event-checkin-api"

ph = PasswordHasher()
# Compared against when the e-mail is unknown, so that path costs one argon2 verify too.
_DUMMY_HASH = ph.hash("event-checkin-api/dummy-password")


class TokenError(Exception):
    """Base class for token codec failures."""


class InvalidTokenError(TokenError):
    """Malformed token, bad signature, wrong secret or missing claims."""


class ExpiredTokenError(TokenError):
    """Signature is valid but the token is past its expiry."""


class TokenSigningError(TokenError):
    """The token could not be signed."""


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerifyMismatchError, VerificationError, InvalidHashError):
        return False


def dummy_verify(password: str) -> None:
    verify_password(password, _DUMMY_HASH)


def generate_jti() -> str:
    """Generate a unique JTI (JWT ID).
    """
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenClaims:
    subject_id: str
    role: str
    token_type: str
    issued_at: datetime
    expires_at: datetime
    token_id: str

    @property
    def is_access(self) -> bool:
        return self.token_type == TOKEN_TYPE_ACCESS

    @property
    def is_refresh(self) -> bool:
        return self.token_type == TOKEN_TYPE_REFRESH


class TokenCodec:
    """
    Signs and verifies HS256 JWTs carrying subject, role and token type.

    The secret is given at construction; rotate it by building a new codec.
    The codec does not check the token type on parse, callers must.
    """

    def __init__(
        self,
        secret: str,
        algorithm: str = "HS256",
        issuer: str = DEFAULT_ISSUER,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        if not secret:
            raise ValueError("jwt secret cannot be empty")
        self._secret = secret
        self.algorithm = algorithm
        self.issuer = issuer
        self._clock = clock or _utcnow

    def now(self) -> datetime:
        return self._clock()

    def issue_access_token(self, subject_id: str, role: str, ttl: timedelta) -> str:
        return self._issue(subject_id, role, ttl, TOKEN_TYPE_ACCESS)

    def issue_refresh_token(self, subject_id: str, role: str, ttl: timedelta) -> str:
        return self._issue(subject_id, role, ttl, TOKEN_TYPE_REFRESH)

    def _issue(self, subject_id: str, role: str, ttl: timedelta, token_type: str) -> str:
        if not subject_id:
            raise ValueError("subject id cannot be empty")
        if ttl.total_seconds() <= 0:
            raise ValueError("expiry duration must be positive")
        try:
            uuid.UUID(str(subject_id))
        except ValueError as exc:
            raise ValueError(f"invalid subject id format: {subject_id!r}") from exc

        now = self.now()
        payload = {
            "iss": self.issuer,
            "sub": str(subject_id),
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": generate_jti(),
            "role": role,
            "token_type": token_type,
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self.algorithm)
        except jwt.PyJWTError as exc:
            raise TokenSigningError("failed to sign token") from exc

    def parse_and_verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a JWT.
        Raises ExpiredTokenError past expiry, InvalidTokenError for anything else.
        """
        if not token:
            raise InvalidTokenError("invalid token")
        try:
            # Time claims are checked below against the codec's own clock.
            decoded = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    "require": ["exp", "iat", "sub", "jti"],
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidTokenError(f"invalid token: {exc}") from exc

        exp, iat = decoded.get("exp"), decoded.get("iat")
        if not isinstance(exp, (int, float)) or not isinstance(iat, (int, float)):
            raise InvalidTokenError("invalid token claims: exp and iat must be numeric")
        now = self.now().timestamp()
        if exp <= now:
            raise ExpiredTokenError("token has expired")
        nbf = decoded.get("nbf")
        if nbf is not None and (not isinstance(nbf, (int, float)) or nbf > now):
            raise InvalidTokenError("invalid token: not yet valid")

        token_type = decoded.get("token_type")
        role = decoded.get("role")
        if token_type not in TOKEN_TYPES or not isinstance(role, str):
            raise InvalidTokenError("invalid token claims")
        try:
            subject_id = str(uuid.UUID(decoded["sub"]))
        except (ValueError, TypeError, AttributeError) as exc:
            raise InvalidTokenError("invalid token claims: subject is not a valid id") from exc

        return TokenClaims(
            subject_id=subject_id,
            role=role,
            token_type=token_type,
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
            token_id=str(decoded["jti"]),
        )

    def remaining_lifetime(self, claims: TokenClaims) -> timedelta:
        """Time left until `claims` expires, by the codec's clock."""
        return claims.expires_at - self.now()
