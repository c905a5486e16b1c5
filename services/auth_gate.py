"""
Per-request authentication gate.

Every protected request consults the live revocation store; nothing about
revocation is cached in-process.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Optional

from models.errors import InvalidArgumentError, RevocationStoreError
from services.errors import ForbiddenError, InternalError, ServiceError, UnauthorizedError
from services.ports import RevocationStore
from utils.security import ExpiredTokenError, InvalidTokenError, TokenClaims, TokenCodec

logger = logging.getLogger(__name__)

BEARER_SCHEME = "bearer"


@dataclass(frozen=True)
class Identity:
    user_id: str
    role: str
    token: str
    claims: TokenClaims


def extract_bearer_token(header: Optional[str]) -> Optional[str]:
    """Return the token from 'Bearer <token>', or None if absent or malformed."""
    if not header:
        return None
    parts = header.split()
    if len(parts) != 2 or parts[0].lower() != BEARER_SCHEME:
        return None
    return parts[1]


class AuthGate:
    def __init__(self, codec: TokenCodec, revocation_store: RevocationStore):
        self.codec = codec
        self.revocation_store = revocation_store

    def authenticate(self, authorization_header: Optional[str]) -> Identity:
        token = extract_bearer_token(authorization_header)
        if token is None:
            raise UnauthorizedError("missing authorization token")

        try:
            claims = self.codec.parse_and_verify(token)
        except ExpiredTokenError:
            raise UnauthorizedError("token has expired")
        except InvalidTokenError:
            raise UnauthorizedError("invalid token")

        if not claims.is_access:
            logger.warning("refresh token used as access token by user: %s", claims.subject_id)
            raise UnauthorizedError("invalid token type")

        # Fail closed: a store outage must not authenticate the request.
        try:
            revoked = self.revocation_store.is_revoked(token)
        except (RevocationStoreError, InvalidArgumentError) as exc:
            logger.error("revocation check failed: %s", exc)
            raise InternalError("failed to validate token") from exc
        if revoked:
            logger.warning("revoked token presented by user: %s", claims.subject_id)
            raise UnauthorizedError("token has been revoked")

        return Identity(user_id=claims.subject_id, role=claims.role, token=token, claims=claims)

    def authenticate_optional(self, authorization_header: Optional[str]) -> Optional[Identity]:
        """Same checks as authenticate(); any failure yields an anonymous caller."""
        try:
            return self.authenticate(authorization_header)
        except ServiceError:
            return None

    @staticmethod
    def require_role(identity: Optional[Identity], allowed_roles: Iterable[str]) -> None:
        allowed = {str(r) for r in allowed_roles}
        role = getattr(identity, "role", None)
        if not isinstance(role, str) or not role or role not in allowed:
            raise ForbiddenError("insufficient permissions")
