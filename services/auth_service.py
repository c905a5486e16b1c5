"""
Auth use cases: register, login, refresh (rotation) and logout (revocation).

Session state per principal:

    Anonymous -> Authenticated(A, R) -> Authenticated(A', R') -> Anonymous
                 register / login        refresh: R revoked      logout: A, R revoked

Credential failures share one message ("invalid credentials") so callers
cannot tell an unknown e-mail from a wrong password. Token-lifecycle failures
(expired / invalid / revoked) are reported specifically.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Dict, Iterable, Optional

from marshmallow import ValidationError as SchemaValidationError

from models.errors import DuplicateKeyError, InvalidArgumentError, RevocationStoreError
from models.schemas.user import LoginSchema, RegisterSchema
from models.user import ANONYMIZED_EMAIL_DOMAIN, User, UserRole
from services.errors import (
    ConflictError,
    InternalError,
    UnauthorizedError,
    ValidationError,
)
from services.ports import RevocationStore, UserRepository
from utils.security import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenClaims,
    TokenCodec,
    TokenSigningError,
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    dummy_verify,
    hash_password,
    verify_password,
)

logger = logging.getLogger(__name__)

TOKEN_TYPE_BEARER = "Bearer"
INVALID_CREDENTIALS = "invalid credentials"

DEFAULT_ACCESS_TOKEN_TTL = timedelta(minutes=15)
DEFAULT_REFRESH_TOKEN_TTLS = {
    "web": timedelta(days=7),
    "mobile": timedelta(days=90),
}

_register_schema = RegisterSchema()
_login_schema = LoginSchema()


@dataclass
class AuthResult:
    access_token: str
    refresh_token: str
    expires_in: int
    user: User
    token_type: str = TOKEN_TYPE_BEARER


@dataclass
class LogoutResult:
    message: str = "Successfully logged out"


class AuthService:
    def __init__(
        self,
        users: UserRepository,
        codec: TokenCodec,
        revocation_store: RevocationStore,
        *,
        access_token_ttl: timedelta = DEFAULT_ACCESS_TOKEN_TTL,
        refresh_token_ttls: Optional[Dict[str, timedelta]] = None,
        registrable_roles: Iterable[str] = (UserRole.ORGANIZER.value, UserRole.STAFF.value),
        password_min_length: int = 8,
    ):
        self.users = users
        self.codec = codec
        self.revocation_store = revocation_store
        self.access_token_ttl = access_token_ttl
        self.refresh_token_ttls = dict(refresh_token_ttls or DEFAULT_REFRESH_TOKEN_TTLS)
        self.registrable_roles = frozenset(registrable_roles)
        self.password_min_length = password_min_length

    # ------------------------------------------------------------------ register

    def register(self, email: str, password: str, name: str, role: str, client_type: str = "web") -> AuthResult:
        data = self._validate_registration(
            {"email": email, "password": password, "name": name, "role": role, "client_type": client_type}
        )
        if data["role"] not in self.registrable_roles:
            raise ValidationError("Invalid input", detail={"role": [f"role '{data['role']}' cannot self-register"]})

        user = self._create_user(data["email"], data["password"], data["name"], data["role"])
        result = self._issue_pair(user, data["client_type"])
        logger.info("user registered: %s", user.id)
        return result

    def create_principal(self, email: str, password: str, name: str, role: str) -> User:
        """Create a principal of any role (no self-registration role check)."""
        data = self._validate_registration({"email": email, "password": password, "name": name, "role": role})
        return self._create_user(data["email"], data["password"], data["name"], data["role"])

    def _validate_registration(self, payload: dict) -> dict:
        try:
            data = _register_schema.load(payload)
        except SchemaValidationError as err:
            raise ValidationError("Invalid input", detail=err.messages) from err
        if len(data["password"]) < self.password_min_length:
            raise ValidationError(
                "Invalid input",
                detail={"password": [f"Password must be at least {self.password_min_length} characters long."]},
            )
        if data["email"].endswith("@" + ANONYMIZED_EMAIL_DOMAIN):
            raise ValidationError("Invalid input", detail={"email": ["This email domain is reserved."]})
        return data

    def _create_user(self, email: str, password: str, name: str, role: str) -> User:
        if self.users.exists_by_email(email):
            raise ConflictError("email already exists")

        user = User(email=email, password_hash=hash_password(password), name=name, role=UserRole(role))
        try:
            self.users.create(user)
        except DuplicateKeyError as exc:
            # Lost a race with a concurrent registration of the same address.
            raise ConflictError("email already exists") from exc
        return user

    # --------------------------------------------------------------------- login

    def login(self, email: str, password: str, client_type: str = "web") -> AuthResult:
        try:
            data = _login_schema.load({"email": email, "password": password, "client_type": client_type})
        except SchemaValidationError as err:
            raise ValidationError("Invalid input", detail=err.messages) from err

        user = self.users.find_by_email_with_password(data["email"])
        if user is None:
            dummy_verify(data["password"])
            logger.warning("login attempt with unknown or deleted email")
            raise UnauthorizedError(INVALID_CREDENTIALS)
        if not verify_password(data["password"], user.password_hash):
            logger.warning("invalid password attempt for user: %s", user.id)
            raise UnauthorizedError(INVALID_CREDENTIALS)

        result = self._issue_pair(user, data["client_type"])
        logger.info("user logged in: %s", user.id)
        return result

    # ------------------------------------------------------------------- refresh

    def refresh(self, refresh_token: str, client_type: str = "web") -> AuthResult:
        if not refresh_token:
            raise ValidationError("Invalid input", detail={"refresh_token": ["Missing data for required field."]})
        if client_type not in self.refresh_token_ttls:
            raise ValidationError("Invalid input", detail={"client_type": [f"Must be one of: {sorted(self.refresh_token_ttls)}."]})

        # Order matters: structure/signature, expiry, type, revocation.
        try:
            claims = self.codec.parse_and_verify(refresh_token)
        except ExpiredTokenError:
            raise UnauthorizedError("refresh token has expired")
        except InvalidTokenError:
            logger.warning("invalid refresh token presented")
            raise UnauthorizedError("invalid refresh token")
        if claims.token_type != TOKEN_TYPE_REFRESH:
            logger.warning("non-refresh token presented for refresh")
            raise UnauthorizedError("invalid token type")
        if self._is_revoked(refresh_token):
            logger.warning("revoked refresh token reused for user: %s", claims.subject_id)
            raise UnauthorizedError("token has been revoked")

        user = self.users.find_by_id(claims.subject_id)
        if user is None:
            logger.warning("refresh for missing or deleted user: %s", claims.subject_id)
            raise UnauthorizedError("user not found")

        # Revoke before issuing. add_if_absent is the single winner between
        # concurrent refreshes presenting the same token.
        ttl = self.codec.remaining_lifetime(claims)
        if ttl.total_seconds() <= 0:
            raise UnauthorizedError("refresh token has expired")
        try:
            claimed = self.revocation_store.add_if_absent(refresh_token, ttl)
        except RevocationStoreError as exc:
            logger.error("failed to revoke refresh token for user %s: %s", user.id, exc)
            raise InternalError("failed to rotate refresh token") from exc
        if not claimed:
            logger.warning("concurrent reuse of refresh token for user: %s", user.id)
            raise UnauthorizedError("token has been revoked")

        result = self._issue_pair(user, client_type)
        logger.info("refresh token rotated for user: %s", user.id)
        return result

    # -------------------------------------------------------------------- logout

    def logout(self, access_token: Optional[str] = None, refresh_token: Optional[str] = None) -> LogoutResult:
        """
        Revoke the presented tokens for their remaining lifetime.

        Absent or already expired tokens are skipped. A malformed, wrongly
        typed or already revoked token fails the whole call with 401 before
        anything is revoked.
        """
        pending = []
        for token, expected_type in ((access_token, TOKEN_TYPE_ACCESS), (refresh_token, TOKEN_TYPE_REFRESH)):
            if not token:
                continue
            claims = self._claims_for_logout(token, expected_type)
            if claims is not None:
                pending.append((token, claims))

        for token, claims in pending:
            ttl = self.codec.remaining_lifetime(claims)
            if ttl.total_seconds() <= 0:
                continue
            try:
                self.revocation_store.add(token, ttl)
            except RevocationStoreError as exc:
                logger.error("failed to revoke %s token for user %s: %s", claims.token_type, claims.subject_id, exc)
                raise InternalError("failed to revoke token") from exc

        if pending:
            logger.info("user logged out: %s", pending[0][1].subject_id)
        return LogoutResult()

    def _claims_for_logout(self, token: str, expected_type: str) -> Optional[TokenClaims]:
        try:
            claims = self.codec.parse_and_verify(token)
        except ExpiredTokenError:
            return None
        except InvalidTokenError:
            raise UnauthorizedError("invalid token")
        if claims.token_type != expected_type:
            raise UnauthorizedError("invalid token type")
        if self._is_revoked(token):
            raise UnauthorizedError("token has been revoked")
        return claims

    # ------------------------------------------------------------------ helpers

    def _is_revoked(self, token: str) -> bool:
        try:
            return self.revocation_store.is_revoked(token)
        except (RevocationStoreError, InvalidArgumentError) as exc:
            logger.error("failed to check token revocation: %s", exc)
            raise InternalError("failed to validate token") from exc

    def _issue_pair(self, user: User, client_type: str) -> AuthResult:
        role = UserRole(user.role).value
        refresh_ttl = self.refresh_token_ttls.get(client_type)
        if refresh_ttl is None:
            raise ValidationError("Invalid input", detail={"client_type": [f"Must be one of: {sorted(self.refresh_token_ttls)}."]})
        try:
            access_token = self.codec.issue_access_token(user.id, role, self.access_token_ttl)
            refresh_token = self.codec.issue_refresh_token(user.id, role, refresh_ttl)
        except (TokenSigningError, ValueError) as exc:
            logger.exception("failed to generate tokens for user %s", user.id)
            raise InternalError("failed to generate tokens") from exc
        return AuthResult(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int(self.access_token_ttl.total_seconds()),
            user=user,
        )
