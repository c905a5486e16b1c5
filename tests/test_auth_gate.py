"""Tests for the per-request authentication gate."""

import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest

from models.errors import RevocationStoreError
from models.revocation_store import InMemoryRevocationStore
from services.auth_gate import AuthGate, Identity, extract_bearer_token
from services.errors import ForbiddenError, InternalError, UnauthorizedError
from utils.security import TokenCodec

from tests.conftest import FakeClock

SECRET = "gate-secret"


@pytest.fixture
def codec():
    return TokenCodec(SECRET)


@pytest.fixture
def store():
    return InMemoryRevocationStore()


@pytest.fixture
def gate(codec, store):
    return AuthGate(codec, store)


@pytest.fixture
def user_id():
    return str(uuid.uuid4())


@pytest.fixture
def access_token(codec, user_id):
    return codec.issue_access_token(user_id, "organizer", timedelta(minutes=15))


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ("Bearer abc", "abc"),
            ("bearer abc", "abc"),
            (None, None),
            ("", None),
            ("Basic abc", None),
            ("Bearer", None),
            ("Bearer a b", None),
        ],
    )
    def test_parsing(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestAuthenticate:
    def test_valid_access_token(self, gate, access_token, user_id):
        identity = gate.authenticate(f"Bearer {access_token}")
        assert identity.user_id == user_id
        assert identity.role == "organizer"
        assert identity.token == access_token

    @pytest.mark.parametrize("header", [None, "", "Token abc"])
    def test_missing_token(self, gate, header):
        with pytest.raises(UnauthorizedError) as exc:
            gate.authenticate(header)
        assert exc.value.message == "missing authorization token"

    def test_expired_token(self, gate, user_id):
        past = TokenCodec(SECRET, clock=FakeClock(datetime.now(timezone.utc) - timedelta(hours=1)))
        token = past.issue_access_token(user_id, "staff", timedelta(minutes=15))
        with pytest.raises(UnauthorizedError) as exc:
            gate.authenticate(f"Bearer {token}")
        assert exc.value.message == "token has expired"

    def test_invalid_token(self, gate, user_id):
        forged = TokenCodec("other-secret").issue_access_token(user_id, "admin", timedelta(minutes=15))
        with pytest.raises(UnauthorizedError) as exc:
            gate.authenticate(f"Bearer {forged}")
        assert exc.value.message == "invalid token"

    def test_refresh_token_never_authenticates(self, gate, codec, user_id):
        refresh = codec.issue_refresh_token(user_id, "organizer", timedelta(days=7))
        with pytest.raises(UnauthorizedError) as exc:
            gate.authenticate(f"Bearer {refresh}")
        assert exc.value.message == "invalid token type"

    def test_revoked_token(self, gate, store, access_token):
        store.add(access_token, timedelta(minutes=15))
        with pytest.raises(UnauthorizedError) as exc:
            gate.authenticate(f"Bearer {access_token}")
        assert exc.value.message == "token has been revoked"

    def test_store_outage_fails_closed(self, codec, access_token):
        store = MagicMock()
        store.is_revoked.side_effect = RevocationStoreError("down")
        gate = AuthGate(codec, store)
        with pytest.raises(InternalError):
            gate.authenticate(f"Bearer {access_token}")

    def test_revocation_is_checked_on_every_call(self, codec, access_token):
        store = MagicMock()
        store.is_revoked.return_value = False
        gate = AuthGate(codec, store)
        for _ in range(3):
            gate.authenticate(f"Bearer {access_token}")
        assert store.is_revoked.call_count == 3


class TestOptionalAuthenticate:
    def test_anonymous_on_failure(self, gate):
        assert gate.authenticate_optional(None) is None
        assert gate.authenticate_optional("Bearer garbage") is None

    def test_store_outage_yields_anonymous(self, codec, access_token):
        store = MagicMock()
        store.is_revoked.side_effect = RevocationStoreError("down")
        assert AuthGate(codec, store).authenticate_optional(f"Bearer {access_token}") is None

    def test_identity_when_valid(self, gate, access_token, user_id):
        assert gate.authenticate_optional(f"Bearer {access_token}").user_id == user_id


class TestRequireRole:
    def _identity(self, role):
        return Identity(user_id=str(uuid.uuid4()), role=role, token="t", claims=None)

    def test_allowed_role_passes(self):
        AuthGate.require_role(self._identity("admin"), ["admin", "organizer"])

    @pytest.mark.parametrize("role", ["staff", "", None, 42])
    def test_other_or_malformed_roles_are_forbidden(self, role):
        with pytest.raises(ForbiddenError):
            AuthGate.require_role(self._identity(role), ["admin"])

    def test_missing_identity_is_forbidden(self):
        with pytest.raises(ForbiddenError):
            AuthGate.require_role(None, ["admin"])
