"""Unit tests for the token codec and password helpers."""

import uuid
from datetime import timedelta

import jwt
import pytest

from utils.security import (
    ExpiredTokenError,
    InvalidTokenError,
    TokenCodec,
    TOKEN_TYPE_ACCESS,
    TOKEN_TYPE_REFRESH,
    hash_password,
    verify_password,
)

from tests.conftest import FakeClock


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def codec(clock):
    return TokenCodec("unit-secret", clock=clock)


@pytest.fixture
def subject():
    return str(uuid.uuid4())


class TestPasswordHashing:
    def test_hash_is_not_plaintext(self):
        pwd_hash = hash_password("Secret123!")
        assert pwd_hash != "Secret123!"
        assert pwd_hash.startswith("$argon2")

    def test_verify_roundtrip(self):
        pwd_hash = hash_password("Secret123!")
        assert verify_password("Secret123!", pwd_hash) is True
        assert verify_password("wrong", pwd_hash) is False

    def test_verify_garbage_hash_is_false(self):
        assert verify_password("Secret123!", "not-a-hash") is False


class TestTokenCodec:
    def test_access_token_claims(self, codec, subject):
        token = codec.issue_access_token(subject, "organizer", timedelta(minutes=15))
        claims = codec.parse_and_verify(token)

        assert claims.subject_id == subject
        assert claims.role == "organizer"
        assert claims.token_type == TOKEN_TYPE_ACCESS
        assert claims.is_access and not claims.is_refresh
        assert claims.expires_at - claims.issued_at == timedelta(minutes=15)

    def test_refresh_token_kind(self, codec, subject):
        token = codec.issue_refresh_token(subject, "staff", timedelta(days=7))
        assert codec.parse_and_verify(token).token_type == TOKEN_TYPE_REFRESH

    def test_tokens_issued_same_instant_differ(self, codec, subject):
        a = codec.issue_access_token(subject, "staff", timedelta(minutes=1))
        b = codec.issue_access_token(subject, "staff", timedelta(minutes=1))
        assert a != b

    def test_expired_is_distinguished(self, codec, clock, subject):
        token = codec.issue_access_token(subject, "staff", timedelta(minutes=1))
        clock.advance(minutes=5)
        with pytest.raises(ExpiredTokenError):
            codec.parse_and_verify(token)

    def test_wrong_secret_is_invalid(self, codec, subject):
        token = codec.issue_access_token(subject, "staff", timedelta(minutes=1))
        other = TokenCodec("another-secret")
        with pytest.raises(InvalidTokenError):
            other.parse_and_verify(token)

    def test_malformed_is_invalid(self, codec):
        with pytest.raises(InvalidTokenError):
            codec.parse_and_verify("not.a.jwt")
        with pytest.raises(InvalidTokenError):
            codec.parse_and_verify("")

    def test_missing_token_type_is_invalid(self, subject):
        token = jwt.encode(
            {"sub": subject, "iat": 1, "exp": 4102444800, "jti": "x", "iss": "event-checkin-api", "role": "staff"},
            "unit-secret",
            algorithm="HS256",
        )
        with pytest.raises(InvalidTokenError):
            TokenCodec("unit-secret").parse_and_verify(token)

    def test_remaining_lifetime(self, codec, clock, subject):
        token = codec.issue_refresh_token(subject, "staff", timedelta(hours=1))
        claims = codec.parse_and_verify(token)
        clock.advance(minutes=20)
        assert codec.remaining_lifetime(claims) == timedelta(minutes=40)

    @pytest.mark.parametrize("subject_id", ["", "not-a-uuid"])
    def test_rejects_bad_subject(self, codec, subject_id):
        with pytest.raises(ValueError):
            codec.issue_access_token(subject_id, "staff", timedelta(minutes=1))

    def test_rejects_non_positive_ttl(self, codec, subject):
        with pytest.raises(ValueError):
            codec.issue_access_token(subject, "staff", timedelta(0))

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenCodec("")
