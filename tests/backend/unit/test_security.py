"""
Unit tests for core.security module.
Tests password hashing, JWT token creation/validation.
"""
import pytest
import datetime as dt
import jwt
from app.core.security import (
    hash_password,
    verify_password,
    create_access_token,
    decode_access_token,
    ACCESS_TOKEN_EXPIRE_MINUTES,
)


class TestPasswordHashing:
    """Tests for password hashing and verification."""

    def test_hash_password_returns_different_hash_each_time(self):
        """Password hashing should produce different hashes (salt included)."""
        password = "TestPassword123"
        assert hash_password(password) != hash_password(password)

    def test_hash_password_is_not_plain_text(self):
        password = "TestPassword123"
        hashed = hash_password(password)
        assert isinstance(hashed, str)
        assert hashed != password
        assert hashed.startswith("$argon2")

    def test_verify_password_correct_password(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("TestPassword123", hashed) is True

    def test_verify_password_incorrect_password(self):
        hashed = hash_password("TestPassword123")
        assert verify_password("WrongPassword456", hashed) is False


class TestJWTTokens:
    """Tests for JWT token creation and validation."""

    def test_subject_is_stringified_user_id(self):
        """Numeric ids are stored as a string "sub" claim."""
        token = create_access_token(42, "user")
        payload = decode_access_token(token)
        assert payload["sub"] == "42"
        assert int(payload["sub"]) == 42

    def test_role_and_username_claims(self):
        token = create_access_token(7, "admin", "grace")
        payload = decode_access_token(token)
        assert payload["role"] == "admin"
        assert payload["username"] == "grace"

    def test_username_claim_is_optional(self):
        payload = decode_access_token(create_access_token(7, "user"))
        assert "username" not in payload

    def test_expiration_in_future_and_matches_setting(self):
        payload = decode_access_token(create_access_token(1, "user"))
        now_timestamp = dt.datetime.now(dt.timezone.utc).timestamp()
        assert payload["exp"] > now_timestamp
        diff_minutes = (payload["exp"] - payload["iat"]) / 60
        assert abs(diff_minutes - ACCESS_TOKEN_EXPIRE_MINUTES) < 1

    def test_decode_access_token_invalid_token(self):
        with pytest.raises(jwt.PyJWTError):
            decode_access_token("invalid.token.here")

    def test_decode_access_token_wrong_secret(self):
        token = create_access_token(3, "user")
        with pytest.raises(jwt.InvalidSignatureError):
            jwt.decode(token, "wrong-secret", algorithms=["HS256"])

    def test_expired_token_rejected(self):
        from app.core import security

        now = dt.datetime.now(dt.timezone.utc)
        token = jwt.encode(
            {"sub": "3", "role": "user", "iat": now - dt.timedelta(hours=2), "exp": now - dt.timedelta(hours=1)},
            security.JWT_SECRET,
            algorithm=security.JWT_ALG,
        )
        with pytest.raises(jwt.ExpiredSignatureError):
            decode_access_token(token)
