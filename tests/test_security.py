"""Tests for JWT helpers."""

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from app.core.security import JWT_ALGORITHM, create_access_token, decode_access_token


class TestAccessTokens:
    """Tests for create_access_token and decode_access_token."""

    def test_round_trip_keeps_claims(self):
        """A freshly issued token decodes to its subject and role."""
        token = create_access_token("admin", is_admin=True)

        data = decode_access_token(token)

        assert data.sub == "admin"
        assert data.is_admin is True
        assert data.exp > data.iat

    def test_tokens_are_unique(self):
        """Every token carries its own jti."""
        first = decode_access_token(create_access_token("u"))
        second = decode_access_token(create_access_token("u"))

        assert first.jti != second.jti

    def test_expired_token(self):
        """Expired tokens report TOKEN_EXPIRED."""
        token = create_access_token("u", expires_delta=timedelta(seconds=-5))

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)

        assert exc_info.value.error_code == "TOKEN_EXPIRED"

    def test_wrong_secret(self):
        """Tokens signed with another key are invalid."""
        token = jwt.encode(
            {"sub": "u", "iss": "marketday", "aud": "marketday-api"},
            "another-secret-that-is-long-enough-for-hs256",
            algorithm=JWT_ALGORITHM,
        )

        with pytest.raises(AuthenticationError) as exc_info:
            decode_access_token(token)

        assert exc_info.value.error_code == "INVALID_TOKEN"

    def test_missing_claims(self):
        """Tokens without the required claims are invalid."""
        token = jwt.encode({"sub": "u"}, settings.auth_secret, algorithm=JWT_ALGORITHM)

        with pytest.raises(AuthenticationError):
            decode_access_token(token)
