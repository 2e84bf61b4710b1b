"""Unit tests for bearer token inspection."""
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

import pytest
from jose import jwt
from services.credentials import format_remaining_time, get_remaining_token_time
from services.errors import CredentialError

NOW = 1_700_000_000


def make_token(claims):
    return jwt.encode(claims, "test-secret", algorithm="HS256")


class TestGetRemainingTokenTime:
    """Test suite for get_remaining_token_time."""

    def test_valid_token(self):
        """Test remaining lifetime is exp minus now."""
        token = make_token({"exp": NOW + 125})
        assert get_remaining_token_time(token, now=lambda: NOW) == 125

    def test_uses_wall_clock_by_default(self):
        """Test the default clock is the current time."""
        token = make_token({"exp": int(time.time()) + 3600})
        assert 3590 <= get_remaining_token_time(token) <= 3600

    def test_expired_token(self):
        """Test a token with exp in the past is reported as expired."""
        token = make_token({"exp": NOW - 1})
        with pytest.raises(CredentialError, match="auth token expired"):
            get_remaining_token_time(token, now=lambda: NOW)

    @pytest.mark.parametrize("token", [None, ""])
    def test_missing_token(self, token):
        """Test an absent token is reported as missing."""
        with pytest.raises(CredentialError, match="no token"):
            get_remaining_token_time(token)

    @pytest.mark.parametrize("token", [
        "not-a-jwt",
        "only.two",
        "a.b.c.d",
        "!!!.@@@.###",
    ])
    def test_malformed_token(self, token):
        """Test tokens that are not decodable three-part JWTs are invalid."""
        with pytest.raises(CredentialError, match="auth token invalid"):
            get_remaining_token_time(token)

    def test_token_without_exp(self):
        """Test a token without an exp claim is invalid."""
        token = make_token({"sub": "someone"})
        with pytest.raises(CredentialError, match="auth token invalid"):
            get_remaining_token_time(token, now=lambda: NOW)

    @pytest.mark.parametrize("exp", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_exp(self, exp):
        """Test a NaN or infinite exp claim is invalid rather than a crash."""
        token = make_token({"exp": exp})
        with pytest.raises(CredentialError, match="auth token invalid"):
            get_remaining_token_time(token, now=lambda: NOW)

    def test_error_code(self):
        """Test credential errors carry a structured code."""
        with pytest.raises(CredentialError) as exc_info:
            get_remaining_token_time("")
        assert exc_info.value.error.code == "CREDENTIAL_ERROR"


class TestFormatRemainingTime:
    """Test suite for format_remaining_time."""

    def test_minutes_and_seconds(self):
        assert format_remaining_time(125) == "2 minutes and 5 seconds"

    def test_under_a_minute(self):
        assert format_remaining_time(59) == "0 minutes and 59 seconds"

    def test_zero(self):
        assert format_remaining_time(0) == "0 minutes and 0 seconds"
