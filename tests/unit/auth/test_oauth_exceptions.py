"""
Tests for the OAuth error hierarchy.
"""

import pytest

from localoidc.auth.oidc.exceptions import (
    InvalidAuthorizationCodeError,
    InvalidGrantError,
    NonceMismatchError,
    OAuthError,
    UnsupportedGrantTypeError,
)


class TestOAuthErrors:
    """Test error codes and descriptions."""

    def test_description_is_optional(self):
        """Test a bare error code is used as the message."""
        error = OAuthError("server_error")

        assert error.error == "server_error"
        assert error.error_description is None
        assert str(error) == "server_error"

    def test_invalid_code_without_code(self):
        error = InvalidAuthorizationCodeError()

        assert isinstance(error, InvalidGrantError)
        assert error.error == "invalid_grant"
        assert error.code is None

    def test_nonce_mismatch_without_actual(self):
        """Test a token with no nonce claim still produces a readable error."""
        error = NonceMismatchError("n-123")

        assert error.error == "invalid_token"
        assert "Expected: n-123, Got: None" in error.error_description

    @pytest.mark.parametrize("grant_type", ["refresh_token", "client_credentials"])
    def test_unsupported_grant_type(self, grant_type):
        error = UnsupportedGrantTypeError(grant_type)

        assert error.error == "unsupported_grant_type"
        assert error.grant_type == grant_type
