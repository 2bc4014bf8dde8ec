"""
Tests for the ID token issuer.
"""

from datetime import datetime, timezone

import jwt
import pytest

from localoidc.auth.oidc.keys import TEST_KEY_ID, default_signing_key
from localoidc.auth.oidc.token_issuer import IdTokenIssuer


ISSUER = "http://localhost:8080/"
FIXED_NOW = datetime(2024, 1, 1, 12, 0, 0, 500000, tzinfo=timezone.utc)


def decode(token: str, audience: str = "CLIENT-ID") -> dict:
    return jwt.decode(
        token,
        default_signing_key().public_key,
        algorithms=["RS256"],
        audience=audience,
        options={"verify_exp": False},
    )


@pytest.fixture
def issuer():
    """Issuer with a frozen clock."""
    return IdTokenIssuer(clock=lambda: FIXED_NOW)


class TestIdTokenIssuer:
    """Test ID token issuance."""

    def test_claims(self, issuer):
        """Test every required claim is populated."""
        claims = decode(issuer.issue(ISSUER, "alice", "n-123"))

        assert claims["iss"] == ISSUER
        assert claims["aud"] == "CLIENT-ID"
        assert claims["sub"] == "alice"
        assert claims["nonce"] == "n-123"
        assert claims["iat"] == int(datetime(2024, 1, 1, 12, 0, 0, tzinfo=timezone.utc).timestamp())

    def test_expiry_is_one_hour_after_issue(self, issuer):
        """Test exp is exactly iat + 1 hour."""
        claims = decode(issuer.issue(ISSUER, "alice", "n-123"))

        assert claims["exp"] - claims["iat"] == 3600

    def test_expiry_with_real_clock(self):
        """Test exp - iat with the ambient clock."""
        claims = decode(IdTokenIssuer().issue(ISSUER, "bob", "n"))

        assert claims["exp"] == claims["iat"] + 3600

    def test_header(self, issuer):
        """Test the JOSE header names the algorithm and the fixed key id."""
        header = jwt.get_unverified_header(issuer.issue(ISSUER, "alice", "n-123"))

        assert header["alg"] == "RS256"
        assert header["kid"] == TEST_KEY_ID

    def test_custom_client_id_and_lifetime(self):
        """Test audience and lifetime are configurable."""
        issuer = IdTokenIssuer(client_id="my-app", token_lifetime=60, clock=lambda: FIXED_NOW)
        claims = decode(issuer.issue(ISSUER, "alice", "n"), audience="my-app")

        assert claims["aud"] == "my-app"
        assert claims["exp"] - claims["iat"] == 60

    @pytest.mark.parametrize("nonce", [None, ""])
    def test_missing_nonce_is_an_error(self, issuer, nonce):
        """Test a nonce must always be supplied."""
        with pytest.raises(ValueError, match="nonce"):
            issuer.issue(ISSUER, "alice", nonce)

    def test_build_claims(self, issuer):
        """Test the claim set without signing."""
        claims = issuer.build_claims(ISSUER, "carol", "xyz")

        assert claims.to_dict() == {
            "iss": ISSUER,
            "aud": "CLIENT-ID",
            "sub": "carol",
            "iat": claims.iat,
            "exp": claims.iat + 3600,
            "nonce": "xyz",
        }
