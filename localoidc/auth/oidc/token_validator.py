"""
ID Token Validator.

Verifies ID tokens the way a relying party would: signature against the
published key set, then issuer, audience, expiry and nonce.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any

import jwt
from jwt import PyJWKClient, PyJWKSet

from localoidc.auth.oidc.exceptions import (
    InvalidTokenError,
    TokenExpiredError,
    InvalidSignatureError,
    NonceMismatchError,
)
from localoidc.auth.oidc.keys import SIGNING_ALGORITHM
from localoidc.auth.oidc.token_issuer import IdTokenClaims

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Token validation result."""

    valid: bool
    claims: Optional[IdTokenClaims] = None
    error: Optional[str] = None


def _claims_from_dict(data: Dict[str, Any]) -> IdTokenClaims:
    try:
        return IdTokenClaims(
            iss=data["iss"],
            aud=data["aud"],
            sub=data["sub"],
            iat=data["iat"],
            exp=data["exp"],
            nonce=data["nonce"],
        )
    except KeyError as e:
        raise InvalidTokenError(f"Missing claim: {e.args[0]}")


class IdTokenValidator:
    """
    Validates ID tokens issued by the emulator.

    Exactly one key source is used, in this order: an already fetched JWKS
    document, a JWKS endpoint URL, or a PEM public key.
    """

    def __init__(
        self,
        issuer: str,
        audience: Optional[str] = None,
        jwks: Optional[Dict[str, Any]] = None,
        jwks_uri: Optional[str] = None,
        public_key: Optional[bytes] = None,
    ):
        """
        Initialize token validator.

        Args:
            issuer: Expected token issuer
            audience: Expected audience (optional)
            jwks: JWKS document, as served by ``/jwks``
            jwks_uri: JWKS endpoint URL for fetching public keys
            public_key: RSA public key (PEM format)
        """
        self.issuer = issuer
        self.audience = audience
        self.jwk_set: Optional[PyJWKSet] = None
        self.jwks_client: Optional[PyJWKClient] = None
        self.public_key = None

        if jwks is not None:
            self.jwk_set = PyJWKSet.from_dict(jwks)
        elif jwks_uri:
            # PyJWKClient fetches synchronously; do not use it from a coroutine
            # running on the emulator's own event loop.
            self.jwks_client = PyJWKClient(jwks_uri)
        elif public_key:
            self.public_key = public_key
        else:
            raise ValueError("One of jwks, jwks_uri or public_key must be provided")

    def validate(self, token: str, nonce: Optional[str] = None) -> ValidationResult:
        """
        Validate an ID token.

        Args:
            token: JWT string
            nonce: Expected nonce, not checked if None

        Returns:
            Validation result with claims if valid
        """
        try:
            claims = _claims_from_dict(self._decode_token(token))

            self._validate_issuer(claims)
            self._validate_expiration(claims)
            if self.audience:
                self._validate_audience(claims)
            if nonce is not None and claims.nonce != nonce:
                raise NonceMismatchError(nonce, claims.nonce)

            logger.debug(f"ID token validated for sub={claims.sub}")
            return ValidationResult(valid=True, claims=claims)

        except InvalidTokenError as e:
            logger.warning(f"ID token rejected: {e}")
            return ValidationResult(valid=False, error=str(e))

    def _signing_key(self, token: str):
        if self.jwks_client:
            return self.jwks_client.get_signing_key_from_jwt(token).key
        if self.jwk_set is None:
            return self.public_key

        kid = jwt.get_unverified_header(token).get("kid")
        for jwk in self.jwk_set.keys:
            if jwk.key_id == kid:
                return jwk.key
        raise InvalidSignatureError(f"No key with kid={kid} in key set")

    def _decode_token(self, token: str) -> Dict[str, Any]:
        """
        Decode and verify the token signature.

        Raises:
            InvalidTokenError: If token cannot be decoded
            InvalidSignatureError: If signature is invalid
        """
        try:
            return jwt.decode(
                token,
                self._signing_key(token),
                algorithms=[SIGNING_ALGORITHM],
                options={
                    "verify_exp": False,  # We validate expiration separately
                    "verify_aud": False,  # We validate audience separately
                },
            )
        except jwt.InvalidSignatureError as e:
            raise InvalidSignatureError(f"Token signature verification failed: {e}")
        except jwt.PyJWKClientError as e:
            raise InvalidSignatureError(f"Signing key lookup failed: {e}")
        except jwt.PyJWTError as e:
            raise InvalidTokenError(f"Token decode failed: {e}")

    def _validate_issuer(self, claims: IdTokenClaims) -> None:
        if claims.iss != self.issuer:
            raise InvalidTokenError(
                f"Invalid issuer. Expected: {self.issuer}, Got: {claims.iss}"
            )

    def _validate_expiration(self, claims: IdTokenClaims) -> None:
        now = datetime.now(timezone.utc)
        exp_time = datetime.fromtimestamp(claims.exp, tz=timezone.utc)

        if now >= exp_time:
            raise TokenExpiredError(
                f"Token expired at {exp_time.isoformat()}. Current time: {now.isoformat()}"
            )

    def _validate_audience(self, claims: IdTokenClaims) -> None:
        if claims.aud != self.audience:
            raise InvalidTokenError(
                f"Invalid audience. Expected: {self.audience}, Got: {claims.aud}"
            )
