"""
ID Token Issuer for the emulated OpenID Connect provider.

Builds and signs the ID tokens returned from the token endpoint.
"""

import logging
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

import jwt

from localoidc.auth.oidc.keys import SigningKey, default_signing_key

logger = logging.getLogger(__name__)


@dataclass
class IdTokenClaims:
    """Claims carried by an emulated ID token."""

    iss: str  # Issuer
    aud: str  # Audience (client id)
    sub: str  # Subject (user id)
    iat: int  # Issued at
    exp: int  # Expiration time
    nonce: str

    def to_dict(self) -> dict:
        return asdict(self)


class IdTokenIssuer:
    """
    Issues RS256-signed ID tokens.

    Every token is signed with the same static key, so a relying party that
    fetched the published JWKS once can verify all of them.
    """

    DEFAULT_CLIENT_ID = "CLIENT-ID"
    DEFAULT_TOKEN_LIFETIME = 3600  # 1 hour

    def __init__(
        self,
        signing_key: Optional[SigningKey] = None,
        client_id: str = DEFAULT_CLIENT_ID,
        token_lifetime: int = DEFAULT_TOKEN_LIFETIME,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """
        Initialize ID token issuer.

        Args:
            signing_key: Key pair to sign with, the static test key if None
            client_id: Value of the ``aud`` claim
            token_lifetime: Seconds between ``iat`` and ``exp``
            clock: Returns the current UTC time, used for ``iat``
        """
        self.signing_key = signing_key or default_signing_key()
        self.client_id = client_id
        self.token_lifetime = token_lifetime
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def build_claims(self, issuer: str, user_id: str, nonce: str) -> IdTokenClaims:
        """
        Build the claim set for a user.

        Raises:
            ValueError: If nonce is missing
        """
        if not nonce:
            raise ValueError("An ID token requires a nonce")

        now = self._clock().replace(microsecond=0)
        exp = now + timedelta(seconds=self.token_lifetime)

        return IdTokenClaims(
            iss=issuer,
            aud=self.client_id,
            sub=user_id,
            iat=int(now.timestamp()),
            exp=int(exp.timestamp()),
            nonce=nonce,
        )

    def issue(self, issuer: str, user_id: str, nonce: str) -> str:
        """
        Issue a signed ID token.

        Args:
            issuer: Issuer identity, e.g. ``http://localhost:8080/``
            user_id: Subject identifier
            nonce: Nonce from the authorization request

        Returns:
            Compact JWS string

        Raises:
            ValueError: If nonce is missing
        """
        claims = self.build_claims(issuer, user_id, nonce)

        token = jwt.encode(
            claims.to_dict(),
            self.signing_key.private_key,
            algorithm=self.signing_key.algorithm,
            headers={"kid": self.signing_key.key_id},
        )

        logger.info(f"Issued ID token for sub={claims.sub}, iss={claims.iss}, exp={claims.exp}")
        return token
