"""
OIDC provider response models.

Pydantic models for the discovery document, key set, and token endpoint
responses.
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class OpenIDConfiguration(BaseModel):
    """OpenID Connect discovery document."""

    issuer: str
    authorization_endpoint: str
    token_endpoint: str
    jwks_uri: str
    response_types_supported: List[str] = Field(default_factory=lambda: ["code"])
    subject_types_supported: List[str] = Field(default_factory=lambda: ["public"])
    id_token_signing_alg_values_supported: List[str] = Field(
        default_factory=lambda: ["RS256"]
    )

    @classmethod
    def for_issuer(cls, issuer: str) -> "OpenIDConfiguration":
        """Build the document for an issuer URL ending in '/'."""
        return cls(
            issuer=issuer,
            authorization_endpoint=f"{issuer}authorization",
            token_endpoint=f"{issuer}token",
            jwks_uri=f"{issuer}jwks",
        )


class JWK(BaseModel):
    """JSON Web Key."""

    kty: str  # Key type (RSA)
    kid: str  # Key ID
    use: str  # Public key use (sig)
    n: str  # Modulus
    e: str  # Exponent


class JWKSResponse(BaseModel):
    """JSON Web Key Set response."""

    keys: List[JWK]


class TokenResponse(BaseModel):
    """Successful token endpoint response."""

    access_token: str
    token_type: str = "bearer"
    scope: str
    id_token: str


class OAuthErrorResponse(BaseModel):
    """RFC 6749 error response body."""

    error: str
    error_description: Optional[str] = None
