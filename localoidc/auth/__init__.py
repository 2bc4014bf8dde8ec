"""Authentication components for LocalOIDC."""

from localoidc.auth.oidc import (
    AuthorizeRequest,
    IdTokenIssuer,
    IdTokenValidator,
    OAuthError,
    parse_authorize_url,
)

__all__ = [
    "AuthorizeRequest",
    "IdTokenIssuer",
    "IdTokenValidator",
    "OAuthError",
    "parse_authorize_url",
]
