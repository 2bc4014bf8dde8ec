"""
Emulated OpenID Connect authority for LocalOIDC.

Static signing keys, ID token issuance and validation, and authorization
request parsing.
"""

from localoidc.auth.oidc.authorize import AuthorizeRequest, parse_authorize_url
from localoidc.auth.oidc.keys import (
    SigningKey,
    TEST_KEY_ID,
    default_signing_key,
    load_signing_key,
)
from localoidc.auth.oidc.token_issuer import IdTokenIssuer, IdTokenClaims
from localoidc.auth.oidc.token_validator import IdTokenValidator, ValidationResult
from localoidc.auth.oidc.exceptions import (
    OAuthError,
    InvalidRequestError,
    InvalidGrantError,
    InvalidAuthorizationCodeError,
    UnsupportedGrantTypeError,
    InvalidTokenError,
    TokenExpiredError,
    InvalidSignatureError,
    NonceMismatchError,
    KeyMaterialError,
    MissingAuthorizeParameterError,
)

__all__ = [
    # Authorization requests
    "AuthorizeRequest",
    "parse_authorize_url",
    # Keys
    "SigningKey",
    "TEST_KEY_ID",
    "default_signing_key",
    "load_signing_key",
    # Tokens
    "IdTokenIssuer",
    "IdTokenClaims",
    "IdTokenValidator",
    "ValidationResult",
    # Exceptions
    "OAuthError",
    "InvalidRequestError",
    "InvalidGrantError",
    "InvalidAuthorizationCodeError",
    "UnsupportedGrantTypeError",
    "InvalidTokenError",
    "TokenExpiredError",
    "InvalidSignatureError",
    "NonceMismatchError",
    "KeyMaterialError",
    "MissingAuthorizeParameterError",
]
