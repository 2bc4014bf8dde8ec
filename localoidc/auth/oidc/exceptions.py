"""
OAuth 2.0 / OIDC exceptions for LocalOIDC.

Error codes follow RFC 6749 section 5.2 so they can be rendered directly
into token endpoint error responses.
"""

from typing import Optional


class OAuthError(Exception):
    """Base exception for OAuth errors."""

    def __init__(self, error: str, error_description: Optional[str] = None):
        self.error = error
        self.error_description = error_description
        super().__init__(error_description or error)


class InvalidRequestError(OAuthError):
    """Raised when a token request is missing a parameter or is malformed."""

    def __init__(self, description: str = "Malformed token request"):
        super().__init__("invalid_request", description)


class InvalidGrantError(OAuthError):
    """Raised when the presented grant is invalid."""

    def __init__(self, description: str = "Invalid grant"):
        super().__init__("invalid_grant", description)


class InvalidAuthorizationCodeError(InvalidGrantError):
    """Raised when an authorization code is unknown or already redeemed."""

    def __init__(self, code: Optional[str] = None):
        super().__init__("Invalid authorization code.")
        self.code = code


class UnsupportedGrantTypeError(OAuthError):
    """Raised when the grant type is not supported."""

    def __init__(self, grant_type: str):
        super().__init__(
            "unsupported_grant_type",
            f"Unsupported grant type: {grant_type}. Supported: authorization_code",
        )
        self.grant_type = grant_type


class InvalidTokenError(OAuthError):
    """Raised when ID token validation fails."""

    def __init__(self, description: str = "Invalid token"):
        super().__init__("invalid_token", description)


class TokenExpiredError(InvalidTokenError):
    """Raised when token has expired."""

    def __init__(self, description: str = "Token has expired"):
        super().__init__(description)


class InvalidSignatureError(InvalidTokenError):
    """Raised when token signature is invalid."""

    def __init__(self, description: str = "Invalid token signature"):
        super().__init__(description)


class NonceMismatchError(InvalidTokenError):
    """Raised when the nonce claim differs from the expected value."""

    def __init__(self, expected: str, actual: Optional[str] = None):
        super().__init__(f"Invalid nonce. Expected: {expected}, Got: {actual}")


class KeyMaterialError(Exception):
    """Raised when the static signing key pair cannot be loaded or is inconsistent."""


class MissingAuthorizeParameterError(ValueError):
    """Raised when an authorization URL lacks a parameter the emulator needs."""

    def __init__(self, parameter: str, url: str):
        super().__init__(f"Authorization URL has no '{parameter}' parameter: {url}")
        self.parameter = parameter
        self.url = url
