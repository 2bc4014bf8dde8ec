"""
LocalOIDC: OpenID Connect Identity Provider Emulator

An in-process OIDC provider for integration tests of relying applications.
"""

__version__ = "0.1.0"

from .core.emulator import OpenIdConnectEmulator
from .auth.oidc.authorize import AuthorizeRequest, parse_authorize_url

__all__ = ["OpenIdConnectEmulator", "AuthorizeRequest", "parse_authorize_url", "__version__"]
