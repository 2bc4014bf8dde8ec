"""
OIDC provider service.

Discovery, JWKS, and token endpoints backed by an in-memory token store.
"""

from .store import TokenRecord, TokenStore
from .routes import ProviderState, create_router
from .error_handlers import register_exception_handlers
from .middleware import RequestIdMiddleware

__all__ = [
    "TokenRecord",
    "TokenStore",
    "ProviderState",
    "create_router",
    "register_exception_handlers",
    "RequestIdMiddleware",
]
