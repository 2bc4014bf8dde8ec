"""
OIDC Provider Routes.

FastAPI routes for the discovery document, the JSON Web Key Set, and the
authorization code token exchange.
"""

import logging
from dataclasses import dataclass

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException

from localoidc.auth.oidc.exceptions import (
    InvalidRequestError,
    UnsupportedGrantTypeError,
)
from localoidc.auth.oidc.token_issuer import IdTokenIssuer
from .models import JWKSResponse, OpenIDConfiguration, TokenResponse
from .store import TokenStore


logger = logging.getLogger(__name__)

AUTHORIZATION_CODE_GRANT = "authorization_code"

NO_CACHE_HEADERS = {"Cache-Control": "no-store", "Pragma": "no-cache"}


@dataclass(frozen=True)
class ProviderState:
    """Per-emulator context shared by every request handler.

    Attributes:
        issuer_url: Issuer identity, ``http://localhost:<port>/``
        store: Authorization code store
        token_issuer: Signs ID tokens
    """

    issuer_url: str
    store: TokenStore
    token_issuer: IdTokenIssuer


def create_router(state: ProviderState) -> APIRouter:
    """Create FastAPI router for the provider endpoints.

    Args:
        state: Context for this emulator instance

    Returns:
        Configured APIRouter
    """
    router = APIRouter()

    @router.get(
        "/.well-known/openid-configuration",
        response_model=OpenIDConfiguration,
        status_code=status.HTTP_200_OK,
        tags=["Discovery"],
    )
    async def openid_configuration() -> OpenIDConfiguration:
        """OpenID Connect discovery document."""
        return OpenIDConfiguration.for_issuer(state.issuer_url)

    @router.get(
        "/jwks",
        response_model=JWKSResponse,
        status_code=status.HTTP_200_OK,
        tags=["Discovery"],
    )
    async def jwks() -> JWKSResponse:
        """Key set holding the public half of the signing key."""
        return JWKSResponse.model_validate(state.token_issuer.signing_key.jwks())

    @router.post(
        "/token",
        response_model=TokenResponse,
        status_code=status.HTTP_200_OK,
        tags=["Token"],
    )
    async def token(request: Request) -> JSONResponse:
        """Exchange an authorization code for an access token and ID token.

        Raises:
            InvalidRequestError: Body is not a form or has no ``code``
            UnsupportedGrantTypeError: ``grant_type`` is not authorization_code
            InvalidAuthorizationCodeError: Code is unknown or already redeemed
        """
        try:
            form = await request.form()
        except (HTTPException, MultiPartException) as e:
            detail = getattr(e, "detail", None) or getattr(e, "message", None) or str(e)
            raise InvalidRequestError(f"Malformed form body: {detail}")

        grant_type = form.get("grant_type")
        if grant_type is not None and grant_type != AUTHORIZATION_CODE_GRANT:
            raise UnsupportedGrantTypeError(grant_type)

        code = form.get("code")
        if not isinstance(code, str) or not code:
            raise InvalidRequestError("Missing required parameter: code")

        record = await state.store.redeem(code)

        # Signed outside the store lock
        id_token = state.token_issuer.issue(
            state.issuer_url, record.user_id, record.nonce
        )

        response = TokenResponse(
            access_token=record.access_token,
            token_type="bearer",
            scope=record.scopes,
            id_token=id_token,
        )
        return JSONResponse(content=response.model_dump(), headers=NO_CACHE_HEADERS)

    return router
