"""
FastAPI Exception Handlers for the OIDC provider.

Maps OAuth exceptions to RFC 6749 error responses.
"""

import logging

from fastapi import Request, status
from fastapi.responses import JSONResponse

from localoidc.auth.oidc.exceptions import (
    OAuthError,
    InvalidRequestError,
    InvalidGrantError,
    UnsupportedGrantTypeError,
    InvalidTokenError,
)
from localoidc.core.logging_config import log_with_context
from .models import OAuthErrorResponse


logger = logging.getLogger(__name__)


# Exception to HTTP status code mapping
EXCEPTION_STATUS_CODES = {
    InvalidRequestError: status.HTTP_400_BAD_REQUEST,
    InvalidGrantError: status.HTTP_400_BAD_REQUEST,
    UnsupportedGrantTypeError: status.HTTP_400_BAD_REQUEST,
    InvalidTokenError: status.HTTP_401_UNAUTHORIZED,
}


def get_status_code_for_exception(exc: Exception) -> int:
    """
    Get HTTP status code for exception type.

    Args:
        exc: Exception instance

    Returns:
        HTTP status code, 400 for any other OAuthError
    """
    exc_type = type(exc)
    if exc_type in EXCEPTION_STATUS_CODES:
        return EXCEPTION_STATUS_CODES[exc_type]

    for exception_type, status_code in EXCEPTION_STATUS_CODES.items():
        if isinstance(exc, exception_type):
            return status_code

    return status.HTTP_400_BAD_REQUEST


async def oauth_exception_handler(request: Request, exc: OAuthError) -> JSONResponse:
    """
    Handle OAuthError exceptions.

    Args:
        request: FastAPI request
        exc: OAuthError instance

    Returns:
        JSONResponse with an RFC 6749 error body
    """
    status_code = get_status_code_for_exception(exc)

    log_with_context(
        logger,
        logging.INFO,
        f"{request.method} {request.url.path} failed: {exc.error}",
        error=exc.error,
        error_type=type(exc).__name__,
        status_code=status_code,
    )

    body = OAuthErrorResponse(error=exc.error, error_description=exc.error_description)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(exclude_none=True),
        headers={"Cache-Control": "no-store", "Pragma": "no-cache"},
    )


def register_exception_handlers(app) -> None:
    """
    Register exception handlers with a FastAPI app.

    Args:
        app: FastAPI app instance
    """
    app.add_exception_handler(OAuthError, oauth_exception_handler)
