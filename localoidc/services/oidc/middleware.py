"""
Request id middleware.

Binds a request id to the logging context for the duration of a request
and echoes it back in the ``x-request-id`` response header.
"""

import logging
import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from localoidc.core.logging_config import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "x-request-id"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Assign a request id to every request."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
        set_request_id(request_id)
        try:
            response = await call_next(request)
            logger.debug(f"{request.method} {request.url.path} -> {response.status_code}")
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        finally:
            clear_request_id()
