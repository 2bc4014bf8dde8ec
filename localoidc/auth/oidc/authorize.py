"""
Authorization request parsing.

The application-under-test redirects the browser to the provider's
authorization endpoint. A test harness captures that URL and hands it to
``parse_authorize_url`` to recover the values the emulator has to echo
back: the nonce (into the ID token) and the state (into the redirect).
"""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlsplit

from localoidc.auth.oidc.exceptions import MissingAuthorizeParameterError


@dataclass(frozen=True)
class AuthorizeRequest:
    """Parameters of an OAuth 2.0 authorization request."""

    nonce: str
    state: str
    client_id: Optional[str] = None
    redirect_uri: Optional[str] = None
    scope: Optional[str] = None
    response_type: Optional[str] = None


def parse_authorize_url(url: str) -> AuthorizeRequest:
    """
    Parse an authorization URL into an AuthorizeRequest.

    Args:
        url: Full authorization URL including the query string

    Returns:
        AuthorizeRequest

    Raises:
        MissingAuthorizeParameterError: If ``nonce`` or ``state`` is absent
    """
    params = parse_qs(urlsplit(url).query)

    def first(name: str) -> Optional[str]:
        values = params.get(name)
        return values[0] if values else None

    for required in ("nonce", "state"):
        if not first(required):
            raise MissingAuthorizeParameterError(required, url)

    return AuthorizeRequest(
        nonce=first("nonce"),
        state=first("state"),
        client_id=first("client_id"),
        redirect_uri=first("redirect_uri"),
        scope=first("scope"),
        response_type=first("response_type"),
    )
