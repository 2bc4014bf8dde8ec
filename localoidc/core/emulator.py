"""
OpenID Connect emulator lifecycle.

Reserves a local port, exposes the issuer URL derived from it, and serves
the provider endpoints with uvicorn, either until cancelled or alongside a
test body.
"""

import asyncio
import logging
import socket
import threading
from enum import Enum
from typing import Awaitable, Callable, Optional, Set, TypeVar, Union
from urllib.parse import urlencode, urlsplit

import uvicorn
from fastapi import FastAPI

from localoidc.auth.oidc.authorize import AuthorizeRequest, parse_authorize_url
from localoidc.auth.oidc.keys import SigningKey
from localoidc.auth.oidc.token_issuer import IdTokenIssuer
from localoidc.services.oidc.error_handlers import register_exception_handlers
from localoidc.services.oidc.middleware import RequestIdMiddleware
from localoidc.services.oidc.routes import ProviderState, create_router
from localoidc.services.oidc.store import TokenStore
from .config_manager import EmulatorConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_PORT_ATTEMPTS = 20

# Ports handed out in this process; never given to a second emulator
_allocated_ports: Set[int] = set()
_allocated_ports_lock = threading.Lock()


class EmulatorStartupError(RuntimeError):
    """Raised when the emulator cannot reach the running state."""


class EmulatorState(str, Enum):
    """Emulator lifecycle states."""
    IDLE = "idle"  # Constructed, port reserved, no listener
    RUNNING = "running"


def pick_unused_port(host: str = "127.0.0.1") -> int:
    """
    Find a free TCP port not yet handed out in this process.

    Raises:
        EmulatorStartupError: If no free port could be found
    """
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    for _ in range(MAX_PORT_ATTEMPTS):
        try:
            with socket.socket(family, socket.SOCK_STREAM) as s:
                s.bind((host, 0))
                port = s.getsockname()[1]
        except OSError as e:
            raise EmulatorStartupError(f"No ports free: {e}") from e

        with _allocated_ports_lock:
            if port not in _allocated_ports:
                _allocated_ports.add(port)
                return port

    raise EmulatorStartupError(f"No unused port after {MAX_PORT_ATTEMPTS} attempts")


def reserve_port(port: int) -> None:
    """Record an explicitly configured port so automatic picks skip it."""
    with _allocated_ports_lock:
        _allocated_ports.add(port)


class OpenIdConnectEmulator:
    """
    In-process OpenID Connect identity provider for integration tests.

    A test registers a grant with ``add_token`` and sends the application
    under test to the returned redirect path; the application then redeems
    the code at ``/token`` and receives a signed ID token.

    Example:
        emulator = OpenIdConnectEmulator("http://localhost:3000/callback")

        async def body(oidc):
            ...

        await emulator.run_with_emulator(body)
    """

    SHUTDOWN_TIMEOUT = 5.0
    STARTUP_POLL_INTERVAL = 0.01

    def __init__(
        self,
        redirect_url: Optional[str] = None,
        config: Optional[EmulatorConfig] = None,
        signing_key: Optional[SigningKey] = None,
    ):
        """
        Initialize the emulator and reserve its port.

        Args:
            redirect_url: Relying party callback URL, config.redirect_url if None
            config: Emulator settings, defaults if None
            signing_key: Key pair for ID tokens, the static test key if None

        Raises:
            EmulatorStartupError: If no port is free
            KeyMaterialError: If the signing key is unusable
        """
        self.config = config or EmulatorConfig()
        self.redirect_url = redirect_url or self.config.redirect_url
        if self.config.port:
            self.port = self.config.port
            reserve_port(self.port)
        else:
            self.port = pick_unused_port(self.config.host)
        self.tokens = TokenStore(single_use=self.config.single_use_codes)
        self._token_issuer = IdTokenIssuer(
            signing_key=signing_key,
            client_id=self.config.client_id,
            token_lifetime=self.config.id_token_lifetime,
        )
        self._state = EmulatorState.IDLE

        logger.info(f"OIDC emulator reserved port {self.port}, issuer={self.issuer_url}")

    @property
    def issuer_url(self) -> str:
        """Issuer identity published in discovery and in every ID token."""
        return f"http://localhost:{self.port}/"

    @property
    def state(self) -> EmulatorState:
        return self._state

    @property
    def token_issuer(self) -> IdTokenIssuer:
        return self._token_issuer

    def create_app(self) -> FastAPI:
        """Create the FastAPI application serving this emulator's endpoints."""
        app = FastAPI(
            title="LocalOIDC",
            description="OpenID Connect Identity Provider Emulator",
            docs_url=None,
            redoc_url=None,
        )
        state = ProviderState(
            issuer_url=self.issuer_url,
            store=self.tokens,
            token_issuer=self._token_issuer,
        )
        app.include_router(create_router(state))
        register_exception_handlers(app)
        app.add_middleware(RequestIdMiddleware)
        return app

    async def add_token(
        self,
        access_token: str,
        scopes: str,
        user_id: str,
        authorize_request: Union[AuthorizeRequest, str],
        code: Optional[str] = None,
    ) -> str:
        """
        Register a grant for the next token exchange.

        Args:
            access_token: Access token the token endpoint returns
            scopes: Scope string the token endpoint returns
            user_id: Subject of the ID token
            authorize_request: Parsed authorization request, or its URL
            code: Authorization code to use, generated if None

        Returns:
            Path of the redirect URL with ``code`` and ``state`` query
            parameters, to be requested from the application under test

        Raises:
            ValueError: If no redirect URL is configured
            MissingAuthorizeParameterError: If the URL lacks nonce or state
        """
        if not self.redirect_url:
            raise ValueError("No redirect URL configured for this emulator")
        if isinstance(authorize_request, str):
            authorize_request = parse_authorize_url(authorize_request)

        code = await self.tokens.register(
            access_token=access_token,
            scopes=scopes,
            user_id=user_id,
            nonce=authorize_request.nonce,
            code=code,
        )

        path = urlsplit(self.redirect_url).path or "/"
        query = urlencode({"code": code, "state": authorize_request.state})
        return f"{path}?{query}"

    def _build_server(self) -> uvicorn.Server:
        config = uvicorn.Config(
            self.create_app(),
            host=self.config.host,
            port=self.port,
            log_config=None,  # Keep the handlers installed by setup_logging
            lifespan="off",
            timeout_graceful_shutdown=1,
        )
        return uvicorn.Server(config)

    async def _serve(self, server: uvicorn.Server) -> None:
        self._state = EmulatorState.RUNNING
        logger.info(f"OIDC emulator listening on {self.config.host}:{self.port}")
        try:
            await server.serve()
        except SystemExit as e:
            # uvicorn exits the process when it cannot bind
            raise EmulatorStartupError(
                f"Listener on {self.config.host}:{self.port} failed to start"
            ) from e

    async def run(self) -> None:
        """
        Serve the provider endpoints until cancelled.

        Raises:
            EmulatorStartupError: If the listener cannot bind
        """
        await self._serve(self._build_server())

    async def run_with_emulator(
        self,
        body: Callable[["OpenIdConnectEmulator"], Awaitable[T]],
    ) -> T:
        """
        Run ``body`` while the emulator serves in the background.

        The listener is started first and ``body`` only begins once it
        accepts connections. Whichever of the two finishes first decides
        the outcome; the other is stopped.

        Args:
            body: Coroutine function receiving this emulator

        Returns:
            The result of ``body``

        Raises:
            EmulatorStartupError: If the listener stops before ``body`` ends
            Exception: Whatever ``body`` raises
        """
        server = self._build_server()
        server_task = asyncio.create_task(self._serve(server))
        body_task: Optional[asyncio.Task] = None

        try:
            while not server.started and not server_task.done():
                await asyncio.sleep(self.STARTUP_POLL_INTERVAL)

            if server_task.done():
                raise self._startup_error(server_task)

            body_task = asyncio.ensure_future(body(self))
            done, _ = await asyncio.wait(
                {server_task, body_task},
                return_when=asyncio.FIRST_COMPLETED,
            )

            if body_task in done:
                return body_task.result()

            raise self._startup_error(server_task)

        finally:
            if body_task is not None and not body_task.done():
                body_task.cancel()
                await asyncio.gather(body_task, return_exceptions=True)
            await self._shutdown(server, server_task)

    def _startup_error(self, server_task: asyncio.Task) -> EmulatorStartupError:
        if server_task.cancelled():
            return EmulatorStartupError("Listener was cancelled")
        exc = server_task.exception()
        if isinstance(exc, EmulatorStartupError):
            return exc
        error = EmulatorStartupError(f"Listener on port {self.port} stopped unexpectedly")
        error.__cause__ = exc
        return error

    async def _shutdown(self, server: uvicorn.Server, server_task: asyncio.Task) -> None:
        if server_task.done():
            return

        server.should_exit = True
        try:
            await asyncio.wait_for(server_task, timeout=self.SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning(f"Listener on port {self.port} did not stop within {self.SHUTDOWN_TIMEOUT}s")
        logger.info(f"OIDC emulator on port {self.port} stopped")
