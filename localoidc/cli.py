"""
LocalOIDC Command-Line Interface

Runs the emulator standalone and prints signing artefacts for debugging
relying parties.
"""

import sys
import json
import asyncio
import logging
from pathlib import Path
from typing import Optional

import click
import yaml
from pydantic import ValidationError

from localoidc import __version__
from localoidc.auth.oidc.exceptions import KeyMaterialError
from localoidc.auth.oidc.keys import default_signing_key
from localoidc.auth.oidc.token_issuer import IdTokenIssuer
from localoidc.core.config_manager import ConfigManager
from localoidc.core.emulator import OpenIdConnectEmulator, EmulatorStartupError
from localoidc.core.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="localoidc")
@click.pass_context
def cli(ctx):
    """
    LocalOIDC - OpenID Connect Identity Provider Emulator

    Serve discovery, JWKS and token endpoints for integration tests.
    """
    ctx.ensure_object(dict)


@cli.command()
@click.option("--host", default=None, help="Host to bind to (default: localhost)")
@click.option("--port", default=None, type=int, help="Port to bind to (default: any free port)")
@click.option("--redirect-url", default=None, help="Relying party callback URL")
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file",
)
@click.option(
    "--log-level",
    default=None,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
    help="Logging level",
)
@click.option("--code", default=None, help="Preload a grant under this authorization code")
@click.option("--access-token", default="access-token", show_default=True, help="Access token of the preloaded grant")
@click.option("--scopes", default="openid", show_default=True, help="Scopes of the preloaded grant")
@click.option("--user-id", default="user", show_default=True, help="Subject of the preloaded grant")
@click.option("--nonce", default=None, help="Nonce of the preloaded grant")
def serve(
    host: Optional[str],
    port: Optional[int],
    redirect_url: Optional[str],
    config: Optional[Path],
    log_level: Optional[str],
    code: Optional[str],
    access_token: str,
    scopes: str,
    user_id: str,
    nonce: Optional[str],
):
    """
    Run the emulator until interrupted.

    Examples:
        localoidc serve
        localoidc serve --port 8080 --code abc --nonce n-1 --user-id alice
    """
    if code and not nonce:
        raise click.UsageError("--code requires --nonce")

    overrides = {"host": host, "port": port, "redirect_url": redirect_url}
    if log_level:
        overrides["logging"] = {"level": log_level.upper()}

    try:
        settings = ConfigManager().load(
            config_file=str(config) if config else None,
            cli_overrides=overrides,
        )
    except ValidationError as e:
        click.echo(f"[ERROR] Invalid configuration: {e}", err=True)
        sys.exit(2)
    except (ValueError, yaml.YAMLError) as e:
        click.echo(f"[ERROR] Could not load configuration: {e}", err=True)
        sys.exit(1)

    setup_logging(
        level=settings.logging.level,
        format_type=settings.logging.format,
        log_file=settings.logging.file,
        rotation_size=settings.logging.rotation_size,
        rotation_count=settings.logging.rotation_count,
        module_levels=settings.logging.module_levels,
    )
    logger = logging.getLogger("localoidc.cli")

    try:
        emulator = OpenIdConnectEmulator(config=settings)
    except (EmulatorStartupError, KeyMaterialError) as e:
        click.echo(f"[ERROR] Error starting LocalOIDC: {e}", err=True)
        sys.exit(1)

    click.echo(f"Starting LocalOIDC v{__version__}")
    click.echo(f"Issuer: {emulator.issuer_url}")
    click.echo(f"Discovery: {emulator.issuer_url}.well-known/openid-configuration")

    async def main() -> None:
        if code:
            await emulator.tokens.register(access_token, scopes, user_id, nonce, code=code)
            logger.info(f"Preloaded grant for user_id={user_id}")
        await emulator.run()

    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        click.echo("\nShutting down LocalOIDC...")
    except EmulatorStartupError as e:
        click.echo(f"[ERROR] Error starting LocalOIDC: {e}", err=True)
        sys.exit(1)


@cli.command("id-token")
@click.option("--issuer", required=True, help="Issuer URL, e.g. http://localhost:8080/")
@click.option("--user-id", required=True, help="Subject claim")
@click.option("--nonce", required=True, help="Nonce claim")
@click.option("--client-id", default=IdTokenIssuer.DEFAULT_CLIENT_ID, show_default=True, help="Audience claim")
def id_token(issuer: str, user_id: str, nonce: str, client_id: str):
    """Print a signed ID token."""
    click.echo(IdTokenIssuer(client_id=client_id).issue(issuer, user_id, nonce))


@cli.command()
def jwks():
    """Print the published JSON Web Key Set."""
    click.echo(json.dumps(default_signing_key().jwks(), indent=2))


def main():
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
