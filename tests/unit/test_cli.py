"""
Tests for the LocalOIDC command-line interface.
"""

import json

import jwt
from click.testing import CliRunner

from localoidc import __version__
from localoidc.auth.oidc.keys import TEST_RSA_PUBLIC_JWK, default_signing_key
from localoidc.cli import cli


class TestCli:
    """Test CLI commands that do not start a listener."""

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_jwks(self):
        """Test the printed key set is the published one."""
        result = CliRunner().invoke(cli, ["jwks"])

        assert result.exit_code == 0
        assert json.loads(result.output) == {"keys": [TEST_RSA_PUBLIC_JWK]}

    def test_id_token(self):
        """Test the printed ID token verifies and carries the given claims."""
        result = CliRunner().invoke(
            cli,
            ["id-token", "--issuer", "http://localhost:8080/", "--user-id", "alice", "--nonce", "n-1"],
        )

        assert result.exit_code == 0
        claims = jwt.decode(
            result.output.strip(),
            default_signing_key().public_key,
            algorithms=["RS256"],
            audience="CLIENT-ID",
        )
        assert claims["sub"] == "alice"
        assert claims["nonce"] == "n-1"
        assert claims["iss"] == "http://localhost:8080/"

    def test_id_token_requires_nonce(self):
        result = CliRunner().invoke(
            cli, ["id-token", "--issuer", "http://localhost:8080/", "--user-id", "alice"]
        )

        assert result.exit_code != 0
        assert "--nonce" in result.output

    def test_serve_code_requires_nonce(self):
        """Test a preloaded grant needs a nonce before anything starts."""
        result = CliRunner().invoke(cli, ["serve", "--code", "abc"])

        assert result.exit_code != 0
        assert "--code requires --nonce" in result.output

    def test_serve_invalid_config(self):
        """Test configuration errors exit before binding."""
        result = CliRunner().invoke(cli, ["serve", "--port", "0"])

        assert result.exit_code == 2
        assert "Invalid configuration" in result.output

    def test_serve_unsupported_config_format(self, tmp_path):
        """Test an unknown config file type is reported without a traceback."""
        config_file = tmp_path / "localoidc.toml"
        config_file.write_text('host = "localhost"\n')

        result = CliRunner().invoke(cli, ["serve", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Could not load configuration" in result.output
        assert "Unsupported config file format: .toml" in result.output

    def test_serve_malformed_yaml(self, tmp_path):
        config_file = tmp_path / "localoidc.yaml"
        config_file.write_text("host: [unclosed\n")

        result = CliRunner().invoke(cli, ["serve", "--config", str(config_file)])

        assert result.exit_code == 1
        assert "Could not load configuration" in result.output

    def test_serve_bad_port_in_environment(self):
        """Test a non-numeric LOCALOIDC_PORT is reported cleanly."""
        result = CliRunner().invoke(cli, ["serve"], env={"LOCALOIDC_PORT": "eighty"})

        assert result.exit_code == 1
        assert "Could not load configuration" in result.output
