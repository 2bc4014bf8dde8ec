"""
Configuration management for LocalOIDC.

Handles loading, validation, and access to emulator settings.
"""

import os
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from enum import Enum

import yaml
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

logger = logging.getLogger(__name__)


class LogLevel(str, Enum):
    """Valid log levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: LogLevel = LogLevel.INFO
    format: str = "json"
    file: Optional[str] = None
    rotation_size: str = "10MB"
    rotation_count: int = 5
    module_levels: Optional[Dict[str, str]] = Field(
        default=None,
        description="Per-module log levels, e.g., {'localoidc.services.oidc': 'DEBUG'}"
    )

    model_config = ConfigDict(use_enum_values=True)

    @field_validator("format")
    @classmethod
    def validate_format(cls, v: str) -> str:
        if v not in ("json", "text"):
            raise ValueError("Log format must be 'json' or 'text'")
        return v


class EmulatorConfig(BaseModel):
    """Main LocalOIDC configuration schema."""

    host: str = Field(default="localhost", description="Interface the listener binds to")
    port: Optional[int] = Field(
        default=None,
        ge=1,
        le=65535,
        description="Listener port, an unused port is picked when unset"
    )
    redirect_url: Optional[str] = Field(
        default=None,
        description="Relying party callback that receives code and state"
    )
    client_id: str = Field(default="CLIENT-ID", min_length=1, description="ID token audience")
    id_token_lifetime: int = Field(default=3600, gt=0, description="ID token lifetime in seconds")
    single_use_codes: bool = Field(
        default=True,
        description="Reject an authorization code after its first redemption"
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)


_TRUE_VALUES = ("true", "1", "yes")


class ConfigManager:
    """
    Manages LocalOIDC configuration loading and validation.

    Configuration precedence (highest to lowest):
    1. CLI arguments
    2. Environment variables (LOCALOIDC_*)
    3. Configuration file (YAML/JSON)
    4. Defaults
    """

    def __init__(self):
        self._config: Optional[EmulatorConfig] = None
        self._config_file: Optional[Path] = None

    def load(
        self,
        config_file: Optional[str] = None,
        cli_overrides: Optional[Dict[str, Any]] = None
    ) -> EmulatorConfig:
        """
        Load and validate configuration from multiple sources.

        Args:
            config_file: Path to configuration file (YAML or JSON)
            cli_overrides: Dictionary of CLI argument overrides

        Returns:
            Validated EmulatorConfig instance

        Raises:
            ValidationError: If configuration is invalid
            FileNotFoundError: If specified config file doesn't exist
        """
        config_dict: Dict[str, Any] = {}

        if config_file:
            config_dict = self._load_from_file(config_file)
            self._config_file = Path(config_file)
            logger.info(f"Loaded configuration from file: {config_file}")

        env_config = self._load_from_env()
        config_dict = self._merge_configs(config_dict, env_config)
        if env_config:
            logger.info(f"Applied {len(env_config)} environment variable overrides")

        if cli_overrides:
            cli_overrides = {k: v for k, v in cli_overrides.items() if v is not None}
            config_dict = self._merge_configs(config_dict, cli_overrides)
            logger.info(f"Applied {len(cli_overrides)} CLI argument overrides")

        try:
            self._config = EmulatorConfig(**config_dict)
        except ValidationError as e:
            logger.error(f"Configuration validation failed: {e}")
            raise

        logger.debug(f"Active configuration: {json.dumps(self._config.model_dump())}")
        return self._config

    def _load_from_file(self, file_path: str) -> Dict[str, Any]:
        """Load configuration from YAML or JSON file."""
        path = Path(file_path)

        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {file_path}")

        with open(path, 'r') as f:
            if path.suffix in ['.yaml', '.yml']:
                return yaml.safe_load(f) or {}
            elif path.suffix == '.json':
                return json.load(f)
            else:
                raise ValueError(f"Unsupported config file format: {path.suffix}")

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment variables."""
        config: Dict[str, Any] = {}

        if host := os.getenv("LOCALOIDC_HOST"):
            config["host"] = host
        if port := os.getenv("LOCALOIDC_PORT"):
            config["port"] = int(port)
        if redirect_url := os.getenv("LOCALOIDC_REDIRECT_URL"):
            config["redirect_url"] = redirect_url
        if client_id := os.getenv("LOCALOIDC_CLIENT_ID"):
            config["client_id"] = client_id
        if lifetime := os.getenv("LOCALOIDC_ID_TOKEN_LIFETIME"):
            config["id_token_lifetime"] = int(lifetime)
        if single_use := os.getenv("LOCALOIDC_SINGLE_USE_CODES"):
            config["single_use_codes"] = single_use.lower() in _TRUE_VALUES

        if log_level := os.getenv("LOCALOIDC_LOG_LEVEL"):
            config.setdefault("logging", {})["level"] = log_level.upper()
        if log_format := os.getenv("LOCALOIDC_LOG_FORMAT"):
            config.setdefault("logging", {})["format"] = log_format.lower()
        if log_file := os.getenv("LOCALOIDC_LOG_FILE"):
            config.setdefault("logging", {})["file"] = log_file

        return config

    def _merge_configs(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two configuration dictionaries."""
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_configs(result[key], value)
            else:
                result[key] = value

        return result

    def get_config(self) -> EmulatorConfig:
        """
        Get the loaded configuration.

        Raises:
            RuntimeError: If configuration hasn't been loaded
        """
        if self._config is None:
            raise RuntimeError("Configuration not loaded. Call load() first.")
        return self._config

    def reload(self) -> EmulatorConfig:
        """Reload configuration from the same file and the environment."""
        config_file = str(self._config_file) if self._config_file else None
        return self.load(config_file=config_file)
