"""Core module initialization."""

from .config_manager import ConfigManager, EmulatorConfig, LoggingConfig
from .logging_config import setup_logging, get_logger
from .emulator import (
    OpenIdConnectEmulator,
    EmulatorState,
    EmulatorStartupError,
    pick_unused_port,
    reserve_port,
)

__all__ = [
    "ConfigManager",
    "EmulatorConfig",
    "LoggingConfig",
    "setup_logging",
    "get_logger",
    "OpenIdConnectEmulator",
    "EmulatorState",
    "EmulatorStartupError",
    "pick_unused_port",
    "reserve_port",
]
