"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: get_config(), ConfigModule.get(), ConfigModule.override()
Hidden: Config sources, validation logic, environment parsing

Can be replaced with different config systems (files, secrets managers).
"""

import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv

# Configuration Contract: Required and Optional Keys
# This defines the black box interface - what the config module guarantees to provide

REQUIRED_CONFIG_KEYS = {
    "host": "Server bind address",
    "port": "Server port",
    "ws_path": "HTTP path upgraded to the WebSocket protocol endpoint",
    "allowed_commands": "Comma separated kubectl verbs, or * for all",
    "request_timeout": "Per-request deadline in seconds",
    "history_size": "Number of recent commands kept in memory",
    "shutdown_timeout": "Graceful shutdown limit in seconds",
    "log_level": "Logging level (DEBUG, INFO, WARNING, ERROR)",
}

OPTIONAL_CONFIG_KEYS = {
    "allowed_commands_file": {
        "description": "YAML file with allowedVerbs; overrides allowed_commands",
        "default": None,
    },
    "kubectl_path": {
        "description": "kubectl binary, looked up in PATH when unset",
        "default": None,
    },
    "kubeconfig": {
        "description": "Kubeconfig location, ~/.kube/config when unset",
        "default": None,
    },
}


def _positive_number(name: str, raw: str, cast=float):
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value <= 0:
        raise ValueError(f"{name} must be positive, got {raw!r}")
    return value


class ConfigModule:
    """Configuration management module."""

    def __init__(self):
        """Initialize with environment variables."""
        self._config = self._load_from_env()
        self._validate_required_keys()

    def _validate_required_keys(self) -> None:
        """
        Validate that all required configuration keys are present and not blank.

        Raises:
            ValueError: If required keys are missing
        """
        missing_keys = []
        for key in REQUIRED_CONFIG_KEYS:
            value = self._config.get(key)
            if value is None or (isinstance(value, str) and not value.strip()):
                missing_keys.append(key)

        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}. "
                f"Check environment variables."
            )

    def _load_from_env(self) -> Dict[str, Any]:
        """Load configuration from environment."""
        return {
            # Server settings
            "host": os.getenv("MCP_HOST", "0.0.0.0"),
            "port": _positive_number("MCP_PORT", os.getenv("MCP_PORT", "3000"), int),
            "ws_path": os.getenv("MCP_WS_PATH", "/ws"),
            "log_level": os.getenv("LOG_LEVEL", "INFO").upper(),
            # Protocol settings
            "request_timeout": _positive_number(
                "MCP_REQUEST_TIMEOUT", os.getenv("MCP_REQUEST_TIMEOUT", "30")
            ),
            "shutdown_timeout": _positive_number(
                "MCP_SHUTDOWN_TIMEOUT", os.getenv("MCP_SHUTDOWN_TIMEOUT", "5")
            ),
            # Command policy
            "allowed_commands": os.getenv("MCP_ALLOWED_COMMANDS") or "*",
            "allowed_commands_file": os.getenv("MCP_ALLOWED_COMMANDS_FILE"),
            "history_size": _positive_number(
                "MCP_HISTORY_SIZE", os.getenv("MCP_HISTORY_SIZE", "100"), int
            ),
            # kubectl
            "kubectl_path": os.getenv("KUBECTL_PATH"),
            "kubeconfig": os.getenv("KUBECONFIG"),
        }

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    def override(self, **values: Optional[Any]) -> None:
        """Apply command line values; None leaves the current value."""
        for key, value in values.items():
            if value is not None:
                self._config[key] = value
        self._validate_required_keys()

    def get_all(self) -> Dict[str, Any]:
        """Get all configuration values."""
        return self._config.copy()

    @staticmethod
    def get_config_schema() -> Dict[str, Any]:
        """
        Get the configuration schema (contract) for this module.

        Returns:
            Dictionary with 'required' and 'optional' key specifications

        Example:
            >>> schema = ConfigModule.get_config_schema()
            >>> schema['required']['port']
            'Server port'
        """
        return {
            "required": REQUIRED_CONFIG_KEYS.copy(),
            "optional": OPTIONAL_CONFIG_KEYS.copy(),
        }


# Singleton instance
_instance = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton, reading .env on first use."""
    global _instance
    if _instance is None:
        load_dotenv()
        _instance = ConfigModule()
    return _instance


def reset_config() -> None:
    """Drop the singleton so the next get_config() re-reads the environment."""
    global _instance
    _instance = None


__all__ = ["get_config", "reset_config", "ConfigModule"]
