"""
Server configuration for todo-mcp.

Supports configuration via:
1. Environment variables (highest priority)
2. TOML config file (todo-mcp.toml)
3. Default values (lowest priority)

Environment variables:
- TODO_MCP_CONFIG_FILE: Path to TOML config file
- TODO_MCP_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR)
- TODO_MCP_STRUCTURED_LOGGING: JSON log lines on stderr (true/false)
- TODO_MCP_SERVER_NAME: Server name reported to clients
- TODO_MCP_INSTRUCTIONS: Usage instructions reported to clients
- TODO_MCP_AUDIT: Write an audit log line per tool invocation (true/false)

Example todo-mcp.toml:

    [server]
    name = "todo-mcp"

    [logging]
    level = "DEBUG"
    structured = false

    [observability]
    audit = true
"""

import logging
import os
from dataclasses import dataclass, field
from importlib.metadata import PackageNotFoundError
from importlib.metadata import version as get_package_version
from pathlib import Path
from typing import Any, Optional

try:
    import tomllib
except ImportError:
    import tomli as tomllib  # Python < 3.11 fallback

from todo_mcp.core.logging_config import configure_logging

logger = logging.getLogger(__name__)


def _get_version() -> str:
    """Get package version from metadata (single source of truth: pyproject.toml)."""
    try:
        return get_package_version("todo-mcp")
    except PackageNotFoundError:
        return "0.1.0"  # Fallback for dev without install


_PACKAGE_VERSION = _get_version()

DEFAULT_INSTRUCTIONS = (
    "This is a todo server that helps you manage your todo list. "
    "Use list_todos to view all todos, create_todo to create new todos, "
    "update_todo to update existing todos, delete_todo to remove todos, "
    "get_todo to view todo details, and complete_todo to mark todos as completed."
)

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in {"true", "1", "yes", "on"}


def _normalize_log_level(value: str) -> str:
    normalized = str(value).strip().upper()
    if normalized not in _VALID_LOG_LEVELS:
        logger.warning(
            "Invalid log level '%s'. Falling back to 'INFO'. Valid options: %s",
            value,
            ", ".join(sorted(_VALID_LOG_LEVELS)),
        )
        return "INFO"
    return normalized


@dataclass
class ServerConfig:
    """Server configuration with support for env vars and TOML overrides."""

    # Logging configuration
    log_level: str = "INFO"
    structured_logging: bool = True

    # Server configuration
    server_name: str = "todo-mcp"
    server_version: str = field(default_factory=lambda: _PACKAGE_VERSION)
    instructions: str = DEFAULT_INSTRUCTIONS

    # Observability configuration
    audit_enabled: bool = True

    @classmethod
    def from_env(cls, config_file: Optional[str] = None) -> "ServerConfig":
        """
        Create configuration from environment variables and optional TOML file.

        Priority (highest to lowest):
        1. Environment variables
        2. TOML config file
        3. Default values
        """
        config = cls()

        toml_path = config_file or os.environ.get("TODO_MCP_CONFIG_FILE")
        if toml_path:
            config._load_toml(Path(toml_path))
        else:
            for default_path in ["todo-mcp.toml", ".todo-mcp.toml"]:
                if Path(default_path).exists():
                    config._load_toml(Path(default_path))
                    break

        config._load_env()

        return config

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        if not path.exists():
            logger.warning(f"Config file not found: {path}")
            return

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.error(f"Error loading config file {path}: {e}")
            return

        log = self._section(data, "logging", path)
        if "level" in log:
            self.log_level = _normalize_log_level(log["level"])
        if "structured" in log:
            self.structured_logging = _parse_bool(log["structured"])

        srv = self._section(data, "server", path)
        if "name" in srv:
            self.server_name = str(srv["name"])
        if "version" in srv:
            self.server_version = str(srv["version"])
        if "instructions" in srv:
            self.instructions = str(srv["instructions"])

        obs = self._section(data, "observability", path)
        if "audit" in obs:
            self.audit_enabled = _parse_bool(obs["audit"])

    @staticmethod
    def _section(data: dict, name: str, path: Path) -> dict:
        """Return table ``name`` from ``data``; non-table values are ignored."""
        section = data.get(name, {})
        if not isinstance(section, dict):
            logger.warning(f"Ignoring [{name}] in {path}: expected a table")
            return {}
        return section

    def _load_env(self) -> None:
        """Load configuration from environment variables."""
        if level := os.environ.get("TODO_MCP_LOG_LEVEL"):
            self.log_level = _normalize_log_level(level)

        if structured := os.environ.get("TODO_MCP_STRUCTURED_LOGGING"):
            self.structured_logging = _parse_bool(structured)

        if name := os.environ.get("TODO_MCP_SERVER_NAME"):
            self.server_name = name

        if instructions := os.environ.get("TODO_MCP_INSTRUCTIONS"):
            self.instructions = instructions

        if audit := os.environ.get("TODO_MCP_AUDIT"):
            self.audit_enabled = _parse_bool(audit)

    def setup_logging(self) -> None:
        """Configure logging based on settings (stderr only)."""
        configure_logging(
            level=self.log_level,
            format="structured" if self.structured_logging else "human",
        )


# Global configuration instance
_config: Optional[ServerConfig] = None


def get_config() -> ServerConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = ServerConfig.from_env()
    return _config


def set_config(config: ServerConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
