"""Application settings from environment variables.

Centralized environment variable parsing and validation. Settings are read
once at startup; nothing below the config layer looks at the environment.
"""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_SITES_DIR = "/etc/nginx/sites-available"
DEFAULT_STATE_FILE = str(Path.home() / ".vhost_mcp" / "state.json")


@dataclass
class Settings:
    """Application settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Remote host
    host: str = field(default="")
    port: int = field(default=22)
    username: str = field(default="")
    password: str | None = field(default=None, repr=False)
    identity_file: str | None = field(default=None)

    # Command execution
    command_timeout: int = field(default=30)
    connect_timeout: int = field(default=10)
    use_sudo: bool = field(default=False)
    reuse_connection: bool = field(default=True)

    # Artifacts and state
    sites_dir: str = field(default=DEFAULT_SITES_DIR)
    state_file: str = field(default=DEFAULT_STATE_FILE)

    # Transport
    transport: str = field(default="stdio")
    http_host: str = field(default="127.0.0.1")
    http_port: int = field(default=8000)

    # Logging
    log_level: str = field(default="INFO")
    log_colors: bool = field(default=True)
    log_timezone: str = field(default="UTC")
    log_payloads: bool = field(default=False)
    slow_threshold_ms: int = field(default=1000)
    include_traceback: bool = field(default=False)

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from VHOST_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        return cls(
            host=os.getenv("VHOST_HOST", "").strip(),
            port=cls._get_int("VHOST_PORT", 22),
            username=os.getenv("VHOST_USERNAME", "").strip(),
            password=cls._get_str("VHOST_PASSWORD"),
            identity_file=cls._get_path("VHOST_IDENTITY_FILE"),
            command_timeout=cls._get_int("VHOST_COMMAND_TIMEOUT", 30),
            connect_timeout=cls._get_int("VHOST_CONNECT_TIMEOUT", 10),
            use_sudo=cls._get_bool("VHOST_USE_SUDO", False),
            reuse_connection=cls._get_bool("VHOST_REUSE_CONNECTION", True),
            sites_dir=os.getenv("VHOST_SITES_DIR", DEFAULT_SITES_DIR).rstrip("/") or "/",
            state_file=cls._get_path("VHOST_STATE_FILE") or DEFAULT_STATE_FILE,
            transport=cls._get_transport(),
            http_host=os.getenv("VHOST_HTTP_HOST", "127.0.0.1"),
            http_port=cls._get_int("VHOST_HTTP_PORT", 8000),
            log_level=os.getenv("VHOST_LOG_LEVEL", "INFO").upper(),
            log_colors=cls._get_bool("VHOST_LOG_COLORS", True),
            log_timezone=os.getenv("VHOST_LOG_TZ", "UTC"),
            log_payloads=cls._get_bool("VHOST_LOG_PAYLOADS", False),
            slow_threshold_ms=cls._get_int("VHOST_SLOW_THRESHOLD_MS", 1000),
            include_traceback=cls._get_bool("VHOST_INCLUDE_TRACEBACK", False),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get a positive integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set or invalid

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            parsed = int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

        if parsed <= 0:
            logger.warning("Non-positive value for %s: %d, using default %d", key, parsed, default)
            return default
        return parsed

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.strip().lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_str(key: str) -> str | None:
        """Get a non-empty string from environment, or None."""
        value = os.getenv(key)
        return value if value else None

    @staticmethod
    def _get_path(key: str) -> str | None:
        """Get a user-expanded path from environment, or None."""
        value = os.getenv(key, "").strip()
        return os.path.expanduser(value) if value else None

    @staticmethod
    def _get_transport() -> str:
        """Get transport from environment with validation.

        Returns:
            Transport type ("http" or "stdio")
        """
        transport = os.getenv("VHOST_TRANSPORT", "").lower()
        if transport in ("http", "stdio"):
            return transport
        return "stdio"
