"""Application configuration.

Delegates to specialized components:
- Settings: Environment variables
- HostKeyVerifier: Manages known_hosts policy
"""

import logging
import os
from dataclasses import dataclass

from vhost_mcp.config.host_keys import HostKeyVerifier
from vhost_mcp.config.settings import Settings
from vhost_mcp.errors import ValidationError
from vhost_mcp.models import Credential, SSHTarget
from vhost_mcp.utils.validation import validate_host

logger = logging.getLogger(__name__)


@dataclass
class Config:
    """Application configuration.

    Assembled once at process start and passed explicitly to the
    components that need it.
    """

    settings: Settings
    host_keys: HostKeyVerifier

    @classmethod
    def from_env(cls) -> "Config":
        """Create config from environment.

        Returns:
            Configured instance with all components initialized

        Raises:
            FileNotFoundError: If host key checking is strict and no
                known_hosts file exists
        """
        settings = Settings.from_env()
        host_keys = HostKeyVerifier(
            known_hosts_path=os.getenv("VHOST_KNOWN_HOSTS"),
            strict_checking=cls._get_bool_env("VHOST_STRICT_HOST_KEY_CHECKING", True),
        )
        return cls(settings=settings, host_keys=host_keys)

    @staticmethod
    def _get_bool_env(key: str, default: bool) -> bool:
        """Get boolean from environment; only an explicit 'false' disables."""
        value = os.getenv(key)
        if value is None:
            return default
        return value.strip().lower() != "false"

    def ssh_target(self) -> SSHTarget:
        """Build the SSH target for the managed host.

        Returns:
            SSHTarget with host, port and credential

        Raises:
            ValidationError: Naming the first missing or invalid attribute
        """
        settings = self.settings
        if not settings.host:
            raise ValidationError(
                "host", "A valid hostname or IP is required (set VHOST_HOST)."
            )
        try:
            host = validate_host(settings.host)
        except ValueError as e:
            raise ValidationError("host", str(e)) from e

        if not settings.username:
            raise ValidationError(
                "username",
                "A valid username is required to connect to the host (set VHOST_USERNAME).",
            )
        if not (settings.password or settings.identity_file):
            raise ValidationError(
                "password",
                "A password or identity file is required to connect to the host "
                "(set VHOST_PASSWORD or VHOST_IDENTITY_FILE).",
            )

        return SSHTarget(
            host=host,
            port=settings.port,
            credential=Credential(
                username=settings.username,
                password=settings.password,
                identity_file=settings.identity_file,
            ),
        )

    def default_destination(self, identity: str) -> str:
        """Default destination path for an artifact without an explicit path."""
        return f"{self.settings.sites_dir}/{identity}.conf"

    # Delegate to settings for convenience
    @property
    def command_timeout(self) -> int:
        """Command timeout in seconds."""
        return self.settings.command_timeout

    @property
    def connect_timeout(self) -> int:
        """SSH connect timeout in seconds."""
        return self.settings.connect_timeout

    @property
    def transport(self) -> str:
        """Transport type (http or stdio)."""
        return self.settings.transport

    @property
    def http_host(self) -> str:
        """HTTP server bind address."""
        return self.settings.http_host

    @property
    def http_port(self) -> int:
        """HTTP server port."""
        return self.settings.http_port

    @property
    def known_hosts_path(self) -> str | None:
        """Path to known_hosts file or None if disabled."""
        return self.host_keys.get_known_hosts_path()

    @property
    def strict_host_key_checking(self) -> bool:
        """Whether to reject unknown host keys."""
        return self.host_keys.strict_checking
