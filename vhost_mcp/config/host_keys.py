"""SSH host key verification policy.

Verification is fail-closed by default: host keys are checked against a
known_hosts file and a missing file is a configuration error. Disabling
verification requires an explicit opt-in (``VHOST_KNOWN_HOSTS=none`` or
``VHOST_STRICT_HOST_KEY_CHECKING=false``).
"""

import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DISABLE_SENTINEL = "none"


def default_known_hosts() -> Path:
    return Path.home() / ".ssh" / "known_hosts"


class HostKeyVerifier:
    """SSH host key verification manager."""

    def __init__(
        self,
        known_hosts_path: str | None = None,
        strict_checking: bool = True,
        default_path: Path | None = None,
    ):
        """Initialize host key verifier.

        Args:
            known_hosts_path: Path to known_hosts file, or 'none' to disable
            strict_checking: Reject hosts whose key cannot be verified.
                False is an explicit insecure opt-in.
            default_path: known_hosts location used when no path is given

        Raises:
            FileNotFoundError: If strict mode and the known_hosts file is missing
        """
        self.strict_checking = strict_checking
        self._default_path = default_path or default_known_hosts()
        self._known_hosts = self._resolve_known_hosts(known_hosts_path)

        if not strict_checking and self._known_hosts is not None:
            logger.warning(
                "Strict host key checking DISABLED; known_hosts %s will not be "
                "enforced. This is insecure!",
                self._known_hosts,
            )
            self._known_hosts = None

    def _resolve_known_hosts(self, value: str | None) -> str | None:
        """Resolve known_hosts path with security defaults.

        Returns:
            Path to known_hosts file or None to disable verification

        Raises:
            FileNotFoundError: If strict mode and file missing
        """
        if value and value.strip().lower() == DISABLE_SENTINEL:
            logger.critical(
                "SSH HOST KEY VERIFICATION DISABLED. "
                "This is INSECURE and vulnerable to MITM attacks. "
                "Only use in trusted networks for testing."
            )
            return None

        path = Path(os.path.expanduser(value)) if value else self._default_path
        if path.exists():
            return str(path)

        if self.strict_checking:
            raise FileNotFoundError(
                f"SSH host key verification required but known_hosts file "
                f"not found: {path}\n\n"
                f"To fix this:\n"
                f"1. Add host keys: ssh-keyscan <hostname> >> {path}\n"
                f"2. Or point VHOST_KNOWN_HOSTS at an existing file\n"
                f"3. Or disable verification (NOT RECOMMENDED): "
                f"VHOST_KNOWN_HOSTS={DISABLE_SENTINEL}"
            )

        logger.warning(
            "known_hosts not found at %s, verification disabled. This is insecure!",
            path,
        )
        return None

    def get_known_hosts_path(self) -> str | None:
        """Get path to known_hosts file.

        Returns:
            Path string or None if verification disabled
        """
        return self._known_hosts

    def is_enabled(self) -> bool:
        """Check if host key verification is enabled."""
        return self._known_hosts is not None

    @property
    def is_insecure(self) -> bool:
        """True when any host key will be accepted."""
        return not self.is_enabled()
