"""Path and input validation utilities."""

import os
import re
from typing import Final

from vhost_mcp.errors import ValidationError


class PathTraversalError(ValueError):
    """Attempted path traversal detected."""

    pass


# Path traversal patterns to reject
TRAVERSAL_PATTERNS: Final[list[str]] = [
    r"\.\./",  # ../
    r"/\.\.$",  # trailing /..
    r"^\.\.$",  # Just ..
]


def validate_path(path: str) -> str:
    """Validate a remote destination path.

    Destination paths must be absolute, free of null bytes and free of
    ``..`` components. Other characters (including shell metacharacters)
    are allowed; they are quoted at interpolation time.

    Args:
        path: The path to validate

    Returns:
        Normalized path

    Raises:
        PathTraversalError: If path contains traversal sequences
        ValueError: If path is empty or relative
    """
    if not path:
        raise ValueError("Path cannot be empty")

    # Null bytes cannot be passed through a shell argument
    if "\x00" in path:
        raise PathTraversalError(f"Path contains null byte: {path!r}")

    for pattern in TRAVERSAL_PATTERNS:
        if re.search(pattern, path):
            raise PathTraversalError(f"Path traversal not allowed: {path}")

    if not path.startswith("/"):
        raise ValueError(f"Path must be absolute: {path}")

    normalized = os.path.normpath(path)
    if normalized in ("/", "//"):
        raise ValueError(f"Path must name a file: {path}")
    if path.endswith("/"):
        raise ValueError(f"Path must name a file, not a directory: {path}")

    return normalized


def validate_host(host: str) -> str:
    """Validate a host name.

    Args:
        host: The host name to validate

    Returns:
        Validated host name

    Raises:
        ValueError: If host name is invalid
    """
    if not host:
        raise ValueError("Host cannot be empty")

    # Basic hostname validation
    if len(host) > 253:
        raise ValueError(f"Host name too long: {len(host)} chars")

    # Check for suspicious characters that could enable injection
    suspicious_chars = ["/", "\\", ";", "&", "|", "$", "`", " ", "\n", "\r", "\x00"]
    for char in suspicious_chars:
        if char in host:
            raise ValueError(f"Host contains invalid characters: {host!r}")

    return host


IDENTITY_PATTERN: Final = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]{0,127}$")


def validate_identity(name: str) -> str:
    """Validate an artifact identity.

    Identities double as default file names and as the first component of
    import IDs, so they are restricted to letters, digits, ``.``, ``_``
    and ``-``.

    Raises:
        ValidationError: Attributed to field ``name``
    """
    name = name.strip()
    if not IDENTITY_PATTERN.match(name):
        raise ValidationError(
            "name",
            f"Invalid name {name!r}: use 1-128 letters, digits, '.', '_' or '-', "
            f"starting with a letter or digit",
        )
    return name
