"""Composite import identifier parsing."""

from vhost_mcp.errors import ImportFormatError

IMPORT_SEPARATOR = ":"


def parse_import_id(import_id: str) -> tuple[str, str]:
    """Split an import identifier into identity and destination path.

    Format:
        "<identity>:<destination_path>", e.g. "blog:/etc/site/blog.conf"

    Returns:
        Tuple of (identity, destination_path).

    Raises:
        ImportFormatError: If the separator is missing, there are more than
            two components, or either component is empty.
    """
    expected = "Expected import ID in format 'name:path'"
    parts = import_id.strip().split(IMPORT_SEPARATOR)

    if len(parts) != 2:
        raise ImportFormatError(
            f"{expected}, got {import_id!r} ({len(parts)} component(s))",
            operation="import",
        )

    identity, path = (part.strip() for part in parts)
    if not identity or not path:
        raise ImportFormatError(
            f"{expected}, got {import_id!r} (empty component)",
            operation="import",
        )

    return identity, path
