"""Shell command safety utilities.

Every value interpolated into a remote command line goes through
``shlex.quote``. Artifact content is never interpolated; it is streamed
to the remote command on stdin.
"""

import shlex


def quote_arg(arg: str) -> str:
    """Safely quote a shell argument.

    Args:
        arg: Argument to quote

    Returns:
        Shell-safe quoted argument
    """
    return shlex.quote(arg)


def format_command(template: str, **values: str) -> str:
    """Fill a command template with shell-quoted values.

    Placeholders use ``str.format`` syntax; literal braces in the template
    must be doubled.

    Args:
        template: Command template, e.g. ``"rm -f -- {path}"``
        **values: Untrusted values, each quoted before substitution

    Returns:
        Complete command line
    """
    return template.format(**{name: quote_arg(value) for name, value in values.items()})


def privileged(command: str) -> str:
    """Wrap a command so it runs through non-interactive sudo.

    The whole command is quoted again as a single ``sh -c`` argument, so
    values quoted by ``format_command`` stay literal through both shells.
    """
    return f"sudo -n sh -c {quote_arg(command)}"
