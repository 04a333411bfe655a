"""Exit handling utilities for the CLI.

Exit codes: 0 for success, 1 for a denied request or a remote failure,
2 for invalid input or invalid access control configuration.
"""

from typing import NoReturn

import typer

from dbacl.cli.common.output import out

EXIT_DENIED = 1
EXIT_INVALID = 2


def die(msg: str, code: int = EXIT_DENIED) -> NoReturn:
    """Exit with an error message and optional exit code."""
    out.error(msg)
    raise typer.Exit(code)


def warn_exit(msg: str, code: int = 0) -> NoReturn:
    """Exit with a warning message and optional exit code."""
    out.warn(msg)
    raise typer.Exit(code)


def exit_from_exc(exc: Exception, *, message: str | None = None, code: int = EXIT_DENIED) -> NoReturn:
    """Print `message` (or the exception text) and exit, chaining `exc`."""
    out.error(message or str(exc))
    raise typer.Exit(code) from exc
