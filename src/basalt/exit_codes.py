"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~basalt.exceptions.BasaltError` subclass.
Shell wrappers and CI scripts can inspect the exit code to tell an
authentication problem from a missing review without parsing stderr.

Example::

    $ bt auth login
    $ echo $?
    3   # EXIT_AUTH_FAILURE -- no usable credential
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments or unrecognised input (provider name, remote URL, review id)."""

EXIT_AUTH_FAILURE = 3
"""No credential could be found, or the credential was rejected or under-scoped."""

EXIT_NOT_FOUND = 4
"""The requested review does not exist (HTTP 404)."""

EXIT_API_ERROR = 5
"""The hosting API returned an unexpected non-2xx status."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_CLI_NOT_FOUND = 7
"""The provider's companion CLI (``glab``, ``gh``) is not installed."""

EXIT_INTERRUPTED = 130
"""The user interrupted the command with Ctrl-C."""
