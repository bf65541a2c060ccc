"""Numeric process exit codes, one per error category.

Each constant maps to a specific error kind and is referenced by the
corresponding :class:`~kla.exceptions.KlaError` subclass. Shell wrappers can
inspect the exit code to tell a bad invocation from a network failure
without parsing stderr.

Example::

    $ kla -e nowhere /users
    Error: Configuration key 'environments.nowhere' not found
    $ echo $?
    3   # EXIT_CONFIG_ERROR
"""

EXIT_SUCCESS = 0
"""The request was issued (or dry-run) and the output was written."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred."""

EXIT_INVALID_USAGE = 2
"""Invalid arguments, method, or URL."""

EXIT_CONFIG_ERROR = 3
"""The configuration could not be loaded or a key lookup failed."""

EXIT_TEMPLATE_ERROR = 4
"""A response template failed to compile or render."""

EXIT_IO_ERROR = 5
"""A file, stdin, or stdout operation failed."""

EXIT_CLIENT_ERROR = 6
"""A network-level error occurred (timeout, TLS, connection refused)."""

EXIT_INVALID_BODY = 7
"""A request or response body was not valid text."""

EXIT_INTERRUPTED = 130
"""The user cancelled with Ctrl-C."""
