"""Exception hierarchy for kla.

All exceptions inherit from :class:`KlaError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`kla.exit_codes`.
The CLI commands in :mod:`kla.app` and :mod:`kla.commands` catch
``KlaError``, print the message to stderr, and exit with the matching code.

The taxonomy is flat::

    KlaError (exit 1)
    +-- InvalidArgumentsError (exit 2)
    +-- InvalidURLError       (exit 2)
    +-- InvalidMethodError    (exit 2)
    +-- InvalidBodyError      (exit 7)
    +-- ConfigError           (exit 3)
    +-- ClientError           (exit 6)
    +-- TemplateError         (exit 4)
    +-- BodyParsingError      (exit 1, recovered by the executor)
    +-- IOError_              (exit 5)

:class:`BodyParsingError` is the only recoverable kind: the executor catches
it and writes the raw response text instead of rendering a template.
"""

from kla.exit_codes import (
    EXIT_CLIENT_ERROR,
    EXIT_CONFIG_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_BODY,
    EXIT_INVALID_USAGE,
    EXIT_IO_ERROR,
    EXIT_TEMPLATE_ERROR,
)


class KlaError(Exception):
    """Base exception for all kla errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidArgumentsError(KlaError):
    """Raised for malformed positional arguments, header/query/form tokens, or credentials."""

    exit_code = EXIT_INVALID_USAGE


class InvalidURLError(KlaError):
    """Raised when the resolved URL cannot be parsed or is not absolute at send time."""

    exit_code = EXIT_INVALID_USAGE


class InvalidMethodError(KlaError):
    """Raised when the HTTP method is not a valid token."""

    exit_code = EXIT_INVALID_USAGE


class InvalidBodyError(KlaError):
    """Raised when a body (request file, stdin, or response) is not valid text."""

    exit_code = EXIT_INVALID_BODY


class ConfigError(KlaError):
    """Raised for configuration problems (invalid TOML, missing or mistyped keys)."""

    exit_code = EXIT_CONFIG_ERROR


class ClientError(KlaError):
    """Raised on transport failures (connection, TLS, timeout, protocol)."""

    exit_code = EXIT_CLIENT_ERROR


class TemplateError(KlaError):
    """Raised when a template fails to compile or render."""

    exit_code = EXIT_TEMPLATE_ERROR


class BodyParsingError(KlaError):
    """Raised when a response body is not JSON.

    Never reaches the user: :func:`kla.client.executor.execute` catches it
    and falls back to writing the raw text.
    """


class IOError_(KlaError):
    """Raised on filesystem, stdin, or stdout failures.

    Named with a trailing underscore to avoid shadowing the built-in
    ``IOError``.
    """

    exit_code = EXIT_IO_ERROR
