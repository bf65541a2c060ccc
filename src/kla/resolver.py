"""Positional-argument resolution and parsing of request tokens.

The first positional arguments change meaning with their count::

    kla                       -> GET  /
    kla /users                -> GET  /users
    kla post /users           -> POST /users
    kla post /users @new.json -> POST /users  (body from new.json)

:func:`resolve_positional` therefore looks at the total arity before
assigning anything. The remaining helpers validate the individual pieces a
request is built from: the method token, the URL, ``Key: Value`` headers,
and ``key=value`` query/form pairs.
"""

from __future__ import annotations

import re
from typing import NamedTuple, Optional, Sequence

import httpx

from kla.exceptions import InvalidArgumentsError, InvalidMethodError, InvalidURLError

MAX_POSITIONAL = 3
DEFAULT_METHOD = "GET"
DEFAULT_URI = "/"

# RFC 9110 token characters, used for methods and header names.
_TOKEN_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_INVALID_VALUE_RE = re.compile(r"[\x00-\x08\x0a-\x1f\x7f]")


class PositionalArgs(NamedTuple):
    """The (method, uri, body) triple produced by :func:`resolve_positional`."""

    method: str
    uri: str
    body: Optional[str]


def resolve_positional(tokens: Sequence[str]) -> PositionalArgs:
    """Assign meaning to 0-3 positional tokens.

    Raises:
        InvalidArgumentsError: For more than three tokens.
        InvalidMethodError: If the method token is not a valid HTTP token.
    """
    count = len(tokens)
    if count > MAX_POSITIONAL:
        raise InvalidArgumentsError(
            f"Too many positional arguments: expected at most {MAX_POSITIONAL} "
            f"(METHOD URI BODY), got {count}"
        )
    if count == 0:
        return PositionalArgs(DEFAULT_METHOD, DEFAULT_URI, None)
    if count == 1:
        return PositionalArgs(DEFAULT_METHOD, tokens[0], None)
    body = tokens[2] if count == 3 else None
    return PositionalArgs(parse_method(tokens[0]), tokens[1], body)


def parse_method(method: str) -> str:
    """Upper-case and validate an HTTP method token.

    Extension methods are allowed as long as they are valid tokens.

    Raises:
        InvalidMethodError: If *method* is empty or contains separators.
    """
    if not method or not _TOKEN_RE.match(method):
        raise InvalidMethodError(f"Invalid HTTP method: {method!r}")
    return method.upper()


def join_url(prefix: Optional[str], path: str) -> str:
    """Prepend an environment prefix to *path*.

    Trailing slashes are stripped from the prefix; the path is used as-is,
    so ``"https://api/" + "/users"`` gives ``"https://api/users"``.
    """
    if not prefix:
        return path
    return prefix.rstrip("/") + path


def parse_url(url: str) -> httpx.URL:
    """Parse *url*, which may still be relative.

    Raises:
        InvalidURLError: If the URL is empty or malformed.
    """
    if not url:
        raise InvalidURLError("Invalid URL: empty")
    try:
        return httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as exc:
        raise InvalidURLError(f"Invalid URL {url!r}: {exc}") from exc


def is_absolute(url: httpx.URL) -> bool:
    """Return True if *url* has both a scheme and a host."""
    return bool(url.scheme) and bool(url.host)


def parse_header(raw: str) -> tuple[str, str]:
    """Split ``Key: Value`` on the first colon and trim both sides.

    Raises:
        InvalidArgumentsError: If the colon is missing, the name is not a
            valid token, or the value contains control characters.
    """
    name, sep, value = raw.partition(":")
    name = name.strip()
    value = value.strip()
    if not sep:
        raise InvalidArgumentsError(
            f"Invalid header {raw!r}: expected 'Key: Value'"
        )
    if not _TOKEN_RE.match(name):
        raise InvalidArgumentsError(f"Invalid header name {name!r}")
    if _INVALID_VALUE_RE.search(value):
        raise InvalidArgumentsError(f"Invalid value for header {name!r}")
    return name, value


def parse_pair(raw: str, kind: str) -> tuple[str, str]:
    """Split ``key=value`` on the first ``=``.

    Args:
        raw: The token as given on the command line.
        kind: ``"query"`` or ``"form"``, used in error messages.

    Raises:
        InvalidArgumentsError: If there is no ``=`` or the key is empty.
    """
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise InvalidArgumentsError(
            f"Invalid {kind} parameter {raw!r}: expected 'key=value'"
        )
    return key, value
