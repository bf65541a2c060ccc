"""The ``@file`` / ``-`` value convention shared by several CLI options.

Bodies, templates, and credentials may be given inline or as a reference:

* ``@path`` -- read the named file.
* ``-`` -- read standard input (bodies only).
* anything else -- the literal value.

Files are always read as bytes; :func:`decode_text` turns them into text and
raises :class:`~kla.exceptions.InvalidBodyError` on bad encodings.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from kla.exceptions import InvalidBodyError, IOError_

FILE_PREFIX = "@"
STDIN_MARKER = "-"


def is_file_reference(value: str) -> bool:
    """Return True if *value* uses the ``@path`` form."""
    return value.startswith(FILE_PREFIX)


def read_file(path: str) -> bytes:
    """Read *path* fully as bytes.

    Raises:
        IOError_: If the file cannot be opened or read.
    """
    try:
        return Path(path).expanduser().read_bytes()
    except OSError as exc:
        raise IOError_(f"Cannot read file '{path}': {exc.strerror or exc}") from exc


def read_stdin() -> bytes:
    """Read standard input until EOF.

    Raises:
        IOError_: If stdin is closed or unreadable.
    """
    try:
        stream = getattr(sys.stdin, "buffer", None)
        if stream is not None:
            return stream.read()
        return sys.stdin.read().encode("utf-8")
    except (OSError, ValueError) as exc:
        raise IOError_(f"Cannot read standard input: {exc}") from exc


def decode_text(data: bytes, origin: str, encoding: str = "utf-8") -> str:
    """Decode *data* strictly, naming *origin* in the error message."""
    try:
        return data.decode(encoding)
    except (UnicodeDecodeError, LookupError) as exc:
        raise InvalidBodyError(f"{origin} is not valid {encoding} text") from exc


def read_value(value: str, allow_stdin: bool = False) -> bytes:
    """Resolve *value* through the source convention and return its bytes.

    Args:
        value: Inline text, ``@path``, or ``-``.
        allow_stdin: Treat a bare ``-`` as standard input. When False the
            dash is a literal value.
    """
    if is_file_reference(value):
        return read_file(value[len(FILE_PREFIX):])
    if allow_stdin and value == STDIN_MARKER:
        return read_stdin()
    return value.encode("utf-8")


def read_text(value: str, what: str) -> str:
    """Resolve *value* like :func:`read_value` and decode it as UTF-8 text.

    Args:
        value: Inline text or ``@path``.
        what: Label used in error messages (``"template"``, ``"bearer token"``).
    """
    if is_file_reference(value):
        path = value[len(FILE_PREFIX):]
        return decode_text(read_file(path), f"{what} file '{path}'")
    return value


def read_body(value: Optional[str]) -> Optional[bytes]:
    """Materialise a request body from inline text, ``@path``, or stdin.

    An empty value means no body. File and stdin bodies must be valid UTF-8,
    since the request is sent as text.
    """
    if not value:
        return None
    data = read_value(value, allow_stdin=True)
    if is_file_reference(value) or value == STDIN_MARKER:
        origin = "standard input" if value == STDIN_MARKER else f"body file '{value[1:]}'"
        decode_text(data, origin)
    return data
