"""Output sinks -- where the rendered response ends up.

A sink is one of a small, closed set of variants sharing the same two-method
contract: ``write(data: bytes)`` and ``close()``.

- :class:`ConsoleSink` -- standard output (the default).
- :class:`FileSink` -- a file opened (and truncated) by
  :func:`open_sink` while the request is being built.
- :class:`MemorySink` -- an in-memory buffer, used by tests and embedders.

Failures surface as :class:`~kla.exceptions.IOError_`.
"""

from __future__ import annotations

import io
import sys
from pathlib import Path
from typing import BinaryIO, Optional, TextIO, Union

from kla.exceptions import IOError_

BINARY_PLACEHOLDER = "Binary data, unsafe to write to standard out"


class ConsoleSink:
    """Write response data to standard output.

    Text is written as-is without a trailing newline. Bytes that are not
    valid UTF-8 are replaced by a short notice rather than dumped to the
    terminal.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream

    def write(self, data: bytes) -> None:
        stream = self._stream or sys.stdout
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            text = BINARY_PLACEHOLDER
        try:
            stream.write(text)
            stream.flush()
        except (OSError, UnicodeEncodeError) as exc:
            raise IOError_(f"Cannot write to standard output: {exc}") from exc

    def close(self) -> None:
        # stdout belongs to the process
        pass

    def __repr__(self) -> str:
        return "ConsoleSink()"


class FileSink:
    """Write response data to a file opened at build time."""

    def __init__(self, path: str, handle: BinaryIO) -> None:
        self.path = path
        self._handle = handle

    @classmethod
    def create(cls, path: str) -> FileSink:
        """Create (or truncate) *path* and return a sink bound to it.

        Raises:
            IOError_: If the file cannot be created.
        """
        try:
            handle = open(Path(path).expanduser(), "wb")  # noqa: SIM115
        except OSError as exc:
            raise IOError_(
                f"Cannot open output file '{path}': {exc.strerror or exc}"
            ) from exc
        return cls(path, handle)

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def write(self, data: bytes) -> None:
        try:
            self._handle.write(data)
            self._handle.flush()
        except (OSError, ValueError) as exc:
            raise IOError_(f"Cannot write to output file '{self.path}': {exc}") from exc

    def close(self) -> None:
        if not self._handle.closed:
            self._handle.close()

    def __repr__(self) -> str:
        return f"FileSink(path={self.path!r})"


class MemorySink:
    """Collect response data in memory."""

    def __init__(self) -> None:
        self._buffer = io.BytesIO()

    def write(self, data: bytes) -> None:
        self._buffer.write(data)

    def getvalue(self) -> bytes:
        """Return everything written so far."""
        return self._buffer.getvalue()

    def close(self) -> None:
        # Keep the buffer readable after the executor closes the sink.
        pass

    def __repr__(self) -> str:
        return f"MemorySink(size={len(self._buffer.getvalue())})"


OutputSink = Union[ConsoleSink, FileSink, MemorySink]


def open_sink(path: Optional[str]) -> OutputSink:
    """Return a :class:`FileSink` for *path*, or a :class:`ConsoleSink` when it is empty."""
    if not path:
        return ConsoleSink()
    return FileSink.create(path)
