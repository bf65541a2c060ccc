"""Response decoding -- maps an :class:`httpx.Response` to template input.

After the executor has buffered a response, :func:`decode_text` turns the
bytes into text, :func:`parse_structured` tries to read that text as JSON,
and :func:`render_context` assembles the variables templates can use.

:func:`parse_structured` raises :class:`~kla.exceptions.BodyParsingError`
for anything that is not JSON; the executor treats that as the signal to
write the raw text instead of rendering.
"""

from __future__ import annotations

import json
from typing import Any, Optional

import httpx

from kla.exceptions import BodyParsingError
from kla.sources import decode_text as _decode


def decode_text(response: httpx.Response, content: Optional[bytes] = None) -> str:
    """Decode the body using the response charset (UTF-8 by default).

    *content* replaces ``response.content`` for streamed responses whose
    bytes were collected by the caller.

    Raises:
        InvalidBodyError: If the bytes are not valid in that encoding.
    """
    encoding = response.charset_encoding or "utf-8"
    if content is None:
        content = response.content
    return _decode(content, "Response body", encoding)


def parse_structured(text: str) -> Any:
    """Parse *text* as JSON.

    Raises:
        BodyParsingError: If *text* is empty or not JSON.
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, ValueError) as exc:
        raise BodyParsingError(f"Response body is not JSON: {exc}") from exc


def status_line(response: httpx.Response) -> str:
    """Return e.g. ``HTTP/1.1 200 OK``."""
    reason = response.reason_phrase or ""
    return f"{response.http_version} {response.status_code} {reason}".rstrip()


def render_context(response: httpx.Response, body: Any) -> dict[str, Any]:
    """Build the template context for a structured response.

    Keys: ``body``, ``status``, ``reason``, ``headers`` (a plain dict with
    lower-case names), ``version``, ``url``, ``method``.
    """
    return {
        "body": body,
        "status": response.status_code,
        "reason": response.reason_phrase,
        "headers": dict(response.headers),
        "version": response.http_version,
        "url": str(response.request.url),
        "method": response.request.method,
    }
