"""Execute a :class:`~kla.request.RequestArgs` -- exactly one HTTP call.

The executor:

1. Assembles the :class:`httpx.Request`: default ``Content-Type`` first,
   then the explicit headers (last write wins), the body, then auth.
2. In verbose mode, prints the request to stderr.
3. In dry-run mode, stops there: no network I/O and no output is written.
   The request is built through the configured client either way, so the
   dry-run summary shows the headers that would be sent.
4. Otherwise sends the request, buffers the whole response within the
   overall timeout, and prints the status line in verbose mode.
5. Parses the body as JSON. On success the body is rendered through the
   success template (or the failure template for non-2xx statuses) and
   written to the sink; on failure the raw text is written unchanged.

Transport errors are not retried; they surface as
:class:`~kla.exceptions.ClientError`.
"""

from __future__ import annotations

import time
from typing import Optional

import httpx

from kla.client.response import decode_text, parse_structured, render_context, status_line
from kla.client.transport import build_client
from kla.exceptions import BodyParsingError, ClientError, InvalidURLError
from kla.output import get_output
from kla.request import RequestArgs
from kla.resolver import is_absolute, parse_url


def build_request(args: RequestArgs, client: Optional[httpx.Client] = None) -> httpx.Request:
    """Assemble the outgoing request without sending it.

    When *client* is given the request is built through it, which merges
    its default headers (User-Agent, Accept-Encoding) and timeouts.
    """
    headers = httpx.Headers()
    headers["Content-Type"] = args.content_type
    for name, value in args.headers:
        headers[name] = value

    if client is not None:
        request = client.build_request(args.method, args.url, headers=headers, content=args.body)
    else:
        request = httpx.Request(args.method, args.url, headers=headers, content=args.body)
    return args.auth.apply(request)


def _print_request(request: httpx.Request, body: Optional[bytes], dry: bool) -> None:
    """Print request details to stderr."""
    output = get_output()
    prefix = "[dry-run] " if dry else ""
    output.info(f"{prefix}{request.method} {request.url}")
    for key, value in request.headers.multi_items():
        output.info(f"  Header: {key}: {value}")
    if body is None:
        output.info("  Body: (none)")
    else:
        output.info(f"  Body: {len(body)} bytes")


def _print_response(response: httpx.Response) -> None:
    """Print the status line and response headers to stderr."""
    output = get_output()
    output.info(status_line(response))
    for key, value in response.headers.multi_items():
        output.info(f"  {key}: {value}")


def _send(
    client: httpx.Client, request: httpx.Request, timeout: Optional[float]
) -> tuple[httpx.Response, bytes]:
    """Send *request* and buffer the body within an overall deadline.

    httpx applies its own timeout to each connect, write and read step;
    *timeout* caps the sum of them, checked as each chunk arrives.
    """
    deadline = None if timeout is None else time.monotonic() + timeout
    try:
        response = client.send(request, stream=True)
        try:
            chunks = []
            _check_deadline(deadline, timeout)
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                _check_deadline(deadline, timeout)
        finally:
            response.close()
    except httpx.TimeoutException as exc:
        raise ClientError(f"Request timed out: {exc}") from exc
    except httpx.HTTPError as exc:
        raise ClientError(f"Request failed: {exc}") from exc
    return response, b"".join(chunks)


def _check_deadline(deadline: Optional[float], timeout: Optional[float]) -> None:
    if deadline is not None and time.monotonic() > deadline:
        raise ClientError(f"Request timed out after {timeout} seconds")


def execute(args: RequestArgs, client: Optional[httpx.Client] = None) -> Optional[httpx.Response]:
    """Send the request described by *args* and write the result.

    Args:
        args: The validated request.
        client: Optional pre-built client (tests pass one with a mock
            transport). When omitted, one is built from ``args.client``.

    Returns:
        The response (its body already read and closed), or ``None`` for
        a dry run.

    Raises:
        InvalidURLError: If the URL is relative (no scheme or host).
        ClientError: On network, TLS, or timeout failures.
        InvalidBodyError: If the response is not valid text.
        TemplateError: If rendering fails.
        IOError_: If the output cannot be written.
    """
    owns_client = client is None
    try:
        if client is None:
            client = build_client(args.client)
        request = build_request(args, client)
        if args.dry:
            _print_request(request, args.body, dry=True)
            return None

        if not is_absolute(parse_url(args.url)):
            raise InvalidURLError(
                f"Invalid URL {args.url!r}: an absolute URL is required "
                "(use --env or pass a full URL)"
            )

        if args.verbose:
            _print_request(request, args.body, dry=False)

        response, content = _send(client, request, args.client.timeout)
        if args.verbose:
            _print_response(response)

        text = decode_text(response, content)
        try:
            body = parse_structured(text)
        except BodyParsingError as exc:
            get_output().debug(f"{exc}; writing raw body")
            args.output.write(text.encode("utf-8"))
            return response

        template = args.select_template(response.status_code)
        rendered = template.render(render_context(response, body))
        args.output.write(rendered.encode("utf-8"))
        return response
    finally:
        args.output.close()
        if owns_client and client is not None:
            client.close()
