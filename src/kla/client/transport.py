"""Construct the :class:`httpx.Client` for a request from its ClientOptions.

Maps each transport-level CLI option onto httpx:

- ``--http-version`` -> ``http1`` / ``http2`` flags. HTTP/0.9, 1.0 and 3.0
  are valid values but not spoken by httpx, so they are rejected here.
- ``--no-gzip`` / ``--no-brotli`` / ``--no-deflate`` -> the advertised
  ``Accept-Encoding`` list.
- ``--no-redirects`` / ``--max-redirects`` -> redirect policy.
- ``--proxy*`` -> one :class:`httpx.HTTPTransport` per URL scheme.
- ``--certificate`` -> extra trust anchors in an :class:`ssl.SSLContext`.
- ``--timeout`` / ``--connect-timeout`` -> :class:`httpx.Timeout`.
"""

from __future__ import annotations

import ssl
from pathlib import Path
from typing import Optional, Union

import httpx

from kla import __version__
from kla.exceptions import ClientError, InvalidArgumentsError
from kla.models import ClientOptions, HttpVersion
from kla.sources import read_file

DEFAULT_USER_AGENT = f"kla/{__version__}"


def accept_encoding(options: ClientOptions) -> str:
    """Return the ``Accept-Encoding`` value for the enabled decoders."""
    codings = []
    if options.gzip:
        codings.append("gzip")
    if options.brotli:
        codings.append("br")
    if options.deflate:
        codings.append("deflate")
    return ", ".join(codings) if codings else "identity"


def http_flags(version: Optional[HttpVersion]) -> tuple[bool, bool]:
    """Return ``(http1, http2)`` for the requested version.

    Raises:
        InvalidArgumentsError: For versions httpx cannot speak.
    """
    if version is None:
        return True, False
    if version == HttpVersion.HTTP_11:
        return True, False
    if version == HttpVersion.HTTP_2:
        return False, True
    raise InvalidArgumentsError(f"HTTP/{version.value} is not supported by the transport")


def build_timeout(options: ClientOptions) -> httpx.Timeout:
    """Combine the overall and connect timeouts (``None`` disables a limit)."""
    connect = options.connect_timeout if options.connect_timeout is not None else options.timeout
    return httpx.Timeout(options.timeout, connect=connect)


def build_ssl_context(certificates: tuple[str, ...]) -> Union[ssl.SSLContext, bool]:
    """Return an SSL context trusting the extra *certificates*, or ``True``.

    Files ending in ``.der`` are loaded as DER; anything else as PEM.

    Raises:
        IOError_: If a certificate file cannot be read.
        ClientError: If a certificate cannot be parsed.
    """
    if not certificates:
        return True
    context = ssl.create_default_context()
    for cert in certificates:
        data = read_file(cert)
        try:
            if Path(cert).suffix.lower() == ".der":
                context.load_verify_locations(cadata=data)
            else:
                context.load_verify_locations(cadata=data.decode("ascii"))
        except (ssl.SSLError, UnicodeDecodeError, ValueError) as exc:
            raise ClientError(f"Invalid certificate '{cert}': {exc}") from exc
    return context


def build_proxy(url: Optional[str], auth: Optional[str]) -> Optional[httpx.Proxy]:
    """Return an :class:`httpx.Proxy` for *url*, adding ``user:pass`` credentials.

    Raises:
        InvalidArgumentsError: If *auth* has no colon or *url* is malformed.
    """
    if not url:
        return None
    credentials = None
    if auth is not None:
        username, sep, password = auth.partition(":")
        if not sep:
            raise InvalidArgumentsError(
                "Invalid proxy authentication, expected 'username:password'"
            )
        credentials = (username, password)
    try:
        return httpx.Proxy(url, auth=credentials)
    except (httpx.InvalidURL, ValueError) as exc:
        raise InvalidArgumentsError(f"Invalid proxy URL {url!r}: {exc}") from exc


def validate_options(options: ClientOptions) -> None:
    """Check that a client can be built from *options* without building it.

    Raises the same errors as :func:`build_client`.
    """
    http_flags(options.http_version)
    build_proxy(options.proxy_http or options.proxy, options.proxy_auth)
    build_proxy(options.proxy_https or options.proxy, options.proxy_auth)
    build_ssl_context(options.certificates)


def build_client(options: ClientOptions) -> httpx.Client:
    """Create the client for a single request.

    Raises:
        InvalidArgumentsError: Unsupported HTTP version or bad proxy settings.
        ClientError: Certificates that cannot be loaded.
        IOError_: Certificate files that cannot be read.
    """
    http1, http2 = http_flags(options.http_version)
    verify = build_ssl_context(options.certificates)
    headers = {
        "User-Agent": options.user_agent or DEFAULT_USER_AGENT,
        "Accept-Encoding": accept_encoding(options),
    }

    http_proxy = build_proxy(options.proxy_http or options.proxy, options.proxy_auth)
    https_proxy = build_proxy(options.proxy_https or options.proxy, options.proxy_auth)
    mounts = None
    if http_proxy is not None or https_proxy is not None:
        mounts = {
            "http://": httpx.HTTPTransport(
                proxy=http_proxy, verify=verify, http1=http1, http2=http2
            ),
            "https://": httpx.HTTPTransport(
                proxy=https_proxy, verify=verify, http1=http1, http2=http2
            ),
        }

    return httpx.Client(
        headers=headers,
        timeout=build_timeout(options),
        verify=verify,
        http1=http1,
        http2=http2,
        follow_redirects=options.follow_redirects,
        max_redirects=options.max_redirects,
        mounts=mounts,
    )
