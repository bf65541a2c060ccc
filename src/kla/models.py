"""Pydantic models shared across kla modules.

**Configuration** -- :class:`KlaConfig` validates the merged TOML document
loaded by :mod:`kla.config`.

**Transport settings** -- :class:`HttpVersion` and :class:`ClientOptions`
carry everything :mod:`kla.client.transport` needs to construct the
``httpx.Client``: compression, redirects, proxies, certificates, timeouts.

The request itself lives in :mod:`kla.request`.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class KlaConfig(BaseModel):
    """The merged configuration document.

    Only ``environments`` is interpreted; other top-level tables are kept in
    ``model_extra`` and stay reachable through
    :meth:`kla.config.Config.get_string`.

    Example ``config.toml``::

        [environments]
        local = "http://localhost:8080"
        staging = "https://staging.example.com/api/"
    """

    model_config = ConfigDict(extra="allow")

    environments: dict[str, Any] = Field(
        default_factory=dict, description="Alias -> URL prefix"
    )


class HttpVersion(str, enum.Enum):
    """HTTP versions accepted by ``--http-version``."""

    HTTP_09 = "0.9"
    HTTP_10 = "1.0"
    HTTP_11 = "1.1"
    HTTP_2 = "2.0"
    HTTP_3 = "3.0"


DEFAULT_MAX_REDIRECTS = 10


class ClientOptions(BaseModel):
    """Transport settings for the single request.

    ``timeout`` bounds each httpx step and, checked by the executor, the
    whole round trip; ``connect_timeout`` only the connection setup.
    ``None`` means no limit.
    """

    model_config = ConfigDict(frozen=True)

    user_agent: Optional[str] = None
    timeout: Optional[float] = Field(default=None, gt=0)
    connect_timeout: Optional[float] = Field(default=None, gt=0)
    http_version: Optional[HttpVersion] = None
    gzip: bool = True
    brotli: bool = True
    deflate: bool = True
    follow_redirects: bool = True
    max_redirects: int = Field(default=DEFAULT_MAX_REDIRECTS, ge=0)
    proxy: Optional[str] = None
    proxy_http: Optional[str] = None
    proxy_https: Optional[str] = None
    proxy_auth: Optional[str] = Field(default=None, repr=False)
    certificates: tuple[str, ...] = ()
