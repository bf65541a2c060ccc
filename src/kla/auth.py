"""Authentication modes and the resolver that picks one.

Three closed variants share an ``apply(request)`` contract:

- :class:`NoAuth` -- leaves the request untouched.
- :class:`BearerAuth` -- sets ``Authorization: Bearer <token>``.
- :class:`BasicAuth` -- sets ``Authorization: Basic <base64(user:pass)>``
  per :rfc:`7617`.

:func:`resolve_auth` turns the raw ``--bearer-token`` / ``--basic-auth``
values into one of them. Either value may be inline or an ``@path`` file
reference. File contents are used exactly as read; nothing is trimmed.
"""

from __future__ import annotations

import base64
from typing import Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field

from kla.exceptions import InvalidArgumentsError
from kla.output import debug
from kla.sources import read_text


class NoAuth(BaseModel):
    """No credentials are sent."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["none"] = "none"

    def apply(self, request: httpx.Request) -> httpx.Request:
        return request


class BearerAuth(BaseModel):
    """A pre-issued bearer token."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["bearer"] = "bearer"
    token: str = Field(repr=False)

    def apply(self, request: httpx.Request) -> httpx.Request:
        request.headers["Authorization"] = f"Bearer {self.token}"
        return request


class BasicAuth(BaseModel):
    """HTTP Basic credentials."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["basic"] = "basic"
    username: str
    password: str = Field(repr=False)

    def apply(self, request: httpx.Request) -> httpx.Request:
        raw = f"{self.username}:{self.password}"
        encoded = base64.b64encode(raw.encode("utf-8")).decode("ascii")
        request.headers["Authorization"] = f"Basic {encoded}"
        return request


AuthType = Union[NoAuth, BearerAuth, BasicAuth]


def bearer_from_value(value: str) -> BearerAuth:
    """Build a :class:`BearerAuth` from an inline token or ``@path``.

    Raises:
        InvalidArgumentsError: If *value* is empty.
        IOError_: If the referenced file cannot be read.
    """
    if not value:
        raise InvalidArgumentsError("No bearer token supplied")
    return BearerAuth(token=read_text(value, "bearer token"))


def basic_from_string(credentials: str) -> BasicAuth:
    """Split ``username:password`` once on the first colon.

    Raises:
        InvalidArgumentsError: If either half is missing.
    """
    username, sep, password = credentials.partition(":")
    if not username:
        raise InvalidArgumentsError(
            "Invalid basic authentication, no username was provided"
        )
    if not sep or not password:
        raise InvalidArgumentsError(
            "Invalid basic authentication, no password was provided"
        )
    return BasicAuth(username=username, password=password)


def basic_from_value(value: str) -> BasicAuth:
    """Build a :class:`BasicAuth` from inline ``user:pass`` or ``@path``.

    Raises:
        InvalidArgumentsError: If *value* is empty or malformed.
        IOError_: If the referenced file cannot be read.
    """
    if not value:
        raise InvalidArgumentsError("No value specified for basic authentication")
    return basic_from_string(read_text(value, "basic auth"))


def resolve_auth(
    bearer_token: Optional[str] = None,
    basic_auth: Optional[str] = None,
) -> AuthType:
    """Pick the authentication mode for a request.

    A bearer token wins over basic credentials when both are supplied; the
    basic value is then ignored without being read.
    """
    if bearer_token is not None:
        if basic_auth is not None:
            debug("Both bearer token and basic auth supplied; using the bearer token")
        return bearer_from_value(bearer_token)
    if basic_auth is not None:
        return basic_from_value(basic_auth)
    return NoAuth()
