"""Two-phase request description: a mutable builder and a frozen result.

:class:`RequestArgsBuilder` accumulates raw CLI values in any order through
chained setters. Setters that can reject their input on their own (positional
arity, unknown environment, malformed ``Key: Value`` headers, ...) raise
immediately. :meth:`RequestArgsBuilder.build` then performs the steps that
touch the outside world, in this order::

    method -> url -> body (file/stdin) -> templates (file)
        -> transport options (certificate files) -> output (file) -> auth (file)

The first failure stops the build, so a broken template or an HTTP version
the transport cannot speak never truncates the output file, and an output
file that was already opened is closed again if auth resolution fails
afterwards.

The result is a :class:`RequestArgs`, a frozen pydantic model handed to
:func:`kla.client.executor.execute`. A builder can only be built once.

Example::

    args = (
        RequestArgsBuilder()
        .args(["post", "/users", "@user.json"])
        .environment("staging", config)
        .headers(["Accept: application/json"])
        .bearer_token("@token.txt")
        .build()
    )
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence
from urllib.parse import urlencode

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from kla.auth import AuthType, resolve_auth
from kla.config import Config, resolve_environment
from kla.exceptions import InvalidArgumentsError
from kla.models import ClientOptions, HttpVersion
from kla.resolver import (
    DEFAULT_METHOD,
    DEFAULT_URI,
    join_url,
    parse_header,
    parse_method,
    parse_pair,
    parse_url,
    resolve_positional,
)
from kla.sink import OutputSink, open_sink
from kla.sources import read_body
from kla.template import ResponseTemplate, compile_template

JSON_CONTENT_TYPE = "application/json"
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


class RequestArgs(BaseModel):
    """A validated, immutable description of the one request to send.

    ``headers`` holds only the explicit ``--header`` values; the executor
    puts ``Content-Type: <content_type>`` in front of them so an explicit
    header can override it.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    method: str = DEFAULT_METHOD
    url: str
    body: Optional[bytes] = Field(default=None, repr=False)
    content_type: str = JSON_CONTENT_TYPE
    headers: tuple[tuple[str, str], ...] = ()
    auth: AuthType
    template: ResponseTemplate
    failure_template: Optional[ResponseTemplate] = None
    output: OutputSink
    verbose: bool = False
    dry: bool = False
    client: ClientOptions = Field(default_factory=ClientOptions)

    def select_template(self, status_code: int) -> ResponseTemplate:
        """Return the failure template for non-2xx statuses when one was given."""
        if self.failure_template is not None and not 200 <= status_code < 300:
            return self.failure_template
        return self.template


class RequestArgsBuilder:
    """Accumulates request settings and validates them in :meth:`build`."""

    def __init__(self) -> None:
        self._method: Optional[str] = None
        self._uri: Optional[str] = None
        self._body: Optional[str] = None
        self._prefix: Optional[str] = None
        self._headers: list[tuple[str, str]] = []
        self._query: list[tuple[str, str]] = []
        self._form: list[tuple[str, str]] = []
        self._template: Optional[str] = None
        self._failure_template: Optional[str] = None
        self._output: Optional[str] = None
        self._bearer_token: Optional[str] = None
        self._basic_auth: Optional[str] = None
        self._verbose = False
        self._dry = False
        self._client_options = ClientOptions()
        self._client_overrides: dict[str, Any] = {}
        self._built = False

    def _check_open(self) -> None:
        if self._built:
            raise RuntimeError("RequestArgsBuilder has already been built")

    # ------------------------------------------------------------------ #
    # Setters
    # ------------------------------------------------------------------ #

    def args(self, tokens: Optional[Sequence[str]]) -> RequestArgsBuilder:
        """Interpret up to three positional tokens (see :mod:`kla.resolver`)."""
        self._check_open()
        method, uri, body = resolve_positional(list(tokens or ()))
        self._method = method
        self._uri = uri
        self._body = body
        return self

    def environment(
        self,
        alias: Optional[str],
        config: Config,
        strict: bool = True,
    ) -> RequestArgsBuilder:
        """Resolve *alias* to a URL prefix now; lookup failures raise in strict mode."""
        self._check_open()
        self._prefix = resolve_environment(alias, config, strict=strict)
        return self

    def headers(self, raw: Optional[Iterable[str]]) -> RequestArgsBuilder:
        """Add ``Key: Value`` headers, in order."""
        self._check_open()
        for item in raw or ():
            self._headers.append(parse_header(item))
        return self

    def query(self, raw: Optional[Iterable[str]]) -> RequestArgsBuilder:
        """Add ``key=value`` query parameters."""
        self._check_open()
        for item in raw or ():
            self._query.append(parse_pair(item, "query"))
        return self

    def form(self, raw: Optional[Iterable[str]]) -> RequestArgsBuilder:
        """Add ``key=value`` form fields; they become a url-encoded body."""
        self._check_open()
        for item in raw or ():
            self._form.append(parse_pair(item, "form"))
        return self

    def bearer_token(self, token: Optional[str]) -> RequestArgsBuilder:
        self._check_open()
        self._bearer_token = token
        return self

    def basic_auth(self, credentials: Optional[str]) -> RequestArgsBuilder:
        self._check_open()
        self._basic_auth = credentials
        return self

    def template(self, source: Optional[str]) -> RequestArgsBuilder:
        self._check_open()
        self._template = source
        return self

    def failure_template(self, source: Optional[str]) -> RequestArgsBuilder:
        self._check_open()
        self._failure_template = source
        return self

    def output(self, path: Optional[str]) -> RequestArgsBuilder:
        """Write the result to *path* instead of stdout. The file is opened in :meth:`build`."""
        self._check_open()
        self._output = path
        return self

    def verbose(self, verbose: Optional[bool]) -> RequestArgsBuilder:
        self._check_open()
        if verbose is not None:
            self._verbose = verbose
        return self

    def dry(self, dry: Optional[bool]) -> RequestArgsBuilder:
        """Skip sending; a dry run is always verbose."""
        self._check_open()
        if dry:
            self._dry = True
            self._verbose = True
        return self

    def timeout(self, seconds: Optional[float]) -> RequestArgsBuilder:
        """Limit the whole round trip to *seconds*.

        Raises:
            InvalidArgumentsError: If *seconds* is not positive.
        """
        self._check_open()
        if seconds is None:
            self._client_overrides.pop("timeout", None)
            return self
        if seconds <= 0:
            raise InvalidArgumentsError(f"Timeout must be positive, got {seconds}")
        self._client_overrides["timeout"] = seconds
        return self

    def http_version(self, version: Optional[str]) -> RequestArgsBuilder:
        """Pin the HTTP version (``0.9``, ``1.0``, ``1.1``, ``2.0``, ``3.0``).

        Raises:
            InvalidArgumentsError: For any other value.
        """
        self._check_open()
        if version is None:
            self._client_overrides.pop("http_version", None)
            return self
        try:
            self._client_overrides["http_version"] = HttpVersion(version)
        except ValueError:
            allowed = ", ".join(v.value for v in HttpVersion)
            raise InvalidArgumentsError(
                f"Invalid HTTP version {version!r}: expected one of {allowed}"
            ) from None
        return self

    def client_options(self, options: ClientOptions) -> RequestArgsBuilder:
        """Set transport options. :meth:`timeout` and :meth:`http_version` take precedence."""
        self._check_open()
        self._client_options = options
        return self

    # ------------------------------------------------------------------ #
    # Build
    # ------------------------------------------------------------------ #

    def _build_url(self) -> str:
        url = join_url(self._prefix, self._uri or DEFAULT_URI)
        parsed = parse_url(url)
        if self._query:
            return str(parsed.copy_merge_params(self._query))
        return url

    def _build_body(self) -> tuple[Optional[bytes], str]:
        if self._form:
            if self._body:
                raise InvalidArgumentsError(
                    "A positional body and --form fields cannot be used together"
                )
            return urlencode(self._form).encode("ascii"), FORM_CONTENT_TYPE
        return read_body(self._body), JSON_CONTENT_TYPE

    def _build_client_options(self) -> ClientOptions:
        from kla.client.transport import validate_options

        data = self._client_options.model_dump()
        data.update(self._client_overrides)
        try:
            options = ClientOptions.model_validate(data)
        except ValidationError as exc:
            raise InvalidArgumentsError(f"Invalid client options: {exc}") from exc
        validate_options(options)
        return options

    def build(self) -> RequestArgs:
        """Validate everything and produce the immutable :class:`RequestArgs`.

        Raises:
            InvalidMethodError: Bad method token.
            InvalidURLError: Malformed URL.
            InvalidArgumentsError: Conflicting body sources, bad credentials,
                invalid client options, an HTTP version the transport cannot
                speak, or bad proxy settings.
            ClientError: A certificate cannot be parsed.
            InvalidBodyError: A body file or stdin is not UTF-8.
            TemplateError: A template does not compile.
            IOError_: A body, template, certificate, credential, or output
                file fails.
        """
        self._check_open()
        self._built = True

        method = parse_method(self._method or DEFAULT_METHOD)
        url = self._build_url()
        body, content_type = self._build_body()
        template = compile_template(self._template, "template")
        failure_template = None
        if self._failure_template:
            failure_template = compile_template(self._failure_template, "failure template")
        client = self._build_client_options()

        output = open_sink(self._output)
        try:
            auth = resolve_auth(self._bearer_token, self._basic_auth)
            return RequestArgs(
                method=method,
                url=url,
                body=body,
                content_type=content_type,
                headers=tuple(self._headers),
                auth=auth,
                template=template,
                failure_template=failure_template,
                output=output,
                verbose=self._verbose,
                dry=self._dry,
                client=client,
            )
        except BaseException:
            output.close()
            raise
