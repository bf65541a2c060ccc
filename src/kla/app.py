"""Typer application and CLI entry point for kla.

``kla`` sends exactly one HTTP request and prints the response through a
template::

    kla [METHOD] [URI] [BODY] [OPTIONS]
    kla environments [--regex PATTERN]

The request command is a single-command Typer app (:data:`app`); the
``environments`` listing is a separate one
(:data:`kla.commands.environments.environments_app`). :func:`main` picks
between them by looking at the first argument, so a request URI never has to
be preceded by a sub-command name.

Flow of the request command:

1. Initialise the global :class:`~kla.output.OutputManager` from the flags.
2. Load the layered :class:`~kla.config.Config` once.
3. Feed every raw option into a :class:`~kla.request.RequestArgsBuilder`
   and build the immutable :class:`~kla.request.RequestArgs`.
4. Hand it to :func:`kla.client.execute`.

Any :class:`~kla.exceptions.KlaError` is printed as ``Error: <message>`` on
stderr and turned into the exit code carried by the error. An HTTP error
status is not a failure of the tool.

See Also:
    :mod:`kla.config`: Configuration sources and environment aliases.
    :mod:`kla.output`: Diagnostics initialised in :func:`request_command`.
"""

from __future__ import annotations

import signal
import sys
from typing import Any, Optional

import typer
from pydantic import ValidationError

from kla import __version__
from kla.exceptions import InvalidArgumentsError
from kla.exit_codes import EXIT_GENERIC_FAILURE, EXIT_INTERRUPTED
from kla.models import DEFAULT_MAX_REDIRECTS, ClientOptions


app = typer.Typer(
    name="kla",
    help="Send one HTTP request and render the response through a template.",
    add_completion=False,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"kla {__version__}")
        raise typer.Exit()


def _client_options(**values: Any) -> ClientOptions:
    """Validate the transport flags into :class:`~kla.models.ClientOptions`.

    Raises:
        InvalidArgumentsError: If a value is out of range (for example a
            non-positive connect timeout or negative redirect limit).
    """
    try:
        return ClientOptions(**values)
    except ValidationError as exc:
        raise InvalidArgumentsError(f"Invalid client options: {exc}") from exc


@app.command()
def request_command(
    args: Optional[list[str]] = typer.Argument(
        None,
        help="Up to three tokens. One token is the URI; two are METHOD URI; three add a BODY "
        "(inline, @file, or - for stdin).",
        show_default=False,
    ),
    env: Optional[str] = typer.Option(
        None, "--env", "-e", help="Environment alias whose URL prefixes the URI."
    ),
    template: Optional[str] = typer.Option(
        None, "--template", "-t", help="Response template (inline or @file)."
    ),
    failure_template: Optional[str] = typer.Option(
        None,
        "--failure-template",
        help="Template used for non-2xx responses (inline or @file).",
    ),
    output_path: Optional[str] = typer.Option(
        None, "--output", "-o", help="Write the result to a file instead of stdout."
    ),
    header: Optional[list[str]] = typer.Option(
        None, "--header", "-H", help="Request header 'Key: Value' (repeatable)."
    ),
    query: Optional[list[str]] = typer.Option(
        None, "--query", "-Q", help="Query parameter key=value (repeatable)."
    ),
    form: Optional[list[str]] = typer.Option(
        None, "--form", "-F", help="Form field key=value (repeatable)."
    ),
    basic_auth: Optional[str] = typer.Option(
        None, "--basic-auth", help="Basic credentials 'user:pass' (inline or @file)."
    ),
    bearer_token: Optional[str] = typer.Option(
        None, "--bearer-token", help="Bearer token (inline or @file)."
    ),
    timeout: Optional[float] = typer.Option(
        None, "--timeout", help="Overall timeout in seconds."
    ),
    connect_timeout: Optional[float] = typer.Option(
        None, "--connect-timeout", help="Connection timeout in seconds."
    ),
    http_version: Optional[str] = typer.Option(
        None, "--http-version", help="HTTP version: 0.9, 1.0, 1.1, 2.0 or 3.0."
    ),
    agent: Optional[str] = typer.Option(
        None, "--agent", help=f"User-Agent header (default kla/{__version__})."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Print the request and response status to stderr."
    ),
    dry: bool = typer.Option(
        False, "--dry", help="Print the request without sending it."
    ),
    no_gzip: bool = typer.Option(False, "--no-gzip", help="Do not accept gzip."),
    no_brotli: bool = typer.Option(False, "--no-brotli", help="Do not accept brotli."),
    no_deflate: bool = typer.Option(False, "--no-deflate", help="Do not accept deflate."),
    max_redirects: Optional[int] = typer.Option(
        None, "--max-redirects", help="Maximum redirects to follow (default 10)."
    ),
    no_redirects: bool = typer.Option(
        False, "--no-redirects", help="Do not follow redirects."
    ),
    proxy: Optional[str] = typer.Option(None, "--proxy", help="Proxy for all traffic."),
    proxy_http: Optional[str] = typer.Option(
        None, "--proxy-http", help="Proxy for http:// URLs."
    ),
    proxy_https: Optional[str] = typer.Option(
        None, "--proxy-https", help="Proxy for https:// URLs."
    ),
    proxy_auth: Optional[str] = typer.Option(
        None, "--proxy-auth", help="Proxy credentials 'user:pass'."
    ),
    certificate: Optional[list[str]] = typer.Option(
        None,
        "--certificate",
        help="Extra trusted certificate; .der files are DER, others PEM (repeatable).",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Send one HTTP request.

    Examples::

        kla https://httpbin.org/get
        kla -e staging post /users @user.json -H 'X-Trace: 1'
        kla -t '{{ body.name }}' /users/1 --env local
    """
    from kla.client import execute
    from kla.config import load_config
    from kla.exceptions import KlaError
    from kla.output import OutputManager, debug, error, set_output
    from kla.request import RequestArgsBuilder

    set_output(OutputManager(no_color=no_color, verbose=verbose or dry))

    try:
        config = load_config()
        for source in config.sources:
            debug(f"Loaded configuration from {source}")
        options = _client_options(
            user_agent=agent,
            connect_timeout=connect_timeout,
            gzip=not no_gzip,
            brotli=not no_brotli,
            deflate=not no_deflate,
            follow_redirects=not no_redirects,
            max_redirects=(
                DEFAULT_MAX_REDIRECTS if max_redirects is None else max_redirects
            ),
            proxy=proxy,
            proxy_http=proxy_http,
            proxy_https=proxy_https,
            proxy_auth=proxy_auth,
            certificates=tuple(certificate or ()),
        )
        request_args = (
            RequestArgsBuilder()
            .args(args)
            .environment(env, config)
            .headers(header)
            .query(query)
            .form(form)
            .bearer_token(bearer_token)
            .basic_auth(basic_auth)
            .template(template)
            .failure_template(failure_template)
            .output(output_path)
            .verbose(verbose)
            .dry(dry)
            .client_options(options)
            .timeout(timeout)
            .http_version(http_version)
            .build()
        )
        execute(request_args)
    except KlaError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)

    signal.signal(signal.SIGINT, _handler)


def main(argv: Optional[list[str]] = None) -> None:
    """CLI entry point invoked by the ``kla`` console script.

    Installs the signal handler, then runs either the ``environments``
    sub-application (when the first argument is ``environments`` or
    ``envs``) or the request command.

    Errors that escape the commands are handled here: a
    :class:`~kla.exceptions.KlaError` exits with its own code, anything
    else prints a generic message and exits 1.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    arguments = list(sys.argv[1:] if argv is None else argv)
    try:
        from kla.commands.environments import ALIASES, environments_app

        if arguments and arguments[0] in ALIASES:
            environments_app(args=arguments[1:], prog_name="kla environments")
        else:
            app(args=arguments, prog_name="kla")
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_INTERRUPTED)
    except Exception as exc:
        from kla.exceptions import KlaError
        from kla.output import error

        if isinstance(exc, KlaError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
