"""kla -- a command-line HTTP client with environments and response templates.

A request is described by up to three positional arguments (``METHOD URI
BODY``) plus options. The URI may be prefixed with an environment alias from
``config.toml``; JSON responses are rendered through a Jinja2 template, and
anything else is printed verbatim.

Typical usage::

    kla -e staging /users
    kla -e staging post /users @user.json -t '{{ body.id }}'
    kla envs -r prod

Modules:
    app: Typer application and CLI entry point.
    request: Request builder and the immutable request description.
    client: Transport construction and request execution.
    config: Layered TOML configuration and environment resolution.
    template: Jinja2 response templates.
    exceptions: Error taxonomy with exit-code mapping.
    output: stderr diagnostics with Rich support.
"""

__version__ = "0.4.0"
