"""Response templates rendered with Jinja2.

A template source is compiled once, while the request is being built, so a
syntax error stops the run before any network I/O. The source may be:

* ``@path`` -- the template body is read from a file.
* any other non-empty string -- the template body itself.
* ``None`` or empty -- :data:`DEFAULT_TEMPLATE`, which pretty-prints the
  structured response body as JSON.

Templates see a context with ``body`` (the parsed JSON), ``status``,
``reason``, ``headers``, ``version``, ``url``, and ``method``. Undefined
variables are errors (:class:`~jinja2.StrictUndefined`). Besides the built-in
``tojson`` filter, ``json_encode(pretty=false)`` is available and keeps
non-ASCII text unescaped.

Example::

    kla -t '{{ body.name }} ({{ status }})' /users/1
    kla -t @templates/user.j2 /users/1
"""

from __future__ import annotations

import json
from typing import Any, Optional

import jinja2

from kla.exceptions import TemplateError
from kla.sources import read_text

DEFAULT_TEMPLATE = "{{ body | json_encode(pretty=true) }}"
"""Template used when no ``--template`` is given."""


def json_encode(value: Any, pretty: bool = False) -> str:
    """Serialise *value* as JSON, indented by two spaces when *pretty*."""
    return json.dumps(value, indent=2 if pretty else None, ensure_ascii=False)


def _create_jinja_env() -> jinja2.Environment:
    """Create the Jinja2 environment shared by all response templates.

    Autoescape is off because output is plain text, not HTML. Trailing
    newlines are kept so file templates control their own line endings.
    """
    env = jinja2.Environment(
        autoescape=False,
        undefined=jinja2.StrictUndefined,
        keep_trailing_newline=True,
    )
    env.filters["json_encode"] = json_encode
    return env


_ENV = _create_jinja_env()


class ResponseTemplate:
    """A compiled template, reusable for any number of renders.

    Args:
        name: Label used in error messages (``"template"`` or
            ``"failure template"``).
        source: The template text that was compiled.
        template: The compiled Jinja2 template.
    """

    def __init__(self, name: str, source: str, template: jinja2.Template) -> None:
        self.name = name
        self.source = source
        self._template = template

    @property
    def is_default(self) -> bool:
        return self.source == DEFAULT_TEMPLATE

    def render(self, context: dict[str, Any]) -> str:
        """Render the template against *context*.

        Raises:
            TemplateError: On undefined variables or filter failures.
        """
        try:
            return self._template.render(context)
        except (jinja2.TemplateError, TypeError, ValueError) as exc:
            raise TemplateError(f"Could not render {self.name}: {exc}") from exc

    def __repr__(self) -> str:
        return f"ResponseTemplate(name={self.name!r}, default={self.is_default})"


def compile_source(source: str, name: str = "template") -> ResponseTemplate:
    """Compile literal template text.

    Raises:
        TemplateError: If the text is not valid Jinja2.
    """
    try:
        compiled = _ENV.from_string(source)
    except jinja2.TemplateSyntaxError as exc:
        raise TemplateError(
            f"Could not compile {name}: {exc.message} (line {exc.lineno})"
        ) from exc
    return ResponseTemplate(name, source, compiled)


def compile_template(source: Optional[str], name: str = "template") -> ResponseTemplate:
    """Resolve *source* (``@path``, literal, or empty) and compile it.

    Raises:
        IOError_: If an ``@path`` file cannot be read.
        InvalidBodyError: If the file is not valid UTF-8.
        TemplateError: If the template does not compile.
    """
    if not source:
        return compile_source(DEFAULT_TEMPLATE, name)
    return compile_source(read_text(source, name), name)
