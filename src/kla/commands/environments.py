"""Environment listing -- ``kla environments [--regex PATTERN]``.

Prints every ``[environments]`` entry from the loaded configuration whose
alias or URL prefix matches the pattern, one ``name = value`` line each,
sorted by alias. The pattern is searched anywhere in the string, so ``-r
prod`` matches ``production`` and ``https://prod.example.com``.
"""

from __future__ import annotations

import re
import sys
from typing import Any

import typer

from kla.config import ENVIRONMENTS_KEY, Config, load_config
from kla.exceptions import InvalidArgumentsError, KlaError
from kla.output import OutputManager, error, set_output, warning

ALIASES = ("environments", "envs")

environments_app = typer.Typer(
    name="environments",
    help="Show the environments that are available to you.",
    add_completion=False,
)


def _display(name: str, value: Any) -> str:
    if isinstance(value, str):
        return value
    warning(f"Environment '{name}' is not a string and cannot be used with --env")
    return str(value)


def matching_environments(config: Config, pattern: str) -> list[tuple[str, str]]:
    """Return ``(alias, value)`` pairs whose alias or value matches *pattern*.

    Raises:
        InvalidArgumentsError: If *pattern* is not a valid regular expression.
        ConfigError: If no ``[environments]`` table is configured.
    """
    try:
        regex = re.compile(pattern)
    except re.error as exc:
        raise InvalidArgumentsError(f"Invalid regex {pattern!r}: {exc}") from exc

    table = config.get_table(ENVIRONMENTS_KEY)
    matches = []
    for name in sorted(table):
        value = _display(name, table[name])
        if regex.search(name) or regex.search(value):
            matches.append((name, value))
    return matches


@environments_app.command()
def environments_command(
    regex: str = typer.Option(
        ".*", "--regex", "-r", help="Only show environments whose name or URL matches."
    ),
) -> None:
    """Show the environments that are available to you.

    Example::

        kla environments
        kla envs -r staging
    """
    set_output(OutputManager())
    try:
        for name, value in matching_environments(load_config(), regex):
            sys.stdout.write(f"{name} = {value}\n")
    except KlaError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
