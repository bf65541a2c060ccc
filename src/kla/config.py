"""Layered TOML configuration and environment-alias resolution.

Configuration is read once at startup into a :class:`Config` object that is
passed explicitly to whoever needs it; there is no module-level singleton.

* **Sources** -- optional TOML files, highest precedence first:

  1. ``$KLA_CONFIG`` (when set, the file must exist)
  2. ``./config.toml``
  3. ``$XDG_CONFIG_HOME/kla/config.toml`` (default ``~/.config/kla/``) on
     Linux/BSD, ``~/.kla/config.toml`` elsewhere
  4. ``/etc/kla/config.toml``

  Missing files are skipped and tables are deep-merged, so a project file
  can override a single environment defined system-wide.
* **Lookup** -- :meth:`Config.get_string` / :meth:`Config.get_table` take
  dotted keys (``environments.staging``).
* **Environments** -- :func:`resolve_environment` maps an alias to the URL
  prefix that is prepended to the request path.
"""

from __future__ import annotations

import os
import platform
import tomllib
from pathlib import Path
from typing import Any, Optional, Sequence

from pydantic import ValidationError

from kla.exceptions import ConfigError
from kla.models import KlaConfig

_APP_NAME = "kla"
_CONFIG_FILENAME = "config.toml"
_CONFIG_ENV_VAR = "KLA_CONFIG"
SYSTEM_CONFIG = Path("/etc") / _APP_NAME / _CONFIG_FILENAME

ENVIRONMENTS_KEY = "environments"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the per-user configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/kla/`` (default ``~/.config/kla/``).
    On macOS/Windows: ``~/.kla/``.
    """
    if _is_xdg_platform():
        return _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def config_search_paths() -> list[Path]:
    """Return the optional config file locations, highest precedence first."""
    return [
        Path.cwd() / _CONFIG_FILENAME,
        get_config_dir() / _CONFIG_FILENAME,
        SYSTEM_CONFIG,
    ]


# --- Loading ---


def _read_toml(path: Path) -> dict[str, Any]:
    """Parse one TOML file.

    Raises:
        ConfigError: If the file cannot be read or is not valid TOML.
    """
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in config file {path}: {exc}") from exc
    except OSError as exc:
        raise ConfigError(f"Cannot read config file {path}: {exc}") from exc


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge *override* into a copy of *base*; nested tables merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = _deep_merge(current, value)
        else:
            merged[key] = value
    return merged


class Config:
    """Read-only view over the merged configuration document.

    Args:
        data: The merged TOML document.
        sources: Files the document was built from, highest precedence
            first. Informational only.
    """

    def __init__(
        self,
        data: Optional[dict[str, Any]] = None,
        sources: Sequence[Path] = (),
    ) -> None:
        raw = data or {}
        try:
            self._model = KlaConfig.model_validate(raw)
        except ValidationError as exc:
            raise ConfigError(f"Invalid configuration: {exc}") from exc
        self._data = raw
        self.sources = list(sources)

    @property
    def environments(self) -> dict[str, Any]:
        """The ``[environments]`` table (empty when not configured)."""
        return dict(self._model.environments)

    def _lookup(self, key: str) -> Any:
        current: Any = self._data
        for part in key.split("."):
            if not isinstance(current, dict) or part not in current:
                raise ConfigError(f"Configuration key '{key}' not found")
            current = current[part]
        return current

    def get_string(self, key: str) -> str:
        """Return the string at dotted *key*.

        Raises:
            ConfigError: If the key is absent or its value is not a string.
        """
        value = self._lookup(key)
        if not isinstance(value, str):
            raise ConfigError(
                f"Configuration key '{key}' must be a string, "
                f"got {type(value).__name__}"
            )
        return value

    def get_table(self, key: str) -> dict[str, Any]:
        """Return the table at dotted *key*.

        Raises:
            ConfigError: If the key is absent or its value is not a table.
        """
        value = self._lookup(key)
        if not isinstance(value, dict):
            raise ConfigError(
                f"Configuration key '{key}' must be a table, "
                f"got {type(value).__name__}"
            )
        return dict(value)


def load_config(paths: Optional[Sequence[Path]] = None) -> Config:
    """Load and merge the layered configuration files.

    Args:
        paths: Files to read, highest precedence first. Defaults to
            ``$KLA_CONFIG`` (if set) followed by :func:`config_search_paths`.
            Missing files are skipped.

    Raises:
        ConfigError: If ``$KLA_CONFIG`` points at a missing file, or any
            existing file is invalid.
    """
    if paths is None:
        candidates = config_search_paths()
        explicit = os.environ.get(_CONFIG_ENV_VAR)
        if explicit:
            explicit_path = Path(explicit).expanduser()
            if not explicit_path.is_file():
                raise ConfigError(
                    f"Config file not found: {explicit_path} (from ${_CONFIG_ENV_VAR})"
                )
            candidates.insert(0, explicit_path)
    else:
        candidates = list(paths)

    found = [p for p in candidates if p.is_file()]

    # Lowest precedence first, so later layers override earlier ones.
    data: dict[str, Any] = {}
    for path in reversed(found):
        data = _deep_merge(data, _read_toml(path))
    return Config(data, sources=found)


# --- Environment resolution ---


def resolve_environment(
    alias: Optional[str],
    config: Config,
    strict: bool = True,
) -> Optional[str]:
    """Map an environment alias to its URL prefix.

    Trailing slashes are stripped so the prefix can be joined with a path
    that starts with ``/``.

    Args:
        alias: The ``--env`` value, or ``None`` for no prefix.
        config: The loaded configuration.
        strict: When True (the CLI default) an unknown alias raises;
            when False it resolves to no prefix.

    Returns:
        The prefix, or ``None`` when no alias was given (or it is unknown
        in permissive mode).

    Raises:
        ConfigError: In strict mode, if the alias is not configured or its
            value is not a string.
    """
    if alias is None:
        return None
    try:
        prefix = config.get_string(f"{ENVIRONMENTS_KEY}.{alias}")
    except ConfigError:
        if strict:
            raise
        return None
    return prefix.rstrip("/")
