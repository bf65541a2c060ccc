"""Shared test fixtures for kla.

Provides reusable fixtures for isolating configuration, managing output
state, mocking the HTTP transport, and running CLI commands. These fixtures
are automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import httpx
import pytest

from kla.output import reset_output


Handler = Callable[[httpx.Request], httpx.Response]


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager binds its Rich console to sys.stderr at creation
    time. When CliRunner or capsys swap that stream and the test finishes,
    the cached reference goes stale. Resetting forces a fresh manager to
    be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Points XDG_CONFIG_HOME and HOME at subdirectories of tmp_path, moves the
    system-wide file out of /etc, clears KLA_CONFIG, and changes the working
    directory to a fresh ``work`` directory so that ``./config.toml`` is
    under the test's control.

    Returns:
        The working directory, where a project ``config.toml`` may be written.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    monkeypatch.setenv("HOME", str(tmp_path / "home"))
    monkeypatch.delenv("KLA_CONFIG", raising=False)
    monkeypatch.setattr("kla.config.SYSTEM_CONFIG", tmp_path / "etc" / "config.toml")

    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


@pytest.fixture
def write_config() -> Callable[[Path, str], Path]:
    """Return a helper that writes TOML text to a path, creating parents."""

    def _write(path: Path, text: str) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text)
        return path

    return _write


# ---------------------------------------------------------------------------
# HTTP mocking
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_client() -> Callable[[Handler], httpx.Client]:
    """Return a factory for httpx clients backed by a MockTransport."""
    clients: list[httpx.Client] = []

    def _make(handler: Handler) -> httpx.Client:
        client = httpx.Client(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def mock_transport(monkeypatch: pytest.MonkeyPatch) -> Callable[[Handler], list[httpx.Request]]:
    """Route clients built by the executor through a handler.

    Returns a function that installs *handler* and returns the list the
    sent requests are recorded in.
    """

    def _install(handler: Handler) -> list[httpx.Request]:
        sent: list[httpx.Request] = []

        def _recording(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return handler(request)

        monkeypatch.setattr(
            "kla.client.executor.build_client",
            lambda options: httpx.Client(transport=httpx.MockTransport(_recording)),
        )
        return sent

    return _install


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout/stderr and
    provides a consistent interface for invoking Typer apps in tests.
    """
    from typer.testing import CliRunner

    return CliRunner()
