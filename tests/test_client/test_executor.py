"""Tests for kla.client.executor -- one request, rendered or passed through."""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Iterator

import httpx
import pytest

from kla.auth import BearerAuth, NoAuth
from kla.client.executor import build_request, execute
from kla.exceptions import ClientError, InvalidBodyError, InvalidURLError
from kla.exit_codes import EXIT_CLIENT_ERROR
from kla.models import ClientOptions
from kla.request import RequestArgs
from kla.sink import FileSink, MemorySink
from kla.template import compile_template


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

URL = "https://api.example.com/users"


def _args(**overrides: Any) -> RequestArgs:
    values: dict[str, Any] = {
        "url": URL,
        "auth": NoAuth(),
        "template": compile_template(None),
        "output": MemorySink(),
    }
    values.update(overrides)
    return RequestArgs(**values)


def _json_handler(data: Any, status_code: int = 200):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code, json=data)

    return handler


class _DripStream(httpx.SyncByteStream):
    """Yield one byte at a time with a pause before each."""

    def __init__(self, data: bytes, pause: float) -> None:
        self._data = data
        self._pause = pause
        self.closed = False

    def __iter__(self) -> Iterator[bytes]:
        for index in range(len(self._data)):
            time.sleep(self._pause)
            yield self._data[index : index + 1]

    def close(self) -> None:
        self.closed = True


# ---------------------------------------------------------------------------
# Request assembly
# ---------------------------------------------------------------------------


class TestBuildRequest:
    def test_default_content_type(self) -> None:
        request = build_request(_args())
        assert request.headers["Content-Type"] == "application/json"

    def test_explicit_header_overrides_content_type(self) -> None:
        request = build_request(_args(headers=(("Content-Type", "text/plain"),)))
        assert request.headers.get_list("Content-Type") == ["text/plain"]

    def test_repeated_header_last_wins(self) -> None:
        request = build_request(_args(headers=(("X-Trace", "1"), ("X-Trace", "2"))))
        assert request.headers.get_list("X-Trace") == ["2"]

    def test_body_and_auth(self) -> None:
        request = build_request(
            _args(method="POST", body=b'{"a": 1}', auth=BearerAuth(token="tok"))
        )
        assert request.method == "POST"
        assert request.content == b'{"a": 1}'
        assert request.headers["Content-Length"] == "8"
        assert request.headers["Authorization"] == "Bearer tok"

    def test_client_defaults_merged(self) -> None:
        with httpx.Client(headers={"User-Agent": "agent/1"}) as client:
            request = build_request(_args(), client)
        assert request.headers["User-Agent"] == "agent/1"


# ---------------------------------------------------------------------------
# Execution
# ---------------------------------------------------------------------------


class TestExecute:
    def test_json_rendered_with_default_template(self, mock_client) -> None:
        args = _args()
        response = execute(args, mock_client(_json_handler({"id": 1, "name": "alice"})))
        assert response.status_code == 200
        assert args.output.getvalue() == b'{\n  "id": 1,\n  "name": "alice"\n}'

    def test_custom_template_context(self, mock_client) -> None:
        args = _args(template=compile_template("{{ status }} {{ method }} {{ url }} {{ body.id }}"))
        execute(args, mock_client(_json_handler({"id": 1})))
        assert args.output.getvalue() == f"200 GET {URL} 1".encode()

    def test_non_json_passthrough(self, mock_client) -> None:
        args = _args(template=compile_template("{{ body.never }}"))
        execute(args, mock_client(lambda request: httpx.Response(200, text="plain text")))
        assert args.output.getvalue() == b"plain text"

    def test_empty_body_passthrough(self, mock_client) -> None:
        args = _args()
        execute(args, mock_client(lambda request: httpx.Response(204)))
        assert args.output.getvalue() == b""

    def test_response_charset(self, mock_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200,
                headers={"Content-Type": "text/plain; charset=latin-1"},
                content="café".encode("latin-1"),
            )

        args = _args()
        execute(args, mock_client(handler))
        assert args.output.getvalue() == "café".encode("utf-8")

    def test_undecodable_response(self, mock_client) -> None:
        handler = lambda request: httpx.Response(200, content=b"\xff\xfe\xfd")  # noqa: E731
        with pytest.raises(InvalidBodyError):
            execute(_args(), mock_client(handler))

    def test_request_sent_as_built(self, mock_client) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(201, json={"ok": True})

        args = _args(
            method="POST",
            body=b'{"name": "bob"}',
            headers=(("Content-Type", "text/plain"),),
            auth=BearerAuth(token="tok"),
        )
        execute(args, mock_client(handler))

        (request,) = seen
        assert request.method == "POST"
        assert str(request.url) == URL
        assert request.content == b'{"name": "bob"}'
        assert request.headers["Content-Type"] == "text/plain"
        assert request.headers["Authorization"] == "Bearer tok"

    def test_failure_template_for_error_status(self, mock_client) -> None:
        args = _args(failure_template=compile_template("failed: {{ body.error }}"))
        response = execute(args, mock_client(_json_handler({"error": "nope"}, 404)))
        assert response.status_code == 404
        assert args.output.getvalue() == b"failed: nope"

    def test_error_status_without_failure_template(self, mock_client) -> None:
        args = _args()
        execute(args, mock_client(_json_handler({"error": "boom"}, 500)))
        assert json.loads(args.output.getvalue()) == {"error": "boom"}

    def test_dry_run_sends_nothing(self, mock_client, capsys) -> None:
        calls: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200)

        args = _args(method="POST", body=b"{}", dry=True, verbose=True)
        assert execute(args, mock_client(handler)) is None
        assert calls == []
        assert args.output.getvalue() == b""

        err = capsys.readouterr().err
        assert f"[dry-run] POST {URL}" in err
        assert "Body: 2 bytes" in err

    def test_dry_run_with_relative_url(self, capsys) -> None:
        args = _args(url="/users", dry=True, verbose=True)
        assert execute(args) is None
        assert "[dry-run] GET /users" in capsys.readouterr().err

    def test_dry_run_shows_client_headers(self, capsys) -> None:
        options = ClientOptions(user_agent="agent/2", gzip=False, brotli=False)
        args = _args(dry=True, verbose=True, client=options)
        assert execute(args) is None
        err = capsys.readouterr().err
        assert "user-agent: agent/2" in err.lower()
        assert "accept-encoding: deflate" in err.lower()

    def test_verbose_prints_status_line(self, mock_client, capsys) -> None:
        args = _args(verbose=True)
        execute(args, mock_client(_json_handler({})))
        err = capsys.readouterr().err
        assert f"GET {URL}" in err
        assert "HTTP/1.1 200 OK" in err

    def test_quiet_by_default(self, mock_client, capsys) -> None:
        execute(_args(), mock_client(_json_handler({})))
        assert capsys.readouterr().err == ""

    def test_relative_url_rejected(self, mock_client) -> None:
        calls: list[httpx.Request] = []
        client = mock_client(lambda request: calls.append(request) or httpx.Response(200))
        with pytest.raises(InvalidURLError, match="absolute URL"):
            execute(_args(url="/users"), client)
        assert calls == []

    def test_connection_error(self, mock_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ClientError, match="connection refused") as exc_info:
            execute(_args(), mock_client(handler))
        assert exc_info.value.exit_code == EXIT_CLIENT_ERROR

    def test_timeout(self, mock_client) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("too slow", request=request)

        with pytest.raises(ClientError, match="timed out"):
            execute(_args(), mock_client(handler))

    def test_overall_timeout_on_slow_body(self, mock_client) -> None:
        stream = _DripStream(b'{"a": 1}', pause=0.1)
        handler = lambda request: httpx.Response(200, stream=stream)  # noqa: E731
        args = _args(client=ClientOptions(timeout=0.15))

        started = time.monotonic()
        with pytest.raises(ClientError, match="timed out after 0.15 seconds"):
            execute(args, mock_client(handler))
        assert time.monotonic() - started < 0.6
        assert stream.closed
        assert args.output.getvalue() == b""

    def test_slow_body_within_timeout(self, mock_client) -> None:
        stream = _DripStream(b"[1]", pause=0.01)
        args = _args(client=ClientOptions(timeout=5))
        execute(args, mock_client(lambda request: httpx.Response(200, stream=stream)))
        assert json.loads(args.output.getvalue()) == [1]


# ---------------------------------------------------------------------------
# Resource handling
# ---------------------------------------------------------------------------


class TestResources:
    def test_file_sink_written_and_closed(self, mock_client, tmp_path: Path) -> None:
        path = tmp_path / "out.json"
        sink = FileSink.create(str(path))
        execute(_args(output=sink), mock_client(_json_handler({"id": 1})))
        assert sink.closed
        assert path.read_text() == '{\n  "id": 1\n}'

    def test_sink_closed_on_failure(self, mock_client, tmp_path: Path) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        sink = FileSink.create(str(tmp_path / "out.json"))
        with pytest.raises(ClientError):
            execute(_args(output=sink), mock_client(handler))
        assert sink.closed

    def test_caller_client_left_open(self, mock_client) -> None:
        client = mock_client(_json_handler({}))
        execute(_args(), client)
        assert not client.is_closed

    def test_owned_client_closed(self, monkeypatch: pytest.MonkeyPatch) -> None:
        built: list[httpx.Client] = []

        def fake_build_client(options) -> httpx.Client:
            built.append(httpx.Client(transport=httpx.MockTransport(_json_handler({}))))
            return built[-1]

        monkeypatch.setattr("kla.client.executor.build_client", fake_build_client)
        execute(_args())
        assert built[0].is_closed
