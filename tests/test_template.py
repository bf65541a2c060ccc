"""Tests for kla.template -- compilation, defaults, and rendering."""

from __future__ import annotations

from pathlib import Path

import pytest

from kla.exceptions import IOError_, TemplateError
from kla.template import DEFAULT_TEMPLATE, compile_template, json_encode


class TestCompileTemplate:
    @pytest.mark.parametrize("source", [None, ""])
    def test_default_pretty_prints_body(self, source) -> None:
        template = compile_template(source)
        assert template.is_default
        assert template.source == DEFAULT_TEMPLATE
        assert template.render({"body": {"id": 1, "tags": ["a"]}}) == (
            '{\n  "id": 1,\n  "tags": [\n    "a"\n  ]\n}'
        )

    def test_inline_template(self) -> None:
        template = compile_template("{{ body.name }} ({{ status }})")
        assert not template.is_default
        assert template.render({"body": {"name": "alice"}, "status": 200}) == "alice (200)"

    def test_file_template_keeps_trailing_newline(self, tmp_path: Path) -> None:
        path = tmp_path / "user.j2"
        path.write_text("{{ body.id }}\n")
        template = compile_template(f"@{path}")
        assert template.render({"body": {"id": 7}}) == "7\n"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(IOError_):
            compile_template(f"@{tmp_path / 'missing.txt'}")

    def test_syntax_error_names_template(self) -> None:
        with pytest.raises(TemplateError, match="failure template"):
            compile_template("{{ body.name ", "failure template")

    def test_html_is_not_escaped(self) -> None:
        template = compile_template("{{ body }}")
        assert template.render({"body": "<b>&</b>"}) == "<b>&</b>"


class TestRender:
    def test_undefined_variable(self) -> None:
        template = compile_template("{{ missing }}")
        with pytest.raises(TemplateError, match="Could not render"):
            template.render({"body": {}})

    def test_undefined_attribute(self) -> None:
        template = compile_template("{{ body.name.first }}")
        with pytest.raises(TemplateError):
            template.render({"body": {}})


class TestJsonEncode:
    def test_compact_by_default(self) -> None:
        assert json_encode({"a": [1, 2]}) == '{"a": [1, 2]}'

    def test_keeps_non_ascii(self) -> None:
        assert json_encode({"name": "café"}) == '{"name": "café"}'

    def test_filter_in_template(self) -> None:
        template = compile_template("{{ body.ids | json_encode }}")
        assert template.render({"body": {"ids": [1, 2]}}) == "[1, 2]"
