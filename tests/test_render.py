"""
Tests for report rendering (reqcheck/render.py).
"""

import json
from unittest.mock import patch

import pytest

from reqcheck import render
from reqcheck.check import CheckResult, LibraryCheckError, LibraryUpdate
from reqcheck.releases import Release
from reqcheck.render import (
    ReportTemplate,
    colorize,
    display_width,
    format_release,
    render_json,
    render_report,
    render_table,
    status_icon,
)


@pytest.fixture
def result():
    return CheckResult.from_updates([
        LibraryUpdate("zlib", "1.3.0", "1.3.0"),
        LibraryUpdate("fmt", "9.1.0", "10.1.1", tag="10.1.1"),
        LibraryUpdate("curl", "8.0.0", "8.4.0", tag="curl-8_4_0"),
    ])


class TestRenderReport:
    """Tests for the textual report."""

    def test_default_template(self, result):
        assert render_report(result) == (
            "The following libraries are up to date:\n"
            "  zlib: 1.3.0\n"
            "The following libraries have updates:\n"
            "  curl: 8.0.0 -> 8.4.0\n"
            "  fmt: 9.1.0 -> 10.1.1\n"
        )

    def test_empty_sections(self):
        output = render_report(CheckResult())
        assert "  No libraries are up to date\n" in output
        assert output.endswith("  All libraries are up to date\n")

    def test_custom_template(self, result):
        template = ReportTemplate.from_dict({
            "upgrade_header": "Outdated:",
            "upgrade_line": "- {name} ({tag})",
        })
        output = render_report(result, template)
        assert "Outdated:\n- curl (curl-8_4_0)\n- fmt (10.1.1)\n" in output
        assert output.startswith("The following libraries are up to date:")

    def test_unknown_template_key(self):
        with pytest.raises(ValueError, match="bogus"):
            ReportTemplate.from_dict({"bogus": "x"})

    @pytest.mark.parametrize("fmt", ["  {Name}", "  {}", "  {0}"])
    def test_unknown_line_field(self, fmt):
        with pytest.raises(ValueError, match="Unknown field"):
            ReportTemplate.from_dict({"upgrade_line": fmt})

    @pytest.mark.parametrize("fmt", ["  {name", "  {name!z}", "  {current_version:d}", "  {name.upper.x}"])
    def test_unrenderable_line_format(self, fmt):
        with pytest.raises(ValueError, match="Invalid format for current_line"):
            ReportTemplate.from_dict({"current_line": fmt})

    def test_all_line_fields_accepted(self, result):
        template = ReportTemplate.from_dict({
            "upgrade_line": "{name} {current_version} {upgrade_version} {tag} {breaking_change}",
        })
        assert "fmt 9.1.0 10.1.1 10.1.1 True\n" in render_report(result, template)

    def test_headers_are_not_formatted(self, result):
        template = ReportTemplate.from_dict({"current_header": "Current {libraries}:"})
        assert render_report(result, template).startswith("Current {libraries}:\n")


class TestTable:
    """Tests for the table renderer."""

    def test_upgrades_first(self, result):
        with patch.object(render, "USE_COLOR", False), patch.object(render, "USE_EMOJI", False):
            output = render_table(result)

        lines = output.splitlines()
        assert lines[0].split() == ["state", "library", "current", "upgrade"]
        assert [line.split()[1] for line in lines[1:4]] == ["curl", "fmt", "zlib"]
        assert lines[2].startswith("!")
        assert lines[-1] == "Libraries: 1 up to date, 2 with updates"

    def test_columns_aligned_with_color(self, result):
        with patch.object(render, "USE_COLOR", True), patch.object(render, "USE_EMOJI", False):
            output = render_table(result)

        rows = [render.CSI_RE.sub("", line) for line in output.splitlines()[:4]]
        positions = {row.index(name) for row, name in zip(rows, ["library", "curl", "fmt", "zlib"])}
        assert len(positions) == 1


class TestHelpers:
    """Tests for small rendering helpers."""

    def test_status_icon_plain(self):
        with patch.object(render, "USE_EMOJI", False):
            assert status_icon(LibraryUpdate("a", "1.0.0", "1.0.0")) == "✓"
            assert status_icon(LibraryUpdate("a", "1.0.0", "1.1.0")) == "↑"
            assert status_icon(LibraryUpdate("a", "1.0.0", "2.0.0")) == "!"

    def test_status_icon_emoji(self):
        with patch.object(render, "USE_EMOJI", True):
            assert status_icon(LibraryUpdate("a", "1.0.0", "1.0.0")) == "✅"

    def test_colorize(self):
        with patch.object(render, "USE_COLOR", True):
            assert colorize("x", render.GREEN) == "\033[32mx\033[0m"
            assert colorize("", render.GREEN) == ""
        with patch.object(render, "USE_COLOR", False):
            assert colorize("x", render.GREEN) == "x"

    def test_display_width(self):
        assert display_width("\033[32mabc\033[0m") == 3
        assert display_width("✅") == 2

    def test_format_release(self):
        assert format_release(Release.from_tag("v1.2")) == "tag v1.2 -> semver 1.2.0"
        assert format_release(Release.from_tag("nightly")) == "tag nightly -> semver ???"


class TestRenderJson:
    """Tests for JSON output."""

    def test_structure(self, result):
        data = json.loads(render_json(result))
        assert [u["name"] for u in data["upgrade"]] == ["curl", "fmt"]
        assert data["upgrade"][1]["breaking_change"] is True
        assert data["current"][0]["upgrade_version"] == "1.3.0"
        assert data["failures"] == []

    def test_failures(self):
        result = CheckResult.from_updates([], [LibraryCheckError("fmt", RuntimeError("HTTP 500"))])
        assert json.loads(render_json(result))["failures"] == [{"name": "fmt", "error": "HTTP 500"}]
